from judgeflow.db import Base
import uuid
from datetime import datetime
from sqlalchemy import Column, Integer, Float, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship


class CodingQuestion(Base):
    """Coding question owned by the exam subsystem; the judge only reads it."""
    __tablename__ = "coding_questions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    language = Column(String, nullable=False, default="python")
    boilerplate = Column(Text, default="")
    # hidden scaffold wrapped around the student's code before execution
    main_block = Column(Text, default="")
    marks = Column(Float, default=10)
    difficulty = Column(String, default="easy")
    created_at = Column(DateTime, default=datetime.utcnow)

    test_cases = relationship(
        "TestCase",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="TestCase.position",
        lazy="selectin",
    )


class TestCase(Base):
    __tablename__ = "test_cases"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    question_id = Column(UUID(as_uuid=True), ForeignKey("coding_questions.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    input = Column(Text, nullable=False, default="")
    expected_output = Column(Text, nullable=False, default="")
    # false -> visible sample test case, true -> hidden test case
    is_hidden = Column(Boolean, default=False)
    description = Column(Text, default="")
    time_limit = Column(Float, default=2)  # seconds
    memory_limit = Column(Integer, default=128)  # MB
    created_at = Column(DateTime, default=datetime.utcnow)

    question = relationship("CodingQuestion", back_populates="test_cases")
