from judgeflow.db import Base
from sqlalchemy import Column, Integer, Float, String, Text, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.ext.mutable import MutableList
import uuid
from datetime import datetime


class Submission(Base):
    """One graded code execution attempt. Rows are append-only."""
    __tablename__ = "submissions"
    __table_args__ = (
        Index("ix_submissions_question_user_created", "question_id", "user_id", "created_at"),
        Index("ix_submissions_exam_user_question_run", "exam_id", "user_id", "question_id", "run_type", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    exam_id = Column(UUID(as_uuid=True), nullable=True)
    # plain string: legacy questions use non-UUID ids
    question_id = Column(String, nullable=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    language = Column(String, default="python")
    source = Column(Text, nullable=False)

    # per test case result records as built by services.grading_service
    results = Column(MutableList.as_mutable(JSONB), nullable=False, default=list)
    passed = Column(Integer, default=0)
    total = Column(Integer, default=0)
    score = Column(Float, default=0)
    run_type = Column(String, nullable=False, default="all")

    # set only by evaluators, never by the judge
    is_manual_override = Column(Boolean, default=False)
    manual_score = Column(Float, nullable=True)

    duration_ms = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
