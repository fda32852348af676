from judgeflow.db import Base
from sqlalchemy import Column, Integer, Float, DateTime, Enum as SAEnum, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy import ForeignKey
from sqlalchemy.ext.mutable import MutableDict
import uuid
import enum
from datetime import datetime


class ExamSessionStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    GRADED = "graded"
    EVALUATED = "evaluated"


# sessions whose answers may still change
ACTIVE_SESSION_STATUSES = (ExamSessionStatus.IN_PROGRESS, ExamSessionStatus.PENDING)


class ExamSession(Base):
    __tablename__ = "exam_sessions"
    __table_args__ = (UniqueConstraint('exam_id', 'student_id', name='uq_exam_student'),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    exam_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    student_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)

    start_time = Column(DateTime, default=datetime.utcnow)
    status = Column(SAEnum(ExamSessionStatus), default=ExamSessionStatus.NOT_STARTED, nullable=False)
    score = Column(Float, nullable=True)

    # question id -> answer entry. MutableDict so in-place changes are detected
    answers = Column(MutableDict.as_mutable(JSONB), nullable=True, default=dict)
    remaining_seconds = Column(Integer, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
