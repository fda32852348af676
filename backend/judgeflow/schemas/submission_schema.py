from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from uuid import UUID
from datetime import datetime


class SubmissionRead(BaseModel):
    id: UUID
    exam_id: Optional[UUID] = None
    question_id: Optional[str] = None
    user_id: UUID
    language: str
    source: str
    results: List[Dict[str, Any]] = []
    passed: int
    total: int
    score: float
    run_type: str
    is_manual_override: bool = False
    manual_score: Optional[float] = None
    duration_ms: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubmissionList(BaseModel):
    total: int
    skip: int
    limit: int
    items: List[SubmissionRead]
