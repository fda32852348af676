# filepath: backend/judgeflow/routers/submission_routers.py
from fastapi import APIRouter, Depends, HTTPException, status
from typing import Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session
from ..dependencies import is_staff
from ..models.submission_model import Submission
from ..security import current_active_user
from ..schemas.submission_schema import SubmissionList, SubmissionRead
from ..services.submission_service import list_user_submissions, latest_scoring_submission

router = APIRouter(prefix="/submissions", tags=["Submissions"])


@router.get("/", response_model=SubmissionList)
async def list_my_submissions(
    exam_id: Optional[UUID] = None,
    question_id: Optional[str] = None,
    run_type: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
    session: AsyncSession = Depends(get_async_session),
    user=Depends(current_active_user),
):
    return await list_user_submissions(
        session, user.id, exam_id=exam_id, question_id=question_id, run_type=run_type, skip=skip, limit=limit
    )


@router.get("/latest", response_model=SubmissionRead)
async def get_latest_submission(
    question_id: str,
    exam_id: Optional[UUID] = None,
    session: AsyncSession = Depends(get_async_session),
    user=Depends(current_active_user),
):
    """Newest stored (all / test_all) submission of the caller for a question."""
    submission = await latest_scoring_submission(session, user.id, question_id, exam_id=exam_id)
    if not submission:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found")
    return submission


@router.get("/{submission_id}", response_model=SubmissionRead)
async def get_submission(
    submission_id: UUID,
    session: AsyncSession = Depends(get_async_session),
    user=Depends(current_active_user),
):
    # students only see their own submissions, staff see everyone's
    stmt = select(Submission).where(Submission.id == submission_id)
    if not is_staff(user):
        stmt = stmt.where(Submission.user_id == user.id)
    res = await session.execute(stmt)
    submission = res.scalar_one_or_none()
    if not submission:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found")
    return submission
