import logging
import uuid
from typing import Any, Dict, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.exam_session_model import ExamSession, ACTIVE_SESSION_STATUSES
from ..models.question_model import CodingQuestion
from ..models.submission_model import Submission
from .grading_service import GradeOutcome, RunType, SCORING_RUN_TAGS

logger = logging.getLogger(__name__)


def _parse_uuid(value) -> Optional[uuid.UUID]:
    if value is None or value == "":
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return None


async def get_question(session: AsyncSession, question_id) -> Optional[CodingQuestion]:
    """Stored coding question with its test cases, or None when the id is malformed or unknown."""
    qid = _parse_uuid(question_id)
    if qid is None:
        logger.info("Question id %r is not a stored question id, using request data", question_id)
        return None
    res = await session.execute(select(CodingQuestion).where(CodingQuestion.id == qid))
    return res.scalar_one_or_none()


async def autosave_exam_session(
    session: AsyncSession,
    exam_id,
    user_id,
    question_id,
    code: str,
    language: Optional[str],
) -> bool:
    """
    Mirror the latest code into the caller's active exam session so a final exam
    submit sees code that was only ever run.

    Best effort: any failure is logged and swallowed. Returns True when an answer was written.
    """
    try:
        exam_uuid = _parse_uuid(exam_id)
        if exam_uuid is None or user_id is None:
            return False

        q = await session.execute(
            select(ExamSession).where(
                ExamSession.exam_id == exam_uuid,
                ExamSession.student_id == user_id,
                ExamSession.status.in_(ACTIVE_SESSION_STATUSES),
            )
        )
        rows = q.scalars().all()
        if len(rows) > 1:
            logger.warning("Multiple active ExamSession rows found for exam_id=%s student_id=%s, using first row", str(exam_uuid), str(user_id))
        active = rows[0] if rows else None
        if not active:
            return False

        qid = str(question_id)
        answers = dict(active.answers or {})
        # merge so keys written by the exam subsystem (marks, visited, ...) survive
        entry = dict(answers.get(qid) or {"questionId": qid, "questionType": "coding"})
        entry.update({"code": code, "language": language, "answered": True})
        answers[qid] = entry
        active.answers = answers

        session.add(active)
        await session.commit()
        logger.info("Auto-saved code for student %s exam %s question %s", str(user_id), str(exam_uuid), qid)
        return True
    except Exception as e:
        logger.warning("Failed to auto-save exam session for exam_id=%s student_id=%s: %s", str(exam_id), str(user_id), e)
        try:
            await session.rollback()
        except Exception as rollback_error:
            logger.warning("Rollback after failed auto-save also failed: %s", rollback_error)
        return False


async def persist_submission(
    session: AsyncSession,
    *,
    user_id,
    exam_id,
    question_id,
    language: str,
    source: str,
    run_type: RunType,
    outcome: GradeOutcome,
    duration_ms: int = 0,
    run_tag: Optional[str] = None,
) -> Submission:
    """
    Insert one new Submission row. Existing rows are never touched.

    `run_tag` is the tag the client sent; legacy tags such as "final" are stored as sent.
    """
    tag = (run_tag or "").strip().lower()
    if tag not in SCORING_RUN_TAGS:
        tag = run_type.value
    submission = Submission(
        exam_id=_parse_uuid(exam_id),
        question_id=str(question_id) if question_id is not None else None,
        user_id=user_id,
        language=language,
        source=source,
        results=list(outcome.results),
        passed=outcome.passed,
        total=outcome.total,
        score=outcome.score,
        run_type=tag,
        is_manual_override=False,
        manual_score=None,
        duration_ms=duration_ms,
    )
    session.add(submission)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.exception("DB IntegrityError while saving submission for question_id=%s user_id=%s", str(question_id), str(user_id))
        raise
    await session.refresh(submission)
    return submission


async def list_user_submissions(
    session: AsyncSession,
    user_id,
    exam_id=None,
    question_id: Optional[str] = None,
    run_type: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
) -> Dict[str, Any]:
    skip = max(skip, 0)
    limit = max(min(limit, 200), 1)

    stmt = select(Submission).where(Submission.user_id == user_id)
    if exam_id is not None:
        stmt = stmt.where(Submission.exam_id == _parse_uuid(exam_id))
    if question_id:
        stmt = stmt.where(Submission.question_id == str(question_id))
    if run_type:
        stmt = stmt.where(Submission.run_type == run_type)

    total_result = await session.execute(select(func.count()).select_from(stmt.subquery()))
    total = total_result.scalar_one() or 0

    res = await session.execute(stmt.order_by(Submission.created_at.desc()).offset(skip).limit(limit))
    return {"total": int(total), "skip": skip, "limit": limit, "items": res.scalars().all()}


async def latest_scoring_submission(session: AsyncSession, user_id, question_id: str, exam_id=None) -> Optional[Submission]:
    stmt = select(Submission).where(
        Submission.user_id == user_id,
        Submission.question_id == str(question_id),
        Submission.run_type.in_(SCORING_RUN_TAGS),
    )
    if exam_id is not None:
        stmt = stmt.where(Submission.exam_id == _parse_uuid(exam_id))
    res = await session.execute(stmt.order_by(Submission.created_at.desc()).limit(1))
    return res.scalars().first()
