from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import asyncio
import logging
import time

from ..config import DEFAULT_QUESTION_MARKS
from ..db import get_async_session
from ..security import current_active_user
from ..schemas.judge_schema import RunRequest
from ..schemas.submission_schema import SubmissionRead
from ..services.code_composer import compose_source
from ..services.grading_service import RunType, grade_test_cases, run_exploratory
from ..services.judge_client import JudgeClient
from ..services.language_map import LANGUAGE_IDS, language_to_judge0_id
from ..services.submission_service import autosave_exam_session, get_question, persist_submission

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/judge", tags=["Judge"])


def get_judge_client() -> JudgeClient:
    return JudgeClient()


@router.get("/languages")
async def list_languages():
    return LANGUAGE_IDS


@router.post("/run")
async def run_code(
    payload: RunRequest,
    user=Depends(current_active_user),
    session: AsyncSession = Depends(get_async_session),
    judge: JudgeClient = Depends(get_judge_client),
):
    if not payload.source:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing source code")

    user_id = getattr(user, "id", None)
    try:
        # keep the exam session in sync even for plain runs, failures never block grading
        if payload.examId and user_id:
            await autosave_exam_session(session, payload.examId, user_id, payload.questionId, payload.source, payload.language)

        test_cases = []
        language = payload.language
        marks = DEFAULT_QUESTION_MARKS
        main_block = payload.mainBlock or ""

        if payload.testCases is not None:
            test_cases = payload.testCases
        elif payload.questionId:
            try:
                question = await get_question(session, payload.questionId)
            except Exception as e:
                logger.info("Could not fetch question %s, using request data: %s", payload.questionId, e)
                # leave the session usable for the submission insert
                await session.rollback()
                question = None
            if question:
                test_cases = list(question.test_cases or [])
                language = language or question.language
                marks = question.marks or DEFAULT_QUESTION_MARKS
                main_block = main_block or question.main_block or ""

        run_type = RunType.parse(payload.runType)
        language = language or "python"
        language_id = language_to_judge0_id(language)
        full_code = compose_source(payload.source, main_block, language)

        # judge calls block on HTTP and sleep while polling, keep them off the event loop
        if run_type is RunType.RUN:
            result = await asyncio.to_thread(run_exploratory, judge, full_code, language_id)
            return {"submission": result}

        started = time.monotonic()
        outcome = await asyncio.to_thread(grade_test_cases, judge, full_code, language_id, test_cases, run_type, marks)
        duration_ms = int((time.monotonic() - started) * 1000)

        if run_type.is_scoring and user_id:
            try:
                submission = await persist_submission(
                    session,
                    user_id=user_id,
                    exam_id=payload.examId,
                    question_id=payload.questionId,
                    language=language,
                    source=payload.source,
                    run_type=run_type,
                    run_tag=payload.runType,
                    outcome=outcome,
                    duration_ms=duration_ms,
                )
            except IntegrityError as ie:
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail={"message": "Database error while saving submission", "error": str(ie)},
                )
            return {"submission": SubmissionRead.from_orm(submission)}

        return {"submission": outcome.as_response()}
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Judge run failed for question_id=%s user_id=%s: %s", str(payload.questionId), str(user_id), e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Server error", "error": str(e)},
        )
