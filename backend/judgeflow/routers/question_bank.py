from fastapi import APIRouter, UploadFile, File, Depends, HTTPException, status
from typing import List
from uuid import UUID
import logging
import os
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ..db import get_async_session
from ..dependencies import current_staff
from ..models.question_model import CodingQuestion, TestCase
from ..schemas.question_schema import TestCaseData, CodingQuestionRead
from ..services.excel_service import parse_test_cases_excel, REQUIRED_COLUMNS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/questionbank", tags=["Question Bank"])


# Upload Excel & Preview
@router.post("/testcases/upload", dependencies=[Depends(current_staff)])
async def upload_test_cases(file: UploadFile = File(...)):
    #  check file extension and return parsed preview
    file_extension = os.path.splitext(file.filename or "")[1]
    allowed_extension = {".xlsx", ".xlsm", ".xls", ".xlsb", ".ods"}

    if file_extension not in allowed_extension:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid file extension. Only {sorted(allowed_extension)} are allowed."
        )
    try:
        preview = parse_test_cases_excel(file.file)
    except KeyError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Column not found :{str(e)}. Please check the column in uploaded file. "
                f"file must contain these columns {REQUIRED_COLUMNS} and may contain "
                "[description, time_limit, memory_limit]. Columns are case sensitive."
            ),
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Could not read spreadsheet: {e}")

    return {"total": len(preview), "preview": preview}


# Confirm Import
@router.post("/{question_id}/testcases/confirm-import", dependencies=[Depends(current_staff)])
async def confirm_import(
    question_id: UUID,
    test_cases: List[TestCaseData],
    session: AsyncSession = Depends(get_async_session),
):
    #  append parsed test cases to the question, skipping duplicates
    res = await session.execute(select(CodingQuestion).where(CodingQuestion.id == question_id))
    question = res.scalar_one_or_none()
    if not question:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found.")

    existing = {(tc.input, tc.expected_output) for tc in question.test_cases}
    position = len(question.test_cases)
    added = 0
    for tc in test_cases:
        key = (tc.input, tc.expected_output)
        if key in existing:
            logger.info("Test case already attached to question %s, skipped", str(question_id))
            continue
        existing.add(key)
        session.add(TestCase(
            question_id=question.id,
            position=position,
            input=tc.input,
            expected_output=tc.expected_output,
            is_hidden=tc.is_hidden,
            description=tc.description,
            time_limit=tc.time_limit,
            memory_limit=tc.memory_limit,
        ))
        position += 1
        added += 1

    await session.commit()

    return {"message": f"{added} test cases saved successfully!", "added": added, "skipped": len(test_cases) - added}


@router.get("/{question_id}", response_model=CodingQuestionRead, dependencies=[Depends(current_staff)])
async def get_question(question_id: UUID, session: AsyncSession = Depends(get_async_session)):
    # staff view, hidden test cases included
    result = await session.execute(select(CodingQuestion).where(CodingQuestion.id == question_id))
    question = result.scalar_one_or_none()
    if not question:
        raise HTTPException(status_code=404, detail="Question not found.")

    return question
