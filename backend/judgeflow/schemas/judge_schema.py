from pydantic import BaseModel, Field
from typing import List, Optional


class TestCaseIn(BaseModel):
    """Test case posted with the request (questions embedded in an exam document)."""

    id: Optional[str] = Field(None, alias="_id")
    input: str = ""
    expected_output: str = Field("", alias="expectedOutput")
    is_hidden: bool = Field(False, alias="isHidden")

    class Config:
        populate_by_name = True
        coerce_numbers_to_str = True


class RunRequest(BaseModel):
    questionId: Optional[str] = None
    source: Optional[str] = None
    runType: Optional[str] = None
    language: Optional[str] = None
    testCases: Optional[List[TestCaseIn]] = None
    mainBlock: Optional[str] = None
    examId: Optional[str] = None
