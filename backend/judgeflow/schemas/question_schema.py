from pydantic import BaseModel, Field, validator
from typing import List, Optional
from uuid import UUID


class TestCaseData(BaseModel):
    """
    Schema for validating a test case row before it is attached to a coding question.
    """

    input: str = Field("", description="Text fed to the program on stdin.")
    expected_output: str = Field(..., description="Output the program must print.")
    is_hidden: bool = Field(False, description="Hidden test cases are not shown to students before grading.")
    description: str = Field("", description="Optional note for trainers.")
    time_limit: float = Field(2, gt=0, description="Seconds.")
    memory_limit: int = Field(128, gt=0, description="Megabytes.")

    @validator('expected_output')
    def expected_output_not_blank(cls, v):
        if v is None or not str(v).strip():
            raise ValueError('expected_output must not be empty.')
        return v


class TestCaseRead(TestCaseData):
    id: UUID

    class Config:
        from_attributes = True


class CodingQuestionRead(BaseModel):
    id: UUID
    title: str
    description: str
    language: str
    boilerplate: Optional[str] = ""
    marks: float
    difficulty: Optional[str] = None
    test_cases: List[TestCaseRead] = []

    class Config:
        from_attributes = True
