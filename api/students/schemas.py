"""
Student schemas.

`StudentRecord` mirrors the table and tolerates bad data (blank names);
`Student` is what the API hands out after validation.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class StudentRecord(BaseModel):
    student_id: int
    student_number: int
    name: str | None = None
    title: str | None = None


class Student(BaseModel):
    student_id: int
    student_number: int
    name: str
    title: str | None = None


class StudentCreateRequest(BaseModel):
    student_number: int = Field(..., gt=0)
    name: str = Field(..., min_length=1, max_length=200)
    title: str | None = Field(default=None, max_length=50)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class StudentUpdateRequest(StudentCreateRequest):
    pass


class StudentImportRequest(BaseModel):
    students: list[StudentCreateRequest] = Field(..., min_length=1, max_length=1000)


class StudentSummary(BaseModel):
    total: int
    latest: list[Student]
