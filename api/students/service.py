"""
Student business logic.

Rows coming from the table are validated before they leave the API: a
student needs a positive student_number and a non-blank name. Invalid rows
are skipped in listings (with a warning) rather than failing the request.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from . import repository, schemas

logger = logging.getLogger(__name__)


class InvalidStudentError(ValueError):
    pass


def _validate(record: schemas.StudentRecord) -> schemas.Student:
    name = (record.name or "").strip()
    if not name:
        raise InvalidStudentError(f"Student {record.student_number} has empty name.")
    if record.student_number <= 0:
        raise InvalidStudentError("Invalid student_number.")

    # Title may be null or any string.
    return schemas.Student(
        student_id=record.student_id,
        student_number=record.student_number,
        name=name,
        title=record.title,
    )


def _validate_all(records: list[schemas.StudentRecord]) -> list[schemas.Student]:
    students: list[schemas.Student] = []
    for record in records:
        try:
            students.append(_validate(record))
        except InvalidStudentError as exc:
            logger.warning("student_skipped student_id=%s reason=%s", record.student_id, exc)
    return students


async def list_students() -> list[schemas.Student]:
    return _validate_all(await repository.list_students())


async def get_student_by_number(student_number: int) -> schemas.Student | None:
    if student_number <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="student_number must be positive.",
        )

    record = await repository.get_student_by_number(student_number)
    if record is None:
        return None
    try:
        return _validate(record)
    except InvalidStudentError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc


async def first_student_name() -> str | None:
    name = await repository.first_student_name()
    return name.strip() if name and name.strip() else None


async def _require_student(student_id: int) -> schemas.Student:
    record = await repository.get_student_by_id(student_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found.")
    try:
        return _validate(record)
    except InvalidStudentError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc


async def create_student(payload: schemas.StudentCreateRequest) -> schemas.Student:
    existing = await repository.get_student_by_number(payload.student_number)
    if existing is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="student_number is already registered.",
        )

    student_id = await repository.create_student(
        student_number=payload.student_number,
        name=payload.name.strip(),
        title=payload.title,
    )
    logger.info("student_created student_id=%s student_number=%s", student_id, payload.student_number)
    return await _require_student(student_id)


async def update_student(student_id: int, payload: schemas.StudentUpdateRequest) -> schemas.Student:
    updated = await repository.update_student(
        student_id,
        student_number=payload.student_number,
        name=payload.name.strip(),
        title=payload.title,
    )
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found.")
    return await _require_student(student_id)


async def delete_student(student_id: int) -> dict:
    deleted = await repository.delete_student(student_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found.")
    return {"ok": True, "student_id": student_id}


async def import_students(payload: schemas.StudentImportRequest) -> dict:
    rows = [
        {"student_number": s.student_number, "name": s.name.strip(), "title": s.title}
        for s in payload.students
    ]
    inserted = await repository.import_students(rows)
    logger.info("students_imported requested=%s inserted=%s", len(rows), inserted)
    return {"ok": True, "inserted": inserted}


async def summary(*, limit: int = 5) -> schemas.StudentSummary:
    total, latest = await repository.student_summary(limit=limit)
    return schemas.StudentSummary(total=total, latest=_validate_all(latest))
