"""
Student API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from . import schemas, service

router = APIRouter()


@router.get("/students")
async def list_students() -> dict:
    students = await service.list_students()
    return {"students": students, "count": len(students)}


@router.get("/students/summary")
async def student_summary(limit: int = Query(5, ge=1, le=100)) -> schemas.StudentSummary:
    return await service.summary(limit=limit)


@router.get("/students/first-name")
async def first_student_name() -> dict:
    name = await service.first_student_name()
    if name is None:
        raise HTTPException(status_code=404, detail="No students found.")
    return {"name": name}


@router.get("/students/{student_number}")
async def get_student(student_number: int) -> schemas.Student:
    student = await service.get_student_by_number(student_number)
    if student is None:
        raise HTTPException(status_code=404, detail="Student not found.")
    return student


@router.post("/students", status_code=status.HTTP_201_CREATED)
async def create_student(request: schemas.StudentCreateRequest) -> schemas.Student:
    return await service.create_student(request)


@router.post("/students/import", status_code=status.HTTP_201_CREATED)
async def import_students(request: schemas.StudentImportRequest) -> dict:
    return await service.import_students(request)


@router.put("/students/{student_id}")
async def update_student(student_id: int, request: schemas.StudentUpdateRequest) -> schemas.Student:
    return await service.update_student(student_id, request)


@router.delete("/students/{student_id}")
async def delete_student(student_id: int) -> dict:
    return await service.delete_student(student_id)
