"""
Student persistence helpers (raw SQL).

Writes that touch more than one table go through `run_in_transaction` so the
student row and its audit entry in `logs` are stored together or not at all.
"""

from __future__ import annotations

from typing import Any

from core import db
from core.results import MultiResultCursor
from core.transaction import TransactionExecutor

from .schemas import StudentRecord

STUDENT_COLUMNS = "student_id, student_number, name, title"


async def list_students() -> list[StudentRecord]:
    return await db.executor().query_many(
        f"SELECT {STUDENT_COLUMNS} FROM students ORDER BY student_id",
        into=StudentRecord,
    )


async def get_student_by_number(student_number: int) -> StudentRecord | None:
    return await db.executor().query_first(
        f"SELECT {STUDENT_COLUMNS} FROM students WHERE student_number = :student_number",
        {"student_number": student_number},
        into=StudentRecord,
    )


async def get_student_by_id(student_id: int) -> StudentRecord | None:
    return await db.executor().query_single(
        f"SELECT {STUDENT_COLUMNS} FROM students WHERE student_id = :student_id",
        {"student_id": student_id},
        into=StudentRecord,
    )


async def first_student_name() -> str | None:
    return await db.executor().query_first(
        "SELECT name FROM students ORDER BY student_id LIMIT 1",
        into=str,
    )


async def count_students() -> int:
    return await db.executor().execute_scalar("SELECT COUNT(*) FROM students", into=int)


async def _write_log(tx: TransactionExecutor, student_id: int, message: str) -> None:
    await tx.execute(
        "INSERT INTO logs (student_id, message) VALUES (:student_id, :message)",
        {"student_id": student_id, "message": message},
    )


async def create_student(*, student_number: int, name: str, title: str | None = None) -> int:
    """
    Insert a student and its audit log entry in a single transaction.

    Returns the new student_id.
    """

    async def _insert(tx: TransactionExecutor) -> int:
        student_id = await tx.execute_scalar(
            """
            INSERT INTO students (student_number, name, title)
            VALUES (:student_number, :name, :title)
            RETURNING student_id
            """,
            {"student_number": student_number, "name": name, "title": title},
            into=int,
        )
        await _write_log(tx, student_id, f"created student {student_number}")
        return student_id

    return await db.executor().run_in_transaction(_insert)


async def update_student(
    student_id: int,
    *,
    student_number: int,
    name: str,
    title: str | None = None,
) -> bool:
    async def _update(tx: TransactionExecutor) -> bool:
        affected = await tx.execute(
            """
            UPDATE students
            SET student_number = :student_number, name = :name, title = :title
            WHERE student_id = :student_id
            """,
            {
                "student_id": student_id,
                "student_number": student_number,
                "name": name,
                "title": title,
            },
        )
        if affected:
            await _write_log(tx, student_id, f"updated student {student_number}")
        return affected > 0

    return await db.executor().run_in_transaction(_update)


async def delete_student(student_id: int) -> bool:
    async def _delete(tx: TransactionExecutor) -> bool:
        await tx.execute("DELETE FROM logs WHERE student_id = :student_id", {"student_id": student_id})
        affected = await tx.execute(
            "DELETE FROM students WHERE student_id = :student_id",
            {"student_id": student_id},
        )
        return affected > 0

    return await db.executor().run_in_transaction(_delete)


async def import_students(students: list[dict[str, Any]]) -> int:
    """
    Bulk insert students. Returns the number of rows inserted.
    """
    if not students:
        return 0
    return await db.executor().execute_batch(
        "INSERT INTO students (student_number, name, title) VALUES (:student_number, :name, :title)",
        students,
    )


async def student_summary(*, limit: int = 5) -> tuple[int, list[StudentRecord]]:
    """
    Total count and the most recently created students, read as two result
    sets over one connection.
    """

    async def _read(cursor: MultiResultCursor) -> tuple[int, list[StudentRecord]]:
        total = await cursor.read_first(int)
        latest = await cursor.read(StudentRecord)
        return int(total or 0), latest

    return await db.executor().query_multiple(
        f"""
        SELECT COUNT(*) AS total FROM students;
        SELECT {STUDENT_COLUMNS} FROM students ORDER BY student_id DESC LIMIT :limit
        """,
        _read,
        {"limit": limit},
    )
