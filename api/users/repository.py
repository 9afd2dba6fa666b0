"""
User persistence helpers.
"""

from __future__ import annotations

from core import db

from .schemas import User


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def list_users() -> list[User]:
    return await db.executor().query_many(
        """
        SELECT id, username, email, date_registered
        FROM users
        ORDER BY id
        """,
        into=User,
    )


async def get_user_by_id(user_id: int) -> User | None:
    return await db.executor().query_single(
        """
        SELECT id, username, email, date_registered
        FROM users
        WHERE id = :id
        """,
        {"id": user_id},
        into=User,
    )


async def create_user(*, username: str, email: str) -> int:
    return await db.executor().execute_scalar(
        """
        INSERT INTO users (username, email)
        VALUES (:username, :email)
        RETURNING id
        """,
        {"username": username.strip(), "email": normalize_email(email)},
        into=int,
    )


async def update_user(user_id: int, *, username: str, email: str) -> bool:
    affected = await db.executor().execute(
        """
        UPDATE users
        SET username = :username, email = :email
        WHERE id = :id
        """,
        {"id": user_id, "username": username.strip(), "email": normalize_email(email)},
    )
    return affected > 0


async def delete_user(user_id: int) -> bool:
    affected = await db.executor().execute(
        "DELETE FROM users WHERE id = :id",
        {"id": user_id},
    )
    return affected > 0
