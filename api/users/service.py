"""
User business logic.

Thin layer over the repository: turns missing rows into 404s.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from . import repository, schemas

logger = logging.getLogger(__name__)


async def list_users() -> list[schemas.User]:
    return await repository.list_users()


async def get_user(user_id: int) -> schemas.User:
    user = await repository.get_user_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    return user


async def create_user(payload: schemas.UserCreateRequest) -> schemas.User:
    user_id = await repository.create_user(username=payload.username, email=payload.email)
    logger.info("user_created user_id=%s", user_id)
    return await get_user(user_id)


async def update_user(user_id: int, payload: schemas.UserUpdateRequest) -> schemas.User:
    updated = await repository.update_user(user_id, username=payload.username, email=payload.email)
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    return await get_user(user_id)


async def delete_user(user_id: int) -> dict:
    deleted = await repository.delete_user(user_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    logger.info("user_deleted user_id=%s", user_id)
    return {"ok": True, "user_id": user_id}
