# app/crud/user.py
from typing import Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.business import Role
from app.core.errors import NotFoundError
from app.crud.appointment import storage_guard
from app.db.models.user import User


@storage_guard
async def get_user(db: AsyncSession, user_id: str) -> User:
    obj = await db.get(User, user_id)
    if obj is None:
        raise NotFoundError(f"User {user_id} not found", user_id=user_id)
    return obj


@storage_guard
async def create_user(db: AsyncSession, *, name: str, email: str, role: Role = Role.USER,
                      approved: bool = True) -> User:
    """Insert a user; used by seeding scripts and tests (registration lives elsewhere)."""
    obj = User(name=name, email=email.strip().lower(), role=Role(role).value, approved=approved)
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    return obj


@storage_guard
async def list_users(db: AsyncSession) -> Sequence[User]:
    res = await db.execute(sa.select(User).order_by(User.name.asc()))
    return res.scalars().all()
