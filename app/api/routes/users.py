# app/api/routes/users.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import authorize_user, require_admin
from app.crud.user import get_user, list_users
from app.db.session import get_session
from app.schemas.auth import Principal
from app.schemas.user import UserOut

router = APIRouter(prefix="/users", tags=["users"])

@router.get("", response_model=List[UserOut])
async def list_users_ep(
    db: AsyncSession = Depends(get_session),
    _: Principal = Depends(require_admin),
):
    return await list_users(db)

@router.get("/{user_id}", response_model=UserOut)
async def get_user_ep(
    user_id: str,
    db: AsyncSession = Depends(get_session),
    _: Principal = Depends(authorize_user),
):
    return await get_user(db, user_id)
