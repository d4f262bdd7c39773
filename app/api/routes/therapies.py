# app/api/routes/therapies.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import require_admin
from app.db.session import get_session
from app.schemas.auth import Principal
from app.schemas.appointment import DeletedOut
from app.schemas.therapy import TherapyCreate, TherapyOut, TherapyUpdate
from app.crud.therapy import create_therapy, delete_therapy, get_therapy, list_therapies, update_therapy

router = APIRouter(prefix="/therapies", tags=["therapies"])

@router.get("", response_model=List[TherapyOut])
async def list_therapies_ep(db: AsyncSession = Depends(get_session)):
    return await list_therapies(db)

@router.get("/{therapy_id}", response_model=TherapyOut)
async def get_therapy_ep(therapy_id: str, db: AsyncSession = Depends(get_session)):
    return await get_therapy(db, therapy_id)

@router.post("", response_model=TherapyOut, status_code=status.HTTP_201_CREATED)
async def create_therapy_ep(
    payload: TherapyCreate,
    db: AsyncSession = Depends(get_session),
    _: Principal = Depends(require_admin),
):
    return await create_therapy(db, payload)

@router.delete("/{therapy_id}", response_model=DeletedOut)
async def delete_therapy_ep(
    therapy_id: str,
    db: AsyncSession = Depends(get_session),
    _: Principal = Depends(require_admin),
):
    deleted = await delete_therapy(db, therapy_id)
    return {"id": deleted.id}

@router.patch("/{therapy_id}", response_model=TherapyOut)
async def update_therapy_ep(
    therapy_id: str,
    payload: TherapyUpdate,
    db: AsyncSession = Depends(get_session),
    _: Principal = Depends(require_admin),
):
    return await update_therapy(db, therapy_id, payload.model_dump(exclude_unset=True))
