# app/crud/therapy.py
from typing import Any, Mapping, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import BadRequestError, NotFoundError
from app.crud.appointment import storage_guard
from app.db.models.appointment import Appointment
from app.db.models.therapy import Therapy
from app.schemas.therapy import TherapyCreate

UPDATABLE_FIELDS = ("title", "description", "content", "image")


@storage_guard
async def list_therapies(db: AsyncSession) -> Sequence[Therapy]:
    res = await db.execute(sa.select(Therapy).order_by(Therapy.title.asc()))
    return res.scalars().all()


@storage_guard
async def get_therapy(db: AsyncSession, therapy_id: str) -> Therapy:
    obj = await db.get(Therapy, therapy_id)
    if obj is None:
        raise NotFoundError(f"Therapy {therapy_id} not found", therapy_id=therapy_id)
    return obj


@storage_guard
async def create_therapy(db: AsyncSession, data: TherapyCreate) -> Therapy:
    obj = Therapy(**data.model_dump())
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    return obj


@storage_guard
async def delete_therapy(db: AsyncSession, therapy_id: str) -> Therapy:
    obj = await get_therapy(db, therapy_id)

    booked = await db.scalar(
        sa.select(sa.func.count()).select_from(Appointment).where(Appointment.therapy_id == therapy_id)
    )
    if booked:
        raise BadRequestError(f"Therapy {therapy_id} still has {booked} appointment(s)")

    await db.delete(obj)
    await db.commit()
    return obj


@storage_guard
async def update_therapy(db: AsyncSession, therapy_id: str, changes: Mapping[str, Any]) -> Therapy:
    obj = await get_therapy(db, therapy_id)
    for key, value in changes.items():
        if key not in UPDATABLE_FIELDS:
            continue
        setattr(obj, key, value)
    await db.commit()
    await db.refresh(obj)
    return obj
