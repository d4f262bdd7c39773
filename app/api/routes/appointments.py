# app/api/routes/appointments.py

from __future__ import annotations
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import authorize_appointment, authorize_user, get_principal, require_admin
from app.db.session import get_session
from app.schemas.appointment import (
    AppointmentCreate,
    AppointmentOut,
    AppointmentUpdate,
    AssignRequest,
    CancellationDecision,
    CancellationRequest,
    CompletionResult,
    DeletedOut,
)
from app.schemas.auth import Principal
from app.crud.appointment import (
    approve_appointment,
    approve_cancellation,
    assign_appointment_to_user,
    complete_past_appointments,
    create_appointment,
    delete_appointment,
    get_appointment,
    list_appointments,
    list_appointments_for_user,
    request_cancellation,
    update_appointment,
)

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.get("", response_model=List[AppointmentOut])
async def list_appointments_ep(
    db: AsyncSession = Depends(get_session),
    _: Principal = Depends(get_principal),
):
    return await list_appointments(db)


# Static prefixes are declared above the /{appointment_id} routes
@router.get("/user/{user_id}", response_model=List[AppointmentOut])
async def list_user_appointments_ep(
    user_id: str,
    db: AsyncSession = Depends(get_session),
    _: Principal = Depends(authorize_user),
):
    return await list_appointments_for_user(db, user_id)


@router.post("", response_model=AppointmentOut, status_code=status.HTTP_201_CREATED)
async def create_appointment_ep(
    payload: AppointmentCreate,
    db: AsyncSession = Depends(get_session),
    _: Principal = Depends(get_principal),
):
    return await create_appointment(db, payload)


@router.post("/assign", response_model=AppointmentOut)
async def assign_appointment_ep(
    payload: AssignRequest,
    db: AsyncSession = Depends(get_session),
    _: Principal = Depends(require_admin),
):
    return await assign_appointment_to_user(db, payload.appointment_id, payload.user_id)


@router.post("/complete-past", response_model=CompletionResult)
async def complete_past_ep(
    db: AsyncSession = Depends(get_session),
    _: Principal = Depends(require_admin),
):
    updated = await complete_past_appointments(db)
    return {"message": "Past appointments updated successfully.", "updated": updated}


@router.patch("/request-cancellation/{appointment_id}", response_model=AppointmentOut)
async def request_cancellation_ep(
    appointment_id: str,
    payload: CancellationRequest,
    db: AsyncSession = Depends(get_session),
    _: Principal = Depends(authorize_appointment),
):
    return await request_cancellation(db, appointment_id, payload.notes)


@router.patch("/approve/{appointment_id}", response_model=AppointmentOut)
async def approve_appointment_ep(
    appointment_id: str,
    db: AsyncSession = Depends(get_session),
    _: Principal = Depends(require_admin),
):
    return await approve_appointment(db, appointment_id)


@router.patch("/approve-cancellation/{appointment_id}", response_model=AppointmentOut)
async def approve_cancellation_ep(
    appointment_id: str,
    payload: CancellationDecision,
    db: AsyncSession = Depends(get_session),
    _: Principal = Depends(require_admin),
):
    return await approve_cancellation(db, appointment_id, payload.new_status)


@router.get("/{appointment_id}", response_model=AppointmentOut)
async def get_appointment_ep(
    appointment_id: str,
    db: AsyncSession = Depends(get_session),
    _: Principal = Depends(get_principal),
):
    return await get_appointment(db, appointment_id)


@router.patch("/{appointment_id}", response_model=AppointmentOut)
async def update_appointment_ep(
    appointment_id: str,
    payload: AppointmentUpdate,
    db: AsyncSession = Depends(get_session),
    principal: Principal = Depends(authorize_appointment),
):
    changes = payload.model_dump(exclude_unset=True)
    return await update_appointment(db, appointment_id, changes, acting_role=principal.role)


@router.delete("/{appointment_id}", response_model=DeletedOut)
async def delete_appointment_ep(
    appointment_id: str,
    db: AsyncSession = Depends(get_session),
    _: Principal = Depends(require_admin),
):
    deleted = await delete_appointment(db, appointment_id)
    return {"id": deleted.id}
