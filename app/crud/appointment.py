# app/crud/appointment.py

from __future__ import annotations
from datetime import date, datetime, timezone
from functools import wraps
from types import SimpleNamespace
from typing import Any, Mapping, Optional, Sequence, Union

import sqlalchemy as sa
import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.business import (
    AppointmentStatus,
    CANCELLATION_OUTCOMES,
    DEFAULT_STATUS,
    OWNER_EDITABLE_FIELDS,
    Role,
)
from app.core.errors import BadRequestError, ConflictError, NotFoundError, StorageError
from app.db.models.appointment import Appointment, AppointmentUser
from app.db.models.therapy import Therapy
from app.db.models.user import User
from app.schemas.appointment import AppointmentCreate
from app.services.scheduling import coerce_status, ends_after_start, find_conflict, validate_transition

logger = structlog.get_logger(__name__)

UPDATABLE_FIELDS = ("date", "start_time", "end_time", "status", "notes", "admin_notes")
NON_NULL_FIELDS = frozenset({"date", "start_time", "end_time", "status"})
SCHEDULE_FIELDS = frozenset({"date", "start_time", "end_time"})


def storage_guard(fn):
    """Roll back and re-raise driver failures as StorageError."""
    @wraps(fn)
    async def wrapper(db: AsyncSession, *args, **kwargs):
        try:
            return await fn(db, *args, **kwargs)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("storage_failure", operation=fn.__name__, error=str(e))
            raise StorageError(f"Storage failure during {fn.__name__}") from e
    return wrapper


def _select_appointments() -> sa.Select:
    return (
        sa.select(Appointment)
        .order_by(Appointment.date.asc(), Appointment.start_time.asc())
        .execution_options(populate_existing=True)
    )


async def _load(db: AsyncSession, appointment_id: str) -> Appointment:
    res = await db.execute(_select_appointments().where(Appointment.id == appointment_id))
    appt = res.scalar_one_or_none()
    if appt is None:
        raise NotFoundError(f"Appointment {appointment_id} not found", appointment_id=appointment_id)
    return appt


@storage_guard
async def list_appointments(db: AsyncSession) -> Sequence[Appointment]:
    res = await db.execute(_select_appointments())
    return res.scalars().all()


@storage_guard
async def get_appointment(db: AsyncSession, appointment_id: str) -> Appointment:
    return await _load(db, appointment_id)


@storage_guard
async def list_appointments_for_user(db: AsyncSession, user_id: str) -> Sequence[Appointment]:
    q = _select_appointments().where(
        Appointment.users.any(AppointmentUser.user_id == user_id)
    )
    res = await db.execute(q)
    return res.scalars().all()


async def _same_day_bookings(db: AsyncSession, therapy_id: str, day: date) -> Sequence[Appointment]:
    q = sa.select(Appointment).where(
        Appointment.therapy_id == therapy_id,
        Appointment.date == day,
    )
    res = await db.execute(q)
    return res.scalars().all()


@storage_guard
async def create_appointment(db: AsyncSession, data: AppointmentCreate) -> Appointment:
    """
    Book a new slot.

    The overlap check and the insert are two statements, so two concurrent
    creates for the same slot can both pass the check.
    """
    therapy = await db.get(Therapy, data.therapy_id)
    if therapy is None:
        raise NotFoundError(f"Therapy {data.therapy_id} not found", therapy_id=data.therapy_id)

    status = DEFAULT_STATUS
    if data.status is not None:
        status = validate_transition(None, data.status, data.notes)

    existing = await _same_day_bookings(db, data.therapy_id, data.date)
    clash = find_conflict(data, existing)
    if clash is not None:
        logger.info(
            "appointment_conflict",
            therapy_id=data.therapy_id,
            date=str(data.date),
            conflicting_id=clash.id,
        )
        raise ConflictError("Appointment time conflicts with another booking.", conflicting_id=clash.id)

    appt = Appointment(
        date=data.date,
        start_time=data.start_time,
        end_time=data.end_time,
        therapy_id=data.therapy_id,
        status=status.value,
        notes=data.notes,
        admin_notes=data.admin_notes,
    )
    db.add(appt)
    await db.commit()

    logger.info("appointment_created", appointment_id=appt.id, therapy_id=appt.therapy_id, status=appt.status)
    return await _load(db, appt.id)


async def _check_reschedule(db: AsyncSession, appt: Appointment, data: Mapping[str, Any]) -> None:
    """Validate the merged slot (stored values overlaid with ``data``) before writing."""
    candidate = SimpleNamespace(
        id=appt.id,
        therapy_id=appt.therapy_id,
        date=data.get("date", appt.date),
        start_time=data.get("start_time", appt.start_time),
        end_time=data.get("end_time", appt.end_time),
    )
    if not ends_after_start(candidate.start_time, candidate.end_time):
        raise BadRequestError("endTime must be later than startTime", appointment_id=appt.id)

    # A slot being cancelled frees its time, so it cannot clash
    if data.get("status", appt.status) == AppointmentStatus.CANCELLED.value:
        return

    existing = await _same_day_bookings(db, candidate.therapy_id, candidate.date)
    clash = find_conflict(candidate, existing)
    if clash is not None:
        logger.info(
            "appointment_conflict",
            therapy_id=candidate.therapy_id,
            date=str(candidate.date),
            appointment_id=appt.id,
            conflicting_id=clash.id,
        )
        raise ConflictError("Appointment time conflicts with another booking.", conflicting_id=clash.id)


@storage_guard
async def update_appointment(
    db: AsyncSession,
    appointment_id: str,
    changes: Mapping[str, Any],
    acting_role: Union[Role, str, None] = Role.USER,
) -> Appointment:
    """
    Apply a partial update.

    Non-admins may only touch their own cancellation notes; every other key
    is dropped without error. A missing role counts as USER.
    """
    appt = await _load(db, appointment_id)

    role = Role(acting_role) if acting_role else Role.USER
    data = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
    if role is not Role.ADMIN:
        dropped = sorted(set(data) - OWNER_EDITABLE_FIELDS)
        if dropped:
            logger.info("non_admin_fields_dropped", appointment_id=appointment_id, fields=dropped)
        data = {k: v for k, v in data.items() if k in OWNER_EDITABLE_FIELDS}

    nulls = sorted(k for k in NON_NULL_FIELDS if k in data and data[k] is None)
    if nulls:
        raise BadRequestError(f"Fields cannot be null: {', '.join(nulls)}", fields=nulls)

    if "status" in data:
        data["status"] = validate_transition(appt.status, data["status"], data.get("notes")).value

    if SCHEDULE_FIELDS & data.keys():
        await _check_reschedule(db, appt, data)

    for key, value in data.items():
        setattr(appt, key, value)
    await db.commit()

    logger.info("appointment_updated", appointment_id=appointment_id, fields=sorted(data), role=role.value)
    return await _load(db, appointment_id)


@storage_guard
async def request_cancellation(db: AsyncSession, appointment_id: str, notes: Optional[str]) -> Appointment:
    """Owner asks to cancel: the slot goes back to PENDING with the reason attached."""
    if not (notes or "").strip():
        raise BadRequestError("Cancellation reason is required")

    appt = await _load(db, appointment_id)
    appt.status = AppointmentStatus.PENDING.value
    appt.notes = notes
    await db.commit()

    logger.info("cancellation_requested", appointment_id=appointment_id)
    return await _load(db, appointment_id)


@storage_guard
async def assign_appointment_to_user(db: AsyncSession, appointment_id: str, user_id: str) -> Appointment:
    appt = await _load(db, appointment_id)
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found", user_id=user_id)

    # One link per (appointment, user); re-assigning reuses it
    if user_id not in appt.owner_ids():
        appt.users.append(AppointmentUser(user=user, approved=True))
    else:
        logger.info("assignment_exists", appointment_id=appointment_id, user_id=user_id)

    appt.status = AppointmentStatus.OCCUPIED.value
    await db.commit()

    logger.info("appointment_assigned", appointment_id=appointment_id, user_id=user_id)
    return await _load(db, appointment_id)


@storage_guard
async def approve_appointment(db: AsyncSession, appointment_id: str) -> Appointment:
    appt = await _load(db, appointment_id)
    appt.status = AppointmentStatus.OCCUPIED.value
    await db.commit()

    logger.info("appointment_approved", appointment_id=appointment_id)
    return await _load(db, appointment_id)


@storage_guard
async def approve_cancellation(
    db: AsyncSession,
    appointment_id: str,
    new_status: Union[AppointmentStatus, str],
) -> Appointment:
    """Resolve a pending cancellation and free the slot of all its users."""
    target = coerce_status(new_status)
    if target not in CANCELLATION_OUTCOMES:
        raise BadRequestError("Invalid status provided")

    appt = await _load(db, appointment_id)
    if appt.status != AppointmentStatus.PENDING.value:
        raise BadRequestError("Only pending appointments can be approved for cancellation")

    appt.users.clear()
    appt.status = target.value
    await db.commit()

    logger.info("cancellation_approved", appointment_id=appointment_id, status=target.value)
    return await _load(db, appointment_id)


@storage_guard
async def complete_past_appointments(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """Mark every occupied slot that has already ended as COMPLETED."""
    now = now or datetime.now(timezone.utc)
    stmt = (
        sa.update(Appointment)
        .where(
            Appointment.status == AppointmentStatus.OCCUPIED.value,
            Appointment.end_time < now,
        )
        .values(status=AppointmentStatus.COMPLETED.value, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    res = await db.execute(stmt)
    await db.commit()

    updated = res.rowcount or 0
    logger.info("past_appointments_completed", updated=updated)
    return updated


@storage_guard
async def delete_appointment(db: AsyncSession, appointment_id: str) -> Appointment:
    appt = await _load(db, appointment_id)
    await db.delete(appt)
    await db.commit()

    logger.info("appointment_deleted", appointment_id=appointment_id)
    return appt
