# app/services/scheduling.py
"""
Scheduling policy: pure decisions about slots and status changes.

Nothing here touches the database. Callers pass in whatever appointment-like
objects they hold (ORM rows or request payloads); only ``therapy_id``,
``date``, ``start_time``, ``end_time`` and ``status`` are read.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Iterable, Optional, Protocol, Union

from app.core.business import AppointmentStatus
from app.core.errors import BadRequestError


class Slot(Protocol):
    therapy_id: str
    date: date
    start_time: datetime
    end_time: datetime


def _utc(dt: datetime) -> datetime:
    """Naive timestamps (e.g. read back from SQLite) are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _status_of(obj) -> Optional[AppointmentStatus]:
    status = getattr(obj, "status", None)
    if status is None:
        return None
    return AppointmentStatus(status)


def coerce_status(value: Union[str, AppointmentStatus]) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in AppointmentStatus)
        raise BadRequestError(f"Invalid status '{value}'. Expected one of: {allowed}")


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap: [a_start, a_end) vs [b_start, b_end)."""
    return _utc(a_start) < _utc(b_end) and _utc(a_end) > _utc(b_start)


def ends_after_start(start: datetime, end: datetime) -> bool:
    return _utc(end) > _utc(start)


def find_conflict(candidate: Slot, existing: Iterable[Slot]) -> Optional[Slot]:
    """First non-cancelled booking that collides with ``candidate``, if any."""
    for appt in existing:
        if getattr(appt, "id", None) is not None and appt.id == getattr(candidate, "id", None):
            continue
        if appt.therapy_id != candidate.therapy_id or appt.date != candidate.date:
            continue
        if _status_of(appt) is AppointmentStatus.CANCELLED:
            continue
        if overlaps(appt.start_time, appt.end_time, candidate.start_time, candidate.end_time):
            return appt
    return None


def has_conflict(candidate: Slot, existing: Iterable[Slot]) -> bool:
    return find_conflict(candidate, existing) is not None


def validate_transition(
    current: Optional[Union[str, AppointmentStatus]],
    requested: Union[str, AppointmentStatus],
    notes: Optional[str],
) -> AppointmentStatus:
    """
    Check a status change and return the requested status as an enum.

    Only cancellation is guarded: it needs a non-empty reason in ``notes``.
    Any other move between statuses is allowed, including out of
    COMPLETED/CANCELLED. ``current`` is accepted so a stricter table can be
    enforced here without touching callers.
    """
    target = coerce_status(requested)
    if current is not None:
        coerce_status(current)

    if target is AppointmentStatus.CANCELLED and not (notes or "").strip():
        raise BadRequestError("Cancellation reason is required to cancel an appointment")

    return target


def is_past_due(appointment, now: Optional[datetime] = None) -> bool:
    """An occupied slot whose end has passed is ready to be completed."""
    now = _utc(now or datetime.now(timezone.utc))
    return _status_of(appointment) is AppointmentStatus.OCCUPIED and _utc(appointment.end_time) < now
