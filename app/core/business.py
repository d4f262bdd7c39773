# app/core/business.py
from __future__ import annotations
from enum import Enum


class AppointmentStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    PENDING = "PENDING"
    OCCUPIED = "OCCUPIED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Role(str, Enum):
    GUEST = "GUEST"
    USER = "USER"
    ADMIN = "ADMIN"


# Canonical status for a newly created slot when the caller supplies none
DEFAULT_STATUS = AppointmentStatus.PENDING

# Outcomes an admin may pick when resolving a pending cancellation
CANCELLATION_OUTCOMES = frozenset({AppointmentStatus.AVAILABLE, AppointmentStatus.CANCELLED})

# Fields a non-admin may change on an appointment they own
OWNER_EDITABLE_FIELDS = frozenset({"notes"})
