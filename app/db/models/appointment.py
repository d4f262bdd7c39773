# app/db/models/appointment.py

from __future__ import annotations
import uuid
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.business import DEFAULT_STATUS
from app.db.session import Base

if TYPE_CHECKING:
    from app.db.models.therapy import Therapy
    from app.db.models.user import User


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        sa.CheckConstraint("end_time > start_time", name="ck_appointments_end_after_start"),
        sa.Index("ix_appointments_therapy_id_date", "therapy_id", "date"),
        sa.Index("ix_appointments_status_end_time", "status", "end_time"),
    )

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=_uuid)
    date: Mapped[date] = mapped_column(sa.Date, nullable=False)

    # Store as timezone-aware UTC
    start_time: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        sa.String(16), nullable=False, default=DEFAULT_STATUS.value, server_default=DEFAULT_STATUS.value
    )
    notes: Mapped[str | None] = mapped_column(sa.Text)
    admin_notes: Mapped[str | None] = mapped_column(sa.Text)

    therapy_id: Mapped[str] = mapped_column(
        sa.String(36), sa.ForeignKey("therapies.id", ondelete="RESTRICT"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    # Relations (eager, so async callers never trigger a lazy load)
    therapy: Mapped["Therapy"] = relationship(back_populates="appointments", lazy="selectin")
    users: Mapped[list["AppointmentUser"]] = relationship(
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="AppointmentUser.created_at",
        lazy="selectin",
    )

    def owner_ids(self) -> set[str]:
        """Users assigned to this slot own it."""
        return {link.user_id for link in self.users}


class AppointmentUser(Base):
    __tablename__ = "appointment_users"
    __table_args__ = (
        sa.UniqueConstraint("appointment_id", "user_id", name="uq_appointment_users_appointment_id_user_id"),
        sa.Index("ix_appointment_users_user_id", "user_id"),
    )

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=_uuid)
    appointment_id: Mapped[str] = mapped_column(
        sa.String(36), sa.ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    approved: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False, server_default=sa.false())
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, default=_utcnow)

    appointment: Mapped["Appointment"] = relationship(back_populates="users")
    user: Mapped["User"] = relationship(back_populates="appointments", lazy="selectin")
