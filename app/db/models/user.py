# app/db/models/user.py

from __future__ import annotations
from datetime import datetime
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.business import Role
from app.db.session import Base
from app.db.models.appointment import _utcnow, _uuid

if TYPE_CHECKING:
    from app.db.models.appointment import AppointmentUser


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(sa.String(16), nullable=False, default=Role.GUEST.value)
    approved: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    appointments: Mapped[list["AppointmentUser"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def owner_ids(self) -> set[str]:
        """A user record is owned by that user."""
        return {self.id}
