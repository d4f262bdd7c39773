# app/db/models/therapy.py

from __future__ import annotations
from datetime import datetime
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.session import Base
from app.db.models.appointment import _utcnow, _uuid

if TYPE_CHECKING:
    from app.db.models.appointment import Appointment


class Therapy(Base):
    __tablename__ = "therapies"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    description: Mapped[str] = mapped_column(sa.Text, nullable=False, default="")
    content: Mapped[str] = mapped_column(sa.Text, nullable=False, default="")
    image: Mapped[str | None] = mapped_column(sa.String(500))

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    appointments: Mapped[list["Appointment"]] = relationship(back_populates="therapy", passive_deletes=True)
