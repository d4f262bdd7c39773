# app/db/base.py

"""
This file imports all the ORM models so Alembic can discover them.
Whenever you add a new model, import it here.
"""
from sqlalchemy.ext.asyncio import AsyncEngine

from app.db.models.user import User
from app.db.models.therapy import Therapy
from app.db.models.appointment import Appointment, AppointmentUser
from app.db.session import Base

__all__ = ["Base", "User", "Therapy", "Appointment", "AppointmentUser", "init_db"]

async def init_db(engine: AsyncEngine):
    """Initialize database by creating all tables"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
