# app/schemas/user.py
from datetime import datetime

from app.core.business import Role
from app.schemas.appointment import CamelModel


class UserOut(CamelModel):
    id: str
    name: str
    email: str
    role: Role
    approved: bool
    created_at: datetime
