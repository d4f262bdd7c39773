# app/schemas/auth.py
from pydantic import BaseModel

from app.core.business import Role


class Principal(BaseModel):
    """The authenticated actor, as read from a verified token."""
    id: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN
