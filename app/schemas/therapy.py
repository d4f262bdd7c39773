# app/schemas/therapy.py
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from app.schemas.appointment import CamelModel


def _tidy_title(v: str) -> str:
    v = " ".join(v.strip().split())
    if not v:
        raise ValueError("title cannot be empty")
    return v


class TherapyCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    content: str = ""
    image: Optional[str] = Field(None, max_length=500)

    @field_validator("title")
    @classmethod
    def _clean_title(cls, v: str) -> str:
        return _tidy_title(v)


class TherapyUpdate(CamelModel):
    """Partial update; omitted fields keep their stored value."""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    content: Optional[str] = None
    image: Optional[str] = Field(None, max_length=500)

    @field_validator("title", "description", "content", mode="before")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("cannot be null")
        return v

    @field_validator("title")
    @classmethod
    def _clean_title(cls, v: str) -> str:
        return _tidy_title(v)


class TherapyOut(CamelModel):
    id: str
    title: str
    description: str
    content: str
    image: Optional[str] = None
    created_at: datetime
    updated_at: datetime
