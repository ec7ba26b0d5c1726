"""Shared pydantic bases and small response models used across routers."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserSummary(CamelModel):
    id: int
    name: str
    email: str


class UserProfile(CamelModel):
    id: int
    name: str
    email: str
    phone: str | None = None
    about: str | None = None
    tags: list[str] = []
    joined_at: datetime


class MessageResponse(CamelModel):
    success: bool = True
    message: str
