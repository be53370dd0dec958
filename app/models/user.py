# File: app/models/user.py
# Project: citysense-backend

from __future__ import annotations
import logging
from enum import Enum as PyEnum
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

log = logging.getLogger(__name__)

COLLECTION = "users"

class UserRole(str, PyEnum):
    citizen = "citizen"
    admin = "admin"
    volunteer = "volunteer"

class UserRecord(BaseModel):
    # Document id is the Firebase Auth uid; the body may also carry it.
    model_config = ConfigDict(populate_by_name=True)

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    role: UserRole = UserRole.citizen
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    last_login: Optional[datetime] = Field(default=None, alias="lastLogin")
    issues_reported: int = Field(default=0, alias="issuesReported")
    issues_upvoted: int = Field(default=0, alias="issuesUpvoted")
    is_active: bool = Field(default=True, alias="isActive")

    @field_validator("issues_reported", "issues_upvoted", mode="before")
    @classmethod
    def _missing_count_is_zero(cls, v):
        return v or 0

    @field_validator("role", mode="before")
    @classmethod
    def _unknown_role_is_citizen(cls, v):
        if not v:
            return UserRole.citizen
        if v not in {r.value for r in UserRole}:
            log.warning("Unknown stored role %r treated as citizen", v)
            return UserRole.citizen
        return v

    @classmethod
    def from_snapshot(cls, snap) -> "UserRecord":
        return cls.model_validate({**(snap.to_dict() or {}), "uid": snap.id})

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
