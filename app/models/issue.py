# File: app/models/issue.py
from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

COLLECTION = "issues"

class IssueStatus(str, PyEnum):
    open = "Open"
    in_progress = "In Progress"
    resolved = "Resolved"

class IssueCategory(str, PyEnum):
    pothole = "Pothole"
    broken_streetlight = "Broken Streetlight"
    garbage_dumping = "Garbage Dumping"
    waterlogging = "Waterlogging"
    broken_road = "Broken Road"
    traffic_signal_issue = "Traffic Signal Issue"
    illegal_parking = "Illegal Parking"
    noise_pollution = "Noise Pollution"
    water_leakage = "Water Leakage"
    other = "Other"

class Location(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    address: Optional[str] = None

class IssueRecord(BaseModel):
    """An `issues` document as read from Firestore.

    Stored field names are camelCase; attributes are snake_case.
    """
    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)

    id: str
    title: str
    description: str
    category: IssueCategory
    severity: int = Field(ge=1, le=5)
    status: IssueStatus = IssueStatus.open
    location: Location
    user_id: str = Field(alias="userId")
    upvotes: int = Field(default=0, ge=0)
    timestamp: Optional[datetime] = None
    resolved_at: Optional[datetime] = Field(default=None, alias="resolvedAt")
    resolved_by: Optional[str] = Field(default=None, alias="resolvedBy")
    image_url: Optional[str] = Field(default=None, alias="imageURL")

    @field_validator("upvotes", mode="before")
    @classmethod
    def _missing_upvotes_is_zero(cls, v):
        return v or 0

    @classmethod
    def from_snapshot(cls, snap) -> "IssueRecord":
        return cls.model_validate({**(snap.to_dict() or {}), "id": snap.id})

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

def resolution_fields(status: IssueStatus, actor_uid: str) -> dict[str, Any]:
    """Fields to write alongside a status change.

    Resolving stamps resolvedAt/resolvedBy; any other status clears both.
    """
    if status == IssueStatus.resolved:
        return {
            "status": status.value,
            "resolvedAt": datetime.now(timezone.utc),
            "resolvedBy": actor_uid,
        }
    return {"status": status.value, "resolvedAt": None, "resolvedBy": None}
