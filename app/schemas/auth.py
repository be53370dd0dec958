# File: app/schemas/auth.py

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.user import UserRole

class ProfileUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    display_name: str = Field(alias="displayName")

    @field_validator("display_name")
    @classmethod
    def _trimmed_min_length(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Display name must be at least 2 characters")
        return v

class VerifyOut(BaseModel):
    uid: str
    email: str | None = None
    role: UserRole = UserRole.citizen
    verified: bool = True
