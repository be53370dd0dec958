#app/schemas/user.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from fastapi import Query

from app.models.user import UserRole

class UserCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    display_name: str = Field(alias="displayName", min_length=2, max_length=50)
    role: UserRole = UserRole.citizen
    uid: str | None = None

class RoleUpdate(BaseModel):
    role: UserRole

class UserListQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)

def user_list_query(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> UserListQuery:
    return UserListQuery(page=page, limit=limit)
