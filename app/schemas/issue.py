from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Literal, List
from fastapi import Query

from app.models.issue import IssueCategory, IssueStatus, Location

SortBy = Literal["timestamp", "upvotes", "severity"]
SortOrder = Literal["asc", "desc"]
BulkActionName = Literal["resolve", "delete", "reopen"]


class LocationIn(Location):
    address: Optional[str] = Field(default=None, max_length=200)


class IssueCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=10, max_length=1000)
    category: IssueCategory
    severity: int = Field(ge=1, le=5, strict=True)
    location: LocationIn
    user_id: str = Field(alias="userId", min_length=1)
    image_url: Optional[str] = Field(default=None, alias="imageURL")


class IssueUpdate(BaseModel):
    """Partial update; only fields that were sent are written."""
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, min_length=10, max_length=1000)
    category: Optional[IssueCategory] = None
    severity: Optional[int] = Field(default=None, ge=1, le=5, strict=True)
    status: Optional[IssueStatus] = None


class IssueStatusPatch(BaseModel):
    status: IssueStatus


class IssueListQuery(BaseModel):
    category: Optional[str] = None
    status: Optional[IssueStatus] = None
    severity: Optional[int] = Field(default=None, ge=1, le=5)
    limit: int = Field(default=50, ge=1, le=100)
    page: int = Field(default=1, ge=1)
    sort_by: SortBy = "timestamp"
    sort_order: SortOrder = "desc"

    def filters(self) -> dict:
        return {"category": self.category, "status": self.status, "severity": self.severity}


def issue_list_query(
    category: Optional[str] = Query(default=None),
    status: Optional[IssueStatus] = Query(default=None),
    severity: Optional[int] = Query(default=None, ge=1, le=5),
    limit: int = Query(default=50, ge=1, le=100),
    page: int = Query(default=1, ge=1),
    sort_by: SortBy = Query(default="timestamp", alias="sortBy"),
    sort_order: SortOrder = Query(default="desc", alias="sortOrder"),
) -> IssueListQuery:
    # Query values arrive coerced and defaulted; handlers only see the model.
    return IssueListQuery(
        category=category,
        status=status,
        severity=severity,
        limit=limit,
        page=page,
        sort_by=sort_by,
        sort_order=sort_order,
    )


class BulkActionIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: BulkActionName
    issue_ids: List[str] = Field(alias="issueIds")
