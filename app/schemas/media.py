# File: app/schemas/media.py
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DeleteImageIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    public_id: Optional[str] = Field(default=None, alias="publicId")


class UploadImageIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Local path, remote URL or data URI; anything the Cloudinary uploader accepts
    file_path: Optional[str] = Field(default=None, alias="filePath")
    options: dict[str, Any] = Field(default_factory=dict)


class SignedUploadIn(BaseModel):
    options: dict[str, Any] = Field(default_factory=dict)


class BulkDeleteIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    public_ids: Optional[List[str]] = Field(default=None, alias="publicIds")
