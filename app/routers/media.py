# File: app/routers/media.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.security import get_current_identity
from app.schemas.media import BulkDeleteIn, DeleteImageIn, SignedUploadIn, UploadImageIn
from app.services.storage import DEFAULT_PAGE_SIZE, MediaGateway, get_media_gateway

router = APIRouter(
    prefix="/cloudinary",
    tags=["media"],
    dependencies=[Depends(get_current_identity)],
)


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=400, detail=message)


@router.delete("/delete")
def delete_image(body: DeleteImageIn, media: MediaGateway = Depends(get_media_gateway)):
    if not body.public_id:
        raise _bad_request("Public ID is required")
    result = media.delete_image(body.public_id)
    return {"success": True, "message": "Image deleted successfully", "result": result}


@router.get("/metadata/{public_id:path}")
def get_metadata(public_id: str, media: MediaGateway = Depends(get_media_gateway)):
    if not public_id.strip():
        raise _bad_request("Public ID is required")
    return media.get_metadata(public_id)


@router.post("/upload")
def upload_image(body: UploadImageIn, media: MediaGateway = Depends(get_media_gateway)):
    if not body.file_path:
        raise _bad_request("File path is required")
    result = media.upload_image(body.file_path, body.options)
    return {"message": "Image uploaded successfully", **result}


@router.post("/signed-upload")
def signed_upload(body: Optional[SignedUploadIn] = None, media: MediaGateway = Depends(get_media_gateway)):
    options = body.options if body else {}
    return {"success": True, "signedParams": media.signed_upload_params(options)}


@router.delete("/bulk-delete")
def bulk_delete(body: BulkDeleteIn, media: MediaGateway = Depends(get_media_gateway)):
    if not body.public_ids:
        raise _bad_request("Array of public IDs is required")
    result = media.bulk_delete(body.public_ids)
    return {"message": f"Bulk deletion completed for {len(body.public_ids)} images", **result}


@router.get("/folder")
@router.get("/folder/{folder_path:path}")
def folder_contents(
    folder_path: Optional[str] = None,
    max_results: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=500, alias="maxResults"),
    next_cursor: Optional[str] = Query(default=None, alias="nextCursor"),
    media: MediaGateway = Depends(get_media_gateway),
):
    return media.folder_contents(folder_path or None, max_results=max_results, next_cursor=next_cursor)


@router.get("/stats")
def usage_stats(media: MediaGateway = Depends(get_media_gateway)):
    return media.usage_stats()
