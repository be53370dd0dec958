#app\services\storage.py
"""Cloudinary media gateway.

Credentials are passed on every call instead of through the SDK's global
`cloudinary.config()`, so one process can hold more than one gateway.
"""
import logging
import time
from typing import Any, Optional

import cloudinary
import cloudinary.api
import cloudinary.uploader
import cloudinary.utils

from app.core.config import settings
from app.core.errors import MediaError

log = logging.getLogger(__name__)

DEFAULT_TRANSFORMATION = [
    {"quality": "auto:good"},
    {"fetch_format": "auto"},
    {"width": 1200, "height": 800, "crop": "limit"},
]
SIGNED_TRANSFORMATION = "q_auto:good,f_auto,w_1200,h_800,c_limit"
DEFAULT_PAGE_SIZE = 100


class MediaGateway:
    def __init__(self, cloud_name: Optional[str], api_key: Optional[str], api_secret: Optional[str],
                 root_folder: str = "citysense"):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.root_folder = root_folder

    @property
    def issues_folder(self) -> str:
        return f"{self.root_folder}/issues"

    @property
    def default_tags(self) -> list[str]:
        return [self.root_folder, "issue-report"]

    def _auth(self) -> dict:
        return {
            "cloud_name": self.cloud_name,
            "api_key": self.api_key,
            "api_secret": self.api_secret,
            "secure": True,
        }

    def delete_image(self, public_id: str) -> dict:
        log.info("Deleting image from Cloudinary: %s", public_id)
        try:
            result = cloudinary.uploader.destroy(public_id, resource_type="image", **self._auth())
        except Exception as e:
            raise MediaError(f"Failed to delete image: {e}") from e
        return {"success": result.get("result") == "ok", "result": result}

    def get_metadata(self, public_id: str) -> dict:
        try:
            r = cloudinary.api.resource(public_id, resource_type="image", **self._auth())
        except Exception as e:
            raise MediaError(f"Failed to fetch metadata: {e}") from e
        return {
            "success": True,
            "metadata": {
                "publicId": r.get("public_id"),
                "format": r.get("format"),
                "width": r.get("width"),
                "height": r.get("height"),
                "bytes": r.get("bytes"),
                "url": r.get("secure_url"),
                "createdAt": r.get("created_at"),
                "folder": r.get("folder"),
                "tags": r.get("tags", []),
            },
        }

    def upload_options(self, options: Optional[dict] = None) -> dict[str, Any]:
        options = dict(options or {})
        public_id = options.pop("publicId", None)
        merged = {
            "folder": self.issues_folder,
            "tags": self.default_tags,
            "transformation": DEFAULT_TRANSFORMATION,
        }
        if public_id:
            merged["public_id"] = public_id
        merged.update(options)
        return merged

    def upload_image(self, file: str, options: Optional[dict] = None) -> dict:
        upload_options = self.upload_options(options)
        try:
            r = cloudinary.uploader.upload(file, **{**upload_options, **self._auth()})
        except Exception as e:
            raise MediaError(f"Upload failed: {e}") from e
        log.info("Cloudinary upload successful: %s", r.get("public_id"))
        return {
            "success": True,
            "url": r.get("secure_url"),
            "publicId": r.get("public_id"),
            "metadata": {
                "width": r.get("width"),
                "height": r.get("height"),
                "format": r.get("format"),
                "bytes": r.get("bytes"),
                "createdAt": r.get("created_at"),
                "folder": r.get("folder"),
                "tags": r.get("tags", []),
            },
        }

    def signed_upload_params(self, options: Optional[dict] = None, timestamp: Optional[int] = None) -> dict:
        """Parameters a browser needs to upload directly without the api secret."""
        if not self.api_secret:
            raise MediaError("Failed to generate signed URL: Cloudinary is not configured")
        params = {
            "timestamp": timestamp or int(time.time()),
            "folder": self.issues_folder,
            "tags": ",".join(self.default_tags),
            "transformation": SIGNED_TRANSFORMATION,
            **(options or {}),
        }
        try:
            signature = cloudinary.utils.api_sign_request(params, self.api_secret)
        except Exception as e:
            raise MediaError(f"Failed to generate signed URL: {e}") from e
        return {**params, "signature": signature, "api_key": self.api_key, "cloud_name": self.cloud_name}

    def bulk_delete(self, public_ids: list[str]) -> dict:
        log.info("Bulk deleting %d images from Cloudinary", len(public_ids))
        try:
            r = cloudinary.api.delete_resources(public_ids, resource_type="image", **self._auth())
        except Exception as e:
            raise MediaError(f"Bulk deletion failed: {e}") from e
        dispositions = r.get("deleted", {}) or {}
        return {
            "success": True,
            "results": dispositions,
            "deleted": [pid for pid, state in dispositions.items() if state == "deleted"],
            "notFound": [pid for pid, state in dispositions.items() if state == "not_found"],
            "partial": bool(r.get("partial", False)),
        }

    def folder_contents(self, prefix: Optional[str] = None, max_results: int = DEFAULT_PAGE_SIZE,
                        next_cursor: Optional[str] = None) -> dict:
        query = {"type": "upload", "prefix": prefix or self.root_folder, "max_results": max_results}
        if next_cursor:
            query["next_cursor"] = next_cursor
        try:
            r = cloudinary.api.resources(**{**query, **self._auth()})
        except Exception as e:
            raise MediaError(f"Failed to fetch folder contents: {e}") from e
        return {
            "success": True,
            "resources": r.get("resources", []),
            "nextCursor": r.get("next_cursor"),
            "totalCount": r.get("total_count", len(r.get("resources", []))),
        }

    def usage_stats(self) -> dict:
        contents = self.folder_contents(self.issues_folder, max_results=1)
        return {"success": True, "stats": {"totalImages": contents["totalCount"] or 0, "folder": self.issues_folder}}


_gateway = MediaGateway(
    settings.cloudinary_cloud_name,
    settings.cloudinary_api_key,
    settings.cloudinary_api_secret,
    settings.media_root_folder,
)


def get_media_gateway() -> MediaGateway:
    return _gateway
