"""Cloudinary media store (REST API over requests).

Uploads use an unsigned upload preset; deletions are signed with the API
key and secret. Configure with CLOUDINARY_CLOUD_NAME,
CLOUDINARY_UPLOAD_PRESET, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET.
"""

import hashlib
import os
import time

import requests
import structlog

from rentals.media.port import MediaAsset, MediaError, MediaStore, check_upload

logger = structlog.get_logger(__name__)

_API_ROOT = "https://api.cloudinary.com/v1_1"


class CloudinaryMediaStore(MediaStore):
    def __init__(
        self,
        cloud_name: str | None = None,
        upload_preset: str | None = None,
        api_key: str | None = None,
        api_secret: str | None = None,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.cloud_name = cloud_name or os.environ.get("CLOUDINARY_CLOUD_NAME", "")
        self.upload_preset = upload_preset or os.environ.get("CLOUDINARY_UPLOAD_PRESET", "")
        self.api_key = api_key or os.environ.get("CLOUDINARY_API_KEY", "")
        self.api_secret = api_secret or os.environ.get("CLOUDINARY_API_SECRET", "")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _sign(self, params: dict) -> str:
        payload = "&".join(f"{key}={params[key]}" for key in sorted(params))
        return hashlib.sha1(f"{payload}{self.api_secret}".encode()).hexdigest()

    def upload(self, content: bytes, filename: str, folder: str) -> MediaAsset:
        check_upload(content)
        if not self.cloud_name or not self.upload_preset:
            raise MediaError("Cloudinary is not configured: set CLOUDINARY_CLOUD_NAME and CLOUDINARY_UPLOAD_PRESET")

        try:
            response = self.session.post(
                f"{_API_ROOT}/{self.cloud_name}/auto/upload",
                data={"upload_preset": self.upload_preset, "folder": folder},
                files={"file": (filename, content)},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("cloudinary_upload_failed", filename=filename, error=str(exc))
            raise MediaError(f"Upload of {filename} failed: {exc}") from exc

        data = response.json()
        return MediaAsset(
            public_id=data["public_id"],
            url=data["secure_url"],
            format=data.get("format"),
            bytes=data.get("bytes", len(content)),
        )

    def delete(self, public_id: str) -> bool:
        if not self.api_key or not self.api_secret:
            raise MediaError("Cloudinary deletion needs CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET")

        params = {"public_id": public_id, "timestamp": int(time.time())}
        try:
            response = self.session.post(
                f"{_API_ROOT}/{self.cloud_name}/image/destroy",
                data={**params, "api_key": self.api_key, "signature": self._sign(params)},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("cloudinary_delete_failed", public_id=public_id, error=str(exc))
            raise MediaError(f"Deletion of {public_id} failed: {exc}") from exc

        return response.json().get("result") == "ok"
