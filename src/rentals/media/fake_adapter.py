"""In-memory media store for development and testing."""

from uuid import uuid4

from rentals.media.port import MediaAsset, MediaError, MediaStore, check_upload


class FakeMediaStore(MediaStore):
    """Keeps uploads in a dict; can be told to fail."""

    def __init__(self) -> None:
        self.assets: dict[str, MediaAsset] = {}
        self.calls: list[dict] = []
        self.should_succeed: bool = True
        self.failure_reason: str = "Upload rejected"

    def configure(self, should_succeed: bool, failure_reason: str = "Upload rejected") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def upload(self, content: bytes, filename: str, folder: str) -> MediaAsset:
        self.calls.append({"method": "upload", "filename": filename, "folder": folder, "bytes": len(content or b"")})
        check_upload(content)
        if not self.should_succeed:
            raise MediaError(self.failure_reason)

        stem, _, extension = filename.rpartition(".")
        public_id = f"{folder}/{stem or filename}-{uuid4().hex[:8]}"
        asset = MediaAsset(
            public_id=public_id,
            url=f"https://media.example.test/{public_id}.{extension or 'bin'}",
            format=extension or None,
            bytes=len(content),
        )
        self.assets[public_id] = asset
        return asset

    def delete(self, public_id: str) -> bool:
        self.calls.append({"method": "delete", "public_id": public_id})
        return self.assets.pop(public_id, None) is not None

    def reset(self) -> None:
        self.assets.clear()
        self.calls.clear()
        self.should_succeed = True
        self.failure_reason = "Upload rejected"
