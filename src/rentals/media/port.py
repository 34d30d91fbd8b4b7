"""Media store port — uploads for payment proofs and other customer files."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True)
class MediaAsset:
    """A stored file as returned by the media service."""

    public_id: str
    url: str
    format: str | None = None
    bytes: int = 0


class MediaError(Exception):
    """Upload or deletion failed."""


def check_upload(content: bytes) -> None:
    if not content:
        raise MediaError("File is empty")
    if len(content) > MAX_UPLOAD_BYTES:
        raise MediaError(f"File too large: maximum size is {MAX_UPLOAD_BYTES // (1024 * 1024)}MB")


class MediaStore(ABC):
    """Abstract media store interface."""

    @abstractmethod
    def upload(self, content: bytes, filename: str, folder: str) -> MediaAsset:
        """Store a file and return where it lives. Raises MediaError."""
        ...

    @abstractmethod
    def delete(self, public_id: str) -> bool:
        """Remove a stored file. Returns False if it did not exist. Raises MediaError."""
        ...
