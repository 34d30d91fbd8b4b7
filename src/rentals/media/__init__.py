"""Media store factory — fake by default, Cloudinary via MEDIA_ADAPTER."""

import os

from rentals.media.port import MediaStore

_media_store: MediaStore | None = None


def get_media_store() -> MediaStore:
    """Return the configured media store (singleton)."""
    global _media_store
    if _media_store is None:
        adapter = os.environ.get("MEDIA_ADAPTER", "fake")
        if adapter == "fake":
            from rentals.media.fake_adapter import FakeMediaStore

            _media_store = FakeMediaStore()
        elif adapter == "cloudinary":
            from rentals.media.cloudinary_adapter import CloudinaryMediaStore

            _media_store = CloudinaryMediaStore()
        else:
            raise ValueError(f"Unknown media adapter: {adapter}")
    return _media_store


def set_media_store(store: MediaStore) -> None:
    global _media_store
    _media_store = store


def reset_media_store() -> None:
    """Reset the media store singleton (useful for testing)."""
    global _media_store
    _media_store = None
