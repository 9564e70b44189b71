"""Client-local image references.

Analysis results point at their source screenshot through a ``blob:`` URI
issued here. A URI keeps the image bytes alive until it is revoked.
"""

import threading
from uuid import uuid4

import structlog

from content_mapper.analysis.models import ImageInput

logger = structlog.get_logger(__name__)

BLOB_PREFIX = "blob:content-mapper/"


class ImageRegistry:
    """Issues and revokes revocable references to image bytes."""

    def __init__(self) -> None:
        self._images: dict[str, ImageInput] = {}
        self._lock = threading.Lock()

    def acquire(self, image: ImageInput) -> str:
        """Register an image and return its URI."""
        uri = f"{BLOB_PREFIX}{uuid4()}"
        with self._lock:
            self._images[uri] = image
        logger.debug("image_acquired", uri=uri, file_name=image.file_name, size=image.size_bytes)
        return uri

    def resolve(self, uri: str) -> ImageInput | None:
        """Return the image behind a URI, or None once revoked."""
        with self._lock:
            return self._images.get(uri)

    def revoke(self, uri: str) -> bool:
        """Release an image. Returns False if the URI was not live."""
        with self._lock:
            released = self._images.pop(uri, None) is not None
        if released:
            logger.debug("image_revoked", uri=uri)
        return released

    def revoke_all(self) -> int:
        with self._lock:
            count = len(self._images)
            self._images.clear()
        return count

    @property
    def live_count(self) -> int:
        with self._lock:
            return len(self._images)
