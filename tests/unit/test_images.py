"""Tests for the image reference registry."""

from content_mapper.analysis.images import BLOB_PREFIX, ImageRegistry


class TestImageRegistry:
    """Tests for ImageRegistry."""

    def test_acquire_and_resolve(self, image) -> None:
        """Acquired URIs resolve to the image."""
        registry = ImageRegistry()

        uri = registry.acquire(image)

        assert uri.startswith(BLOB_PREFIX)
        assert registry.resolve(uri) is image
        assert registry.live_count == 1

    def test_uris_are_unique(self, image) -> None:
        """Each acquire issues a fresh URI."""
        registry = ImageRegistry()

        assert registry.acquire(image) != registry.acquire(image)

    def test_revoke(self, image) -> None:
        """Revoked URIs no longer resolve and revoking twice is a no-op."""
        registry = ImageRegistry()
        uri = registry.acquire(image)

        assert registry.revoke(uri) is True
        assert registry.resolve(uri) is None
        assert registry.revoke(uri) is False

    def test_revoke_all(self, image) -> None:
        """Releases every live URI."""
        registry = ImageRegistry()
        registry.acquire(image)
        registry.acquire(image)

        assert registry.revoke_all() == 2
        assert registry.live_count == 0
