"""Service layer."""

from selfiegram.services.gallery_service import GalleryService

__all__ = ["GalleryService"]
