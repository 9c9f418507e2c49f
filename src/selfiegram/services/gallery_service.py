"""Gallery business service."""

from uuid import UUID

from PIL import Image

from selfiegram.config.models import GallerySettings
from selfiegram.models.errors import SelfiegramError
from selfiegram.models.selfie import Coordinate, Selfie
from selfiegram.storage.protocols import SelfieRepositoryProtocol
from selfiegram.utils.logging import get_logger

logger = get_logger(__name__)


class GalleryService:
    """Gallery operations on top of a selfie repository."""

    def __init__(self, store: SelfieRepositoryProtocol, settings: GallerySettings) -> None:
        """
        Initialize the gallery service.

        Args:
            store: Selfie repository to read from and write to.
            settings: Gallery settings (default title, location flag).
        """
        self.store = store
        self.settings = settings

    def create_selfie(
        self,
        image: Image.Image,
        title: str | None = None,
        position: Coordinate | None = None,
    ) -> Selfie:
        """
        Create and persist a new selfie.

        The position is only kept when location saving is enabled. The image
        is written before the record; if the record cannot be saved the image
        is removed again.

        Args:
            image: Captured image.
            title: Selfie title, or the configured default.
            position: Where the selfie was taken.

        Returns:
            The saved selfie.
        """
        selfie = Selfie(title=title or self.settings.default_title)
        if position is not None and self.settings.save_location:
            selfie.position = position

        self.store.set_image(selfie.id, image)
        try:
            self.store.save(selfie)
        except SelfiegramError:
            try:
                self.store.set_image(selfie.id, None)
            except SelfiegramError as rollback_error:
                logger.error(
                    "Failed to remove image after save failure",
                    selfie_id=str(selfie.id),
                    error=rollback_error.message,
                )
            raise

        logger.info("Selfie created", selfie_id=str(selfie.id), has_position=selfie.position is not None)
        return selfie

    def list_gallery(self, skip_unreadable: bool = False) -> list[Selfie]:
        """List selfies, newest first."""
        selfies = self.store.list_selfies(skip_unreadable=skip_unreadable)
        return sorted(selfies, key=lambda s: s.created, reverse=True)

    def get_selfie(self, selfie_id: UUID) -> Selfie:
        """
        Get a selfie by ID.

        Raises:
            SelfieNotFoundError: No such selfie.
            SelfieDecodeError: The record is corrupt.
        """
        return self.store.get(selfie_id)

    def rename(self, selfie_id: UUID, title: str) -> Selfie:
        """Update a selfie's title and save it."""
        selfie = self.get_selfie(selfie_id)
        selfie.title = title
        self.store.save(selfie)
        return selfie

    def remove(self, selfie_id: UUID) -> None:
        """Delete a selfie and its image."""
        self.store.delete(selfie_id)
        logger.info("Selfie removed", selfie_id=str(selfie_id))
