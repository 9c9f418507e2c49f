"""Storage layer protocols for abstraction and testability.

These protocols define the interfaces for storage operations, enabling:
- Alternative storage backends (e.g., in-memory for tests)
- Clean dependency injection instead of process-wide singletons
- Clear contract for storage implementations
"""

from typing import Protocol, runtime_checkable
from uuid import UUID

from PIL import Image

from selfiegram.models.selfie import Selfie


@runtime_checkable
class SelfieRepositoryProtocol(Protocol):
    """Protocol for selfie record and image storage.

    Implementations keep one record per selfie plus at most one image
    attachment addressed by the same id.
    """

    def save(self, selfie: Selfie) -> None:
        """Persist a selfie record, overwriting any previous version.

        Args:
            selfie: Record to save (the image is stored separately)
        """
        ...

    def get(self, selfie_id: UUID) -> Selfie:
        """Strict read of a single record.

        Args:
            selfie_id: Selfie ID

        Returns:
            The record

        Raises:
            SelfieNotFoundError: No record exists for the id
            SelfieDecodeError: The record is unreadable
        """
        ...

    def load(self, selfie_id: UUID) -> Selfie | None:
        """Best-effort read of a single record.

        Args:
            selfie_id: Selfie ID

        Returns:
            The record, or None if it is missing or unreadable
        """
        ...

    def list_selfies(self, skip_unreadable: bool = False) -> list[Selfie]:
        """List all stored records.

        Args:
            skip_unreadable: Skip corrupt records instead of failing

        Returns:
            All decoded records
        """
        ...

    def delete(self, selfie_id: UUID) -> None:
        """Delete a record and its image. Deleting a missing id is not an error.

        Args:
            selfie_id: Selfie ID
        """
        ...

    def get_image(self, selfie_id: UUID) -> Image.Image | None:
        """Get the image attached to a selfie.

        Args:
            selfie_id: Selfie ID

        Returns:
            Decoded image, or None if there is none
        """
        ...

    def set_image(self, selfie_id: UUID, image: Image.Image | None) -> None:
        """Attach, replace or (with None) remove a selfie's image.

        Args:
            selfie_id: Selfie ID
            image: Image to store, or None to delete the attachment
        """
        ...
