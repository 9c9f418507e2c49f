"""File-based selfie storage.

Each selfie is two sibling files in the documents directory:

- ``<id>.json``: the record (UTF-8 JSON)
- ``<id>-image.jpg``: the optional image attachment (JPEG)
"""

import io
from pathlib import Path
from uuid import UUID

from PIL import Image
from pydantic import ValidationError

from selfiegram.models.errors import (
    CannotSaveImageError,
    SelfieDecodeError,
    SelfieNotFoundError,
    StorageWriteError,
)
from selfiegram.models.overlay import load_image
from selfiegram.models.selfie import Selfie
from selfiegram.utils.logging import get_logger

logger = get_logger(__name__)

RECORD_SUFFIX = ".json"
IMAGE_SUFFIX = "-image.jpg"

# Modes Pillow can write as JPEG without conversion
_JPEG_MODES = {"L", "RGB", "CMYK"}


class SelfieStore:
    """Selfie records and images stored as files, with an in-memory image cache.

    Not thread-safe: the image cache is unguarded and concurrent writes to the
    same id are last-writer-wins.
    """

    def __init__(self, documents_dir: Path, jpeg_quality: int = 90) -> None:
        """Initialize the store.

        Args:
            documents_dir: Directory holding the record and image files
            jpeg_quality: JPEG quality used when saving images (1-95)
        """
        self.documents_dir = Path(documents_dir)
        self.jpeg_quality = jpeg_quality
        self._image_cache: dict[UUID, Image.Image] = {}
        self._logger = logger

    def ensure_directories(self) -> None:
        """Ensure the documents directory exists."""
        self.documents_dir.mkdir(parents=True, exist_ok=True)

    def record_path(self, selfie_id: UUID) -> Path:
        """Get the record file path for a selfie."""
        return self.documents_dir / f"{selfie_id}{RECORD_SUFFIX}"

    def image_path(self, selfie_id: UUID) -> Path:
        """Get the image file path for a selfie."""
        return self.documents_dir / f"{selfie_id}{IMAGE_SUFFIX}"

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def save(self, selfie: Selfie) -> None:
        """Write the selfie record, overwriting any existing file.

        The image attachment is not touched; use set_image for that.

        Raises:
            StorageWriteError: the record could not be written
        """
        path = self.record_path(selfie.id)
        try:
            self.ensure_directories()
            path.write_bytes(selfie.to_json())
        except OSError as e:
            raise StorageWriteError(path, str(e)) from e

        self._logger.debug("Selfie saved", selfie_id=str(selfie.id))

    def get(self, selfie_id: UUID) -> Selfie:
        """Read a selfie record.

        Raises:
            SelfieNotFoundError: no record exists for the id
            SelfieDecodeError: the record exists but cannot be read or decoded
        """
        path = self.record_path(selfie_id)
        if not path.exists():
            raise SelfieNotFoundError(selfie_id)
        return self._read_record(path)

    def load(self, selfie_id: UUID) -> Selfie | None:
        """Best-effort read of a selfie record.

        Returns:
            The record, or None if it is missing or unreadable
        """
        try:
            return self.get(selfie_id)
        except SelfieNotFoundError:
            return None
        except SelfieDecodeError as e:
            self._logger.warning("Unreadable selfie record", selfie_id=str(selfie_id), error=e.message)
            return None

    def list_selfies(self, skip_unreadable: bool = False) -> list[Selfie]:
        """List all selfie records in the documents directory.

        Args:
            skip_unreadable: Log and skip corrupt records instead of failing

        Returns:
            The decoded records, in file name order

        Raises:
            SelfieDecodeError: a record is corrupt and skip_unreadable is False
        """
        if not self.documents_dir.is_dir():
            return []

        selfies = []
        for path in sorted(self.documents_dir.glob(f"*{RECORD_SUFFIX}")):
            try:
                selfies.append(self._read_record(path))
            except SelfieDecodeError as e:
                if not skip_unreadable:
                    raise
                self._logger.warning("Skipping unreadable selfie record", path=str(path), error=e.message)
        return selfies

    def delete(self, selfie_id: UUID) -> None:
        """Delete a selfie record and its image, if present.

        Deleting an id that does not exist is not an error.

        Raises:
            StorageWriteError: an existing file could not be removed
        """
        for path in (self.record_path(selfie_id), self.image_path(selfie_id)):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise StorageWriteError(path, str(e)) from e

        self._image_cache.pop(selfie_id, None)
        self._logger.debug("Selfie deleted", selfie_id=str(selfie_id))

    def delete_selfie(self, selfie: Selfie) -> None:
        """Delete a selfie record and its image."""
        self.delete(selfie.id)

    def _read_record(self, path: Path) -> Selfie:
        try:
            data = path.read_bytes()
        except OSError as e:
            raise SelfieDecodeError(path, str(e)) from e
        try:
            return Selfie.from_json(data)
        except ValidationError as e:
            raise SelfieDecodeError(path, f"{e.error_count()} validation error(s)") from e

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def get_image(self, selfie_id: UUID) -> Image.Image | None:
        """Get a selfie's image, from the cache or from disk.

        Returns:
            The decoded image, or None if there is no attachment or it cannot
            be decoded
        """
        cached = self._image_cache.get(selfie_id)
        if cached is not None:
            return cached

        image = load_image(self.image_path(selfie_id))
        if image is None:
            return None

        self._image_cache[selfie_id] = image
        return image

    def set_image(self, selfie_id: UUID, image: Image.Image | None) -> None:
        """Store or remove a selfie's image.

        Args:
            selfie_id: Selfie ID
            image: Image to encode as JPEG, or None to delete the attachment

        Raises:
            CannotSaveImageError: the image could not be encoded
            StorageWriteError: the file could not be written or removed
        """
        path = self.image_path(selfie_id)

        if image is None:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise StorageWriteError(path, str(e)) from e
            self._image_cache.pop(selfie_id, None)
            return

        data = self._encode_jpeg(selfie_id, image)
        try:
            self.ensure_directories()
            path.write_bytes(data)
        except OSError as e:
            raise StorageWriteError(path, str(e)) from e

        self._image_cache[selfie_id] = image

    def _encode_jpeg(self, selfie_id: UUID, image: Image.Image) -> bytes:
        buffer = io.BytesIO()
        try:
            rgb = image if image.mode in _JPEG_MODES else image.convert("RGB")
            rgb.save(buffer, format="JPEG", quality=self.jpeg_quality)
        except (OSError, ValueError) as e:
            raise CannotSaveImageError(selfie_id, image, str(e)) from e
        return buffer.getvalue()
