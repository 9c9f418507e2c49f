"""Overlay domain models."""

import io
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from selfiegram.models.errors import ManifestParseError


class OverlayInformation(BaseModel):
    """One manifest entry: the file names of an overlay bundle."""

    icon: str
    left_image: str = Field(alias="leftImage")
    right_image: str = Field(alias="rightImage")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def asset_names(self) -> tuple[str, str, str]:
        """All files referenced by this entry."""
        return (self.icon, self.left_image, self.right_image)


_manifest_adapter = TypeAdapter(list[OverlayInformation])


def parse_manifest(data: bytes | str) -> list[OverlayInformation]:
    """Parse a JSON overlay manifest.

    Raises:
        ManifestParseError: the data is not a JSON array of entries
    """
    try:
        return _manifest_adapter.validate_json(data)
    except ValidationError as e:
        raise ManifestParseError(e) from e


def dump_manifest(overlays: list[OverlayInformation]) -> bytes:
    """Serialize a manifest using the wire (camelCase) keys."""
    return _manifest_adapter.dump_json(overlays, by_alias=True)


def load_image(path: Path) -> Image.Image | None:
    """Decode an image file fully into memory, or None if missing/undecodable."""
    try:
        data = path.read_bytes()
    except OSError:
        return None
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError):
        return None
    return image


@dataclass(frozen=True)
class Overlay:
    """A locally available overlay bundle, ready for compositing."""

    info: OverlayInformation
    preview_icon: Image.Image = field(compare=False)
    left_image: Image.Image = field(compare=False)
    right_image: Image.Image = field(compare=False)

    @classmethod
    def from_cache(
        cls,
        info: OverlayInformation,
        resolve: Callable[[str], Path | None],
    ) -> "Overlay | None":
        """Build an overlay from cached files.

        Args:
            info: Manifest entry
            resolve: Maps an asset name to its cache path (None if invalid)

        Returns:
            The overlay, or None unless all three images are cached and decode.
        """
        images = []
        for name in info.asset_names:
            path = resolve(name)
            if path is None:
                return None
            image = load_image(path)
            if image is None:
                return None
            images.append(image)

        preview_icon, left_image, right_image = images
        return cls(
            info=info,
            preview_icon=preview_icon,
            left_image=left_image,
            right_image=right_image,
        )
