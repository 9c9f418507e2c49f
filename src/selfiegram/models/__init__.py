"""Data models."""

from selfiegram.models.errors import (
    CannotSaveImageError,
    ConfigurationError,
    ErrorCode,
    ErrorResponse,
    ManifestCacheWriteError,
    ManifestDownloadError,
    ManifestParseError,
    NoDataLoadedError,
    SelfieDecodeError,
    SelfiegramError,
    SelfieNotFoundError,
    StorageWriteError,
)
from selfiegram.models.overlay import (
    Overlay,
    OverlayInformation,
    dump_manifest,
    load_image,
    parse_manifest,
)
from selfiegram.models.selfie import DEFAULT_TITLE, Coordinate, Selfie

__all__ = [
    # Errors
    "CannotSaveImageError",
    "ConfigurationError",
    "ErrorCode",
    "ErrorResponse",
    "ManifestCacheWriteError",
    "ManifestDownloadError",
    "ManifestParseError",
    "NoDataLoadedError",
    "SelfieDecodeError",
    "SelfiegramError",
    "SelfieNotFoundError",
    "StorageWriteError",
    # Overlay
    "Overlay",
    "OverlayInformation",
    "dump_manifest",
    "load_image",
    "parse_manifest",
    # Selfie
    "DEFAULT_TITLE",
    "Coordinate",
    "Selfie",
]
