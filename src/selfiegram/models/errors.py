from enum import Enum
from pathlib import Path
from typing import Any
from uuid import UUID

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """错误码"""
    SELFIE_NOT_FOUND = "SELFIE_NOT_FOUND"
    SELFIE_CORRUPT = "SELFIE_CORRUPT"
    STORAGE_WRITE_FAILED = "STORAGE_WRITE_FAILED"
    IMAGE_ENCODE_FAILED = "IMAGE_ENCODE_FAILED"

    # 叠加层相关错误码
    MANIFEST_DOWNLOAD_FAILED = "MANIFEST_DOWNLOAD_FAILED"
    MANIFEST_NO_DATA = "MANIFEST_NO_DATA"
    MANIFEST_PARSE_FAILED = "MANIFEST_PARSE_FAILED"
    MANIFEST_CACHE_WRITE_FAILED = "MANIFEST_CACHE_WRITE_FAILED"

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class ErrorResponse(BaseModel):
    """错误响应"""
    success: bool = False
    error_code: ErrorCode
    error_message: str
    details: dict | None = None


class SelfiegramError(Exception):
    """基础异常类"""
    def __init__(self, code: ErrorCode, message: str, details: dict | None = None):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            error_code=self.code,
            error_message=self.message,
            details=self.details
        )


# 自拍照存储异常
class SelfieNotFoundError(SelfiegramError):
    def __init__(self, selfie_id: UUID):
        self.selfie_id = selfie_id
        super().__init__(
            ErrorCode.SELFIE_NOT_FOUND,
            f"Selfie '{selfie_id}' not found",
            {"selfie_id": str(selfie_id)}
        )


class SelfieDecodeError(SelfiegramError):
    def __init__(self, path: Path, error: str):
        self.path = path
        super().__init__(
            ErrorCode.SELFIE_CORRUPT,
            f"Failed to decode selfie record {path.name}: {error}",
            {"path": str(path)}
        )


class StorageWriteError(SelfiegramError):
    def __init__(self, path: Path, error: str):
        self.path = path
        super().__init__(
            ErrorCode.STORAGE_WRITE_FAILED,
            f"Failed to write {path}: {error}",
            {"path": str(path)}
        )


class CannotSaveImageError(SelfiegramError):
    def __init__(self, selfie_id: UUID, image: Any, error: str):
        self.selfie_id = selfie_id
        self.image = image
        super().__init__(
            ErrorCode.IMAGE_ENCODE_FAILED,
            f"Cannot encode image for selfie '{selfie_id}': {error}",
            {"selfie_id": str(selfie_id)}
        )


# 叠加层异常
class ManifestDownloadError(SelfiegramError):
    def __init__(self, url: str, error: str):
        super().__init__(
            ErrorCode.MANIFEST_DOWNLOAD_FAILED,
            f"Failed to download {url}: {error}",
            {"url": url}
        )


class NoDataLoadedError(SelfiegramError):
    def __init__(self, url: str):
        super().__init__(
            ErrorCode.MANIFEST_NO_DATA,
            f"No data loaded from {url}",
            {"url": url}
        )


class ManifestParseError(SelfiegramError):
    def __init__(self, underlying_error: Exception):
        self.underlying_error = underlying_error
        super().__init__(
            ErrorCode.MANIFEST_PARSE_FAILED,
            f"Cannot parse overlay manifest: {underlying_error}"
        )


class ManifestCacheWriteError(SelfiegramError):
    def __init__(self, path: Path, error: str):
        self.path = path
        super().__init__(
            ErrorCode.MANIFEST_CACHE_WRITE_FAILED,
            f"Failed to write overlay manifest to {path}: {error}",
            {"path": str(path)}
        )


class ConfigurationError(SelfiegramError):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(ErrorCode.CONFIGURATION_ERROR, message, details)
