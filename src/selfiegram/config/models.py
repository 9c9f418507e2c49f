"""Configuration models for Selfiegram.

All configuration is read from environment variables with the SELFIEGRAM_
prefix, or from a YAML file (see loader.py).

Environment Variables:
    Store Configuration:
        SELFIEGRAM_STORE_DOCUMENTS_DIR: Directory holding selfie records and images
        SELFIEGRAM_STORE_JPEG_QUALITY: JPEG quality for selfie images (default: 90)

    Overlay Configuration:
        SELFIEGRAM_OVERLAY_BASE_URL: Base URL of the overlay manifest and assets
        SELFIEGRAM_OVERLAY_MANIFEST_NAME: Manifest file name (default: overlays.json)
        SELFIEGRAM_OVERLAY_CACHE_DIR: Local cache directory for manifest and assets
        SELFIEGRAM_OVERLAY_TIMEOUT: HTTP timeout in seconds (default: 30.0)
        SELFIEGRAM_OVERLAY_MAX_CONCURRENT_DOWNLOADS: Download fan-out cap (default: 8)
        SELFIEGRAM_OVERLAY_REFRESH_ON_STARTUP: Download assets at startup (default: false)

    Gallery Configuration:
        SELFIEGRAM_GALLERY_SAVE_LOCATION: Attach location to new selfies (default: false)
        SELFIEGRAM_GALLERY_DEFAULT_TITLE: Title of untitled selfies

    Logging Configuration:
        SELFIEGRAM_LOG_LEVEL: Log level (default: INFO)
        SELFIEGRAM_LOG_JSON_FORMAT: JSON log output (default: false)
"""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from selfiegram.models.selfie import DEFAULT_TITLE

DEFAULT_OVERLAY_BASE_URL = (
    "https://raw.githubusercontent.com/thesecretlab/learning-swift-3rd-ed/master/Data/"
)


def _default_data_dir() -> Path:
    return Path.home() / ".selfiegram"


class StoreSettings(BaseSettings):
    """自拍照存储配置 - 从环境变量读取"""

    documents_dir: Path = Field(
        default_factory=lambda: _default_data_dir() / "documents",
        description="自拍照记录和图片所在目录",
    )
    jpeg_quality: int = Field(default=90, ge=1, le=95, description="JPEG 压缩质量")

    model_config = SettingsConfigDict(
        env_prefix="SELFIEGRAM_STORE_",
        env_file=".env",
        extra="ignore",
    )


class OverlaySettings(BaseSettings):
    """叠加层缓存配置 - 从环境变量读取"""

    base_url: str = Field(default=DEFAULT_OVERLAY_BASE_URL, description="清单和资源的基础 URL")
    manifest_name: str = Field(default="overlays.json", description="清单文件名")
    cache_dir: Path = Field(
        default_factory=lambda: _default_data_dir() / "cache",
        description="本地缓存目录",
    )
    timeout: float = Field(default=30.0, ge=1.0, le=300.0, description="HTTP 超时（秒）")
    max_concurrent_downloads: int = Field(
        default=8, ge=1, le=64, description="同时进行的最大下载数"
    )
    refresh_on_startup: bool = Field(default=False, description="启动时刷新并下载资源")

    model_config = SettingsConfigDict(
        env_prefix="SELFIEGRAM_OVERLAY_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("base_url")
    @classmethod
    def ensure_trailing_slash(cls, v: str) -> str:
        """资源名相对于基础 URL 解析，必须以 / 结尾"""
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return v if v.endswith("/") else v + "/"

    @field_validator("manifest_name")
    @classmethod
    def validate_manifest_name(cls, v: str) -> str:
        """清单文件名不能包含路径"""
        if not v or "/" in v or "\\" in v or v in {".", ".."}:
            raise ValueError("manifest_name must be a plain file name")
        return v


class GallerySettings(BaseSettings):
    """图库配置 - 从环境变量读取"""

    save_location: bool = Field(default=False, description="新自拍照是否附加位置")
    default_title: str = Field(default=DEFAULT_TITLE, description="未命名自拍照的标题")

    model_config = SettingsConfigDict(
        env_prefix="SELFIEGRAM_GALLERY_",
        env_file=".env",
        extra="ignore",
    )


class LoggingSettings(BaseSettings):
    """日志配置 - 从环境变量读取"""

    level: str = Field(default="INFO", description="日志级别")
    json_format: bool = Field(default=False, description="是否使用 JSON 格式输出")

    model_config = SettingsConfigDict(
        env_prefix="SELFIEGRAM_LOG_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """验证日志级别"""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"level must be one of {sorted(valid_levels)}")
        return v.upper()


class AppConfig(BaseModel):
    """应用程序总配置

    This is the main configuration class that aggregates all settings.
    It can be created either from environment variables or manually.
    """

    store: StoreSettings = Field(default_factory=StoreSettings)
    overlays: OverlaySettings = Field(default_factory=OverlaySettings)
    gallery: GallerySettings = Field(default_factory=GallerySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def validate_consistency(self) -> list[str]:
        """验证配置一致性，返回警告列表"""
        warnings = []

        store_dir = self.store.documents_dir.expanduser().resolve()
        cache_dir = self.overlays.cache_dir.expanduser().resolve()
        if store_dir == cache_dir:
            warnings.append(
                "documents_dir and cache_dir are the same directory; "
                "overlay manifests will be listed as selfie records"
            )

        if self.overlays.refresh_on_startup and self.overlays.max_concurrent_downloads == 1:
            warnings.append("refresh_on_startup with a single download slot may slow startup")

        return warnings
