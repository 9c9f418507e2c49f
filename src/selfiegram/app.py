"""Application wiring for Selfiegram."""

from pathlib import Path

import httpx

from selfiegram.config import AppConfig, load_config
from selfiegram.infrastructure.overlay_manager import OverlayManager
from selfiegram.services.gallery_service import GalleryService
from selfiegram.storage.selfie_store import SelfieStore
from selfiegram.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


class SelfiegramApp:
    """Owns the single store, overlay manager and gallery service of a process."""

    def __init__(self, config: AppConfig, http_client: httpx.AsyncClient | None = None) -> None:
        """Initialize the application.

        Args:
            config: Application configuration
            http_client: Optional shared HTTP client for overlay downloads
        """
        self.config = config
        self.store = SelfieStore(
            documents_dir=config.store.documents_dir,
            jpeg_quality=config.store.jpeg_quality,
        )
        self.overlays = OverlayManager(config.overlays, client=http_client)
        self.gallery = GalleryService(self.store, config.gallery)
        self._logger = logger

    async def startup(self) -> None:
        """Create directories and optionally pre-load overlay assets."""
        self._logger.info("Starting Selfiegram", documents_dir=str(self.store.documents_dir))

        self.store.ensure_directories()
        self.overlays.cache_dir.mkdir(parents=True, exist_ok=True)

        if self.config.overlays.refresh_on_startup:
            report = await self.overlays.load_overlay_assets(refresh=True)
            self._logger.info(
                "Overlay assets ready",
                available=len(self.overlays.available_overlays()),
                failed=len(report.failed),
            )

        self._logger.info("Startup complete")

    async def shutdown(self) -> None:
        """Stop in-flight overlay downloads."""
        self._logger.info("Shutting down Selfiegram")
        self.overlays.cancel_downloads()


def create_app(
    config: AppConfig | None = None,
    config_path: str | Path | None = None,
) -> SelfiegramApp:
    """Load configuration, configure logging and build the application.

    Args:
        config: Ready configuration; loaded with load_config() when None
        config_path: YAML file passed to load_config()
    """
    if config is None:
        config = load_config(config_path)

    setup_logging(level=config.logging.level, json_format=config.logging.json_format)
    for warning in config.validate_consistency():
        logger.warning("Configuration warning", detail=warning)

    return SelfiegramApp(config)
