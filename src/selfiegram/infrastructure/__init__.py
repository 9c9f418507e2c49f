"""Infrastructure components talking to the outside world."""

from selfiegram.infrastructure.overlay_manager import DownloadReport, OverlayManager

__all__ = ["DownloadReport", "OverlayManager"]
