from selfiegram.utils.logging import get_logger, setup_logging
from selfiegram.utils.paths import resolve_within

__all__ = ["get_logger", "resolve_within", "setup_logging"]
