import logging
import sys
from typing import Any

import structlog


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
) -> None:
    """配置结构化日志

    日志经由标准库 logging 输出到 stderr，stdout 留给命令行输出。

    Args:
        level: 日志级别 (DEBUG, INFO, WARNING, ERROR)
        json_format: 是否使用 JSON 格式输出
    """
    log_level = getattr(logging, level.upper())

    # 配置标准库 logging（httpx 等第三方库使用）
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("selfiegram").setLevel(log_level)

    # 配置 structlog 处理器
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if json_format:
        # JSON 格式输出（适合生产环境）
        processors = [
            *shared_processors,
            structlog.processors.JSONRenderer(),
        ]
    else:
        # 控制台友好格式（适合开发环境）
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """获取命名 logger

    Args:
        name: logger 名称，通常使用 __name__

    Returns:
        配置好的 structlog logger
    """
    return structlog.get_logger(name)
