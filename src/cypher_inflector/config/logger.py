from __future__ import annotations

import inspect
import logging.config
import sys
import typing
from pathlib import Path
from typing import Any

from typing_extensions import override

from loguru import logger

from cypher_inflector.config.general import CONFIG

if typing.TYPE_CHECKING:
    from loguru import Record


class InterceptHandler(logging.Handler):
    """Logger which forwards to loguru."""

    @override
    def emit(self, record: logging.LogRecord) -> None:
        """Intercept stdlib logging and send it to loguru handling."""
        # Get corresponding Loguru level if it exists.
        level: str | int
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message.
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def format_stdout(record: Record) -> str:
    """Format a record for the console, tagging it with its request if any."""
    header = "<cyan>{time:YYYY-MM-DDTHH:mm:ss.SSSZ}</cyan> <blue>{process.id:4}</blue> <level>{level:8}</level> "
    log = "{message:80} <cyan>{name}:{function}():{line}</cyan>\n{exception}"
    if "request_id" in record["extra"]:
        header += f"<green>{record['extra']['request_id'][:8]}</green> "

    return header + log


def configure_logging() -> dict[str, Any]:
    """Route standardlib logging to loguru and configure loguru."""
    # Reroute standard logging to loguru
    std_log_config = {
        "version": 1,
        "handlers": {
            "loguru": {
                "()": InterceptHandler,
            }
        },
        "loggers": {
            "cypher_inflector": {
                "level": "DEBUG",
                "handlers": ["loguru"],
            },
            "uvicorn": {
                "level": "DEBUG",
                "handlers": ["loguru"],
            },
            "neo4j": {
                "level": "WARNING",
                "handlers": ["loguru"],
            },
        },
        "incremental": False,
        "disable_existing_loggers": True,
    }
    logging.config.dictConfig(std_log_config)

    # Configure loguru
    logger.remove()
    logger.add(
        sys.stdout,
        format=format_stdout,
        colorize=True,
        backtrace=True,
        diagnose=False,
        enqueue=True,
        level=CONFIG.log_level,
    )
    logger.add(
        Path.cwd() / "logs/cypher_inflector.log",
        format="{time:YYYY-MM-DDTHH:mm:ss.SSSZ} | {level:8} | {message:80} | {extra} | {process.id}:{name}:{function}:{line}",
        colorize=False,
        backtrace=True,
        diagnose=True,
        enqueue=True,
        rotation="monthly",
        retention=3,
        compression="tar.gz",
        level=CONFIG.log_level,
    )
    logger.add(
        Path.cwd() / "logs/cypher_inflector.log.json",
        format="{message}",
        colorize=False,
        serialize=True,
        backtrace=True,
        diagnose=True,
        enqueue=True,
        rotation="monthly",
        retention=3,
        compression="tar.gz",
        level=CONFIG.log_level,
    )

    return std_log_config


async def cleanup() -> None:
    """Finish Loguru operations."""
    await logger.complete()
    logger.remove()
