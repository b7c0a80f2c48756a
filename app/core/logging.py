"""
Logging setup for the API process.

configure_logging() is called by the application factory and returns the
handlers it installed; the app's lifespan passes them to shutdown_logging() to
flush and close them. Text output in development, JSON (python-json-logger) in
production unless LOG_FORMAT says otherwise.
"""

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pythonjsonlogger.json import JsonFormatter

from app.core.config import Settings

SERVICE_NAME = "acquisitions-api"
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Root of this service's logger hierarchy; uvicorn keeps its own configuration.
APP_LOGGER = "app"


@dataclass
class LogHandlers:
    """Handlers one configure_logging() call attached to the service logger."""

    handlers: list[logging.Handler] = field(default_factory=list)


class ServiceJsonFormatter(JsonFormatter):
    """JSON formatter that tags every record with service and environment."""

    def __init__(self, *args: Any, environment: str, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.environment = environment

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["service"] = SERVICE_NAME
        log_record["environment"] = self.environment
        log_record["level"] = record.levelname


def _build_formatter(settings: Settings) -> logging.Formatter:
    log_format = settings.LOG_FORMAT or ("json" if settings.is_production else "text")
    if log_format == "json":
        return ServiceJsonFormatter(
            "%(asctime)s %(level)s %(name)s %(message)s",
            datefmt=DATE_FORMAT,
            environment=settings.APP_ENV,
        )
    return logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)


def _is_service_handler(handler: logging.Handler) -> bool:
    return (handler.get_name() or "").startswith(SERVICE_NAME)


def configure_logging(settings: Settings) -> LogHandlers:
    """
    Install handlers on the service logger and return them.

    Handlers left by an earlier call are detached and closed first, so calling
    it again replaces them instead of stacking output.
    """
    logger = logging.getLogger(APP_LOGGER)
    for handler in [h for h in logger.handlers if _is_service_handler(h)]:
        logger.removeHandler(handler)
        handler.close()

    formatter = _build_formatter(settings)
    console = logging.StreamHandler(sys.stdout)
    console.set_name(f"{SERVICE_NAME}.console")
    installed = LogHandlers([console])

    if settings.LOG_DIR:
        log_dir = Path(settings.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        error_file = logging.FileHandler(log_dir / "error.log", encoding="utf-8")
        error_file.setLevel(logging.ERROR)
        error_file.set_name(f"{SERVICE_NAME}.error_file")
        combined_file = logging.FileHandler(log_dir / "combined.log", encoding="utf-8")
        combined_file.set_name(f"{SERVICE_NAME}.combined_file")
        installed.handlers.extend([error_file, combined_file])

    logger.setLevel(settings.LOG_LEVEL)
    logger.propagate = False
    for handler in installed.handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return installed


def shutdown_logging(installed: LogHandlers) -> None:
    """Flush, detach and close the given handlers; other handlers are left alone."""
    logger = logging.getLogger(APP_LOGGER)
    for handler in installed.handlers:
        logger.removeHandler(handler)
        handler.flush()
        handler.close()
    installed.handlers.clear()
