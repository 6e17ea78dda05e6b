"""Structlog configuration and logger setup.

Rendering follows the deployment: colored console output when a PREFIX is
set (development, staging), one JSON object per line in production. Under
pytest every log call is swallowed.

Usage:
    from infrastructure.logging import get_module_logger

    logger = get_module_logger()
    logger.info("notification_dispatched", pushed=2)
"""

import inspect
import logging
import sys
from typing import List, Optional

import structlog
from structlog.stdlib import BoundLogger

from infrastructure.logging.formatters import (
    add_service_info,
    mask_sensitive_data,
    scrub_embedded_secrets,
    truncate_large_values,
)
from infrastructure.services.providers import get_settings

SERVICE_NAME = "notification-engine"

# Top-level packages whose second segment names the subsystem.
_PACKAGE_ROOTS = ("modules", "infrastructure")


def _is_test_environment() -> bool:
    return "pytest" in sys.modules


def build_processors(
    git_sha: str = "unknown", prefix: str = "", json_output: bool = True
) -> List:
    """Processor chain shared by every logger.

    Masking runs before rendering so no renderer ever sees a credential.
    """
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ),
        add_service_info(SERVICE_NAME, git_sha, prefix),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        mask_sensitive_data(),
        scrub_embedded_secrets(),
        truncate_large_values(),
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    return processors


def _configure_silenced() -> BoundLogger:
    logging.basicConfig(format="%(message)s", level=logging.CRITICAL + 1, force=True)
    structlog.configure(
        processors=[structlog.stdlib.add_log_level, structlog.processors.KeyValueRenderer()],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    return structlog.stdlib.get_logger()


def configure_logging(
    log_level: Optional[str] = None,
    is_production: Optional[bool] = None,
) -> BoundLogger:
    """Configure structured logging for the process.

    Args:
        log_level: Overrides settings.LOG_LEVEL
        is_production: Overrides settings.is_production (JSON vs console)

    Returns:
        The root structlog logger
    """
    if _is_test_environment():
        return _configure_silenced()

    settings = get_settings()
    production = settings.is_production if is_production is None else is_production

    structlog.configure(
        processors=build_processors(settings.GIT_SHA, settings.PREFIX, json_output=production),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = (log_level or settings.LOG_LEVEL).upper()
    logging.basicConfig(format="%(message)s", level=getattr(logging, level, logging.INFO))
    # Keep per-request chatter from the HTTP clients out of the engine's logs.
    for noisy in ("httpx", "httpcore", "slack_sdk"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return structlog.stdlib.get_logger()


logger: BoundLogger = configure_logging()


def get_module_logger() -> BoundLogger:
    """Logger bound to the calling module.

    Binds ``component`` (last dotted segment), ``subsystem`` (the package
    under ``modules``/``infrastructure``) and ``module_path``.

    Example:
        # In modules/notifications/batching.py
        {"component": "batching", "subsystem": "notifications",
         "module_path": "modules.notifications.batching"}
    """
    frame = inspect.currentframe()
    caller = frame.f_back if frame is not None else None
    module = inspect.getmodule(caller) if caller is not None else None
    if module is None:
        return logger.bind(component="unknown")

    parts = module.__name__.split(".")
    context = {"component": parts[-1], "module_path": module.__name__}
    if len(parts) > 1 and parts[0] in _PACKAGE_ROOTS:
        context["subsystem"] = parts[1]
    return logger.bind(**context)
