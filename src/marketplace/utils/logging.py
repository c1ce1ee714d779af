"""Logging configuration for the marketplace domain.

structlog does the formatting for everything, including records emitted by
stdlib loggers (protean, uvicorn), through ``ProcessorFormatter``. Output is
JSON in production and staging and a rich console view elsewhere.

Environment knobs:
  LOG_LEVEL=DEBUG|INFO|WARNING|ERROR   (defaults per environment)
  LOG_FORMAT=json|console              (defaults per environment)
  LOG_DIR=logs                         (rotating files; unset under test)
"""

import logging
import logging.handlers
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

_DEFAULT_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

# Shopper contact details are masked wherever they appear as a top-level key.
_CONTACT_KEYS = frozenset({"email", "guest_email", "recipient", "phone"})


@dataclass(frozen=True)
class LogSettings:
    environment: str
    level: str
    json: bool
    directory: Path | None

    @classmethod
    def from_env(cls) -> "LogSettings":
        environment = (
            os.getenv("ENV") or os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development"
        ).lower()
        level = os.getenv("LOG_LEVEL", _DEFAULT_LEVELS.get(environment, "INFO")).upper()

        log_format = os.getenv("LOG_FORMAT")
        if log_format:
            as_json = log_format.lower() == "json"
        else:
            as_json = environment in ("production", "staging")

        default_dir = None if environment == "test" else "logs"
        log_dir = os.getenv("LOG_DIR", default_dir)

        return cls(
            environment=environment,
            level=level,
            json=as_json,
            directory=Path(log_dir) if log_dir else None,
        )


def mask_contact_details(_, __, event_dict: dict) -> dict:
    for key in _CONTACT_KEYS.intersection(event_dict):
        value = str(event_dict[key] or "")
        if "@" in value:
            local, _sep, domain = value.partition("@")
            event_dict[key] = f"{local[:1]}***@{domain}"
        elif value:
            event_dict[key] = f"***{value[-2:]}"
    return event_dict


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        mask_contact_details,
    ]


def _renderer(settings: LogSettings):
    if settings.json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty(),
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=3),
    )


def _formatter(settings: LogSettings) -> logging.Formatter:
    final = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if settings.json:
        final.append(structlog.processors.format_exc_info)
    final.append(_renderer(settings))

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=final,
    )


def _file_handler(path: Path, level, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_stdlib_logging(settings: LogSettings) -> None:
    """Route every stdlib record through the structlog formatter."""
    formatter = _formatter(settings)

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(settings.level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if settings.directory is not None:
        settings.directory.mkdir(parents=True, exist_ok=True)
        root_logger.addHandler(_file_handler(settings.directory / "marketplace.log", settings.level, formatter))
        root_logger.addHandler(_file_handler(settings.directory / "marketplace_error.log", logging.ERROR, formatter))

    for noisy in ("urllib3", "asyncio", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def setup_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.LINENO,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                ]
            ),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(settings: LogSettings | None = None) -> LogSettings:
    """Configure all logging for the application and return the settings used."""
    settings = settings or LogSettings.from_env()
    setup_stdlib_logging(settings)
    setup_structlog()
    return settings


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_request_context(**kwargs: Any) -> None:
    """Attach values (request id, customer id) to every log line of the current request."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
