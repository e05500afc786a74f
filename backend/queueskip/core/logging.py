"""
structlog over the stdlib logging module.

Every record carries the service version and whatever the request middleware
bound into contextvars (request_id, method, path). JSON is emitted outside
development so the webhook and reservation trails can be searched by
session_id.
"""

import logging
import sys

import structlog

from queueskip.core.config import get_settings

_HANDLER_NAME = "queueskip"

# Chatty at INFO; their warnings still get through
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "stripe")


def _add_service(logger, method_name, event_dict):
    event_dict.setdefault("service", "queueskip")
    event_dict.setdefault("version", get_settings().APP_VERSION)
    return event_dict


def _renderer(settings):
    if settings.ENVIRONMENT == "development":
        return structlog.dev.ConsoleRenderer(colors=settings.DEBUG)
    return structlog.processors.JSONRenderer()


def setup_logging() -> None:
    settings = get_settings()
    as_json = settings.ENVIRONMENT != "development"

    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _add_service,
    ]
    if as_json:
        pre_chain.append(structlog.processors.dict_tracebacks)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, _renderer(settings)],
        )
    )

    root = logging.getLogger()
    # The lifespan runs once per app start, and tests start the app repeatedly
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
