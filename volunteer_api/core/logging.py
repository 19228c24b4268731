"""
structlog setup for the API.

Production emits one JSON object per line with the event name under
"message" and the service/environment stamped on every record. Development
gets the coloured console renderer; tests get plain key=value lines.
Request-scoped fields come from contextvars, bound by the request middleware
through `bind_request_context`.
"""

import logging
import sys
import structlog
from volunteer_api.core.config import get_settings

_configured = False


def _add_service(_, __, event_dict: dict) -> dict:
    settings = get_settings()
    event_dict.setdefault("service", settings.APP_NAME)
    event_dict.setdefault("env", settings.ENVIRONMENT)
    return event_dict


def _renderer(environment: str):
    if environment == "production":
        return structlog.processors.JSONRenderer()
    if environment == "test":
        return structlog.processors.KeyValueRenderer(key_order=["event", "request_id"], sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=True)


def setup_logging() -> None:
    """Idempotent; the app lifespan and test runs may both call it."""
    global _configured
    if _configured:
        return

    settings = get_settings()
    production = settings.ENVIRONMENT == "production"

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if production:
        processors += [
            _add_service,
            structlog.processors.format_exc_info,
            structlog.processors.EventRenamer("message"),
        ]

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(settings.ENVIRONMENT),
            ]
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    # SQL echo is controlled by DEBUG on the engine, not by log level
    for name in ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncio"):
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def bind_request_context(**values) -> None:
    """Start a fresh logging context for one request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
