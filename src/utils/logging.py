"""
structlog configuration for the knowledge ingestion service.

Every ingestion call runs under a correlation id (see
``IngestionPipeline.build_from_texts``), and each log entry carries it
together with the application name. ``setup_logging`` is driven by
``LoggingSettings`` through ``IngestionPipeline.from_settings``.
"""

import logging
import sys
from contextvars import ContextVar
from uuid import uuid4

import structlog
from structlog.types import EventDict, Processor

APP_NAME = "knowledge-ingest"

# Chatty client libraries used by the embedding providers and the store
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "pymongo")

_STDLIB_FORMATS = {
    "json": "%(message)s",
    "console": "%(levelname)s %(name)s %(message)s",
}

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_app_name = APP_NAME


def get_correlation_id() -> str | None:
    """Return the correlation id of the running ingestion call, if any."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Bind ``correlation_id`` (or a fresh UUID4) to the current context.

    Returns:
        The id now in effect.
    """
    cid = correlation_id or str(uuid4())
    correlation_id_var.set(cid)
    return cid


def clear_correlation_id() -> None:
    correlation_id_var.set(None)


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Processor: tag the entry with the current correlation id when one is bound."""
    cid = correlation_id_var.get()
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def add_app_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Processor: tag the entry with the name given to :func:`setup_logging`."""
    event_dict["app"] = _app_name
    return event_dict


def _build_processors(log_format: str) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_correlation_id,
        add_app_context,
    ]
    if log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    return processors


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    app_name: str = APP_NAME,
) -> None:
    """
    Route structlog through the standard library logger on stdout.

    Calling it again swaps the structlog renderer and the root level, so a
    pipeline built from different settings picks up their level and format.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        log_format: ``json`` for machine-readable lines, ``console`` for
            coloured development output.
        app_name: Value of the ``app`` key on every entry.
    """
    global _app_name
    _app_name = app_name

    level = getattr(logging, log_level)
    logging.basicConfig(
        format=_STDLIB_FORMATS.get(log_format, _STDLIB_FORMATS["console"]),
        stream=sys.stdout,
        level=level,
    )
    # basicConfig is a no-op once the root logger has handlers
    logging.getLogger().setLevel(level)

    structlog.configure(
        processors=_build_processors(log_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class LoggerMixin:
    """
    Give a class a ``logger`` property named after the class.

    Used by the chunker, the store, the database client and the pipeline.
    """

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        if not hasattr(self, "_logger"):
            self._logger = get_logger(self.__class__.__name__)
        return self._logger
