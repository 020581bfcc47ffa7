"""structlog setup for the coursekb service and CLI.

Every event carries ``service="coursekb"`` so lines from the API and the
CLI can be told apart from other processes writing to the same sink.
Development renders coloured console lines; production (``APP_ENV`` set to
``production``, or ``json_output=True``) renders one JSON object per line.

Standard-library loggers are routed through the same processors.  The
client libraries the knowledge base talks through (chromadb, httpx,
httpcore, openai) are held at WARNING unless the service itself runs at
DEBUG, because they log every request and telemetry decision at INFO.
"""

import logging
import os
import sys

import structlog

SERVICE_NAME = "coursekb"

_CLIENT_LOGGERS = ("chromadb", "httpx", "httpcore", "openai")


def _add_service(
    _logger: object, _method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        _add_service,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def _quiet_client_loggers(level: int) -> None:
    client_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in _CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(client_level)


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Configure structlog and the stdlib root logger for coursekb.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.  Unknown names
            fall back to INFO.
        json_output: Force JSON lines.  Otherwise JSON is used only when
            ``APP_ENV=production``.

    Returns:
        A logger bound to the coursekb service.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"
    if use_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=shared,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    _quiet_client_loggers(level)

    return structlog.get_logger(logger_name=SERVICE_NAME)


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger named after *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(logger_name=name)
