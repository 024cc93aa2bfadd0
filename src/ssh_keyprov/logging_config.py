"""structlog setup for the CLI and library code.

Log lines go to stderr so command output on stdout stays machine readable.
Configuration comes from ``Settings`` (``KEYPROV_LOG_*`` variables).
"""

import logging
import sys

import structlog
from structlog.types import Processor

from ssh_keyprov.config import Settings, get_settings

# Third-party loggers that are noisy below WARNING
_QUIET_LOGGERS = ("paramiko",)


def _processors(log_format: str) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=False),
        structlog.processors.CallsiteParameterAdder(
            {
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            }
        ),
        structlog.processors.format_exc_info,
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    return processors


def setup_logging(settings: Settings | None = None) -> None:
    """Route structlog through stdlib logging on stderr.

    Binds ``service`` to the context of every entry. Calling it again
    replaces the previous configuration.
    """
    settings = settings or get_settings()
    level = logging.getLevelName(settings.log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=_processors(settings.log_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(service=settings.service_name)

    get_logger(__name__).debug(
        "logging_initialized",
        log_format=settings.log_format,
        log_level=settings.log_level,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_session_context(host: str, user: str) -> None:
    """Attach the remote target to every subsequent log entry."""
    structlog.contextvars.bind_contextvars(remote_host=host, remote_user=user)


def clear_context() -> None:
    """Drop the service and remote target bound for the current command."""
    structlog.contextvars.clear_contextvars()
