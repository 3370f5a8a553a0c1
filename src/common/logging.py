"""
Structured logging for the bridge, built on structlog over stdlib logging.

- One JSON object per line (or a readable block when enable_pretty_print is set)
- Event-style calls: logger.info(event="tool_registered", tool_name=...)
- Secret-bearing fields are masked before rendering
- Never write to stdout: the stdio transport owns it
"""

import logging
import logging.handlers
import sys
import time
from typing import IO, Any, Callable, Dict, FrozenSet, Optional

import structlog

from common.config import Config

REDACTED = "***"

# Field names whose values are masked wherever they appear in an event
SECRET_FIELDS: FrozenSet[str] = frozenset({"api_key", "authorization", "x-api-key"})

_PRETTY_SKIPPED = ("timestamp", "level", "logger")


def redact_secrets(secret_fields: FrozenSet[str] = SECRET_FIELDS) -> Callable:
    """Build a processor masking secret fields, including inside header dicts."""

    def processor(_, __, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        for key, value in list(event_dict.items()):
            if key.lower() in secret_fields and value:
                event_dict[key] = REDACTED
            elif isinstance(value, dict):
                event_dict[key] = {
                    k: REDACTED if str(k).lower() in secret_fields and v else v
                    for k, v in value.items()
                }
        return event_dict

    return processor


def build_renderer(pretty: bool) -> Callable:
    """
    Final processor: compact JSON, or for local debugging a block of
    `key: value` lines without timestamp, level and logger name.
    """
    json_renderer = structlog.processors.JSONRenderer()

    def render_pretty(_, __, event_dict: Dict[str, Any]) -> str:
        fields = {k: v for k, v in event_dict.items() if k not in _PRETTY_SKIPPED}
        lines = [f"EVENT: {fields.pop('event', 'unknown_event')}"]
        for key, value in fields.items():
            if isinstance(value, (dict, list)):
                value = str(value).replace(", ", ",\n    ")
            lines.append(f"{key}: {value}")
        lines.append("-" * 50)
        return "\n".join(lines)

    return render_pretty if pretty else json_renderer


def setup_logging(config: Config, stream: Optional[IO[str]] = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        config: Application configuration
        stream: Console sink. Defaults to stderr.
    """
    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    secret_fields = SECRET_FIELDS | {config.http.api_key_header.lower()}

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            redact_secrets(frozenset(secret_fields)),
            build_renderer(config.enable_pretty_print),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = logging.Formatter("%(message)s")
    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setFormatter(formatter)
    handlers = [console_handler]

    if config.save_to_file:
        file_handler = logging.handlers.RotatingFileHandler(
            filename=config.log_file_path,
            maxBytes=config.max_log_file_size,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers, format="%(message)s", force=True)

    # httpx logs every request at INFO on its own logger
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


class TimedLogger:
    """Context manager that logs an event with its elapsed_ms when the block exits."""

    def __init__(self, logger: structlog.BoundLogger, event: str, **context: Any):
        self.logger = logger
        self.event = event
        self.context = context
        self.start_time: Optional[float] = None

    def __enter__(self) -> "TimedLogger":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Log at info on success, at warning with the error when the block raised."""
        if self.start_time is None:
            return
        elapsed_ms = round((time.perf_counter() - self.start_time) * 1000, 2)
        if exc_type is None:
            self.logger.info(self.event, elapsed_ms=elapsed_ms, **self.context)
        else:
            self.logger.warning(
                self.event,
                elapsed_ms=elapsed_ms,
                error_type=exc_type.__name__,
                error=str(exc_val),
                **self.context,
            )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a configured structlog logger."""
    return structlog.get_logger(name)


def log_startup_message(message: str, **kwargs: Any) -> None:
    """Log a startup milestone on the `startup` logger."""
    get_logger("startup").info(message, **kwargs)
