# clipfetch/infra/logging_config.py
"""
Logging setup: one JSON object per line in production, colored single lines
in development.

Context travels as ``extra=`` attributes on the record.  ``LogContext`` binds
the per-request ones (request id, provider, quality) so resolver and relay
code does not repeat them on every call.
"""
import logging
import sys
import json
from datetime import datetime, timezone
from urllib.parse import urlsplit

# Per-request context, shown in both formats
CONTEXT_FIELDS = ("request_id", "provider", "quality")

# Request-level attributes set by the HTTP middleware; JSON output only
REQUEST_FIELDS = ("method", "path", "status_code", "duration_ms", "client_ip", "error_type")


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for production environments"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": f"{record.module}:{record.lineno}",
        }

        for name in CONTEXT_FIELDS + REQUEST_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_data[name] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable format for development"""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).strftime("%H:%M:%S")

        context_parts = []
        if getattr(record, "request_id", None):
            context_parts.append(f"req={str(record.request_id)[:8]}")
        if getattr(record, "provider", None):
            context_parts.append(f"provider={record.provider}")
        if getattr(record, "quality", None):
            context_parts.append(f"quality={record.quality}")
        context = f" [{' '.join(context_parts)}]" if context_parts else ""

        line = (
            f"{color}[{timestamp}] {record.levelname:8}{self.RESET} "
            f"{record.name}{context} - {record.getMessage()}"
        )
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(level: str = "INFO", use_json: bool = False) -> None:
    """
    Configure the root logger (replaces any existing handlers).

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_json: If True, use JSON format (for production)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if use_json else ConsoleFormatter())
    root_logger.addHandler(handler)

    # Our middleware already logs every request
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)

    logging.info(f"Logging configured: level={level}, json={use_json}")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LogContext:
    """Logger wrapper that adds bound context fields to every record"""

    def __init__(
            self,
            logger: logging.Logger,
            request_id: str | None = None,
            provider: str | None = None,
            quality: str | None = None,
    ):
        self.logger = logger
        self.context = {
            k: v for k, v in {
                "request_id": request_id,
                "provider": provider,
                "quality": quality,
            }.items() if v is not None
        }

    def bind(self, **context) -> "LogContext":
        """Return a new LogContext with extra fields merged in"""
        merged = {**self.context, **{k: v for k, v in context.items() if v is not None}}
        return LogContext(self.logger, **merged)

    def _log(self, level: int, msg: str, *args, **kwargs):
        extra = {**kwargs.pop("extra", {}), **self.context}
        self.logger.log(level, msg, *args, extra=extra, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, **kwargs)


def mask_url(url: str) -> str:
    """Shorten a URL for logging: keep host and path, drop the query string.

    Example: ``mask_url("https://v16.tiktokcdn.com/abc/video.mp4?sig=...")``
    → ``"v16.tiktokcdn.com/abc/video.mp4"``

    Signed CDN URLs carry tokens in the query string; those never reach logs.
    """
    parts = urlsplit(url)
    if not parts.netloc:
        return url[:60]
    return f"{parts.netloc}{parts.path}"[:120]
