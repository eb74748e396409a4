"""
Structured Logging with Trace IDs
=================================

Provides JSON-structured logging with request tracing capabilities.
A handler opens a TraceContext per request so every upstream call made
on behalf of that request can be followed across instances.
"""

import json
import logging
import re
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime

# Context variable to store trace_id for current request
_trace_id_var: ContextVar[str | None] = ContextVar('trace_id', default=None)

_SECRET_PATTERNS = re.compile(
    r"(Bearer\s+[A-Za-z0-9._~+/=-]+|"
    r"client_secret=[^&\s]+|"
    r"\"(?:access_token|clientSecret|client_secret)\"\s*:\s*\"[^\"]*\"|"
    r"eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*)",
    re.IGNORECASE,
)


def _redact_secrets(text: str) -> str:
    return _SECRET_PATTERNS.sub("[REDACTED]", text)


class StructuredLogger:
    """
    Structured logger that outputs JSON logs with trace IDs

    Example output:
    {
        "timestamp": "2025-12-17T10:30:45.123Z",
        "level": "WARNING",
        "trace_id": "abc123",
        "component": "DeploymentAggregator",
        "message": "Skipping instance after listing failure",
        "team": "team-alpha",
        "reason": "AI Core API request failed (status 500)"
    }
    """

    def __init__(self, component: str, logger: logging.Logger | None = None) -> None:
        """
        Initialize structured logger

        Args:
            component: Component name (e.g., 'CredentialStore', 'InferenceGateway')
            logger: Optional existing logger (creates new if not provided)
        """
        self.component = component
        self.logger = logger or logging.getLogger(f"devportal.{component}")

    def _log(self, level: str, message: str, **kwargs) -> None:
        trace_id = _trace_id_var.get()

        log_entry = {
            'timestamp': datetime.now(tz=UTC).isoformat(),
            'level': level,
            'component': self.component,
            'message': _redact_secrets(message),
        }

        if trace_id:
            log_entry['trace_id'] = trace_id

        # Additional fields, string values redacted
        for k, v in kwargs.items():
            log_entry[k] = _redact_secrets(v) if isinstance(v, str) else v

        json_log = _redact_secrets(json.dumps(log_entry, default=str))

        log_method = getattr(self.logger, level.lower())
        log_method(json_log)

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message"""
        self._log('DEBUG', message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        """Log info message"""
        self._log('INFO', message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message"""
        self._log('WARNING', message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        """Log error message"""
        self._log('ERROR', message, **kwargs)

    def critical(self, message: str, **kwargs) -> None:
        """Log critical message"""
        self._log('CRITICAL', message, **kwargs)


class TraceContext:
    """
    Context manager for setting trace_id for a request

    Usage:
        with TraceContext() as trace_id:
            # All logs within this context will include this trace_id
            await service.get_deployments(email)
    """

    def __init__(self, trace_id: str | None = None) -> None:
        self.trace_id = trace_id or self._generate_trace_id()
        self.token = None

    def __enter__(self) -> str:
        self.token = _trace_id_var.set(self.trace_id)
        return self.trace_id

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        _trace_id_var.reset(self.token)

    @staticmethod
    def _generate_trace_id() -> str:
        """Generate a unique trace ID"""
        return str(uuid.uuid4())[:8]


def get_current_trace_id() -> str | None:
    """Return the trace id of the active TraceContext, if any."""
    return _trace_id_var.get()


def get_logger(component: str) -> StructuredLogger:
    """
    Get a structured logger for a component

    Args:
        component: Component name

    Returns:
        StructuredLogger instance
    """
    return StructuredLogger(component)


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """
    Install a root handler for the process.

    With ``fmt="json"`` records are emitted as-is (StructuredLogger already
    renders JSON); ``fmt="text"`` prefixes level and logger name.
    """
    handler = logging.StreamHandler()
    if fmt == "text":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    else:
        handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())
