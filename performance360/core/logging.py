import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from pythonjsonlogger.json import JsonFormatter

from performance360.core.config import settings

# Context variable to store request_id for the current task/request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

SENSITIVE_FIELDS = (
    "password",
    "token",
    "authorization",
    "jwt",
    "secret",
    "apikey",
)


class CustomJsonFormatter(JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        # Inject correlation ID if available
        req_id = request_id_var.get()
        if req_id:
            log_record["request_id"] = req_id

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        if log_record.get("level"):
            log_record["level"] = log_record["level"].upper()
        else:
            log_record["level"] = record.levelname


def setup_logging(level: Optional[str] = None):
    logger = logging.getLogger()
    # Re-running setup (tests, reloads) must not stack handlers
    for handler in list(logger.handlers):
        if isinstance(handler.formatter, CustomJsonFormatter):
            logger.removeHandler(handler)

    log_handler = logging.StreamHandler()
    formatter = CustomJsonFormatter("%(timestamp) %(level) %(name) %(message)")
    log_handler.setFormatter(formatter)
    logger.addHandler(log_handler)
    logger.setLevel((level or settings.log_level).upper())

    # Suppress verbose logs from some libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def sanitize_for_logging(data: Any, sensitive_fields: Iterable[str] = SENSITIVE_FIELDS) -> Any:
    """Recursively redact credential-like keys before a payload is logged."""
    if isinstance(data, list):
        return [sanitize_for_logging(item, sensitive_fields) for item in data]
    if not isinstance(data, dict):
        return data

    sanitized = {}
    for key, value in data.items():
        lower_key = str(key).lower()
        if any(field in lower_key for field in sensitive_fields):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, (dict, list)):
            sanitized[key] = sanitize_for_logging(value, sensitive_fields)
        else:
            sanitized[key] = value
    return sanitized


def redact_email(email: Optional[str]) -> Optional[str]:
    if not email or "@" not in email:
        return email
    local, domain = email.split("@", 1)
    if len(local) <= 2:
        return f"{local[0]}***@{domain}"
    return f"{local[0]}{'*' * (len(local) - 2)}{local[-1]}@{domain}"
