"""
Process logging for the expense tracker.

Every line is an event name plus keyword fields. Field values are scrubbed
before they reach a handler: secrets by key name, account numbers by shape,
and statement excerpts are cut to a fixed length.
"""
import json
import logging
import os
import re
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LOGGER_NAME = 'expense_tracker'
MAX_FIELD_CHARS = 200

IBAN_RE = re.compile(r"\b[A-Z]{2}\d{2}(?:\s?[A-Z0-9]{4}){2,7}(?:\s?[A-Z0-9]{1,3})?\b")
SENSITIVE_KEY_PARTS = ('password', 'token', 'cookie', 'secret', 'authorization', 'api_key')

_request_id_ctx: ContextVar[Optional[str]] = ContextVar('request_id', default=None)


def set_request_id(value: Optional[str]):
    return _request_id_ctx.set(value)


def reset_request_id(token) -> None:
    _request_id_ctx.reset(token)


def get_request_id() -> Optional[str]:
    return _request_id_ctx.get()


def _to_json_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(k): _to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_to_json_value(v) for v in value]
    return str(value)


class PlainTextFormatter(logging.Formatter):
    """`[LEVEL] event request_id=... key=value ...` for local runs."""

    def format(self, record: logging.LogRecord) -> str:
        event_name = getattr(record, 'event_name', None)
        parts = [f"[{record.levelname}]", event_name or record.name]
        rid = get_request_id()
        if rid:
            parts.append(f"request_id={rid}")
        message = record.getMessage()
        if message and message != event_name:
            parts.append(message)
        fields = getattr(record, 'event_fields', None)
        if isinstance(fields, dict):
            parts.extend(f"{k}={_to_json_value(v)}" for k, v in fields.items())
        return ' '.join(parts)


class JsonFormatter(logging.Formatter):
    """One JSON object per line; accented statement text is written as is."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            'ts': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        rid = get_request_id()
        if rid:
            payload['request_id'] = rid
        event_name = getattr(record, 'event_name', None)
        if event_name:
            payload['event'] = event_name
        event_fields = getattr(record, 'event_fields', None)
        if isinstance(event_fields, dict):
            payload.update(_to_json_value(event_fields))
        if record.exc_info:
            payload['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def mask_iban(value: str) -> str:
    raw = (value or '').replace(' ', '')
    if len(raw) < 8:
        return value
    return raw[:4] + '*' * max(4, len(raw) - 8) + raw[-4:]


def mask_account_numbers(text: str) -> str:
    return IBAN_RE.sub(lambda m: mask_iban(m.group(0)), text)


def scrub_field(key: Optional[str], value: Any) -> Any:
    key_l = (key or '').lower()
    if any(part in key_l for part in SENSITIVE_KEY_PARTS):
        return '[REDACTED]'
    if isinstance(value, dict):
        return {str(k): scrub_field(str(k), v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [scrub_field(key, v) for v in value]
    if isinstance(value, str):
        masked = mask_account_numbers(value)
        if len(masked) > MAX_FIELD_CHARS:
            return masked[:MAX_FIELD_CHARS] + '...'
        return masked
    return value


_logger: Optional[logging.Logger] = None


def configure_logging() -> logging.Logger:
    """
    Set up the package logger once: LOG_LEVEL picks the threshold and
    LOG_JSON (on unless 0/false/off/no) picks JSON or plain text.
    """
    global _logger
    if _logger is not None:
        return _logger

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, os.getenv('LOG_LEVEL', 'INFO').upper(), logging.INFO))
    logger.propagate = False
    if not logger.handlers:
        handler = logging.StreamHandler()
        use_json = os.getenv('LOG_JSON', 'true').lower() not in {'0', 'false', 'off', 'no'}
        handler.setFormatter(JsonFormatter() if use_json else PlainTextFormatter())
        logger.addHandler(handler)
    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    return configure_logging()


def log_event(level: str, event_name: str, **fields: Any) -> None:
    logger = get_logger()
    log_fn = getattr(logger, level.lower(), logger.info)
    scrubbed = {k: scrub_field(k, v) for k, v in fields.items()}
    log_fn(event_name, extra={'event_name': event_name, 'event_fields': scrubbed})
