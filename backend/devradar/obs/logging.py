"""JSON log lines with request/connection context and redaction."""

from __future__ import annotations

import json
import logging
import random
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from devradar.settings import settings

_ROOT_LOGGER = "devradar"

# Fields bound for the current request or socket event: request_id, route, ip, connection_id.
_CONTEXT: ContextVar[Mapping[str, str]] = ContextVar("devradar_log_context", default={})

# Substrings marking `extra` keys whose values must not be logged.
_SECRET_MARKERS = ("token", "secret", "authorization", "password", "payload", "body")
# Exact developer positions are personal data.
_COORDINATE_KEYS = frozenset({"lat", "lon", "lng", "latitude", "longitude"})

_MAX_STR = 256
_MAX_ITEMS = 10

# Attributes every LogRecord carries; anything else came in through `extra`.
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime", "taskName"}


def bind_context(**fields: Optional[str]) -> Token:
	"""Merge non-empty ``fields`` into the log context; pass the token to reset_context."""
	merged = dict(_CONTEXT.get())
	merged.update({key: str(value) for key, value in fields.items() if value})
	return _CONTEXT.set(merged)


def reset_context(token: Token) -> None:
	_CONTEXT.reset(token)


def current_request_id() -> Optional[str]:
	return _CONTEXT.get().get("request_id")


def _is_sensitive(key: str) -> bool:
	lowered = key.lower()
	return lowered in _COORDINATE_KEYS or any(marker in lowered for marker in _SECRET_MARKERS)


def sanitize_field(key: str, value: Any) -> Any:
	if _is_sensitive(key):
		return "[redacted]"
	if isinstance(value, str) and len(value) > _MAX_STR:
		return value[:_MAX_STR] + "…"
	if isinstance(value, Mapping):
		items = list(value.items())
		cleaned = {str(k): sanitize_field(str(k), v) for k, v in items[:_MAX_ITEMS]}
		if len(items) > _MAX_ITEMS:
			cleaned["…"] = f"+{len(items) - _MAX_ITEMS} keys"
		return cleaned
	if isinstance(value, (list, tuple, set, frozenset)):
		values = list(value)
		cleaned_list = [sanitize_field("", item) for item in values[:_MAX_ITEMS]]
		if len(values) > _MAX_ITEMS:
			cleaned_list.append("…")
		return cleaned_list
	return value


class JSONLogFormatter(logging.Formatter):
	def format(self, record: logging.LogRecord) -> str:  # noqa: A003
		line: Dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"logger": record.name,
			"msg": record.getMessage(),
			"service": settings.service_name,
			"env": settings.environment,
			"commit": settings.git_commit,
		}
		line.update(_CONTEXT.get())
		for key, value in vars(record).items():
			if key not in _STANDARD_ATTRS and key not in line:
				line[key] = sanitize_field(key, value)
		if record.exc_info:
			line["exc_info"] = self.formatException(record.exc_info)
		return json.dumps(line, separators=(",", ":"), default=str)


class InfoSamplingFilter(logging.Filter):
	"""Keep a random share of INFO lines; other levels always pass."""

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO:
			return True
		rate = settings.obs_log_sampling_rate_info
		return rate >= 1.0 or random.random() < max(0.0, rate)


def configure_logging() -> logging.Logger:
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter())
	handler.addFilter(InfoSamplingFilter())
	root = logging.getLogger()
	root.handlers[:] = [handler]
	root.setLevel(settings.obs_log_level)
	return logging.getLogger(_ROOT_LOGGER)


def get_logger(name: Optional[str] = None) -> logging.Logger:
	return logging.getLogger(name or _ROOT_LOGGER)
