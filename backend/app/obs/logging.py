"""JSON logging for the feed service.

Request and socket handlers bind a small context (request id, route, viewer)
that every record emitted while handling them carries.
"""

from __future__ import annotations

import json
import logging
import random
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from app.settings import settings

_CONTEXT: ContextVar[Mapping[str, str]] = ContextVar("obs_log_context", default={})

# context key -> JSON field name
_CONTEXT_FIELDS = {
	"request_id": "request_id",
	"route": "route",
	"user_id": "user_id",
	"role": "role",
	"client_ip": "ip",
	"sid": "sid",
}

_REDACTED_KEYS = ("token", "secret", "authorization", "password", "cookie")

_MAX_STRING_LENGTH = 256
_MAX_ITEMS = 10

_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "taskName"}


def bind_context(**fields: Optional[str]) -> Token:
	"""Merge ``fields`` into the current log context; None values are skipped."""
	unknown = set(fields) - set(_CONTEXT_FIELDS)
	if unknown:
		raise ValueError(f"unknown log context fields: {sorted(unknown)}")
	merged = dict(_CONTEXT.get())
	merged.update({key: str(value) for key, value in fields.items() if value is not None})
	return _CONTEXT.set(merged)


def reset_context(token: Token) -> None:
	_CONTEXT.reset(token)


def current_request_id() -> Optional[str]:
	return _CONTEXT.get().get("request_id")


def _clip(value: Any) -> Any:
	if isinstance(value, str):
		return value if len(value) <= _MAX_STRING_LENGTH else f"{value[:_MAX_STRING_LENGTH]}…"
	if isinstance(value, Mapping):
		items = list(value.items())
		clipped = {str(key): _field(str(key), nested) for key, nested in items[:_MAX_ITEMS]}
		if len(items) > _MAX_ITEMS:
			clipped["…"] = f"+{len(items) - _MAX_ITEMS} keys"
		return clipped
	if isinstance(value, (list, tuple, set, frozenset)):
		values = [_clip(item) for item in list(value)[:_MAX_ITEMS]]
		if len(value) > _MAX_ITEMS:
			values.append("…")
		return values
	if value is None or isinstance(value, (bool, int, float)):
		return value
	return str(value)


def _field(key: str, value: Any) -> Any:
	if any(word in key.lower() for word in _REDACTED_KEYS):
		return "[redacted]"
	return _clip(value)


class JSONLogFormatter(logging.Formatter):
	"""One JSON object per record: service identity, bound context, then extras."""

	def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (match logging api)
		payload: Dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"msg": record.getMessage(),
			"logger": record.name,
			"service": settings.service_name,
			"env": settings.environment,
			"commit": settings.git_commit,
		}
		for key, value in _CONTEXT.get().items():
			payload[_CONTEXT_FIELDS[key]] = value
		if record.exc_info:
			payload["exc_info"] = self.formatException(record.exc_info)
		for key, value in vars(record).items():
			if key not in _RECORD_ATTRS and key not in payload:
				payload[key] = _field(key, value)
		return json.dumps(payload, separators=(",", ":"), default=str)


class InfoSamplingFilter(logging.Filter):
	"""Keep a ``rate`` share of INFO records; other levels always pass."""

	def __init__(self, rate: Optional[float] = None) -> None:
		super().__init__()
		self._rate = rate

	@property
	def rate(self) -> float:
		rate = settings.obs_log_sampling_rate_info if self._rate is None else self._rate
		return max(0.0, min(1.0, rate))

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO or self.rate >= 1.0:
			return True
		return random.random() < self.rate


def configure_logging() -> None:
	root = logging.getLogger()
	root.handlers.clear()
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter())
	handler.addFilter(InfoSamplingFilter())
	root.addHandler(handler)
	root.setLevel(settings.obs_log_level)
	# uvicorn installs its own access handler; route it through ours
	for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
		logging.getLogger(name).handlers.clear()
		logging.getLogger(name).propagate = True
