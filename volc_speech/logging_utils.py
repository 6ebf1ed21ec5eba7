"""Structured logging (one JSON line per event) through the `volc_speech` logger."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any


SERVICE_NAME = "volc_speech"

_REDACTED_KEYS = frozenset({"token", "access_token"})

logger = logging.getLogger(SERVICE_NAME)


def _redact(payload: Any) -> Any:
    """Copy of payload with credential fields masked."""
    if isinstance(payload, dict):
        return {
            k: ("***" if k in _REDACTED_KEYS and v else _redact(v))
            for k, v in payload.items()
        }
    if isinstance(payload, list):
        return [_redact(v) for v in payload]
    return payload


def _emit(level: int, payload: dict[str, Any]) -> None:
    if logger.isEnabledFor(level):
        logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))


def log_request(
    method: str,
    route: str,
    latency_ms: float,
    status_code: int | None = None,
    error: bool = False,
) -> None:
    """Emit one JSON line per transport call."""
    payload: dict[str, Any] = {
        "ts": datetime.now(tz=timezone.utc).isoformat(),
        "service": SERVICE_NAME,
        "method": method,
        "route": route,
        "status_code": status_code,
        "latency_ms": round(latency_ms, 2),
        "error": error,
    }
    _emit(logging.WARNING if error else logging.INFO, payload)


def log_payload(
    route: str,
    direction: str,
    body: Any,
    job_id: str | None = None,
    error: bool = False,
) -> None:
    """Trace a request (REQ) or response (REP) body; ERROR level when `error`."""
    payload: dict[str, Any] = {
        "ts": datetime.now(tz=timezone.utc).isoformat(),
        "service": SERVICE_NAME,
        "route": route,
        "direction": direction,
        "job_id": job_id,
        "body": _redact(body),
    }
    _emit(logging.ERROR if error else logging.DEBUG, payload)
