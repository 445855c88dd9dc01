"""Structured JSON logging with redaction of credentials and message content.

What:
  Let the drain and the message sink emit one JSON object per event with a
  fixed envelope, masking passwords and message payloads on the way out.

Why:
  Fetch runs are usually unattended (cron, systemd timers) and diagnosed after
  the fact by grepping logs. A fixed layout keeps parsing trivial, and the
  redaction step means a careless ``logger.info(..., data=body)`` cannot leak
  mail contents or the account password.

How:
  Each event becomes a record of ``ts``, ``lvl``, ``msg`` and ``component``
  followed by the caller's fields after :func:`redact` has walked them.
  Records are rendered with :func:`json.dumps` and written as one line.

Interfaces:
  :class:`JsonLogger`, :func:`get_logger`, :func:`redact`, ``REDACTED``,
  ``SENSITIVE_KEYS``.

Invariants & Safety:
  - Keys listed in ``SENSITIVE_KEYS`` are masked inside nested mappings and
    sequences too.
  - Values that JSON cannot encode are rendered with ``str``.
  - The stream is flushed after every record.
"""
from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, TextIO


REDACTED = "[redacted]"
SENSITIVE_KEYS = frozenset({"password", "pass", "body", "data", "subject", "preview", "snippet"})


def redact(value: Any) -> Any:
    """Return ``value`` with every sensitive mapping key masked."""

    if isinstance(value, dict):
        return {
            key: REDACTED if key in SENSITIVE_KEYS else redact(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    return value


@dataclass
class JsonLogger:
    """Line-oriented JSON event logger.

    Attributes:
      stream: Text stream receiving the records; ``stdout`` by default.
      component: Label identifying the emitting subsystem.
    """

    stream: TextIO = field(default_factory=lambda: sys.stdout)
    component: str = "mailpop"

    def _emit(self, level: str, event: str, fields: Dict[str, Any]) -> None:
        record: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "lvl": level,
            "msg": event,
            "component": self.component,
        }
        record.update(redact(fields))
        self.stream.write(json.dumps(record, separators=(",", ":"), default=str) + "\n")
        self.stream.flush()

    def debug(self, event: str, **fields: Any) -> None:
        self._emit("DEBUG", event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._emit("INFO", event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._emit("WARN", event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._emit("ERROR", event, fields)


def get_logger(component: str) -> JsonLogger:
    """Return a ``stdout`` logger tagged with ``component``."""

    return JsonLogger(component=component)
