"""Identifier helpers for fetch runs and stored messages.

What:
  Generate run identifiers for log correlation and derive stable, filesystem
  safe file names from message unique IDs.

Why:
  POP3 unique IDs are opaque server strings: they may contain ``/``, spaces or
  other characters that are unsafe in file names. Hashing them gives a name
  that is deterministic across runs, so a message fetched twice lands on the
  same path.

How:
  Run IDs combine a UTC timestamp with a short random token from
  :mod:`secrets`. File stems are a SHA-256 digest of the UID, truncated.

Interfaces:
  :func:`new_run_id`, :func:`message_stem`.
"""
from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timezone


def new_run_id() -> str:
    """Return a sortable, unique identifier such as ``2024-01-01T00:00:00+00:00#1a2b3c``."""

    timestamp = datetime.now(timezone.utc).isoformat()
    suffix = secrets.token_hex(3)
    return f"{timestamp}#{suffix}"


def message_stem(uid: str) -> str:
    """Return a 32-character hex file stem derived from ``uid``.

    Args:
      uid: Server-assigned unique ID of the message.

    Returns:
      The first 32 hex characters of ``sha256(uid)``.
    """

    return hashlib.sha256(uid.encode("utf-8")).hexdigest()[:32]
