"""Persistence for the set of message UIDs already fetched.

What:
  Provide a filesystem-backed accessor for ``seen.yaml`` that records the
  unique IDs of messages stored locally and the time of the last successful
  drain.

Why:
  When messages are kept on the server (``delete_after_fetch: false``) every
  drain lists them again. POP3 unique IDs are stable across sessions, so
  remembering them lets the fetcher skip duplicates without re-downloading or
  re-writing them.

How:
  The document is loaded once when the store is created and held as an
  in-memory set for cheap membership checks. Every mutation rewrites the file
  through a temporary sibling and :func:`os.replace`, so a crash leaves either
  the old or the new document, never a torn one.

Interfaces:
  :class:`SeenStore` exposing ``contains``, ``add``, ``mark_run``,
  ``last_run``, ``load`` and ``save``.

Invariants & Safety:
  - ``seen.yaml`` is created with an empty state when absent.
  - Only UIDs and timestamps are persisted; never message content.
  - UIDs are stored sorted so the file diffs cleanly.
"""
from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Set

from .loader import dump_seen, load_seen
from .schema import SeenState


class SeenStore:
    """High-level wrapper around the ``seen.yaml`` document.

    Args:
      path: Location of ``seen.yaml``; parent directories are created.
    """

    def __init__(self, path: Path | str):
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        state = self.load()
        self._uids: Set[str] = set(state.uids)
        self._last_run: Optional[str] = state.last_run

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> SeenState:
        """Read the document from disk, creating an empty one when missing."""

        try:
            return load_seen(self._path.read_bytes())
        except FileNotFoundError:
            state = SeenState()
            self.save(state)
            return state

    def save(self, state: SeenState) -> None:
        """Atomically write ``state`` to disk."""

        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_bytes(dump_seen(state))
        os.replace(tmp, self._path)

    def _flush(self) -> None:
        self.save(SeenState(uids=sorted(self._uids), last_run=self._last_run))

    def __contains__(self, uid: str) -> bool:
        return uid in self._uids

    def __len__(self) -> int:
        return len(self._uids)

    def contains(self, uid: str) -> bool:
        return uid in self._uids

    def add(self, uid: str) -> None:
        """Record ``uid`` as fetched and persist immediately."""

        if uid in self._uids:
            return
        self._uids.add(uid)
        self._flush()

    def mark_run(self, when: Optional[datetime] = None) -> None:
        """Stamp the time of the last successful drain."""

        moment = when or datetime.now(timezone.utc)
        self._last_run = moment.isoformat()
        self._flush()

    @property
    def last_run(self) -> Optional[str]:
        return self._last_run
