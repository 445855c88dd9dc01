"""Receive handler that stores drained messages as ``.eml`` files.

What:
  Implement the drain's handler contract by writing every successfully
  retrieved message to a local directory, skipping messages whose UID was
  already stored, and optionally asking the drain to delete them from the
  server.

Why:
  The protocol engine deliberately knows nothing about storage. Fetch tooling
  still needs a sensible default that does not lose mail: a message is only
  reported as deletable once its bytes are safely on disk.

How:
  Each message goes to ``<directory>/<stem>.eml`` where the stem is derived
  from the UID (:func:`mailpop.utils.ids.message_stem`), so the same message
  always maps to the same file. Writes go through a ``.tmp`` sibling followed
  by :func:`os.replace`. Retrieval failures are logged and skipped, disk
  failures abort the drain through :class:`~mailpop.pop3.drain.Fail`.

Interfaces:
  :class:`MessageSink`.

Invariants & Safety:
  - Deletion is requested only for messages that are stored (now or in an
    earlier run).
  - Message content is never logged.
  - ``max_messages`` counts newly stored messages; reaching it returns
    :data:`~mailpop.pop3.drain.STOP`.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Tuple

from .config.seen_store import SeenStore
from .pop3.drain import CONTINUE, STOP, DrainOutcome, Fail
from .pop3.errors import Pop3Error
from .utils.ids import message_stem
from .utils.logging import JsonLogger, get_logger


class MessageSink:
    """Callable handler for :func:`mailpop.pop3.drain.drain`.

    Args:
      directory: Destination directory; created when missing.
      seen: Optional store of already-fetched UIDs used to skip duplicates.
      delete: Ask the drain to delete each stored message from the server.
      max_messages: Stop the drain after this many new messages (``0`` means
        no limit).
      logger: Structured logger; defaults to the ``mailpop.sink`` component.
    """

    def __init__(
        self,
        directory: Path | str,
        *,
        seen: Optional[SeenStore] = None,
        delete: bool = False,
        max_messages: int = 0,
        logger: Optional[JsonLogger] = None,
    ) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.seen = seen
        self.delete = delete
        self.max_messages = max_messages
        self.logger = logger or get_logger("mailpop.sink")
        self.stored = 0
        self.skipped = 0

    def path_for(self, uid: str) -> Path:
        return self.directory / f"{message_stem(uid)}.eml"

    def _write(self, uid: str, data: str) -> Path:
        target = self.path_for(uid)
        tmp = target.with_name(target.name + ".tmp")
        tmp.write_bytes(data.encode("utf-8", errors="surrogateescape"))
        os.replace(tmp, target)
        return target

    def __call__(
        self,
        number: int,
        uid: str,
        data: str,
        error: Optional[Pop3Error],
    ) -> Tuple[bool, DrainOutcome]:
        if error is not None:
            self.skipped += 1
            self.logger.warning("message_skipped", number=number, uid=uid, error=str(error))
            return False, CONTINUE

        if self.seen is not None and uid in self.seen:
            self.skipped += 1
            self.logger.debug("message_already_stored", number=number, uid=uid)
            return self.delete, CONTINUE

        try:
            target = self._write(uid, data)
            if self.seen is not None:
                self.seen.add(uid)
        except OSError as exc:
            self.logger.error("message_write_failed", number=number, uid=uid, error=str(exc))
            return False, Fail(exc)

        self.stored += 1
        self.logger.info("message_stored", number=number, uid=uid, path=str(target))

        if self.max_messages and self.stored >= self.max_messages:
            return self.delete, STOP
        return self.delete, CONTINUE
