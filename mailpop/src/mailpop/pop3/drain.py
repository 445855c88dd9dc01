"""Mailbox drain: retrieve every message and hand it to a caller handler.

What:
  Drive one full pass over a POP3 mailbox. The drain logs in, snapshots the
  UIDL listing, retrieves each message in server order, passes it to the
  caller's handler, and deletes it when the handler asks. It always finishes
  by releasing the session.

Why:
  Fetchers need more than a loop over ``retr``. A retrieval failure should be
  the handler's call, not an automatic abort. A server that drops the
  connection halfway should not lose the rest of the pass. A caller must be
  able to stop early without that looking like a failure. Deletions must be
  rolled back when the pass fails.

How:
  The handler returns ``(delete, outcome)`` where ``outcome`` is one of
  :data:`CONTINUE`, :data:`STOP` or :class:`Fail`. After every handler call the
  session is probed with :meth:`Pop3Client.is_closed`; a closed session is
  replaced by a fresh one from ``session_factory`` and the pass continues.
  Cleanup runs in ``finally``: ``RSET`` when the pass failed, then ``QUIT`` and
  ``close``, each best-effort.

Interfaces:
  ``CONTINUE``, ``STOP``, :class:`Fail`, ``DrainOutcome``, ``ReceiveHandler``,
  :class:`DrainReport`, :func:`drain`, :func:`receive_mail`,
  :func:`receive_mail_tls`.

Invariants & Safety:
  - The listing is taken once; mailbox changes during the pass go unnoticed.
  - A :class:`Fail` outcome aborts before the current message is deleted.
  - ``STOP`` ends the pass after honouring the delete request for the current
    message and does not trigger ``RSET``.
  - Cleanup errors are logged and never replace the error being propagated.
  - A disconnect during ``DELE`` is not specially handled; it surfaces as the
    ``DELE`` failure.
"""
from __future__ import annotations

import functools
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

from ..utils.logging import JsonLogger, get_logger
from .client import Pop3Client
from .dial import auth, auth_tls
from .errors import Pop3Error


class Continue:
    """Keep going with the next message."""

    def __repr__(self) -> str:
        return "CONTINUE"


class Stop:
    """End the pass cleanly after the current message."""

    def __repr__(self) -> str:
        return "STOP"


@dataclass(frozen=True)
class Fail:
    """Abort the pass and raise ``error`` to the caller of :func:`drain`."""

    error: BaseException


CONTINUE = Continue()
STOP = Stop()

DrainOutcome = Union[Continue, Stop, Fail]
ReceiveHandler = Callable[[int, str, str, Optional[Pop3Error]], Tuple[bool, DrainOutcome]]
SessionFactory = Callable[[], Pop3Client]


@dataclass
class DrainReport:
    """Counters describing how a pass went."""

    enumerated: int = 0
    processed: int = 0
    deleted: int = 0
    retrieval_errors: int = 0
    reconnects: int = 0
    stopped_early: bool = False


def _check_outcome(outcome: object) -> DrainOutcome:
    if outcome is CONTINUE or outcome is STOP or isinstance(outcome, Fail):
        return outcome  # type: ignore[return-value]
    raise TypeError(f"handler returned {outcome!r}; expected CONTINUE, STOP or Fail(error)")


def _finish(session: Pop3Client, *, rollback: bool, logger: JsonLogger) -> None:
    if rollback:
        try:
            session.rset()
        except (Pop3Error, OSError) as exc:
            logger.warning("reset_failed", error=str(exc))
    try:
        session.quit()
    except (Pop3Error, OSError) as exc:
        logger.warning("quit_failed", error=str(exc))
    try:
        session.close()
    except (Pop3Error, OSError) as exc:
        logger.warning("close_failed", error=str(exc))


def drain(
    session_factory: SessionFactory,
    handler: ReceiveHandler,
    *,
    logger: Optional[JsonLogger] = None,
) -> DrainReport:
    """Run one pass over the mailbox.

    Args:
      session_factory: Returns a freshly dialled and authenticated client. It
        is called once up front and again after every detected disconnect.
      handler: Called as ``handler(number, uid, data, error)`` for every
        listed message. ``error`` is the retrieval failure (``data`` is then
        ``""``) or ``None``. Returns ``(delete, outcome)``.
      logger: Structured logger; defaults to the ``mailpop.drain`` component.

    Returns:
      A :class:`DrainReport` for the pass.

    Raises:
      Pop3Error: From login, listing, re-authentication or ``DELE``.
      BaseException: The error carried by a :class:`Fail` outcome, unchanged,
        or anything the handler itself raised.
    """

    log = logger or get_logger("mailpop.drain")
    report = DrainReport()
    session = session_factory()
    completed = False
    try:
        infos = session.uidl_all()
        report.enumerated = len(infos)
        log.info("drain_started", messages=len(infos))
        for info in infos:
            data = ""
            error: Optional[Pop3Error] = None
            try:
                data = session.retr(info.number)
            except Pop3Error as exc:
                error = exc
                report.retrieval_errors += 1
                log.warning("retrieve_failed", number=info.number, uid=info.uid, error=str(exc))

            delete, outcome = handler(info.number, info.uid, data, error)
            outcome = _check_outcome(outcome)
            report.processed += 1

            if session.is_closed():
                log.warning("session_lost", number=info.number)
                session.close()
                session = session_factory()
                report.reconnects += 1

            if isinstance(outcome, Fail):
                log.error("handler_failed", number=info.number, uid=info.uid, error=str(outcome.error))
                raise outcome.error

            if delete:
                session.dele(info.number)
                report.deleted += 1

            if outcome is STOP:
                report.stopped_early = True
                log.info("drain_stopped", number=info.number)
                break
        completed = True
    finally:
        _finish(session, rollback=not completed, logger=log)

    log.info(
        "drain_completed",
        processed=report.processed,
        deleted=report.deleted,
        retrieval_errors=report.retrieval_errors,
        reconnects=report.reconnects,
    )
    return report


def receive_mail(
    addr: str,
    user: str,
    password: str,
    handler: ReceiveHandler,
    *,
    timeout: Optional[float] = None,
    logger: Optional[JsonLogger] = None,
) -> DrainReport:
    """Drain the mailbox at ``addr`` over plain TCP."""

    factory = functools.partial(auth, addr, user, password, timeout=timeout)
    return drain(factory, handler, logger=logger)


def receive_mail_tls(
    addr: str,
    user: str,
    password: str,
    cert_path: Optional[Union[str, Path]],
    handler: ReceiveHandler,
    *,
    verify: bool = True,
    timeout: Optional[float] = None,
    logger: Optional[JsonLogger] = None,
) -> DrainReport:
    """Drain the mailbox at ``addr`` over TLS.

    ``cert_path`` names a PEM bundle of trusted roots; ``None`` falls back to
    the system store, and ``verify=False`` skips verification entirely.
    """

    factory = functools.partial(
        auth_tls, addr, user, password, cert_path, verify=verify, timeout=timeout
    )
    return drain(factory, handler, logger=logger)
