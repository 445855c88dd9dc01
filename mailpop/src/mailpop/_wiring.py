"""Helper utilities bridging the CLI with the POP3 engine.

What:
  Build session factories and message sinks from the runtime configuration,
  run one fetch pass, and compute polling intervals and retry delays for the
  ``watch`` loop.

Why:
  Isolating these steps keeps the Typer commands short and lets the unit tests
  drive a complete fetch against an in-memory server without going through the
  command-line layer.

How:
  :func:`session_factory` selects :func:`~mailpop.pop3.dial.auth` or
  :func:`~mailpop.pop3.dial.auth_tls` from the ``server`` settings and freezes
  the arguments with :func:`functools.partial`. :func:`run_fetch` wires a
  :class:`~mailpop.sink.MessageSink` (plus a
  :class:`~mailpop.config.seen_store.SeenStore` when duplicates are skipped)
  into :func:`~mailpop.pop3.drain.drain` and returns the report together with
  timing metrics.

Interfaces:
  ``session_factory``, ``state_path``, ``run_fetch``, ``resolve_interval``,
  ``exponential_backoff``.

Invariants & Safety:
  - No helper logs message content or the account password.
  - ``run_fetch`` never swallows exceptions; the seen store's ``last_run`` is
    only stamped after a successful pass.
  - ``exponential_backoff`` clamps values between the configured base and cap.
"""
from __future__ import annotations

import functools
from pathlib import Path
from time import monotonic
from typing import Any, Optional, Tuple

from .config.schema import FetchSettings, RuntimeConfig
from .config.seen_store import SeenStore
from .pop3.dial import auth, auth_tls
from .pop3.drain import DrainReport, SessionFactory, drain
from .sink import MessageSink
from .utils.logging import JsonLogger


def session_factory(runtime: RuntimeConfig) -> SessionFactory:
    """Return a callable that dials and authenticates a new session.

    Args:
      runtime: Validated runtime configuration.

    Returns:
      Zero-argument callable producing an authenticated
      :class:`~mailpop.pop3.client.Pop3Client`.
    """

    server = runtime.server
    account = runtime.account
    if server.tls:
        return functools.partial(
            auth_tls,
            server.address,
            account.user,
            account.password,
            server.cert_path,
            verify=server.verify,
            timeout=server.timeout,
        )
    return functools.partial(
        auth,
        server.address,
        account.user,
        account.password,
        timeout=server.timeout,
    )


def state_path(fetch: FetchSettings) -> Path:
    """Return the ``seen.yaml`` location, defaulting to the destination directory."""

    if fetch.state_file:
        return Path(fetch.state_file).expanduser()
    return Path(fetch.directory).expanduser() / "seen.yaml"


def run_fetch(
    runtime: RuntimeConfig,
    *,
    max_messages: Optional[int] = None,
    logger: Optional[JsonLogger] = None,
) -> Tuple[DrainReport, dict[str, Any]]:
    """Drain the configured mailbox into the configured directory.

    What:
      Perform one complete fetch pass and summarise it.

    Why:
      Both ``fetch`` and ``watch`` run exactly this sequence; sharing it keeps
      their behaviour identical.

    How:
      Build the seen store and sink, call :func:`drain` with a fresh session
      factory, stamp the seen store on success, and derive metrics from the
      report and the sink counters.

    Args:
      runtime: Validated runtime configuration.
      max_messages: Overrides ``fetch.max_messages`` when not ``None``.
      logger: Structured logger passed to the drain and the sink.

    Returns:
      Tuple ``(report, metrics)``.
    """

    fetch = runtime.fetch
    seen = SeenStore(state_path(fetch)) if fetch.skip_seen else None
    limit = fetch.max_messages if max_messages is None else max_messages
    sink = MessageSink(
        Path(fetch.directory).expanduser(),
        seen=seen,
        delete=fetch.delete_after_fetch,
        max_messages=limit,
        logger=logger,
    )
    started = monotonic()
    report = drain(session_factory(runtime), sink, logger=logger)
    ended = monotonic()
    if seen is not None:
        seen.mark_run()
    metrics = {
        "cycle_seconds": ended - started,
        "messages_listed": report.enumerated,
        "messages_stored": sink.stored,
        "messages_skipped": sink.skipped,
        "messages_deleted": report.deleted,
        "reconnects": report.reconnects,
        "stopped_early": report.stopped_early,
    }
    return report, metrics


def resolve_interval(runtime: Any, override: Optional[int]) -> int:
    """Return the polling interval for ``watch``: a positive override, else the config, else 300."""

    if override is not None and override > 0:
        return override
    fetch = getattr(runtime, "fetch", None)
    interval = getattr(fetch, "interval_s", None)
    if isinstance(interval, int) and interval > 0:
        return interval
    return 300


def exponential_backoff(
    *,
    base: int = 5,
    factor: float = 2.0,
    cap: int = 300,
    failures: int = 0,
) -> int:
    """Return a retry delay for ``failures`` consecutive failures.

    Computes ``base * factor**failures`` clamped to ``[base, cap]``.

    Args:
      base: Smallest delay returned.
      factor: Multiplicative growth factor.
      cap: Maximum delay permitted.
      failures: Number of consecutive failures (zero-indexed).

    Returns:
      Delay in whole seconds.
    """

    delay = base * (factor ** max(failures, 0))
    if delay < base:
        delay = base
    if delay > cap:
        delay = cap
    return int(delay)
