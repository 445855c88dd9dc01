"""mailpop command-line interface.

What:
  Provide a Typer-based entry point exposing ``fetch``, ``watch``, ``stat`` and
  ``list`` so operators can drain a POP3 mailbox from cron jobs, run a polling
  daemon, or inspect a mailbox by hand.

Why:
  Wiring every command to the same configuration loader and fetch helper keeps
  behaviour identical between one-off runs and the long-running loop.

How:
  Load the runtime configuration, then either run one pass through
  :func:`mailpop._wiring.run_fetch`, repeat it inside a loop with capped
  exponential backoff, or open a single session to query the mailbox.

Interfaces:
  ``app`` (Typer application), ``fetch``, ``watch``, ``stat``, ``list_messages``,
  ``main``.

Invariants & Safety:
  - Exit codes follow shell expectations (``0`` success, ``1`` failure).
  - ``watch`` survives per-cycle failures and retries with backoff; Ctrl-C
    exits with ``0``.
  - Nothing printed or logged contains message content or the password.
"""
from __future__ import annotations

import logging
import time
from typing import Optional

import typer

from ._wiring import exponential_backoff, resolve_interval, run_fetch, session_factory
from .config.loader import load_runtime_config
from .utils.ids import new_run_id


app = typer.Typer(help="Fetch mail from a POP3 mailbox into a local directory")

LOGGER = logging.getLogger("mailpop.cli")

CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Path to config.yaml")


def _load(config_path: Optional[str]):
    try:
        return load_runtime_config(config_path, reload=True)
    except Exception as exc:
        LOGGER.exception("runtime_load_failed: %s", exc)
        raise typer.Exit(code=1) from exc


@app.command("fetch")
def fetch(
    config_path: Optional[str] = CONFIG_OPTION,
    max_messages: Optional[int] = typer.Option(
        None, "--max", help="Stop after storing this many new messages"
    ),
) -> None:
    """Run a single drain of the mailbox.

    What:
      Retrieve every listed message, store the new ones, delete them from the
      server when configured, and print a one-line summary.

    How:
      Load the configuration and delegate to :func:`run_fetch`. Any failure is
      logged with its traceback and turned into exit code ``1``.
    """

    runtime = _load(config_path)
    run_id = new_run_id()
    try:
        _, metrics = run_fetch(runtime, max_messages=max_messages)
    except Exception as exc:
        LOGGER.exception("fetch_failed run_id=%s error=%s", run_id, exc)
        raise typer.Exit(code=1) from exc

    LOGGER.info(
        "fetch_completed run_id=%s listed=%s stored=%s deleted=%s reconnects=%s",
        run_id,
        metrics["messages_listed"],
        metrics["messages_stored"],
        metrics["messages_deleted"],
        metrics["reconnects"],
    )
    typer.echo(
        f"stored {metrics['messages_stored']} of {metrics['messages_listed']} message(s), "
        f"deleted {metrics['messages_deleted']}"
    )


@app.command("watch")
def watch(
    config_path: Optional[str] = CONFIG_OPTION,
    interval: Optional[int] = typer.Option(None, help="Override polling interval in seconds"),
) -> None:
    """Drain the mailbox repeatedly until interrupted.

    What:
      Run :func:`run_fetch` in a loop, sleeping ``interval`` seconds after a
      successful pass and an exponentially growing delay after a failed one.
    """

    runtime = _load(config_path)
    base_interval = resolve_interval(runtime, interval)
    failures = 0

    try:
        while True:
            run_id = new_run_id()
            try:
                _, metrics = run_fetch(runtime)
            except Exception as exc:
                failures += 1
                delay = exponential_backoff(failures=failures - 1)
                LOGGER.error(
                    "watch_cycle_failed run_id=%s backoff=%s error=%s",
                    run_id,
                    delay,
                    exc,
                )
                time.sleep(delay)
                continue

            failures = 0
            LOGGER.info(
                "watch_cycle_completed run_id=%s listed=%s stored=%s deleted=%s",
                run_id,
                metrics["messages_listed"],
                metrics["messages_stored"],
                metrics["messages_deleted"],
            )
            time.sleep(base_interval)
    except KeyboardInterrupt:
        LOGGER.info("watch_stopped")
        raise typer.Exit(code=0) from None


@app.command("stat")
def stat(config_path: Optional[str] = CONFIG_OPTION) -> None:
    """Print the message count and total mailbox size."""

    runtime = _load(config_path)
    try:
        with session_factory(runtime)() as client:
            count, size = client.stat()
            client.quit()
    except Exception as exc:
        LOGGER.exception("stat_failed: %s", exc)
        raise typer.Exit(code=1) from exc
    typer.echo(f"{count} message(s), {size} octet(s)")


@app.command("list")
def list_messages(config_path: Optional[str] = CONFIG_OPTION) -> None:
    """Print ``number uid size`` for every message in the mailbox."""

    runtime = _load(config_path)
    try:
        with session_factory(runtime)() as client:
            uids = client.uidl_all()
            sizes = {info.number: info.size for info in client.list_all()}
            client.quit()
    except Exception as exc:
        LOGGER.exception("list_failed: %s", exc)
        raise typer.Exit(code=1) from exc
    for info in uids:
        typer.echo(f"{info.number} {info.uid} {sizes.get(info.number, 0)}")


def main() -> None:
    """Execute the Typer application entry point."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
