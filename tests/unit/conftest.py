"""Pytest fixtures for unit tests driving the fake POP3 server.

What:
  Make ``tests/unit`` importable and expose ready-made mailboxes and session
  factories backed by :mod:`fakes`.

Why:
  Client and drain tests need deterministic servers; building them through
  fixtures keeps every test on a fresh mailbox with no shared state.

Interfaces:
  :func:`mailbox`, :func:`dialer`, :func:`client` (pytest fixtures).
"""

import sys
from pathlib import Path

import pytest

UNIT_DIR = Path(__file__).resolve().parent
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

from fakes import FakeDialer, FakeMailbox


@pytest.fixture
def mailbox() -> FakeMailbox:
    """Five messages with UIDs ``uid-1`` to ``uid-5``."""

    return FakeMailbox.with_messages(5)


@pytest.fixture
def dialer(mailbox: FakeMailbox) -> FakeDialer:
    return FakeDialer(mailbox)


@pytest.fixture
def client(dialer: FakeDialer):
    """Yield an authenticated client over the in-memory stream."""

    with dialer() as session:
        yield session
