"""Pytest configuration shared by every suite.

What:
  Establish project import paths and apply a canned runtime configuration to
  every test.

Why:
  The tests import the in-repo ``mailpop`` package rather than an installed
  wheel, and the runtime configuration is cached globally; both must be
  deterministic between tests.

How:
  Prepend ``mailpop/src`` to ``sys.path`` when the source tree is present, then
  point ``MAILPOP_CONFIG_PATH`` at ``tests/data/config.yaml`` and reset the
  configuration cache before and after each test.

Interfaces:
  :func:`runtime_config` (autouse pytest fixture).
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "mailpop" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest

from mailpop.config.loader import reset_runtime_config

CONFIG_PATH = Path(__file__).resolve().parent / "data" / "config.yaml"


@pytest.fixture(autouse=True)
def runtime_config(monkeypatch: pytest.MonkeyPatch):
    """Apply the canned configuration file and clear credential overrides."""

    monkeypatch.setenv("MAILPOP_CONFIG_PATH", str(CONFIG_PATH))
    monkeypatch.delenv("MAILPOP_PASSWORD", raising=False)
    reset_runtime_config()
    try:
        yield
    finally:
        reset_runtime_config()
