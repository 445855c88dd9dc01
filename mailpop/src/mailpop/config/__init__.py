"""mailpop configuration package.

What:
  Provide one import surface for configuration loading, validation, and the
  seen-UID store used by the fetch commands.

Why:
  Callers should go through the validated models rather than raw YAML; keeping
  ``__all__`` explicit documents which helpers are supported.

Interfaces:
  - load_runtime_config / get_runtime_config / reset_runtime_config: resolve
    and cache ``config.yaml``.
  - load_seen / dump_seen / SeenStore: persist already-fetched UIDs.
  - RuntimeConfig / SeenState: pydantic models.
  - ConfigLoadError / RuntimeConfigError: error types.
"""

from .loader import (
    ConfigLoadError,
    RuntimeConfigError,
    dump_seen,
    get_runtime_config,
    load_runtime_config,
    load_seen,
    reset_runtime_config,
)
from .schema import AccountSettings, FetchSettings, RuntimeConfig, SeenState, ServerSettings
from .seen_store import SeenStore

__all__ = [
    "ConfigLoadError",
    "RuntimeConfigError",
    "dump_seen",
    "get_runtime_config",
    "load_runtime_config",
    "load_seen",
    "reset_runtime_config",
    "AccountSettings",
    "FetchSettings",
    "RuntimeConfig",
    "SeenState",
    "ServerSettings",
    "SeenStore",
]
