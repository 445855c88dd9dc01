"""Strict loaders and serializers for mailpop configuration documents.

What:
  Locate, parse, validate, and cache ``config.yaml``, and read or write the
  ``seen.yaml`` state document that records which messages were already
  fetched.

Why:
  Configuration lives outside the package and can be malformed. Centralising
  the parsing keeps error messages consistent, includes the offending path, and
  guarantees that every consumer receives a validated model rather than a raw
  mapping.

How:
  Resolve candidate paths from an explicit argument, the
  ``MAILPOP_CONFIG_PATH`` environment variable, and well-known defaults. Parse
  YAML with :func:`yaml.safe_load`, fill the password from
  ``MAILPOP_PASSWORD`` when the file omits it, and validate with pydantic.

Interfaces:
  - :func:`load_runtime_config` / :func:`get_runtime_config` /
    :func:`reset_runtime_config`: manage ``config.yaml`` discovery and caching.
  - :func:`load_seen` / :func:`dump_seen`: convert the seen-UID document.
  - :class:`ConfigLoadError`, :class:`RuntimeConfigError`.

Invariants:
  - All external payloads pass strict pydantic validation before they are
    returned.
  - The cache honours explicit ``reload`` requests and the path precedence.

Safety/Performance:
  - Filesystem and validation failures surface as typed exceptions carrying
    the path; nothing fails silently.
  - The password is never included in error messages.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple

import yaml
from pydantic import ValidationError

from .schema import RuntimeConfig, SeenState


class ConfigLoadError(Exception):
    """Base error for configuration parsing or validation failures."""


class RuntimeConfigError(ConfigLoadError):
    """``config.yaml`` could not be located, parsed, or validated."""


_CONFIG_ENV = "MAILPOP_CONFIG_PATH"
_PASSWORD_ENV = "MAILPOP_PASSWORD"
_DEFAULT_LOCATIONS: Tuple[Path, ...] = (
    Path("config.yaml"),
    Path("~/.config/mailpop/config.yaml"),
    Path("/etc/mailpop/config.yaml"),
)
_RUNTIME_CACHE: Optional[Tuple[Path, RuntimeConfig]] = None


def _candidate_paths(path: Optional[Path]) -> Iterable[Path]:
    """Yield configuration file locations in priority order.

    What:
      Produce the ordered, deduplicated list of paths inspected for
      ``config.yaml``.

    Why:
      Operators may point at a file explicitly, through the environment, or rely
      on the defaults; this helper captures that precedence chain in one place.

    Args:
      path: Explicit path requested by the caller, or ``None``.

    Yields:
      Candidate paths from most to least specific.
    """

    seen: set[Path] = set()
    env_path = os.environ.get(_CONFIG_ENV)
    ordered = [path, Path(env_path) if env_path else None, *_DEFAULT_LOCATIONS]
    for raw in ordered:
        if raw is None:
            continue
        candidate = raw.expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate


def _parse_yaml_mapping(text: str, source: str) -> dict[str, Any]:
    try:
        payload = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigLoadError(f"Invalid YAML in {source}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigLoadError(f"{source} must contain a mapping at the top-level")
    return payload


def _apply_password_env(payload: dict[str, Any]) -> dict[str, Any]:
    """Fill ``account.password`` from ``MAILPOP_PASSWORD`` when absent.

    What:
      Inject the environment password into the parsed payload before
      validation.

    Why:
      Keeping credentials out of configuration files is common practice for
      scheduled jobs; the environment variable only fills a gap and never
      overrides a password written in the file.
    """

    secret = os.environ.get(_PASSWORD_ENV)
    account = payload.get("account")
    if secret and isinstance(account, dict) and not account.get("password"):
        payload = dict(payload)
        payload["account"] = {**account, "password": secret}
    return payload


def _load_runtime_from_path(path: Path) -> RuntimeConfig:
    """Read and validate ``config.yaml`` at ``path``.

    Raises:
      RuntimeConfigError: If the file cannot be read, parsed, or validated.
    """

    try:
        text = path.read_text()
    except FileNotFoundError as exc:
        raise RuntimeConfigError(f"Configuration file missing: {path}") from exc
    except OSError as exc:  # pragma: no cover - filesystem surface
        raise RuntimeConfigError(f"Unable to read configuration file {path}: {exc}") from exc
    try:
        payload = _parse_yaml_mapping(text, str(path))
    except ConfigLoadError as exc:
        raise RuntimeConfigError(str(exc)) from exc
    try:
        return RuntimeConfig.model_validate(_apply_password_env(payload))
    except ValidationError as exc:
        raise RuntimeConfigError(
            f"Invalid config.yaml at {path}: {exc.error_count()} validation error(s): "
            + "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in exc.errors()
            )
        ) from exc


def load_runtime_config(
    path: Optional[Path | str] = None,
    *,
    reload: bool = False,
) -> RuntimeConfig:
    """Resolve, parse, and cache the runtime configuration.

    What:
      Locate ``config.yaml`` using the precedence chain, parse it, and return a
      validated :class:`RuntimeConfig`.

    Why:
      The CLI and the fetch wiring both need the settings; caching avoids
      repeated disk IO while ``reload`` allows deterministic refreshes in tests
      and long-running ``watch`` loops.

    How:
      Consult the module cache unless ``reload`` is requested or a different
      explicit path is asked for, then walk the candidates until one exists.

    Args:
      path: Optional explicit location of ``config.yaml``.
      reload: When ``True`` forces a fresh load bypassing the cache.

    Returns:
      The validated runtime configuration.

    Raises:
      RuntimeConfigError: If no candidate exists or the found file is invalid.
    """

    global _RUNTIME_CACHE

    requested_path = Path(path).expanduser() if isinstance(path, (str, Path)) else None
    if not reload and _RUNTIME_CACHE is not None:
        cached_path, cached_config = _RUNTIME_CACHE
        if requested_path is None or cached_path == requested_path:
            return cached_config

    searched: list[str] = []
    for candidate in _candidate_paths(requested_path):
        if not candidate.exists():
            searched.append(str(candidate))
            continue
        config = _load_runtime_from_path(candidate)
        _RUNTIME_CACHE = (candidate, config)
        return config

    listing = ", ".join(searched) if searched else "<none>"
    raise RuntimeConfigError(f"Unable to locate config.yaml (searched: {listing})")


def get_runtime_config() -> RuntimeConfig:
    """Return the cached runtime configuration, loading it on demand."""

    return load_runtime_config()


def reset_runtime_config() -> None:
    """Clear the runtime configuration cache."""

    global _RUNTIME_CACHE
    _RUNTIME_CACHE = None


def load_seen(source: bytes) -> SeenState:
    """Parse a ``seen.yaml`` payload.

    Raises:
      ConfigLoadError: If the payload is not valid YAML or fails validation.
    """

    payload = _parse_yaml_mapping(source.decode("utf-8"), "seen.yaml")
    try:
        return SeenState.model_validate(payload)
    except ValidationError as exc:
        raise ConfigLoadError(f"Invalid seen.yaml: {exc}") from exc


def dump_seen(state: SeenState) -> bytes:
    """Serialise ``state`` into canonical YAML bytes."""

    text = yaml.safe_dump(state.model_dump(mode="json"), sort_keys=True)
    return text.encode("utf-8")
