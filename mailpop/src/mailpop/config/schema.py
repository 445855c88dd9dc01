"""Pydantic models describing mailpop configuration documents."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..pop3.dial import POP3_PORT, POP3_SSL_PORT


class ServerSettings(BaseModel):
    """Where the mailbox lives and how to reach it."""

    model_config = ConfigDict(extra="forbid")

    host: str = Field(min_length=1)
    port: Optional[int] = Field(default=None, gt=0, lt=65536)
    tls: bool = True
    cert_path: Optional[str] = None
    verify: bool = True
    timeout: Optional[float] = Field(default=30.0, gt=0)

    @model_validator(mode="after")
    def _check_tls_options(self) -> "ServerSettings":
        if not self.tls and self.cert_path is not None:
            raise ValueError("cert_path only applies when tls is enabled")
        return self

    @property
    def address(self) -> str:
        """Return ``host:port``, defaulting the port from the ``tls`` flag."""

        port = self.port or (POP3_SSL_PORT if self.tls else POP3_PORT)
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{port}"


class AccountSettings(BaseModel):
    """USER/PASS credentials."""

    model_config = ConfigDict(extra="forbid")

    user: str = Field(min_length=1)
    password: str


class FetchSettings(BaseModel):
    """What to do with retrieved messages."""

    model_config = ConfigDict(extra="forbid")

    directory: str
    state_file: Optional[str] = None
    delete_after_fetch: bool = False
    skip_seen: bool = True
    max_messages: int = Field(default=0, ge=0)
    interval_s: int = Field(default=300, gt=0)


class RuntimeConfig(BaseModel):
    """Root configuration loaded from ``config.yaml``."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    server: ServerSettings
    account: AccountSettings
    fetch: FetchSettings


class SeenState(BaseModel):
    """UIDs already stored locally, persisted between runs."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    uids: List[str] = Field(default_factory=list)
    last_run: Optional[str] = None
