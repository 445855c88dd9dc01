"""Facade for the POP3 protocol engine.

What:
  Re-export the client, dial helpers, mailbox drain and error types so callers
  can write ``from mailpop.pop3 import receive_mail_tls, STOP``.

Interfaces:
  See ``__all__``.
"""

from .client import MessageInfo, Pop3Client
from .dial import auth, auth_tls, dial, dial_tls, split_address
from .drain import (
    CONTINUE,
    STOP,
    DrainOutcome,
    DrainReport,
    Fail,
    ReceiveHandler,
    drain,
    receive_mail,
    receive_mail_tls,
)
from .errors import (
    ConnectionClosedError,
    DialError,
    EndOfStream,
    ParseError,
    Pop3Error,
    ResponseError,
    TransportError,
)

__all__ = [
    "MessageInfo",
    "Pop3Client",
    "auth",
    "auth_tls",
    "dial",
    "dial_tls",
    "split_address",
    "CONTINUE",
    "STOP",
    "DrainOutcome",
    "DrainReport",
    "Fail",
    "ReceiveHandler",
    "drain",
    "receive_mail",
    "receive_mail_tls",
    "ConnectionClosedError",
    "DialError",
    "EndOfStream",
    "ParseError",
    "Pop3Error",
    "ResponseError",
    "TransportError",
]
