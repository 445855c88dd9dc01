"""Exception hierarchy for the POP3 protocol engine.

What:
  Define the typed failures raised by the transport, client, and dial layers so
  callers can tell an unreachable server from a rejected command or a reply
  that does not match the expected shape.

Why:
  The mailbox drain treats each kind differently: a peer hang-up triggers a
  reconnect, a negative reply or parse failure aborts the single operation, and
  a dial failure aborts the whole run. Distinct types keep those decisions
  explicit instead of string-matching error messages.

How:
  Everything derives from :class:`Pop3Error`. Stream-level problems are
  :class:`TransportError` subclasses; server rejections are
  :class:`ResponseError`; malformed replies are :class:`ParseError`.

Interfaces:
  ``Pop3Error``, ``TransportError``, ``EndOfStream``, ``DialError``,
  ``ConnectionClosedError``, ``ResponseError``, ``ParseError``,
  ``CANNOT_READ_LINE``, ``CANNOT_DIAL_HOST``.

Invariants & Safety:
  - Read failures always carry the fixed :data:`CANNOT_READ_LINE` message.
  - ``ResponseError.message`` holds the server text verbatim.
"""
from __future__ import annotations

from typing import Optional


CANNOT_READ_LINE = "cannot read the line"
CANNOT_DIAL_HOST = "cannot dial host"


class Pop3Error(Exception):
    """Base class for every failure raised by :mod:`mailpop.pop3`."""


class TransportError(Pop3Error):
    """The byte stream could not be read from or written to."""


class EndOfStream(TransportError):
    """The peer closed the connection.

    Kept separate from other transport failures because the liveness probe and
    the drain's reconnect decision key on it specifically.
    """

    def __init__(self, message: str = CANNOT_READ_LINE) -> None:
        super().__init__(message)


class DialError(TransportError):
    """The server could not be reached or the greeting could not be read."""

    def __init__(self, message: str = CANNOT_DIAL_HOST) -> None:
        super().__init__(message)


class ConnectionClosedError(TransportError):
    """A command was issued on a client that has already been closed."""

    def __init__(self, message: str = "connection is closed") -> None:
        super().__init__(message)


class ResponseError(Pop3Error):
    """The server answered with a negative status line.

    Attributes:
      message: Text following the status token, exactly as sent by the server.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ParseError(Pop3Error):
    """A reply did not have the expected number or type of fields.

    Attributes:
      line: The offending reply text, when known.
    """

    def __init__(self, message: str, line: Optional[str] = None) -> None:
        super().__init__(message)
        self.line = line
