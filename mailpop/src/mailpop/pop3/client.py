"""POP3 client exposing one method per protocol verb.

What:
  Wrap a connected stream in a :class:`~mailpop.pop3.transport.Transport`,
  consume the server greeting, and offer typed methods for USER, PASS, STAT,
  LIST, UIDL, RETR, DELE, NOOP, RSET and QUIT plus a liveness probe.

Why:
  Callers such as the mailbox drain want numbers, sizes and unique IDs rather
  than raw status lines. Decoding every reply shape here keeps parse failures
  distinct from server rejections and leaves the drain free to reason about
  control flow only.

How:
  Each method performs exactly one request/response cycle inside
  :meth:`Pop3Client._exchange`, which holds a per-session lock and closes the
  session on any transport failure: once a read fails part-way the position
  in the reply stream is unknown, so later replies could not be trusted. Listing replies are
  parsed all-or-nothing: one malformed line fails the whole call.

Interfaces:
  :class:`MessageInfo`, :class:`Pop3Client`.

Invariants & Safety:
  - Only one command is in flight per session.
  - Once closed (``quit``, ``close`` or a transport failure) a client refuses
    further commands; a new one must be dialled and authenticated.
  - ``dele`` is never retried.
  - ``is_closed`` is not free: it spends one STAT round trip.
"""
from __future__ import annotations

import contextlib
import threading
from dataclasses import dataclass
from typing import Any, Iterator, List, Tuple

from .errors import (
    ConnectionClosedError,
    DialError,
    EndOfStream,
    ParseError,
    Pop3Error,
    TransportError,
)
from .transport import Transport


_SIZE_LIMIT = 2 ** 64


@dataclass(frozen=True)
class MessageInfo:
    """One entry of a LIST or UIDL listing.

    ``list_all`` fills ``number`` and ``size``; ``uidl_all`` fills ``number``
    and ``uid``. The field the listing did not provide keeps its default.
    """

    number: int
    size: int = 0
    uid: str = ""


def _split_fields(line: str) -> List[str]:
    fields = line.split()
    if len(fields) < 2:
        raise ParseError(f"expected at least two fields: {line!r}", line)
    return fields


def _parse_unsigned(token: str, line: str, *, limit: int | None = None) -> int:
    if not (token.isascii() and token.isdigit()):
        raise ParseError(f"not an unsigned integer {token!r}: {line!r}", line)
    value = int(token)
    if limit is not None and value >= limit:
        raise ParseError(f"value out of range {token!r}: {line!r}", line)
    return value


def parse_number_and_size(line: str) -> Tuple[int, int]:
    """Parse ``"<number> <size>"`` as found in STAT and LIST replies."""

    fields = _split_fields(line)
    number = _parse_unsigned(fields[0], line)
    size = _parse_unsigned(fields[1], line, limit=_SIZE_LIMIT)
    return number, size


def parse_number_and_uid(line: str) -> Tuple[int, str]:
    """Parse ``"<number> <uid>"`` as found in UIDL replies."""

    fields = _split_fields(line)
    return _parse_unsigned(fields[0], line), fields[1]


class Pop3Client:
    """A single authenticated-or-not POP3 session.

    Constructing the client reads the server greeting. A greeting that cannot
    be read at all is reported as :class:`DialError` since it means the host
    was not really reached.

    Args:
      stream: Connected socket-like object.
      encoding: Character set for commands and replies.

    Raises:
      DialError: If the greeting line could not be read.
      ResponseError: If the server greets with a negative status.
    """

    def __init__(self, stream: Any, *, encoding: str = "utf-8") -> None:
        self._lock = threading.Lock()
        self._transport = Transport(stream, encoding=encoding)
        try:
            self.welcome = self._transport.read_response()
        except TransportError as exc:
            self._transport.close()
            raise DialError() from exc
        except Pop3Error:
            self._transport.close()
            raise

    @classmethod
    def connect(cls, stream: Any, *, encoding: str = "utf-8") -> "Pop3Client":
        """Wrap ``stream`` and read the greeting; alias for the constructor."""

        return cls(stream, encoding=encoding)

    def __enter__(self) -> "Pop3Client":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._transport.closed

    @contextlib.contextmanager
    def _exchange(self) -> Iterator[Transport]:
        with self._lock:
            if self._transport.closed:
                raise ConnectionClosedError()
            try:
                yield self._transport
            except TransportError:
                self._transport.close()
                raise

    def _simple(self, fmt: str, *args: Any) -> str:
        with self._exchange() as transport:
            transport.write_line(fmt, *args)
            return transport.read_response()

    def _number_and_size(self, fmt: str, *args: Any) -> Tuple[int, int]:
        return parse_number_and_size(self._simple(fmt, *args))

    def _listing(self, command: str) -> List[str]:
        with self._exchange() as transport:
            transport.write_line(command)
            transport.read_response()
            return transport.read_lines()

    def user(self, name: str) -> None:
        self._simple("USER %s", name)

    def pass_(self, password: str) -> None:
        self._simple("PASS %s", password)

    def authenticate(self, user: str, password: str) -> None:
        """Log in with USER then PASS.

        Raises:
          ResponseError: If the server rejects either step; the text is the
            server's own.
        """

        self.user(user)
        self.pass_(password)

    def stat(self) -> Tuple[int, int]:
        """Return ``(message_count, total_size)`` for the mailbox."""

        return self._number_and_size("STAT")

    def list(self, number: int) -> Tuple[int, int]:
        """Return ``(number, size)`` for one message."""

        return self._number_and_size("LIST %d", number)

    def list_all(self) -> List[MessageInfo]:
        """Return number and size for every message, in server order."""

        result = []
        for line in self._listing("LIST"):
            number, size = parse_number_and_size(line)
            result.append(MessageInfo(number=number, size=size))
        return result

    def uidl(self, number: int) -> Tuple[int, str]:
        """Return ``(number, uid)`` for one message."""

        return parse_number_and_uid(self._simple("UIDL %d", number))

    def uidl_all(self) -> List[MessageInfo]:
        """Return number and unique ID for every message, in server order."""

        result = []
        for line in self._listing("UIDL"):
            number, uid = parse_number_and_uid(line)
            result.append(MessageInfo(number=number, uid=uid))
        return result

    def retr(self, number: int) -> str:
        """Retrieve message ``number`` and return its un-stuffed body."""

        with self._exchange() as transport:
            transport.write_line("RETR %d", number)
            transport.read_response()
            return transport.read_multiline_body()

    def dele(self, number: int) -> None:
        self._simple("DELE %d", number)

    def noop(self) -> None:
        self._simple("NOOP")

    def rset(self) -> None:
        self._simple("RSET")

    def quit(self) -> None:
        """Send QUIT, which commits pending deletions, then close the stream."""

        try:
            self._simple("QUIT")
        finally:
            self.close()

    def is_closed(self) -> bool:
        """Probe whether the peer has closed the connection.

        Issues a STAT and reports ``True`` when it fails with
        :class:`EndOfStream` or the client is closed, either beforehand or by
        a transport failure during the probe itself. Success and negative or
        malformed replies report ``False``. The probe costs one full
        request/response cycle.
        """

        if self.closed:
            return True
        try:
            self.stat()
        except EndOfStream:
            return True
        except Pop3Error:
            return self.closed
        return False

    def close(self) -> None:
        self._transport.close()
