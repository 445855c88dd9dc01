"""Line framing for the POP3 wire protocol.

What:
  Turn a connected duplex socket into the three primitives the protocol needs:
  a CRLF-terminated command line, a classified single-line status reply, and a
  dot-terminated multi-line block (either a message body or a listing).

Why:
  Keeping framing in one place lets the client describe each verb purely in
  terms of reply shapes. It also gives every read failure the same fixed
  message so the handshake can recognise "nothing came back" and report it as
  an unreachable host.

How:
  Commands are written with ``sendall`` so a line is never split across two
  partial writes. Replies are read through a buffered binary file obtained from
  ``makefile('rb')``. Status and listing lines longer than :data:`MAX_LINE`
  bytes are rejected, following the guard in the standard library's
  ``poplib``. Message bodies routinely carry longer lines, so body lines get
  the looser :data:`MAX_BODY_LINE` bound.

Interfaces:
  :class:`Transport` with ``write_line``, ``read_response``,
  ``read_multiline_body``, ``read_lines`` and ``close``.

Invariants & Safety:
  - An empty read means the peer hung up and raises :class:`EndOfStream`.
  - Body lines are decoded with ``surrogateescape`` so 8-bit message content
    survives unchanged; status and listing lines are decoded strictly.
  - ``close`` is idempotent.
"""
from __future__ import annotations

from typing import Any, List, Optional

from .errors import (
    CANNOT_READ_LINE,
    ConnectionClosedError,
    EndOfStream,
    ResponseError,
    TransportError,
)


CRLF = "\r\n"
MAX_LINE = 2048
MAX_BODY_LINE = 1 << 20
OK = "+OK"
ERR = "-ERR"

_HANGUP_ERRORS = (BrokenPipeError, ConnectionResetError, ConnectionAbortedError)


class Transport:
    """Framing layer bound to one connected stream.

    Args:
      stream: Socket-like object exposing ``sendall``, ``makefile`` and
        ``close``.
      encoding: Character set used for commands and replies.
    """

    def __init__(self, stream: Any, *, encoding: str = "utf-8") -> None:
        self._stream: Optional[Any] = stream
        self._file: Optional[Any] = stream.makefile("rb")
        self.encoding = encoding

    @property
    def closed(self) -> bool:
        return self._stream is None

    def write_line(self, fmt: str, *args: Any) -> None:
        """Format a command and send it followed by CRLF.

        Args:
          fmt: ``%``-style format string, for example ``"RETR %d"``.
          *args: Values interpolated into ``fmt``.

        Raises:
          ValueError: If the formatted command embeds a line break.
          EndOfStream: If the peer reset or closed the connection.
          TransportError: For any other write failure.
        """

        line = fmt % args if args else fmt
        if "\r" in line or "\n" in line:
            raise ValueError("POP3 commands must not contain line breaks")
        if self._stream is None:
            raise ConnectionClosedError()
        payload = (line + CRLF).encode(self.encoding)
        try:
            self._stream.sendall(payload)
        except _HANGUP_ERRORS as exc:
            raise EndOfStream(f"cannot write the line: {exc}") from exc
        except OSError as exc:
            raise TransportError(f"cannot write the line: {exc}") from exc

    def _read_raw(self, limit: int = MAX_LINE) -> bytes:
        if self._file is None:
            raise ConnectionClosedError()
        try:
            raw = self._file.readline(limit + 1)
        except _HANGUP_ERRORS as exc:
            raise EndOfStream() from exc
        except (OSError, ValueError) as exc:
            raise TransportError(CANNOT_READ_LINE) from exc
        if not raw:
            raise EndOfStream()
        if len(raw) > limit:
            raise TransportError(CANNOT_READ_LINE)
        # Servers may end lines with CRLF or a bare LF.
        if raw.endswith(b"\r\n"):
            return raw[:-2]
        if raw.endswith(b"\n"):
            return raw[:-1]
        return raw

    def _read_line(self) -> str:
        raw = self._read_raw()
        try:
            return raw.decode(self.encoding)
        except UnicodeDecodeError as exc:
            raise TransportError(CANNOT_READ_LINE) from exc

    def read_response(self) -> str:
        """Read one status line and return the text after ``+OK``.

        Returns:
          The remainder of the line with the status token and the following
          space removed (``""`` for a bare ``+OK``).

        Raises:
          ResponseError: On ``-ERR`` or any other unexpected status token.
          EndOfStream: If the peer closed the connection.
          TransportError: If the line could not be read.
        """

        line = self._read_line()
        status, _, text = line.partition(" ")
        if status == OK:
            return text
        if status == ERR:
            raise ResponseError(text)
        raise ResponseError(line)

    def read_multiline_body(self) -> str:
        """Read a dot-terminated body and undo the leading-dot escaping.

        Returns:
          The body lines joined with CRLF, without the terminator line.

        Raises:
          TransportError: If a line exceeds :data:`MAX_BODY_LINE` bytes or the
            stream fails part-way; the rest of the reply is then unread.
        """

        lines: List[str] = []
        while True:
            raw = self._read_raw(MAX_BODY_LINE)
            if raw == b".":
                break
            if raw.startswith(b"."):
                raw = raw[1:]
            lines.append(raw.decode(self.encoding, errors="surrogateescape"))
        return CRLF.join(lines)

    def read_lines(self) -> List[str]:
        """Read a dot-terminated listing and return its lines untouched."""

        lines: List[str] = []
        while True:
            line = self._read_line()
            if line == ".":
                return lines
            lines.append(line)

    def close(self) -> None:
        """Release the reader file and the underlying stream."""

        file, self._file = self._file, None
        stream, self._stream = self._stream, None
        try:
            if file is not None:
                file.close()
        finally:
            if stream is not None:
                stream.close()
