"""Connection establishment for POP3 sessions.

What:
  Open plain TCP or TLS connections to ``host:port`` addresses, hand them to
  :class:`~mailpop.pop3.client.Pop3Client`, and optionally log in straight
  away.

Why:
  Certificate trust and socket options are boundary configuration. Keeping
  them out of the client means the protocol engine can be exercised over any
  socket-like object, including the in-memory fakes used by the tests.

How:
  ``socket.create_connection`` provides the TCP stream. TLS wraps it with an
  :class:`ssl.SSLContext` that trusts either a caller-supplied PEM bundle, the
  system store, or nothing at all when verification is switched off.

Interfaces:
  ``split_address``, ``dial``, ``dial_tls``, ``tls_context``, ``auth``,
  ``auth_tls``.

Invariants & Safety:
  - The SSL context is built per dial and never mutated afterwards.
  - A client whose login fails is closed before the error propagates.
  - Timeouts are socket deadlines applied at dial time; no other timeout layer
    exists.
"""
from __future__ import annotations

import socket
import ssl
from pathlib import Path
from typing import Optional, Tuple, Union

from .client import Pop3Client
from .errors import DialError, Pop3Error


POP3_PORT = 110
POP3_SSL_PORT = 995


def split_address(addr: str) -> Tuple[str, int]:
    """Split ``"host:port"`` (or ``"[v6]:port"``) into its parts.

    Raises:
      ValueError: If the port is missing or not a number.
    """

    host, sep, port = addr.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"address must be host:port, got {addr!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, int(port)


def _connect(addr: str, timeout: Optional[float]) -> socket.socket:
    host, port = split_address(addr)
    try:
        return socket.create_connection((host, port), timeout=timeout)
    except OSError as exc:
        raise DialError(f"cannot dial {addr}: {exc}") from exc


def dial(addr: str, *, timeout: Optional[float] = None) -> Pop3Client:
    """Connect over plain TCP and read the greeting."""

    return Pop3Client(_connect(addr, timeout))


def tls_context(cert_path: Optional[Union[str, Path]] = None, *, verify: bool = True) -> ssl.SSLContext:
    """Build the trust configuration for a TLS session.

    Args:
      cert_path: PEM bundle of root certificates to trust exclusively. When
        ``None`` and ``verify`` is set, the system trust store is used.
      verify: ``False`` disables certificate and hostname checks.

    Raises:
      FileNotFoundError: If ``cert_path`` does not exist.
      DialError: If the bundle holds no parseable certificate.
    """

    if not verify:
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return context
    if cert_path is None:
        return ssl.create_default_context()
    pem = Path(cert_path).read_text(encoding="ascii", errors="ignore")
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    try:
        context.load_verify_locations(cadata=pem)
    except ssl.SSLError as exc:
        raise DialError("failed to parse root certificate") from exc
    return context


def dial_tls(
    addr: str,
    cert_path: Optional[Union[str, Path]] = None,
    *,
    verify: bool = True,
    timeout: Optional[float] = None,
) -> Pop3Client:
    """Connect over TLS and read the greeting."""

    context = tls_context(cert_path, verify=verify)
    host, _ = split_address(addr)
    raw = _connect(addr, timeout)
    try:
        stream = context.wrap_socket(raw, server_hostname=host)
    except (ssl.SSLError, OSError) as exc:
        raw.close()
        raise DialError(f"TLS handshake with {addr} failed: {exc}") from exc
    return Pop3Client(stream)


def _login(client: Pop3Client, user: str, password: str) -> Pop3Client:
    try:
        client.authenticate(user, password)
    except Pop3Error:
        client.close()
        raise
    return client


def auth(addr: str, user: str, password: str, *, timeout: Optional[float] = None) -> Pop3Client:
    """Dial ``addr`` over TCP and log in with USER/PASS."""

    return _login(dial(addr, timeout=timeout), user, password)


def auth_tls(
    addr: str,
    user: str,
    password: str,
    cert_path: Optional[Union[str, Path]] = None,
    *,
    verify: bool = True,
    timeout: Optional[float] = None,
) -> Pop3Client:
    """Dial ``addr`` over TLS and log in with USER/PASS."""

    client = dial_tls(addr, cert_path, verify=verify, timeout=timeout)
    return _login(client, user, password)
