"""
Module: mailpop.__init__

What:
  Aggregate package exports for the mailpop POP3 fetcher and name its
  namespace segments (protocol engine, configuration, storage sink, and
  utilities).

Why:
  Entry points and downstream scripts import from these subpackages; listing
  them explicitly keeps the supported surface obvious while the internals
  evolve.

Interfaces:
  - pop3: Transport, client, dial helpers and the mailbox drain.
  - config: Configuration schema, loader and the seen-UID store.
  - sink: Handler storing drained messages on disk.
  - utils: Structured logging and identifier helpers.
"""

__all__ = [
    "config",
    "pop3",
    "sink",
    "utils",
]

__version__ = "0.1.0"
