"""Expose the public utility surface for mailpop.

What:
  Re-export the logging and identifier helpers so other packages can import
  them without knowing the module layout.

Interfaces:
  ``JsonLogger``, ``get_logger``, ``new_run_id``, ``message_stem``.
"""

from .ids import message_stem, new_run_id
from .logging import JsonLogger, get_logger

__all__ = [
    "JsonLogger",
    "get_logger",
    "new_run_id",
    "message_stem",
]
