"""
Logging for authflow.

Use :func:`getLogger` in place of :func:`logging.getLogger`:

.. code-block:: python

   from authflow import logging
   logger = logging.getLogger(__name__)

All package loggers share one stream handler, installed on the ``authflow``
logger the first time a logger is requested, at the level given by
``LOGLEVEL``. Secrets, tokens and one-time codes must never be logged.
"""

from typing import IO, Optional
import logging
import sys

from . import config

FORMAT = 'authflow %(asctime)s - %(name)s - %(levelname)s: "%(message)s"'
DATEFMT = '%d/%b/%Y:%H:%M:%S %z'
ROOT = 'authflow'


def _configure(stream: IO, level: int) -> logging.Logger:
    root = logging.getLogger(ROOT)
    if not any(getattr(h, '_authflow', False) for h in root.handlers):
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(FORMAT, datefmt=DATEFMT))
        handler._authflow = True  # type: ignore
        root.addHandler(handler)
    root.setLevel(level)
    return root


def getLogger(name: str, stream: Optional[IO] = None,
              level: Optional[int] = None) -> logging.Logger:
    """Get a logger under the ``authflow`` hierarchy."""
    _configure(stream or sys.stderr,
               level if level is not None else config.LOGLEVEL)
    return logging.getLogger(name)
