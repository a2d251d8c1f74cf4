"""
=============================================================================
LOGGING SETUP
=============================================================================

Builds the one logger the server passes to every component.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    LOG SINKS                                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   "staticserver" logger                                             │
    │        │                                                             │
    │        ├──► StreamHandler  (console, always)                        │
    │        └──► FileHandler    (logs/server.log, best effort)           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A broken file sink (read-only disk, bad path) must never stop the server
from serving requests. We report it on stderr and carry on with the
console handler only.

Every record carries the thread name, so lines from the same connection
(Handler-7, Handler-8, ...) can be grepped out of the interleaved log.
=============================================================================
"""

import logging
import sys
from pathlib import Path
from typing import Optional


LOGGER_NAME = "staticserver"

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(threadName)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    log_file: Optional[str] = "logs/server.log",
    debug: bool = False,
    console: bool = True,
) -> logging.Logger:
    """
    Configure and return the server logger.

    Safe to call more than once: handlers installed by a previous call
    are removed first, so records are never duplicated.

    Args:
        log_file: Path of the log file. Parent directories are created.
                  None disables the file sink.
        debug: DEBUG level when True, INFO otherwise.
        console: Attach a stderr handler.

    Returns:
        The configured "staticserver" logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    if log_file:
        try:
            path = Path(log_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        except OSError as e:
            print(f"failed to set up log file {log_file}: {e}", file=sys.stderr)
        else:
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger
