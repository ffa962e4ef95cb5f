"""
Argbind tracing.

Every argbind module logs through a child of the "argbind" logger:
- INFO: parse start and end per command level.
- DEBUG: every token classification, value binding and default applied.
- WARNING: recoverable anomalies (e.g., an unreadable argument file kept as
  a literal token).

The library stays silent until the host configures logging, or calls
enable() to get rich-formatted traces on stderr.
"""
import logging

from rich.console import Console
from rich.logging import RichHandler

from .utils import Unset, coalesce

logger = logging.getLogger("argbind")
logger.addHandler(logging.NullHandler())

_handler = None


def enable(level="DEBUG", /, *, console=Unset):
    """
    Send argbind traces to a rich handler (stderr unless console is given).

    Calling it again replaces the previous handler. Returns the handler.
    """
    global _handler
    disable()
    _handler = RichHandler(
        console=coalesce(console, Console(stderr=True)),
        show_time=False,
        show_path=False,
        markup=False,
    )
    _handler.setFormatter(logging.Formatter("[argbind] %(message)s"))
    logger.addHandler(_handler)
    logger.setLevel(level)
    return _handler


def disable():
    """Remove the handler installed by enable() and reset the level."""
    global _handler
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler = None
    logger.setLevel(logging.NOTSET)


__all__ = (
    "logger",
    "enable",
    "disable",
)
