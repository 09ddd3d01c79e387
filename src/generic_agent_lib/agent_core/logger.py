"""Logging for the agent library.

Every module logs through a child of the ``generic_agent_lib`` logger. The
library only installs a ``NullHandler``; output is configured by the
application, or with ``setup_logging`` in scripts and examples.
"""

import logging
import sys

LIBRARY_LOGGER = "generic_agent_lib"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the library logger or one of its children.

    Args:
        name: A module ``__name__`` inside the package, a short child name such
            as ``"tools"``, or None for the library logger itself.

    Returns:
        The logger.
    """
    if not name or name == LIBRARY_LOGGER:
        return logging.getLogger(LIBRARY_LOGGER)
    if name.startswith(f"{LIBRARY_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LIBRARY_LOGGER}.{name}")


def setup_logging(level: int | str = logging.INFO, format_str: str = DEFAULT_FORMAT) -> None:
    """Attach a stdout handler to the library logger.

    Calling it again only updates the level.

    Args:
        level: A logging level or its name, e.g. ``"DEBUG"``.
        format_str: Format of the emitted records.
    """
    library_logger = logging.getLogger(LIBRARY_LOGGER)
    library_logger.setLevel(level.upper() if isinstance(level, str) else level)

    if any(not isinstance(h, logging.NullHandler) for h in library_logger.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(format_str))
    library_logger.addHandler(handler)


logging.getLogger(LIBRARY_LOGGER).addHandler(logging.NullHandler())
