"""Log destination wiring for the ``quotefetch`` logger tree.

Library modules only ever call ``logging.getLogger(__name__)``; the
entry point decides where records end up by calling
``configure_logging`` once at startup.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_ROOT_LOGGER = "quotefetch"


def configure_logging(destination: str = "stderr", verbose: bool = False) -> logging.Handler:
    """Route ``quotefetch`` log records to ``destination``.

    Parameters
    ----------
    destination : str
        ``stdout``, ``stderr``, ``discard``, or a file path (appended to).
    verbose : bool
        Log at DEBUG instead of INFO.

    Returns
    -------
    logging.Handler
        The handler that was installed (replacing any previous one).
    """
    handler: logging.Handler
    if destination in ("stdout", "stderr"):
        console = Console(stderr=destination == "stderr")
        handler = RichHandler(console=console, show_path=verbose, markup=False)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    elif destination == "discard":
        handler = logging.NullHandler()
    else:
        handler = logging.FileHandler(destination, mode="a", encoding="utf-8")
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)s %(name)s %(filename)s:%(lineno)d: %(message)s"
            )
        )

    logger = logging.getLogger(_ROOT_LOGGER)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False
    return handler
