"""Rich log output for applications embedding snapdiff.

Only the ``snapdiff`` logger tree is configured so the host application's
root logging stays untouched. Calling :func:`setup_logging` again replaces
the previous handler instead of stacking a second one.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "snapdiff"

console = Console(stderr=True)


def setup_logging(verbose: bool = False, log_console: Console | None = None) -> logging.Logger:
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(console=log_console or console, rich_tracebacks=True, show_path=verbose)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    # Pillow logs every chunk it parses at DEBUG
    logging.getLogger("PIL").setLevel(logging.INFO)
    return logger
