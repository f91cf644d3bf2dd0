# pyright: standard

"""spool-backup: spool_backup/__logger__.py
A common logger for displaying through rich.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

# Initialize basic console and handler
cons = Console(stderr=True)
rich_handler = RichHandler(console=cons, show_path=False)
logger = logging.getLogger("spool_backup")

LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def create_logger(level: str = "INFO", log_file: str | None = None) -> None:
    """Helper function to setup logging on stderr through rich.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path of a plain-text log file to append to
    """
    # pylint: disable=global-statement
    global cons, rich_handler

    cons = Console(stderr=True)
    rich_handler = RichHandler(console=cons, show_path=False)

    handlers: list[logging.Handler] = [rich_handler]
    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            cons.print(f"[yellow]Cannot open log file {log_file}: {e}[/yellow]")
        else:
            file_handler.setFormatter(logging.Formatter(LOG_FILE_FORMAT))
            handlers.append(file_handler)

    logging.basicConfig(
        format="%(message)s",
        datefmt="%H:%M:%S",
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=handlers,
        force=True,
    )
