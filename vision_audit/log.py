"""
Logging setup for the command line.

Library modules only create `logging.getLogger(__name__)` loggers; the CLI
installs a rich handler on the root logger.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(level: int = logging.WARNING, console: Optional[Console] = None) -> None:
    """Route log records through rich, on stderr by default"""
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    # Chatty third-party loggers stay at WARNING unless we are debugging
    if level > logging.DEBUG:
        for name in ("httpx", "urllib3", "botocore", "aiobotocore", "openai", "anthropic"):
            logging.getLogger(name).setLevel(logging.WARNING)
