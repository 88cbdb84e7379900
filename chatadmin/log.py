import logging
import sys

from .config import get_log_level

FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level_name: str | None = None) -> None:
    """Install a single stdout handler on the root logger.

    Calling it again only adjusts the level.
    """
    level_name = (level_name or get_log_level()).upper()
    level = getattr(logging, level_name, logging.INFO)
    root = logging.getLogger()
    if getattr(setup_logging, "_configured", False):
        root.setLevel(level)
        return
    h = logging.StreamHandler(sys.stdout)
    h.setFormatter(logging.Formatter(FORMAT))
    root.handlers[:] = [h]
    root.setLevel(level)
    setup_logging._configured = True
