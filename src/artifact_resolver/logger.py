"""Functions for logging."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

# Libraries whose debug output drowns out ours
NOISY_LOGGERS = ("urllib3", "sqlalchemy.engine")


def setup_logger(level: str, quiet: Iterable[str] = NOISY_LOGGERS) -> None:
    """Configure the root logger so that resolution progress is written to stderr.

    Args:
        level: Name of the log level for the library, such as ``"debug"`` or ``"info"``
        quiet: Names of third party loggers that are capped at the warning level

    """
    level_value = getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level_value)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root_logger.addHandler(handler)
    for name in quiet:
        logging.getLogger(name).setLevel(max(level_value, logging.WARNING))
