"""Supporting utilities: logging setup and ignore-file filtering."""

from incontext.utilities.ignore import IgnoreManager
from incontext.utilities.logger import get_logger, setup_logging

__all__ = ["IgnoreManager", "get_logger", "setup_logging"]
