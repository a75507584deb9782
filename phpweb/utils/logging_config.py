"""
Logging Configuration
=====================
Buildpack output goes to stdout, where the lifecycle shows it to the user
as build output. INFO lines are printed bare, the way pack renders
buildpack messages; other levels are colored, DEBUG carries the source.
"""
import logging
import os
import sys
from datetime import datetime

DETAILED_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Colors console output by level."""

    cyan = "\x1b[36m"
    yellow = "\x1b[33m"
    red = "\x1b[31m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"

    def __init__(self):
        super().__init__("%(message)s")
        self._formatters = {
            logging.DEBUG: logging.Formatter(self.cyan + DETAILED_FORMAT + self.reset, datefmt=DATE_FORMAT),
            logging.INFO: logging.Formatter("%(message)s"),
            logging.WARNING: logging.Formatter(self.yellow + "%(message)s" + self.reset),
            logging.ERROR: logging.Formatter(self.red + "%(message)s" + self.reset),
            logging.CRITICAL: logging.Formatter(self.bold_red + "%(message)s" + self.reset),
        }

    def format(self, record):
        formatter = self._formatters.get(record.levelno)
        if formatter is None:
            return super().format(record)
        return formatter.format(record)


def setup_logging(level=logging.INFO, log_dir: str = ""):
    """
    Configure the root logger for a detect or build run.

    Parameters
    ----------
    level : int
        Level for the root and ``phpweb`` loggers.
    log_dir : str
        When set, a dated log file with the detailed format is added.
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ColoredFormatter())
    root_logger.addHandler(console_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(
            os.path.join(log_dir, f"php_web_{datetime.now().strftime('%Y%m%d')}.log")
        )
        file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    logging.getLogger("phpweb").setLevel(level)
    # docker and httpx are chatty at DEBUG
    for logger_name in ["docker", "urllib3", "httpx", "httpcore"]:
        logging.getLogger(logger_name).setLevel(max(level, logging.INFO))
