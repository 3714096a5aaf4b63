import logging
import os
import sys
import re
from typing import Optional, Union

# Global logger instance
_logger = None

# ANSI color codes for pretty printing
COLORS = {
    "reset": "\033[0m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
    "white": "\033[37m",
    "light_black": "\033[90m",
    "bold": "\033[1m",
}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Custom formatter that colorizes log messages based on level."""

    LEVEL_COLORS = {
        logging.DEBUG: COLORS["light_black"],
        logging.INFO: COLORS["green"],
        logging.WARNING: COLORS["yellow"],
        logging.ERROR: COLORS["red"],
        logging.CRITICAL: COLORS["bold"] + COLORS["red"]
    }

    def format(self, record):
        """Format log record with colorized level and message."""
        levelname = record.levelname
        message = super().format(record)

        if any(color in message for color in COLORS.values()):
            return message

        # Embedded color directives: [color:text]
        def repl(match):
            color_name = match.group(1).lower()
            text = match.group(2)
            if color_name in COLORS:
                return f"{COLORS[color_name]}{text}{COLORS['reset']}"
            return match.group(0)

        message = re.sub(r'\[(\w+):([^\]]+)\]', repl, message)

        color = self.LEVEL_COLORS.get(record.levelno, COLORS["reset"])
        formatted_level = f"{color}{levelname}{COLORS['reset']}"
        return message.replace(levelname, formatted_level, 1)


class PrettyLogger:
    """Wrapper around logging.Logger with additional pretty printing capabilities."""

    def __init__(self, logger):
        self.logger = logger

    def _colored(self, msg, color):
        if color:
            return f"{COLORS.get(color, '')}{msg}{COLORS['reset']}"
        return msg

    def debug(self, msg, *args, color=None, **kwargs):
        self.logger.debug(self._colored(msg, color), *args, **kwargs)

    def info(self, msg, *args, color=None, **kwargs):
        self.logger.info(self._colored(msg, color), *args, **kwargs)

    def warning(self, msg, *args, color=None, **kwargs):
        self.logger.warning(self._colored(msg, color), *args, **kwargs)

    def error(self, msg, *args, color=None, **kwargs):
        self.logger.error(self._colored(msg, color), *args, **kwargs)

    def success(self, msg, *args, **kwargs):
        """Log a success message (special helper for positive outcomes)."""
        self.info(f"{COLORS['green']}{msg}{COLORS['reset']}", *args, **kwargs)

    def highlight(self, msg, *args, **kwargs):
        """Log a highlighted message (special helper for important info)."""
        self.info(f"{COLORS['bold']}{COLORS['cyan']}{msg}{COLORS['reset']}", *args, **kwargs)


def setup_logger(log_level: Optional[str] = None) -> Union[logging.Logger, PrettyLogger]:
    """Set up and configure the suite logger.

    The level defaults to ``E2E_LOG_LEVEL`` (or INFO). Calling this again
    returns the already configured instance.
    """
    global _logger

    if _logger is not None:
        return _logger

    level_name = (log_level or os.environ.get("E2E_LOG_LEVEL") or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    logger = logging.getLogger("rental_e2e")
    logger.setLevel(level)
    logger.propagate = False

    if logger.handlers:
        logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console_handler)

    _logger = PrettyLogger(logger)
    return _logger


def get_logger() -> Union[logging.Logger, PrettyLogger]:
    """Get the global logger instance, initializing it if necessary."""
    global _logger

    if _logger is None:
        _logger = setup_logger()

    return _logger
