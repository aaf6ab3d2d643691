"""Logging configuration (loguru)."""
import sys
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
	"<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
	"<cyan>{name}</cyan>:<cyan>{function}</cyan> | <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} | {message}"


def configure_logging(level: str = 'INFO', log_file: Optional[str] = None) -> None:
	"""Replace loguru's default sink with the service sinks."""
	logger.remove()
	logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=sys.stderr.isatty())
	if log_file:
		logger.add(
			log_file,
			rotation="100 MB",
			retention="14 days",
			compression="zip",
			format=FILE_FORMAT,
			level=level,
		)


__all__ = ["logger", "configure_logging"]
