import logging
from typing import Optional

from colorama import Fore, Style, init

init(autoreset=True)

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class LevelColorFormatter(logging.Formatter):
    """Paints the level name and the rendered message in a per-level colour."""

    PALETTE = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def __init__(self, fmt=None, datefmt=None, use_color=True):
        super().__init__(fmt, datefmt)
        self.use_color = use_color

    def _paint(self, levelno: int, text: str) -> str:
        return f"{self.PALETTE.get(levelno, '')}{text}{Style.RESET_ALL}"

    def formatMessage(self, record):
        if not self.use_color:
            return super().formatMessage(record)
        # other handlers share the record, so paint a copy
        painted = logging.makeLogRecord(record.__dict__)
        painted.levelname = self._paint(record.levelno, record.levelname)
        painted.message = self._paint(record.levelno, record.message)
        return super().formatMessage(painted)


class LoggingConfig:
    """Utility class to configure and control logging behavior"""

    @staticmethod
    def silence_third_party_loggers(libraries=None, min_level=logging.WARNING):
        """
        Silence loggers from specified third-party libraries by setting their level to WARNING or higher.

        Args:
            libraries (list): List of logger names to silence. If None, uses a default list.
            min_level (int): Minimum logging level to allow (e.g., logging.WARNING)
        """
        if libraries is None:
            libraries = ['capstone', 'elftools', 'networkx', 'asyncio']

        for lib in libraries:
            logger = logging.getLogger(lib)
            logger.setLevel(min_level)

            # Remove all handlers to prevent duplicate logging
            for handler in list(logger.handlers):
                logger.removeHandler(handler)

            logger.propagate = False

    @staticmethod
    def setup_project_logging(level=logging.INFO, format_str=None,
                              log_file: Optional[str] = None, use_color=True):
        """
        Set up logging for the funcfinder package.

        Args:
            level (int or str): The logging level for project loggers
            format_str (str): Custom format string for log messages
            log_file (str): Optional file that receives an uncoloured copy of the log
            use_color (bool): Colour console output by level
        """
        if isinstance(level, str):
            level = getattr(logging, level.upper())
        if format_str is None:
            format_str = DEFAULT_FORMAT

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(LevelColorFormatter(format_str, use_color=use_color))
        handlers = [console_handler]

        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(logging.Formatter(format_str))
            handlers.append(file_handler)

        root_logger = logging.getLogger()
        root_logger.setLevel(level)

        # Remove any existing handlers to avoid duplicates
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)

        for handler in handlers:
            root_logger.addHandler(handler)

        logging.getLogger('funcfinder').setLevel(level)
        return handlers
