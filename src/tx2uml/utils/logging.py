"""
Logging for tx2uml.

Everything logs under the ``tx2uml`` logger to stderr, so stdout stays free
for diagram text and JSON. The core pipeline never logs. Clients report
fetch progress at DEBUG and every trace frame or indexer record at TRACE;
the command line reports what it loaded and wrote at INFO.
"""

import logging
import sys
from typing import Optional

from tx2uml.utils.colors import Colors

# Below DEBUG: one line per trace frame, indexer record or RPC payload
TRACE = 5
logging.addLevelName(TRACE, 'TRACE')

ROOT_LOGGER = 'tx2uml'

CONSOLE_FORMAT = '%(levelname)s: %(message)s'
# --verbose also names the component, e.g. "clients.indexer"
VERBOSE_CONSOLE_FORMAT = '%(levelname)s [%(component)s] %(message)s'
FILE_FORMAT = '%(asctime)s %(component)s %(levelname)s %(message)s'


class ColoredFormatter(logging.Formatter):
    """Colors the level name on a terminal and adds a short ``component`` field."""

    LEVEL_COLORS = {
        TRACE: Colors.DIM,
        logging.DEBUG: Colors.DIM,
        logging.INFO: Colors.BRIGHT_CYAN,
        logging.WARNING: Colors.BRIGHT_YELLOW,
        logging.ERROR: Colors.BRIGHT_RED,
    }

    def __init__(self, fmt: str = CONSOLE_FORMAT, datefmt: str = None, use_colors: bool = False):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy, other handlers share the record
        record = logging.makeLogRecord(record.__dict__)
        record.component = component_name(record.name)
        if self.use_colors:
            color = self.LEVEL_COLORS.get(record.levelno, '')
            if color:
                record.levelname = f"{color}{record.levelname}{Colors.RESET}"
        return super().format(record)


def component_name(logger_name: str) -> str:
    """``tx2uml.clients.node`` -> ``clients.node``; the root logger is ``cli``."""
    if logger_name == ROOT_LOGGER:
        return 'cli'
    prefix = ROOT_LOGGER + '.'
    return logger_name[len(prefix):] if logger_name.startswith(prefix) else logger_name


def verbosity_level(debug: bool = False, verbose: bool = False, default: int = logging.INFO) -> int:
    if verbose:
        return TRACE
    if debug:
        return logging.DEBUG
    return default


def setup_logging(
    level: int = logging.INFO,
    quiet: bool = False,
    debug: bool = False,
    verbose: bool = False,
    log_file: Optional[str] = None,
    use_colors: bool = True
) -> logging.Logger:
    """
    Configure the ``tx2uml`` logger. Safe to call again, handlers are replaced.

    Args:
        level: Console level when neither ``debug`` nor ``verbose`` is set
        quiet: No console output; a log file still receives everything
        debug: Console at DEBUG
        verbose: Console at TRACE, with component names
        log_file: Also write every record, TRACE included, to this file
        use_colors: Color level names when stderr is a terminal

    Returns:
        The ``tx2uml`` logger
    """
    console_level = verbosity_level(debug, verbose, level)

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    handler_levels = []
    if not quiet:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(console_level)
        console.setFormatter(ColoredFormatter(
            VERBOSE_CONSOLE_FORMAT if verbose else CONSOLE_FORMAT,
            use_colors=use_colors and getattr(sys.stderr, 'isatty', lambda: False)(),
        ))
        logger.addHandler(console)
        handler_levels.append(console_level)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(TRACE)
        file_handler.setFormatter(ColoredFormatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(file_handler)
        handler_levels.append(TRACE)

    # The logger must not filter out what a handler still wants
    logger.setLevel(min(handler_levels) if handler_levels else logging.CRITICAL)
    return logger


def get_logger(name: str = None) -> logging.Logger:
    """The ``tx2uml`` logger, or its ``tx2uml.<name>`` child."""
    if name:
        return logging.getLogger(f'{ROOT_LOGGER}.{name}')
    return logging.getLogger(ROOT_LOGGER)


def trace(logger: logging.Logger, msg: str, *args, **kwargs) -> None:
    """Log at TRACE level."""
    if logger.isEnabledFor(TRACE):
        logger.log(TRACE, msg, *args, **kwargs)


logger = get_logger()
