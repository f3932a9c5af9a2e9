import logging
import logging.config

COLORS = {
    "DEBUG": "\033[37m",      # white
    "INFO": "\033[32m",       # green
    "WARNING": "\033[33m",    # yellow
    "ERROR": "\033[31m",      # red
    "CRITICAL": "\033[41m"    # red background
}
RESET = "\033[0m"


class ColorFormatter(logging.Formatter):
    def format(self, record):
        levelname = record.levelname
        if levelname in COLORS:
            record.levelname_color = f"{COLORS[levelname]}{levelname}{RESET}"
        else:
            record.levelname_color = levelname
        return super().format(record)


class MaxLevelFilter(logging.Filter):
    def __init__(self, max_level):
        super().__init__()
        self.max_level = max_level

    def filter(self, record):
        return record.levelno <= self.max_level


def configure_logging(level="INFO", color=True):
    """Route `fira.*` loggers to the console: INFO and below on stdout, warnings on stderr."""
    fmt = "%(asctime)s [%(levelname_color)s] %(name)s: %(message)s"
    logger_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {
                "()": ColorFormatter if color else logging.Formatter,
                "format": fmt if color else fmt.replace("levelname_color", "levelname"),
            },
        },
        "filters": {
            "max_info": {
                "()": MaxLevelFilter,
                "max_level": logging.INFO,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "level": "DEBUG",
                "filters": ["max_info"],
                "formatter": "simple",
                "stream": "ext://sys.stdout",
            },
            "stderr": {
                "class": "logging.StreamHandler",
                "level": "WARNING",
                "formatter": "simple",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "fira": {
                "handlers": ["stdout", "stderr"],
                "level": str(level).upper(),
                "propagate": False,
            },
        },
    }
    logging.config.dictConfig(logger_config)
