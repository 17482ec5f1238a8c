"""Logging levels and handlers for the simulation."""
import logging
import sys

# Verbose levels below INFO, for per-particle tracing
DEBUG_L1 = 15  # Between INFO and DEBUG
DEBUG_L2 = 8   # Between DEBUG and DEBUG_L3
DEBUG_L3 = 5   # Every particle event

logging.addLevelName(DEBUG_L1, "DEBUG_L1")
logging.addLevelName(DEBUG_L2, "DEBUG_L2")
logging.addLevelName(DEBUG_L3, "DEBUG_L3")

PACKAGE_LOGGER = "spinsim"

LEVEL_NAMES = {
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug_l1": DEBUG_L1,
    "debug": logging.DEBUG,
    "debug_l2": DEBUG_L2,
    "debug_l3": DEBUG_L3,
}


def parse_level(name: str) -> int:
    """Map a command line level name to a logging level."""
    try:
        return LEVEL_NAMES[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown log level '{name}', choose from {', '.join(LEVEL_NAMES)}") from None


def setup_logger(name: str, level: int) -> logging.Logger:
    """Setup logger with appropriate configuration."""
    logger = logging.getLogger(name)
    if not logger.hasHandlers():
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def configure_package_logging(level: int) -> logging.Logger:
    """Send the logs of every simulation component to stdout at the given level."""
    return setup_logger(PACKAGE_LOGGER, level)
