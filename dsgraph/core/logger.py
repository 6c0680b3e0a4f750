import logging
import sys

from dsgraph.core.config import get_settings


def setup_logger(name: str = "dsgraph") -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG if get_settings().ENV == "dev" else logging.INFO)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            "%(asctime)s - [%(levelname)s] - %(name)s - %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger

# Usage: from dsgraph.core.logger import setup_logger; setup_logger()
