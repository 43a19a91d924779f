from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: int = logging.WARNING) -> logging.Logger:
    logging.basicConfig(format=LOG_FORMAT, level=level)
    logger = logging.getLogger("tsaudit")
    logger.setLevel(level)
    return logger
