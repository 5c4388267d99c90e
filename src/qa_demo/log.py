"""
Logging setup for the QA demo.

Level comes from QA_LOG_LEVEL (default INFO). When QA_LOG_DIR is set,
records are also written to <QA_LOG_DIR>/qa_demo.log.
"""
import logging
import os
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str = "qa_demo") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(stream_handler)
        log_dir = os.getenv("QA_LOG_DIR")
        if log_dir:
            p = Path(log_dir)
            p.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(p / "qa_demo.log", encoding="utf-8")
            fh.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(fh)
        logger.setLevel(os.getenv("QA_LOG_LEVEL", "INFO").upper())
        logger.propagate = False
    return logger
