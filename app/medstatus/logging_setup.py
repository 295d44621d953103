import os
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from .config import log_dir_from_env

LOGGER_NAME = "medstatus"
LOG_FILE = "medstatus.log"


def _mk_handler(path, level):
    h = RotatingFileHandler(path, maxBytes=5_000_000, backupCount=5, encoding="utf-8")
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    h.setFormatter(fmt)
    h.setLevel(level)
    return h


def configure_logging(log_dir: Optional[str] = None, level=logging.INFO) -> logging.Logger:
    # medstatus.* -> rotating logfile; safe to call more than once
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    outdir = log_dir or log_dir_from_env()
    if not outdir:
        return logger
    os.makedirs(outdir, exist_ok=True)

    if not any(
        isinstance(h, RotatingFileHandler) and getattr(h, "_ms_tag", "") == "main"
        for h in logger.handlers
    ):
        h = _mk_handler(os.path.join(outdir, LOG_FILE), level)
        h._ms_tag = "main"
        logger.addHandler(h)
    logger.propagate = True  # still print to console
    return logger
