# helpers/log_helper.py
import logging
from typing import Optional

from helpers.settings import get_settings

_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(get_settings().log_level)
    return logger


def mask_phone(number: Optional[str]) -> str:
    s = (number or "").strip()
    if len(s) <= 4:
        return s or "-"
    return f"...{s[-4:]}"
