import logging
import os
from typing import Optional

LOG_FORMAT = '%(asctime)s | %(name)s | %(levelname)s | %(message)s'


#-- function to initialize a logger that writes to a file, or stderr when no file is given
def setup_logger(name: str, log_file: Optional[str] = None, level=logging.INFO):
    formatter = logging.Formatter(LOG_FORMAT)
    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handler = logging.FileHandler(log_file)
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.hasHandlers():
        logger.addHandler(handler)

    return logger


def log_booking_event(logger: logging.Logger, event: str, booking_id: str, **fields):
    # Optional parts
    extra = "".join(f" | {k}: {v}" for k, v in fields.items() if v is not None)
    logger.info(f"{event} | {booking_id}{extra}")
