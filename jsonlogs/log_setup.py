import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE = "jsonlogs.log"


def configure_logging(log_dir: str = "app_log", level: int = logging.INFO) -> logging.Logger:
    """
    Attach a file handler to the ``jsonlogs`` logger

    Calling it again with the same directory does not add a second handler.

    Returns:
        The package logger
    """
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)

    logger = logging.getLogger("jsonlogs")
    logger.setLevel(level)

    log_file = os.path.abspath(os.path.join(log_dir, LOG_FILE))
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == log_file:
            handler.setLevel(level)
            return logger

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(file_handler)
    return logger
