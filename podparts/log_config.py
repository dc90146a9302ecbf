import logging
import os

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(log_level: str, log_file: str = None) -> None:
    """Configure the root logger for the console and an optional log file."""
    formatter = logging.Formatter(LOG_FORMAT)
    level = getattr(logging, str(log_level).upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Ensure we have a stream handler for console output.
    if not any(
        type(h) is logging.StreamHandler for h in root_logger.handlers
    ):
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        root_logger.addHandler(stream_handler)

    # Replace existing file handlers so updates to LOG_FILE take effect.
    file_handlers = [h for h in root_logger.handlers if isinstance(h, logging.FileHandler)]
    for handler in file_handlers:
        root_logger.removeHandler(handler)
        handler.close()
    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger(__name__).debug("Logging configured at %s", logging.getLevelName(level))
