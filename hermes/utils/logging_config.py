import logging
import os
import sys
from datetime import datetime

FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(log_dir: str = "", level: int = logging.INFO):
    """Configure logging for the application.

    Always logs to stdout; when log_dir is set, a session_<timestamp>.log file
    in that directory receives the same records.
    """
    root = logging.getLogger()
    formatter = logging.Formatter(FORMAT)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_name = datetime.now().strftime("session_%Y-%m-%dT%H-%M-%S.log")
        file_handler = logging.FileHandler(os.path.join(log_dir, file_name))
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
    root.setLevel(level)

# Make sure the function is available for import
__all__ = ['configure_logging']
