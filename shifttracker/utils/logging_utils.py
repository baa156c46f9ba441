import logging
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s_%(levelname)s:%(name)s:%(lineno)d:%(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(log_file_path: Optional[str], level: Union[int, str] = logging.DEBUG) -> logging.Handler:
    if log_file_path:
        handler: logging.Handler = logging.FileHandler(log_file_path, "a", encoding="utf-8")
    else:
        handler = logging.StreamHandler()
    logging.basicConfig(format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT, level=level, handlers=[handler], force=True)
    return handler
