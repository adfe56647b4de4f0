import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def attach_file_handler(logger: logging.Logger, path: str, level: int = logging.INFO) -> str:
    """Attach a single FileHandler for `path` to `logger`.

    Calling this again with the same file is a no-op, so several clients can
    share one logger without duplicating lines. Propagation to the root logger
    is turned off to keep stdout clean. Returns the absolute log path.
    """
    normalized = os.path.abspath(path)
    os.makedirs(os.path.dirname(normalized), exist_ok=True)

    for h in logger.handlers:
        if isinstance(h, logging.FileHandler) and os.path.abspath(h.baseFilename) == normalized:
            break
    else:
        handler = logging.FileHandler(normalized)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    logger.setLevel(level)
    logger.propagate = False
    return normalized


def configure_server_logging(log_dir: str, level: int = logging.INFO) -> str:
    """Route all server-process logging to <log_dir>/weather_server.log.

    stdout belongs to the stdio transport, so the server never logs to it.
    """
    os.makedirs(log_dir, exist_ok=True)
    path = os.path.join(log_dir, "weather_server.log")
    logging.basicConfig(filename=path, level=level, format=LOG_FORMAT)
    return path
