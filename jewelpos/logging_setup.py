# jewelpos/logging_setup.py
import os, logging, sys
from .config import LOG_DIR, LOG_LEVEL

APP_LOGGER = "jewelpos"

_LEVEL_MAP = {
    "ERROR":   logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO":    logging.INFO,
    "DEBUG":   logging.DEBUG,
}

def _build_formatter() -> logging.Formatter:
    fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    return logging.Formatter(fmt, datefmt)

def _get_log_file(log_dir: str) -> str:
    os.makedirs(log_dir, exist_ok=True)
    return os.path.join(log_dir, "app.log")

def init_logging(level: str | None = None, log_dir: str | None = None) -> logging.Logger:
    """
    (Re)configures the application logger: app.log in log_dir + stderr.
    Calling it again replaces the previous handlers.
    """
    logger = logging.getLogger(APP_LOGGER)
    lvl = _LEVEL_MAP.get(str(level or LOG_LEVEL).upper(), logging.INFO)
    logger.setLevel(lvl)

    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    # File handler
    fh = logging.FileHandler(_get_log_file(log_dir or LOG_DIR), encoding="utf-8")
    fh.setLevel(lvl); fh.setFormatter(_build_formatter())
    # Console handler (stderr)
    ch = logging.StreamHandler(stream=sys.stderr)
    ch.setLevel(lvl); ch.setFormatter(_build_formatter())

    logger.addHandler(fh)
    logger.addHandler(ch)
    logger.propagate = False
    return logger

def get_logger(name: str) -> logging.Logger:
    root = logging.getLogger(APP_LOGGER)
    if not root.handlers:
        init_logging()
    if name == APP_LOGGER or name.startswith(APP_LOGGER + "."):
        return logging.getLogger(name)
    return root.getChild(name)
