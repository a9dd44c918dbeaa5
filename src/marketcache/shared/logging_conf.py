# src/marketcache/shared/logging_conf.py
"""
Logging Configuration - Process-wide Log Handlers

Configures the root logger once per process: a console handler (stdout or
stderr) and an optional size-rotated log file. Library modules only ever call
logging.getLogger(__name__); this is the single place handlers are attached.

Files that USE this module:
- marketcache.app (main() configures logging from settings)

Files that this module USES:
- None (pure configuration module)
"""
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s :: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOG_NAME = "marketcache.log"

# Third-party loggers kept at WARNING regardless of the app level
QUIET_LOGGERS = ("urllib3", "redis")


def _resolve_log_path(
    log_file: Optional[Union[str, Path]], log_dir: Optional[Union[str, Path]]
) -> Optional[Path]:
    """LOG_DIR wins over LOG_FILE; the parent directory is created."""
    if log_dir:
        path = Path(log_dir) / DEFAULT_LOG_NAME
    elif log_file:
        path = Path(log_file)
    else:
        return None
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def setup_logging(
    level=logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    log_dir: Optional[Union[str, Path]] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    log_to_stdout: Optional[bool] = None,
) -> None:
    """
    Configure application-wide logging.

    Args:
        level: Logging level for the root logger
        log_file: Optional path to a rotated log file
        log_dir: Optional directory for marketcache.log (overrides log_file)
        max_bytes: Maximum size per log file before rotation (default: 10MB)
        backup_count: Number of rotated files to keep (default: 5)
        log_to_stdout: Console handler on stdout (True) or stderr (False);
            defaults to the MARKETCACHE_LOG_STDOUT env var
    """
    if log_to_stdout is None:
        log_to_stdout = os.environ.get("MARKETCACHE_LOG_STDOUT", "true").lower() == "true"

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout if log_to_stdout else sys.stderr)]

    log_path = _resolve_log_path(log_file, log_dir)
    if log_path is not None:
        handlers.append(
            RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        )

    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured: level=%s file=%s", logging.getLevelName(level), log_path
    )
