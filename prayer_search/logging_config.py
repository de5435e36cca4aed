"""Logging configuration with console and rotating file handlers"""
import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Third-party loggers that are too chatty for the console
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "urllib3", "google_genai", "google.auth")


def _prune_sessions(log_dir: Path, stem: str, keep: int) -> None:
    """Delete old per-session log files, keeping the newest `keep - 1`."""
    existing = sorted(log_dir.glob(f"{stem}_*.log"), reverse=True)  # Newest first
    for old_log in existing[max(keep - 1, 0):]:
        try:
            old_log.unlink()
        except OSError:
            pass  # Another process may hold or have removed it


def setup_logging(
    log_file: str = "logs/prayer-search.log",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    keep_sessions: int = 5,
):
    """
    Configure logging with two destinations:
    - Console: Brief logs (INFO by default)
    - File: Detailed logs (DEBUG by default) with rotation

    Rotation policy:
    - New log file per process start (timestamp-based naming)
    - Keep last `keep_sessions` session files (cleanup on startup)
    - Rotate when a file reaches 10MB

    Args:
        log_file: Base path to log file (relative to working directory)
        console_level: Console logging level
        file_level: File logging level
        keep_sessions: Session log files to retain, including the new one
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    _prune_sessions(log_path.parent, log_path.stem, keep_sessions)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    session_log = log_path.parent / f"{log_path.stem}_{timestamp}.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture everything, filter in handlers
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))

    file_handler = RotatingFileHandler(
        session_log,
        mode='a',
        maxBytes=10*1024*1024,  # 10MB
        backupCount=10,
        encoding='utf-8'
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))

    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.info(f"Logging configured: console={logging.getLevelName(console_level)}, file={session_log} ({logging.getLevelName(file_level)})")
