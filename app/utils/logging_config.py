import logging
import logging.config
import os
from pathlib import Path
from typing import Any, Dict, Iterable

DEFAULT_LOG_DIR = "logs"
DEFAULT_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 3


def _prune_backups(log_dir: Path, base_name: str, backup_count: int) -> None:
    if backup_count < 1:
        return
    candidates: Iterable[Path] = sorted(
        log_dir.glob(f"{base_name}.*"),
        key=lambda path: path.stat().st_mtime,
        reverse=True,
    )
    for stale in list(candidates)[backup_count:]:
        try:
            stale.unlink()
        except OSError:
            continue


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def build_logging_config(
    log_dir: Path,
    *,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    app_level: str = "DEBUG",
) -> Dict[str, Any]:
    """dictConfig mapping: console plus rotating app.log and error.log."""

    def rotating(filename: str, level: str) -> Dict[str, Any]:
        return {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "default",
            "filename": str(log_dir / filename),
            "maxBytes": max_bytes,
            "backupCount": backup_count,
            "level": level,
            "encoding": "utf8",
        }

    def named(*handlers: str, level: str = "INFO") -> Dict[str, Any]:
        return {"handlers": list(handlers), "level": level, "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": "INFO",
            },
            "file_app": rotating("app.log", "INFO"),
            "file_error": rotating("error.log", "ERROR"),
        },
        "loggers": {
            "": {  # Root logger
                "handlers": ["console", "file_app", "file_error"],
                "level": "INFO",
                "propagate": True,
            },
            "uvicorn": named("console", "file_app"),
            "uvicorn.access": named("console", "file_app"),
            "uvicorn.error": named("console", "file_error"),
            "sqlalchemy.engine": named("console", "file_app", level="WARNING"),
            "auth_module": named("console", "file_app"),
            "auth": named("console", "file_app"),
            "audit": named("console", "file_app"),
            # Parent of every app.* module logger
            "app": named("console", "file_app", "file_error", level=app_level),
        },
    }


def setup_logging():
    """
    Configures logging for the application.
    Logs are written to '<LOG_DIR>/app.log' and '<LOG_DIR>/error.log'.
    """
    log_dir = Path(os.getenv("LOG_DIR", DEFAULT_LOG_DIR))
    log_dir.mkdir(parents=True, exist_ok=True)
    max_bytes = _env_int("LOG_MAX_BYTES", DEFAULT_MAX_BYTES)
    backup_count = _env_int("LOG_BACKUP_COUNT", DEFAULT_BACKUP_COUNT)
    _prune_backups(log_dir, "app.log", backup_count)
    _prune_backups(log_dir, "error.log", backup_count)

    logging.config.dictConfig(
        build_logging_config(
            log_dir,
            max_bytes=max_bytes,
            backup_count=backup_count,
            app_level=os.getenv("LOG_LEVEL", "DEBUG").upper(),
        )
    )
    logging.getLogger("app").info("Logging configured successfully.")
