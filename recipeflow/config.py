"""
Recipeflow configuration.

Settings are read from ``RECIPEFLOW_*`` environment variables (or a ``.env``
file) with pydantic validation. Library code only reads them for defaults;
nothing here configures logging unless ``setup_logging`` is called explicitly.
"""

import logging
import os
from functools import lru_cache
from logging import Handler
from logging.handlers import RotatingFileHandler
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime defaults for resampling, preparation and tuning."""

    model_config = SettingsConfigDict(
        env_prefix="RECIPEFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # === REPRODUCIBILITY ===
    RANDOM_STATE: int = 42

    # === TUNING ===
    N_JOBS: int = 1  # Worker-pool size for tuning cells
    TIE_TOLERANCE: float = 1e-12

    # === RECIPES ===
    RETAIN_TRAINING: bool = True

    # === LOGGING ===
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None
    LOG_MAX_BYTES: int = 10 * 1024 * 1024
    LOG_BACKUP_COUNT: int = 5

    @field_validator("N_JOBS")
    @classmethod
    def validate_n_jobs(cls, v):
        if v == 0:
            raise ValueError("N_JOBS must be a positive worker count or -1 for all cores")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("TIE_TOLERANCE")
    @classmethod
    def validate_tie_tolerance(cls, v):
        if v < 0:
            raise ValueError("TIE_TOLERANCE must be non-negative")
        return v


@lru_cache()
def get_settings() -> Settings:
    """
    Get recipeflow settings.
    Uses lru_cache to avoid re-reading the environment on every call.
    """
    return Settings()


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: Optional[int] = None,
    backup_count: Optional[int] = None,
) -> None:
    """
    Configure the root logger with a console handler and an optional
    size-rotating file handler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Defaults to ``Settings.LOG_LEVEL``.
        log_file: Path to a log file. Defaults to ``Settings.LOG_FILE``; no
            file handler is installed when neither is set.
    """
    settings = get_settings()
    log_level = (log_level or settings.LOG_LEVEL).upper()
    log_file = log_file or settings.LOG_FILE
    level = getattr(logging, log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove all existing handlers to prevent duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler: Handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes or settings.LOG_MAX_BYTES,
            backupCount=backup_count or settings.LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)8s] %(name)s: %(message)s "
                "[%(filename)s:%(lineno)d in %(funcName)s()]"
            )
        )
        root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(name)s: %(message)s"))
    root_logger.addHandler(console_handler)

    # Silence overly verbose loggers from dependencies
    for logger_name in ("joblib", "optuna"):
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    root_logger.info(f"Logging initialized. Level: {log_level}, file: {log_file}")
