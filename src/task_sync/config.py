# src/task_sync/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app, built once and passed to the composition root.
- No secrets required at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

ENV_PREFIX = "TASKSYNC"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path
    accounts_db_path: Path

    # ---- Store ----
    collection: str

    # ---- HTTP surface ----
    http_host: str
    http_port: int
    cors_origins: List[str]

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "task-sync").strip() or "task-sync"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/task_sync"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "documents.sqlite3")
        accounts_db_path = _env_path(_k("ACCOUNTS_DB_PATH"), data_dir / "accounts.sqlite3")

        collection = _env(_k("COLLECTION"), "tasks").strip() or "tasks"

        http_host = _env(_k("HTTP_HOST"), "127.0.0.1").strip() or "127.0.0.1"
        http_port = _env_int(_k("HTTP_PORT"), 5000)
        cors_origins = _env_list(_k("CORS_ORIGINS"), ["*"])

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            accounts_db_path=accounts_db_path,
            collection=collection,
            http_host=http_host,
            http_port=http_port,
            cors_origins=cors_origins,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
