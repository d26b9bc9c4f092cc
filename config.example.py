# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit a real .env; keep it local and gitignored.

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKSYNC_APP_NAME": "App display name (default: task-sync).",
    "TASKSYNC_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Paths (gitignored)
    "TASKSYNC_DATA_DIR": "Local data directory, also holds task_sync.log (default: .local/task_sync).",
    "TASKSYNC_DB_PATH": "Document store SQLite path (default: <data_dir>/documents.sqlite3).",
    "TASKSYNC_ACCOUNTS_DB_PATH": "Identity provider SQLite path (default: <data_dir>/accounts.sqlite3).",
    # Store
    "TASKSYNC_COLLECTION": "Collection holding task documents (default: tasks).",
    # REST API (task-sync serve)
    "TASKSYNC_HTTP_HOST": "Bind address (default: 127.0.0.1; use 0.0.0.0 to expose on network).",
    "TASKSYNC_HTTP_PORT": "Port (default: 5000).",
    "TASKSYNC_CORS_ORIGINS": "Comma/space separated allowed origins (default: *).",
}
