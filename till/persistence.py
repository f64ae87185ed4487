"""SQLite persistence for the local till snapshot."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from till.config import DB_PATH

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _connect(db_path: str | Path = DB_PATH) -> sqlite3.Connection:
    db_file = Path(db_path)
    db_file.parent.mkdir(parents=True, exist_ok=True)
    return sqlite3.connect(db_file)


def bootstrap_schema(db_path: str | Path = DB_PATH) -> None:
    """Create persistence schema if it does not already exist."""
    with _connect(db_path) as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS snapshot (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            """
        )


def save_snapshot(values: Mapping[str, Any], db_path: str | Path = DB_PATH) -> None:
    """Persist every key of ``values`` in one transaction."""
    updated_at = _utc_now_iso()
    rows = [(key, json.dumps(value), updated_at) for key, value in values.items()]
    with _connect(db_path) as conn:
        with conn:
            conn.executemany(
                """
                INSERT INTO snapshot (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                rows,
            )
    logger.debug("local snapshot saved keys=%d", len(rows))


def load_snapshot(db_path: str | Path = DB_PATH) -> dict[str, Any]:
    """Return every stored key; unreadable values are skipped."""
    with _connect(db_path) as conn:
        rows = conn.execute("SELECT key, value FROM snapshot").fetchall()
    values: dict[str, Any] = {}
    for key, raw in rows:
        try:
            values[key] = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("skipping unreadable snapshot key=%s", key)
    return values
