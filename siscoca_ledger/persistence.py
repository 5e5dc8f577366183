"""
Key-value cache for the campaign list and both history lists.

Three keys, each holding a list of JSON rows:
- campanas                  : Campaign dicts
- historico                 : ArchiveRecord dicts (generic history)
- historicoSemanasCampanas  : WeeklyLedgerEntry dicts (per-campaign ledger)

The cache is not authoritative. Callers decide when to save.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Protocol

import duckdb

from siscoca_core.logging_config import setup_logging

logger = setup_logging(__name__)

KEY_CAMPAIGNS = "campanas"
KEY_HISTORY = "historico"
KEY_WEEKLY_LEDGER = "historicoSemanasCampanas"
KEYS = (KEY_CAMPAIGNS, KEY_HISTORY, KEY_WEEKLY_LEDGER)


class PersistencePort(Protocol):
    def load(self, key: str) -> List[Dict[str, Any]]: ...

    def save(self, key: str, rows: List[Dict[str, Any]]) -> None: ...


def _check_key(key: str) -> None:
    if key not in KEYS:
        raise KeyError(f"Unknown persistence key: {key}")


class InMemoryPersistence:
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self) -> None:
        self._data: Dict[str, List[Dict[str, Any]]] = {}

    def load(self, key: str) -> List[Dict[str, Any]]:
        _check_key(key)
        return [dict(r) for r in self._data.get(key, [])]

    def save(self, key: str, rows: List[Dict[str, Any]]) -> None:
        _check_key(key)
        self._data[key] = [dict(r) for r in rows]


class DuckDBPersistence:
    """Manages the key-value cache in DuckDB (table cache.kv_rows)"""

    def __init__(self, db_path: str = "siscoca.duckdb"):
        self.db_path = Path(db_path)
        self._ensure_schema()

    def _get_connection(self):
        """Get DuckDB connection"""
        return duckdb.connect(str(self.db_path))

    def _ensure_schema(self) -> None:
        conn = self._get_connection()
        try:
            conn.execute("CREATE SCHEMA IF NOT EXISTS cache;")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS cache.kv_rows (
                    key TEXT NOT NULL,
                    row_index INTEGER NOT NULL,
                    payload TEXT NOT NULL,
                    PRIMARY KEY (key, row_index)
                );
                """
            )
        finally:
            conn.close()

    def load(self, key: str) -> List[Dict[str, Any]]:
        _check_key(key)
        conn = self._get_connection()
        try:
            rows = conn.execute(
                "SELECT payload FROM cache.kv_rows WHERE key = ? ORDER BY row_index",
                [key],
            ).fetchall()
        finally:
            conn.close()

        logger.debug(f"Loaded {len(rows)} rows for '{key}'")
        return [json.loads(r[0]) for r in rows]

    def save(self, key: str, rows: List[Dict[str, Any]]) -> None:
        """Replace every row stored under ``key`` in one transaction."""
        _check_key(key)
        conn = self._get_connection()
        try:
            conn.execute("BEGIN TRANSACTION;")
            conn.execute("DELETE FROM cache.kv_rows WHERE key = ?", [key])
            if rows:
                conn.executemany(
                    "INSERT INTO cache.kv_rows (key, row_index, payload) VALUES (?, ?, ?)",
                    [[key, i, json.dumps(r, ensure_ascii=False)] for i, r in enumerate(rows)],
                )
            conn.execute("COMMIT;")
        except Exception:
            conn.execute("ROLLBACK;")
            logger.error(f"Failed to save '{key}' ({len(rows)} rows)")
            raise
        finally:
            conn.close()

        logger.info(f"Saved {len(rows)} rows for '{key}'")
