"""
Change history persistence - who changed what on a campaign and when.

Entry types:
- CREACION   : campaign created
- EDICION    : form edit (one entry per changed field)
- METRICAS   : trafficker or owner metrics submitted
- ESTADO     : state transition
- ARCHIVADO  : campaign archived
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
import duckdb

CHANGE_TYPES = ("CREACION", "EDICION", "METRICAS", "ESTADO", "ARCHIVADO")

COLUMNS = [
    "change_id",
    "campaign_id",
    "change_type",
    "field",
    "old_value",
    "new_value",
    "description",
    "changed_by",
    "changed_at",
    "comment",
]


class ChangeLog:
    """Manages change history persistence in DuckDB"""

    def __init__(self, db_path: str = "siscoca.duckdb"):
        self.db_path = Path(db_path)
        self._ensure_schema()

    def _get_connection(self):
        """Get DuckDB connection"""
        return duckdb.connect(str(self.db_path))

    def _ensure_schema(self) -> None:
        conn = self._get_connection()
        conn.execute("CREATE SCHEMA IF NOT EXISTS audit;")
        conn.execute("CREATE SEQUENCE IF NOT EXISTS audit.change_log_seq START 1;")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS audit.change_log (
                change_id INTEGER DEFAULT nextval('audit.change_log_seq'),
                campaign_id TEXT NOT NULL,
                change_type TEXT NOT NULL,
                field TEXT,
                old_value TEXT,
                new_value TEXT,
                description TEXT,
                changed_by TEXT,
                changed_at TIMESTAMP NOT NULL,
                comment TEXT,
                PRIMARY KEY (change_id)
            );
            """
        )
        conn.close()

    def log_change(
        self,
        campaign_id: str,
        change_type: str,
        description: str,
        field: Optional[str] = None,
        old_value: Any = None,
        new_value: Any = None,
        changed_by: Optional[str] = None,
        changed_at: Optional[datetime] = None,
        comment: Optional[str] = None,
    ) -> int:
        """
        Record one change

        Args:
            campaign_id: Campaign ID
            change_type: One of CHANGE_TYPES
            description: Human-readable summary
            field: Changed field, if the change concerns a single field
            old_value: Previous value (stored as text)
            new_value: New value (stored as text)
            changed_by: User who made the change
            changed_at: When (defaults to now)
            comment: Optional free text

        Returns: change_id
        """
        if change_type not in CHANGE_TYPES:
            raise ValueError(f"Unknown change type: {change_type}")

        if changed_at is None:
            changed_at = datetime.now()

        conn = self._get_connection()
        result = conn.execute(
            """
            INSERT INTO audit.change_log (
                campaign_id, change_type, field, old_value, new_value,
                description, changed_by, changed_at, comment
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            RETURNING change_id
        """,
            [
                campaign_id,
                change_type,
                field,
                None if old_value is None else str(old_value),
                None if new_value is None else str(new_value),
                description,
                changed_by,
                changed_at,
                comment,
            ],
        ).fetchone()
        conn.close()

        return result[0] if result else None

    def get_history(
        self,
        campaign_id: str,
        change_type: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Change history for a campaign, newest first

        Args:
            campaign_id: Campaign ID
            change_type: Optional filter by change type

        Returns: List of change records
        """
        conn = self._get_connection()

        if change_type:
            query = """
                SELECT *
                FROM audit.change_log
                WHERE campaign_id = ?
                  AND change_type = ?
                ORDER BY changed_at DESC, change_id DESC
            """
            params = [campaign_id, change_type]
        else:
            query = """
                SELECT *
                FROM audit.change_log
                WHERE campaign_id = ?
                ORDER BY changed_at DESC, change_id DESC
            """
            params = [campaign_id]

        results = conn.execute(query, params).fetchall()
        conn.close()

        return [dict(zip(COLUMNS, row)) for row in results]

    def count_by_type(self, campaign_id: str) -> Dict[str, int]:
        """Number of history entries per change type (types with none are omitted)"""
        conn = self._get_connection()
        rows = conn.execute(
            """
            SELECT change_type, COUNT(*)
            FROM audit.change_log
            WHERE campaign_id = ?
            GROUP BY change_type
        """,
            [campaign_id],
        ).fetchall()
        conn.close()

        return {r[0]: int(r[1]) for r in rows}
