"""
Repository pattern for estimate persistence.

Handles database operations for named estimates owned by a user.
"""

import json
from datetime import datetime
from typing import List, Optional

from backend_cost_calc.core.pricing import CostBreakdownSet
from backend_cost_calc.core.usage import UsageProfileSet
from backend_cost_calc.utils.logging import get_logger

from .db import get_connection, resolve_db_path
from .models import Estimate

logger = get_logger(__name__)

_COLUMNS = "id, user_id, name, services, total_cost, created_at"


class EstimateNotFoundError(LookupError):
    """Raised when an estimate id does not exist for the given owner."""
    def __init__(self, estimate_id: str):
        super().__init__(f"Estimate not found: {estimate_id}")
        self.estimate_id = estimate_id


def _serialize_services(estimate: Estimate) -> str:
    return json.dumps(estimate.services(), sort_keys=True)


def _row_to_estimate(row) -> Estimate:
    """Rebuild an estimate from a stored row.

    The stored ``total_cost`` column is informational only; the total is
    always derived from the stored per-category costs.
    """
    services = json.loads(row[3]) or []
    profile_data = {}
    cost_data = {}
    for service in services:
        if not service or "type" not in service:
            continue
        profile_data[service["type"]] = service.get("data") or {}
        cost_data[service["type"]] = service.get("costs") or {}
    return Estimate(
        id=row[0],
        user_id=row[1],
        name=row[2],
        profiles=UsageProfileSet.from_dict(profile_data),
        costs=CostBreakdownSet.from_dict(cost_data),
        created_at=datetime.fromisoformat(row[5])
    )


class EstimateRepository:
    """Repository for saving, listing and deleting named estimates.

    Each operation opens its own connection, so a repository instance can
    be shared freely.
    """

    def __init__(self, db_path: Optional[str] = None):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file; falls back to the
                BACKEND_COST_CALC_DB environment variable, then the default
        """
        self.db_path = resolve_db_path(db_path)

    def initialize_schema(self) -> None:
        """Create the estimates table if it doesn't exist."""
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS estimates (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    services TEXT NOT NULL,
                    total_cost REAL NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_estimates_user_created
                ON estimates (user_id, created_at)
            """)
            conn.commit()
        finally:
            conn.close()

    def save(self, estimate: Estimate) -> Estimate:
        """Insert a new estimate.

        Args:
            estimate: The estimate to persist

        Returns:
            The same estimate, for chaining

        Raises:
            sqlite3.IntegrityError: If an estimate with the same id exists
        """
        conn = get_connection(self.db_path)
        try:
            conn.execute(f"""
                INSERT INTO estimates ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                estimate.id,
                estimate.user_id,
                estimate.name,
                _serialize_services(estimate),
                estimate.total_cost,
                estimate.created_at.isoformat()
            ))
            conn.commit()
        finally:
            conn.close()
        logger.info(
            "estimate_saved",
            estimate_id=estimate.id,
            user_id=estimate.user_id,
            total_cost=estimate.total_cost,
        )
        return estimate

    def replace(self, estimate: Estimate) -> Estimate:
        """Overwrite a stored estimate after it was edited and resaved.

        The stored creation timestamp is kept.

        Raises:
            EstimateNotFoundError: If no estimate with this id belongs to
                the estimate's user
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute("""
                UPDATE estimates
                SET name = ?, services = ?, total_cost = ?
                WHERE id = ? AND user_id = ?
            """, (
                estimate.name,
                _serialize_services(estimate),
                estimate.total_cost,
                estimate.id,
                estimate.user_id
            ))
            if cursor.rowcount == 0:
                conn.rollback()
                raise EstimateNotFoundError(estimate.id)
            conn.commit()
        finally:
            conn.close()
        logger.info("estimate_replaced", estimate_id=estimate.id, user_id=estimate.user_id)
        stored = self.get(estimate.id)
        return stored if stored is not None else estimate

    def get(self, estimate_id: str) -> Optional[Estimate]:
        """Fetch one estimate by id, or None if it does not exist."""
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                f"SELECT {_COLUMNS} FROM estimates WHERE id = ?",
                (estimate_id,)
            )
            row = cursor.fetchone()
            return _row_to_estimate(row) if row else None
        finally:
            conn.close()

    def list_for_user(self, user_id: str, limit: Optional[int] = None) -> List[Estimate]:
        """List a user's estimates, newest first.

        Args:
            user_id: Owner of the estimates
            limit: Optional maximum number of estimates to return
        """
        conn = get_connection(self.db_path)
        try:
            query = f"SELECT {_COLUMNS} FROM estimates WHERE user_id = ? ORDER BY created_at DESC"
            params: list = [user_id]
            if limit is not None:
                query += " LIMIT ?"
                params.append(limit)
            cursor = conn.execute(query, params)
            return [_row_to_estimate(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def delete(self, estimate_id: str, user_id: str) -> bool:
        """Delete one of the user's estimates.

        Returns:
            True if a row was deleted, False if the estimate did not exist
            or belongs to another user
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                "DELETE FROM estimates WHERE id = ? AND user_id = ?",
                (estimate_id, user_id)
            )
            conn.commit()
            deleted = cursor.rowcount > 0
        finally:
            conn.close()
        if deleted:
            logger.info("estimate_deleted", estimate_id=estimate_id, user_id=user_id)
        else:
            logger.warning("estimate_delete_missed", estimate_id=estimate_id, user_id=user_id)
        return deleted
