"""
Database connection management.

Provides SQLite connection for estimate persistence.
"""

import os
import sqlite3
from pathlib import Path
from typing import Optional

DEFAULT_DB_PATH = "backend_cost_calc.db"
DB_PATH_ENV_VAR = "BACKEND_COST_CALC_DB"


def resolve_db_path(db_path: Optional[str] = None) -> str:
    """Pick the database path: explicit argument, then environment, then default."""
    if db_path:
        return db_path
    return os.environ.get(DB_PATH_ENV_VAR) or DEFAULT_DB_PATH


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Create and return a SQLite database connection.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLite connection
    """
    return sqlite3.connect(str(Path(db_path)))
