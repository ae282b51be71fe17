# utils/db.py
"""
Record Store Database Access

Version: 3.0.0
Features:
- Lazily created shared engine (thread-safe)
- MySQL pooling with stale-connection checks; sqlite URLs use defaults
- Health check for the Settings page
- Statement helpers that accept an explicit engine, so a store can be
  pointed at any SQLAlchemy URL
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from .config import config

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_lock = threading.Lock()


def _engine_options(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": config.get_app_setting("DB_POOL_SIZE", 5),
        "pool_recycle": config.get_app_setting("DB_POOL_RECYCLE", 3600),
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_pre_ping": True,
    }


def get_db_engine() -> Engine:
    """
    Shared engine for the configured record store.

    Raises:
        RuntimeError: no record store database is configured (local mode)
    """
    global _engine

    if _engine is not None:
        return _engine

    with _lock:
        if _engine is None:
            url = config.get_database_url()
            if not url:
                raise RuntimeError("No record store database configured")

            options = _engine_options(url)
            _engine = create_engine(url, **options)
            logger.info(f"🔌 Record store engine ready: {url.split('@')[-1]} {options or '(default pool)'}")
    return _engine


def check_db_connection(engine: Optional[Engine] = None) -> Tuple[bool, Optional[str]]:
    """Returns (ok, error message)"""
    try:
        with (engine or get_db_engine()).connect() as conn:
            conn.execute(text("SELECT 1"))
    except OperationalError as e:
        logger.error(f"❌ Record store unreachable: {e}")
        return False, "Cannot reach the record store. Check the network/VPN connection."
    except (SQLAlchemyError, RuntimeError) as e:
        logger.error(f"❌ Record store error: {e}")
        return False, f"Database error: {e}"
    return True, None


@contextmanager
def get_transaction(engine: Optional[Engine] = None):
    """
    Connection inside one transaction: committed when the block exits,
    rolled back when it raises.

        with get_transaction(engine) as conn:
            conn.execute(text("DELETE ..."))
            conn.execute(text("INSERT ..."))
    """
    with (engine or get_db_engine()).begin() as conn:
        yield conn


def execute_query(query: str, params: Dict = None, engine: Optional[Engine] = None) -> List[Dict[str, Any]]:
    """Run a SELECT and return the rows as dicts"""
    with (engine or get_db_engine()).connect() as conn:
        return [dict(row._mapping) for row in conn.execute(text(query), params or {})]


def execute_update(query: str, params: Dict = None, engine: Optional[Engine] = None) -> int:
    """Run a write or DDL statement and return the affected row count"""
    with get_transaction(engine) as conn:
        return conn.execute(text(query), params or {}).rowcount


__all__ = [
    'get_db_engine',
    'check_db_connection',
    'get_transaction',
    'execute_query',
    'execute_update',
]
