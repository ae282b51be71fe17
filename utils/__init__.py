# utils/__init__.py
"""
Shared Utilities Package for the Sales Pipeline App

This package contains common utilities shared across all pages:
- config: Configuration management (local + Streamlit Cloud)
- db: Record store engine and statement helpers
- sales_pipeline: Pipeline records, metrics, sync and reporting

Usage:
    # Import specific modules
    from utils.db import get_db_engine, execute_query
    from utils.config import config

    # Or import commonly used items directly
    from utils import get_db_engine, config
"""

# Configuration
from .config import (
    config,
    Config,
    IS_RUNNING_ON_CLOUD,
    APP_CONFIG,
    OUTBOUND_EMAIL_CONFIG,
)

# Database
from .db import (
    get_db_engine,
    check_db_connection,
    get_transaction,
    execute_query,
    execute_update,
)

__all__ = [
    # Config
    'config',
    'Config',
    'IS_RUNNING_ON_CLOUD',
    'APP_CONFIG',
    'OUTBOUND_EMAIL_CONFIG',

    # Database
    'get_db_engine',
    'check_db_connection',
    'get_transaction',
    'execute_query',
    'execute_update',
]

__version__ = '3.0.0'
