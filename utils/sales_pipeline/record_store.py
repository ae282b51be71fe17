# utils/sales_pipeline/record_store.py
"""
Record Store Strategies

The authoritative copy of the pipeline lives in a record store:
- SqlRecordStore: one row per record in the `crm_records` table, through
  the shared SQLAlchemy engine (utils/db.py)
- LocalCacheStore: a versioned JSON file on disk, used when no database
  is configured

The strategy is picked once at startup by create_record_store().

Both strategies speak plain dict records (camelCase keys) grouped by
collection kind; parse_payload() turns a fetched payload into domain
records.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..db import execute_query, execute_update, get_db_engine, get_transaction
from .constants import (
    CACHE_KEY_PREFIX,
    COLLECTION_KINDS,
    KIND_ACCOUNTS,
    KIND_DEALS,
    KIND_REPRESENTATIVES,
    RECORD_TABLE,
)
from .models import RECORD_TYPES, Account, Deal, PipelineError, Representative, ValidationError
from .sample_data import build_sample_dataset

logger = logging.getLogger(__name__)

Payload = Dict[str, List[Dict[str, Any]]]

# Collection names written by the spreadsheet backend
LEGACY_KIND_KEYS = {
    'contacts': KIND_ACCOUNTS,
    'salesReps': KIND_REPRESENTATIVES,
}


class StoreError(PipelineError):
    """The record store could not be reached or refused the operation."""


class MalformedResponseError(PipelineError):
    """The record store answered with a payload that cannot be parsed."""


# =============================================================================
# PAYLOAD PARSING
# =============================================================================

def parse_payload(payload: Any) -> Tuple[List[Account], List[Deal], List[Representative]]:
    """
    Convert a fetched payload into domain records.

    Missing collections read as empty. Anything else that does not parse
    (non-dict payload, non-list collection, invalid record) makes the
    whole payload malformed.

    Raises:
        MalformedResponseError
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"Payload is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise MalformedResponseError(f"Payload must be an object, got {type(payload).__name__}")

    payload = {LEGACY_KIND_KEYS.get(k, k): v for k, v in payload.items()}

    parsed = {}
    for kind in COLLECTION_KINDS:
        raw = payload.get(kind) or []
        if not isinstance(raw, list):
            raise MalformedResponseError(f"Collection {kind!r} must be a list")

        record_type = RECORD_TYPES[kind]
        records = []
        for position, record in enumerate(raw):
            if not isinstance(record, dict):
                raise MalformedResponseError(f"{kind}[{position}] is not an object")
            try:
                records.append(record_type.from_record(record))
            except ValidationError as e:
                raise MalformedResponseError(f"{kind}[{position}]: {e}") from e
            except Exception as e:
                raise MalformedResponseError(f"{kind}[{position}]: unreadable record ({e})") from e
        parsed[kind] = records

    return parsed[KIND_ACCOUNTS], parsed[KIND_DEALS], parsed[KIND_REPRESENTATIVES]


def _check_kind(kind: str) -> None:
    if kind not in COLLECTION_KINDS:
        raise ValueError(f"Unknown collection: {kind!r}")


# =============================================================================
# STORE INTERFACE
# =============================================================================

class RecordStore(ABC):
    """Authoritative store for the three pipeline collections."""

    name = 'store'

    @abstractmethod
    def fetch_all(self) -> Payload:
        """
        Read every collection.

        Returns:
            {'accounts': [...], 'deals': [...], 'representatives': [...]}

        Raises:
            StoreError: transport failure
            MalformedResponseError: stored data cannot be decoded
        """

    @abstractmethod
    def replace_collection(self, kind: str, records: List[Dict[str, Any]]) -> None:
        """
        Overwrite one collection with the given records.

        Raises:
            StoreError: transport failure
        """


# =============================================================================
# SQL STORE
# =============================================================================

class SqlRecordStore(RecordStore):
    """
    Record store backed by a SQL table.

    Usage:
        store = SqlRecordStore()              # shared engine from utils.db
        store = SqlRecordStore(engine=engine) # explicit engine (tests)
    """

    name = 'database'

    def __init__(self, engine: Optional[Engine] = None, table: str = RECORD_TABLE):
        self._engine = engine
        self.table = table
        self._schema_ready = False

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = get_db_engine()
        return self._engine

    def ensure_schema(self) -> None:
        """Create the record table if it does not exist yet."""
        if self._schema_ready:
            return

        execute_update(f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                kind VARCHAR(32) NOT NULL,
                position INTEGER NOT NULL,
                record_id VARCHAR(64) NOT NULL,
                payload TEXT NOT NULL,
                PRIMARY KEY (kind, position)
            )
        """, engine=self.engine)
        self._schema_ready = True

    def fetch_all(self) -> Payload:
        try:
            self.ensure_schema()
            rows = execute_query(
                f"SELECT kind, position, payload FROM {self.table} ORDER BY kind, position",
                engine=self.engine
            )
        except (SQLAlchemyError, RuntimeError) as e:
            logger.error(f"❌ Record store fetch failed: {e}")
            raise StoreError(f"Cannot read from record store: {e}") from e

        result: Payload = {kind: [] for kind in COLLECTION_KINDS}
        for row in rows:
            try:
                record = json.loads(row['payload'])
            except (TypeError, json.JSONDecodeError) as e:
                raise MalformedResponseError(
                    f"Undecodable {row['kind']} record at position {row['position']}"
                ) from e
            result.setdefault(row['kind'], []).append(record)

        logger.info(
            f"📥 Fetched {len(result[KIND_ACCOUNTS])} accounts, {len(result[KIND_DEALS])} deals, "
            f"{len(result[KIND_REPRESENTATIVES])} representatives"
        )
        return result

    def replace_collection(self, kind: str, records: List[Dict[str, Any]]) -> None:
        _check_kind(kind)
        params = [
            {
                'kind': kind,
                'position': position,
                'record_id': str(record.get('id', '')),
                'payload': json.dumps(record, ensure_ascii=False),
            }
            for position, record in enumerate(records)
        ]

        try:
            self.ensure_schema()
            with get_transaction(self.engine) as conn:
                conn.execute(text(f"DELETE FROM {self.table} WHERE kind = :kind"), {'kind': kind})
                if params:
                    conn.execute(
                        text(f"""
                            INSERT INTO {self.table} (kind, position, record_id, payload)
                            VALUES (:kind, :position, :record_id, :payload)
                        """),
                        params
                    )
        except (SQLAlchemyError, RuntimeError) as e:
            logger.error(f"❌ Record store write failed for {kind}: {e}")
            raise StoreError(f"Cannot write {kind} to record store: {e}") from e

        logger.info(f"💾 Saved {len(params)} {kind}")


# =============================================================================
# LOCAL CACHE STORE
# =============================================================================

class LocalCacheStore(RecordStore):
    """
    Record store kept in a versioned JSON file.

    A missing or corrupt file (or a new cache version) is reseeded from the
    sample dataset; files of other versions are removed.
    """

    name = 'local cache'

    def __init__(
        self,
        cache_dir,
        version: int,
        sample_factory: Callable = build_sample_dataset
    ):
        self.cache_dir = Path(cache_dir)
        self.version = version
        self.sample_factory = sample_factory

    @property
    def cache_key(self) -> str:
        return f"{CACHE_KEY_PREFIX}_v{self.version}"

    @property
    def path(self) -> Path:
        return self.cache_dir / f"{self.cache_key}.json"

    def fetch_all(self) -> Payload:
        self._remove_stale_versions()

        if not self.path.exists():
            logger.info(f"🆕 No cache for {self.cache_key}, seeding sample data")
            return self._seed()

        try:
            data = json.loads(self.path.read_text(encoding='utf-8'))
        except json.JSONDecodeError:
            logger.warning(f"⚠️ Corrupt cache file {self.path}, seeding sample data")
            return self._seed()
        except OSError as e:
            raise StoreError(f"Cannot read cache file {self.path}: {e}") from e

        if not isinstance(data, dict):
            logger.warning(f"⚠️ Unexpected cache content in {self.path}, seeding sample data")
            return self._seed()

        return {kind: data.get(kind) or [] for kind in COLLECTION_KINDS}

    def replace_collection(self, kind: str, records: List[Dict[str, Any]]) -> None:
        _check_kind(kind)
        data = self.fetch_all()
        data[kind] = list(records)
        self._write(data)
        logger.info(f"💾 Cached {len(records)} {kind}")

    def reset(self) -> None:
        """Clear the cache; the next fetch reseeds the sample dataset."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot remove cache file {self.path}: {e}") from e
        logger.info(f"🔄 Cache {self.cache_key} cleared")

    def _seed(self) -> Payload:
        data = self.sample_factory().to_records()
        self._write(data)
        return data

    def _write(self, data: Payload) -> None:
        tmp_path = self.path.with_suffix('.json.tmp')
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, ensure_ascii=False), encoding='utf-8')
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StoreError(f"Cannot write cache file {self.path}: {e}") from e

    def _remove_stale_versions(self) -> None:
        if not self.cache_dir.exists():
            return
        for stale in self.cache_dir.glob(f"{CACHE_KEY_PREFIX}_v*.json"):
            if stale != self.path:
                logger.info(f"🧹 Removing stale cache {stale.name}")
                stale.unlink(missing_ok=True)


# =============================================================================
# FACTORY
# =============================================================================

def create_record_store(cfg=None) -> RecordStore:
    """
    Pick the record store strategy for this process.

    SQL store when a record-store database is configured, local cache
    otherwise.
    """
    if cfg is None:
        from utils.config import config as cfg

    if cfg.is_remote_configured():
        logger.info("🗄️ Using database record store")
        return SqlRecordStore()

    cache_dir = cfg.get_app_setting("LOCAL_CACHE_DIR")
    version = cfg.get_app_setting("CACHE_VERSION", 11)
    logger.info(f"📁 Using local cache store in {cache_dir}")
    return LocalCacheStore(cache_dir, version)


__all__ = [
    'StoreError',
    'MalformedResponseError',
    'parse_payload',
    'RecordStore',
    'SqlRecordStore',
    'LocalCacheStore',
    'create_record_store',
]
