# utils/sales_pipeline/sync.py
"""
Sync Reconciler

Keeps the in-memory PipelineState in step with the record store:
- load(): initial load, sample dataset on an empty store
- background_refresh(): periodic, never replaces a non-empty local
  collection with an empty fetched one
- manual_refresh(confirmed): user-confirmed, replaces everything
- save(): accounts, deals, representatives written in order from one
  snapshot; the first failure stops the rest

Store calls run in worker threads (asyncio.to_thread); state is only
mutated on the event loop. Every operation takes a ticket from one
increasing counter, and a fetch that resolves after a newer operation
was applied is discarded.

Operations never raise: they return a SyncResult for the UI to show.
"""

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from .constants import COLLECTION_KINDS, DEFAULT_SYNC_INTERVAL_SECONDS
from .record_store import MalformedResponseError, RecordStore, StoreError, parse_payload
from .sample_data import build_sample_dataset
from .state import PipelineState

logger = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    IDLE = 'idle'
    LOADING = 'loading'
    LOADED = 'loaded'
    SAVING = 'saving'
    SAVED = 'saved'
    FAILED = 'failed'


# Outcomes reported in SyncResult.outcome
OUTCOME_LOADED = 'loaded'
OUTCOME_SAMPLE = 'sample'
OUTCOME_LAST_KNOWN_GOOD = 'last_known_good'
OUTCOME_REFRESHED = 'refreshed'
OUTCOME_UNCHANGED = 'unchanged'
OUTCOME_REPLACED = 'replaced'
OUTCOME_SAVED = 'saved'
OUTCOME_FAILED = 'failed'
OUTCOME_STALE = 'stale'
OUTCOME_CANCELLED = 'cancelled'

COLLECTION_KINDS_TUPLE = tuple(COLLECTION_KINDS)


@dataclass(frozen=True)
class SyncResult:
    """
    Result of one sync operation.

    Attributes:
        ok: True when the operation did what was asked
        outcome: One of the OUTCOME_* values
        message: Human-readable summary for the UI
        applied: Collection kinds replaced (fetch) or written (save)
    """
    ok: bool
    outcome: str
    message: str
    applied: Tuple[str, ...] = ()


class SyncReconciler:
    """
    Reconciles PipelineState with a RecordStore.

    Usage:
        reconciler = SyncReconciler(state, create_record_store())
        result = asyncio.run(reconciler.load())
        if not result.ok:
            st.error(result.message)
    """

    def __init__(
        self,
        state: PipelineState,
        store: RecordStore,
        sample_factory: Callable = build_sample_dataset,
        sync_interval: float = DEFAULT_SYNC_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.state = state
        self.store = store
        self.sample_factory = sample_factory
        self.sync_interval = sync_interval
        self._clock = clock

        self.load_status = SyncStatus.IDLE
        self.save_status = SyncStatus.IDLE
        self.last_error: Optional[str] = None
        self.last_attempt_at: Optional[float] = None

        self._tickets = itertools.count(1)
        self._applied_ticket = 0

    # =========================================================================
    # TICKETS
    # =========================================================================

    def _next_ticket(self) -> int:
        return next(self._tickets)

    def _is_stale(self, ticket: int) -> bool:
        return ticket < self._applied_ticket

    def _mark_applied(self, ticket: int) -> None:
        self._applied_ticket = max(self._applied_ticket, ticket)

    def _stale_result(self, ticket: int, operation: str) -> SyncResult:
        logger.info(f"⏭️ Discarding {operation} response #{ticket} (newer state #{self._applied_ticket} applied)")
        return SyncResult(False, OUTCOME_STALE, f"{operation} response superseded by newer changes")

    def _failed(self, message: str) -> SyncResult:
        self.last_error = message
        return SyncResult(False, OUTCOME_FAILED, message)

    async def _fetch(self):
        """Fetch and parse; unexpected store errors are reported as StoreError."""
        try:
            payload = await asyncio.to_thread(self.store.fetch_all)
        except (StoreError, MalformedResponseError):
            raise
        except Exception as e:
            raise StoreError(str(e)) from e
        return parse_payload(payload)

    # =========================================================================
    # LOAD
    # =========================================================================

    async def load(self) -> SyncResult:
        """
        Initial load.

        - empty store (no accounts and no deals): sample dataset
        - transport failure: state untouched
        - malformed payload: keep the current state, or the sample dataset
          when there is nothing to keep
        """
        ticket = self._next_ticket()
        self.load_status = SyncStatus.LOADING
        self.last_attempt_at = self._clock()

        try:
            accounts, deals, representatives = await self._fetch()
        except StoreError as e:
            self.load_status = SyncStatus.FAILED
            logger.error(f"❌ Initial load failed: {e}")
            return self._failed(f"Failed to load data: {e}")
        except MalformedResponseError as e:
            logger.error(f"❌ Malformed data from {self.store.name}: {e}")
            self.load_status = SyncStatus.LOADED
            if self._is_stale(ticket):
                return self._stale_result(ticket, "Load")
            self.last_error = str(e)
            if not self.state.is_empty:
                return SyncResult(False, OUTCOME_LAST_KNOWN_GOOD, "Stored data is unreadable; keeping current data")
            self._apply_sample()
            return SyncResult(False, OUTCOME_SAMPLE, "Stored data is unreadable; showing sample data",
                              COLLECTION_KINDS_TUPLE)

        if self._is_stale(ticket):
            self.load_status = SyncStatus.LOADED
            return self._stale_result(ticket, "Load")

        self._mark_applied(ticket)
        self.load_status = SyncStatus.LOADED
        self.last_error = None

        if not accounts and not deals:
            self._apply_sample()
            logger.info(f"🆕 {self.store.name} is empty, loaded sample data")
            return SyncResult(True, OUTCOME_SAMPLE, "No stored data yet; showing sample data",
                              COLLECTION_KINDS_TUPLE)

        self.state.replace_all(accounts, deals, representatives)
        logger.info(f"✅ Loaded {self.state!r} from {self.store.name}")
        return SyncResult(True, OUTCOME_LOADED, f"Loaded {len(accounts)} accounts and {len(deals)} deals",
                          COLLECTION_KINDS_TUPLE)

    def _apply_sample(self) -> None:
        sample = self.sample_factory()
        self.state.replace_all(sample.accounts, sample.deals, sample.representatives)

    # =========================================================================
    # REFRESH
    # =========================================================================

    async def background_refresh(self) -> SyncResult:
        """Periodic refresh; only non-empty fetched collections replace local ones."""
        ticket = self._next_ticket()
        self.last_attempt_at = self._clock()

        try:
            fetched = await self._fetch()
        except (StoreError, MalformedResponseError) as e:
            logger.error(f"❌ Auto-sync failed: {e}")
            return self._failed(f"Auto-sync failed: {e}")

        if self._is_stale(ticket):
            return self._stale_result(ticket, "Auto-sync")

        applied = []
        for kind, records in zip(COLLECTION_KINDS, fetched):
            if records:
                self.state.replace_collection(kind, records)
                applied.append(kind)

        self._mark_applied(ticket)
        self.last_error = None

        if not applied:
            logger.info("🔄 Auto-sync: store returned no records, local data kept")
            return SyncResult(True, OUTCOME_UNCHANGED, "Store is empty; local data kept")

        logger.info(f"🔄 Auto-sync refreshed {', '.join(applied)}")
        return SyncResult(True, OUTCOME_REFRESHED, f"Refreshed {', '.join(applied)}", tuple(applied))

    async def manual_refresh(self, confirmed: bool) -> SyncResult:
        """
        User-requested refresh that overwrites all local data.

        Args:
            confirmed: The user accepted the overwrite; nothing is fetched otherwise
        """
        if not confirmed:
            return SyncResult(False, OUTCOME_CANCELLED, "Refresh cancelled")

        ticket = self._next_ticket()
        self.load_status = SyncStatus.LOADING
        self.last_attempt_at = self._clock()

        try:
            accounts, deals, representatives = await self._fetch()
        except (StoreError, MalformedResponseError) as e:
            self.load_status = SyncStatus.FAILED
            logger.error(f"❌ Manual sync failed: {e}")
            return self._failed(f"Sync failed: {e}")

        if self._is_stale(ticket):
            self.load_status = SyncStatus.LOADED
            return self._stale_result(ticket, "Sync")

        self.state.replace_all(accounts, deals, representatives)
        self._mark_applied(ticket)
        self.load_status = SyncStatus.LOADED
        self.last_error = None

        logger.info(f"✅ Manual sync replaced local data: {self.state!r}")
        return SyncResult(True, OUTCOME_REPLACED, f"Synced with {self.store.name}", COLLECTION_KINDS_TUPLE)

    # =========================================================================
    # SAVE
    # =========================================================================

    async def save(self) -> SyncResult:
        """
        Write accounts, deals and representatives, in that order.

        The first failure stops the remaining writes; collections already
        written stay written. Saving again rewrites everything.
        """
        ticket = self._next_ticket()
        self.save_status = SyncStatus.SAVING

        snapshot = self.state.snapshot()
        written = []

        for kind in COLLECTION_KINDS:
            records = [record.to_record() for record in snapshot[kind]]
            try:
                await asyncio.to_thread(self.store.replace_collection, kind, records)
            except Exception as e:
                self.save_status = SyncStatus.FAILED
                done = ', '.join(written) if written else 'nothing'
                logger.error(f"❌ Save failed at {kind} (already written: {done}): {e}")
                self.last_error = str(e)
                return SyncResult(
                    False, OUTCOME_FAILED,
                    f"Saving {kind} failed (already saved: {done}): {e}",
                    tuple(written)
                )
            written.append(kind)

        self._mark_applied(ticket)
        self.save_status = SyncStatus.SAVED
        self.last_error = None

        logger.info(f"💾 Saved {self.state!r} to {self.store.name}")
        return SyncResult(True, OUTCOME_SAVED, f"Saved to {self.store.name}", tuple(written))

    async def reset_to_sample(self) -> SyncResult:
        """Replace local data with the sample dataset and clear a local cache."""
        reset = getattr(self.store, 'reset', None)
        if reset is not None:
            try:
                await asyncio.to_thread(reset)
            except StoreError as e:
                logger.error(f"❌ Cache reset failed: {e}")
                return self._failed(f"Reset failed: {e}")

        self._mark_applied(self._next_ticket())
        self._apply_sample()
        logger.info("🔄 Local data reset to sample dataset")
        return SyncResult(True, OUTCOME_SAMPLE, "Sample data restored", COLLECTION_KINDS_TUPLE)

    # =========================================================================
    # TIMER
    # =========================================================================

    def is_refresh_due(self, now: Optional[float] = None) -> bool:
        """True once sync_interval has passed since the last fetch attempt."""
        if self.last_attempt_at is None:
            return False
        now = self._clock() if now is None else now
        return now - self.last_attempt_at >= self.sync_interval

    async def maybe_refresh(self, now: Optional[float] = None) -> Optional[SyncResult]:
        """Run a background refresh if one is due (rerun-driven shells)."""
        if not self.is_refresh_due(now):
            return None
        return await self.background_refresh()

    async def run_periodic(self, stop_event: asyncio.Event, interval: Optional[float] = None) -> None:
        """Background refresh every `interval` seconds until stop_event is set."""
        interval = interval or self.sync_interval
        logger.info(f"⏱️ Auto-sync every {interval}s")

        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
                break
            except asyncio.TimeoutError:
                pass

            try:
                result = await self.background_refresh()
            except Exception as e:
                logger.exception(f"❌ Auto-sync crashed: {e}")
                continue
            if not result.ok:
                logger.warning(f"Auto-sync: {result.message}")

        logger.info("⏹️ Auto-sync stopped")


__all__ = [
    'SyncStatus',
    'SyncResult',
    'SyncReconciler',
]
