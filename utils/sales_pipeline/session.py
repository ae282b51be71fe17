# utils/sales_pipeline/session.py
"""
Streamlit session wiring.

One PipelineState and SyncReconciler per browser session, kept in
st.session_state. The first run loads from the record store; later
reruns trigger the background refresh once the sync interval elapsed.
"""

import asyncio
import logging
from typing import Optional, Tuple

import streamlit as st

from .constants import DEFAULT_SYNC_INTERVAL_SECONDS, SESSION_KEY_RECONCILER, SESSION_KEY_STATE
from .record_store import create_record_store
from .state import PipelineState
from .sync import OUTCOME_CANCELLED, OUTCOME_STALE, OUTCOME_UNCHANGED, SyncReconciler, SyncResult

logger = logging.getLogger(__name__)

SESSION_KEY_CURRENT_USER = 'pipeline_current_user'


def run_sync(coro):
    """Run a reconciler coroutine from Streamlit's synchronous script."""
    return asyncio.run(coro)


def get_pipeline_session() -> Tuple[PipelineState, SyncReconciler, Optional[SyncResult]]:
    """
    Return the session's state and reconciler.

    Returns:
        (state, reconciler, result) where result is the load or
        background-refresh result of this rerun, or None
    """
    reconciler: Optional[SyncReconciler] = st.session_state.get(SESSION_KEY_RECONCILER)

    if reconciler is None:
        from utils.config import config

        state = PipelineState()
        reconciler = SyncReconciler(
            state,
            create_record_store(config),
            sync_interval=config.get_app_setting("SYNC_INTERVAL_SECONDS", DEFAULT_SYNC_INTERVAL_SECONDS),
        )

        with st.spinner("Loading data..."):
            result = run_sync(reconciler.load())

        st.session_state[SESSION_KEY_STATE] = state
        st.session_state[SESSION_KEY_RECONCILER] = reconciler
        return state, reconciler, result

    result = run_sync(reconciler.maybe_refresh())
    return reconciler.state, reconciler, result


def get_current_user(state: PipelineState):
    """Representative acting as the current user (weekly report recipient)."""
    rep_id = st.session_state.get(SESSION_KEY_CURRENT_USER)
    rep = next((r for r in state.representatives if r.id == rep_id), None)
    if rep is None and state.representatives:
        rep = state.representatives[0]
        st.session_state[SESSION_KEY_CURRENT_USER] = rep.id
    return rep


def set_current_user(rep_id: str) -> None:
    st.session_state[SESSION_KEY_CURRENT_USER] = rep_id


def show_sync_result(result: Optional[SyncResult], quiet: bool = False) -> None:
    """
    Show a sync result in the page.

    Args:
        quiet: Only surface problems (used for background refreshes)
    """
    if result is None or result.outcome in (OUTCOME_CANCELLED, OUTCOME_STALE):
        return

    if result.ok:
        if not quiet and result.outcome != OUTCOME_UNCHANGED:
            st.success(f"✅ {result.message}")
    elif result.applied:
        st.warning(f"⚠️ {result.message}")
    else:
        st.error(f"❌ {result.message}")
