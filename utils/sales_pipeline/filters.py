# utils/sales_pipeline/filters.py
"""
Scope & Period Filters for the Sales Pipeline Dashboard

Pure filtering functions:
- filter_by_scope(): individual / team / all reporting lens
- in_period() / filter_by_period(): month / quarter / year window
- default_selection(), list_teams(): sidebar defaults

Sidebar component:
- PipelineFilters.render_all_filters(): scope, selection and period widgets

Record dates are calendar dates and are compared as-is; "now" is taken
in the organization timezone from configuration.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, TypeVar
from zoneinfo import ZoneInfo

import streamlit as st

from .constants import (
    PERIOD_LABELS,
    PERIOD_MONTH,
    PERIOD_TYPES,
    PERIOD_YEAR,
    SCOPE_ALL,
    SCOPE_INDIVIDUAL,
    SCOPE_TEAM,
    SCOPE_TYPES,
)
from .models import Representative, parse_date

logger = logging.getLogger(__name__)

T = TypeVar('T')


# =============================================================================
# SCOPE FILTER
# =============================================================================

def filter_by_scope(
    records: Iterable[T],
    scope: str,
    selected_name: Optional[str] = None,
    selected_id: Optional[str] = None
) -> List[T]:
    """
    Keep the records attributable to a reporting scope.

    Args:
        records: Accounts or deals (anything with owner/team/owner_id)
        scope: 'individual', 'team' or 'all'
        selected_name: Representative name (individual) or team name (team)
        selected_id: Representative id (individual only); when both the
            selection and a record carry an id, the id decides

    Returns:
        New list, input order preserved. An empty selection yields an
        empty list for individual/team scope.

    Raises:
        ValueError: unknown scope. Scopes come from SCOPE_TYPES, so this is a
            caller bug, unlike in_period which passes unknown periods through.
    """
    records = list(records or [])

    if scope == SCOPE_ALL:
        return records

    if scope == SCOPE_INDIVIDUAL:
        if not selected_name and not selected_id:
            return []
        return [r for r in records if _owned_by(r, selected_name, selected_id)]

    if scope == SCOPE_TEAM:
        if not selected_name:
            return []
        return [r for r in records if r.team == selected_name]

    raise ValueError(f"Unknown scope: {scope!r}")


def _owned_by(record: Any, selected_name: Optional[str], selected_id: Optional[str]) -> bool:
    owner_id = getattr(record, 'owner_id', None)
    if selected_id and owner_id:
        return owner_id == selected_id
    return bool(selected_name) and record.owner == selected_name


def list_teams(representatives: Iterable[Representative]) -> List[str]:
    """Sorted distinct non-empty team names."""
    return sorted({r.team for r in representatives if r.team})


def default_selection(representatives: Sequence[Representative]) -> Dict[str, Optional[str]]:
    """First representative and first sorted team, used as sidebar defaults."""
    first = representatives[0] if representatives else None
    teams = list_teams(representatives)
    return {
        'rep_name': first.name if first else None,
        'rep_id': first.id if first else None,
        'team': teams[0] if teams else None,
    }


def resolve_owner_names(records: Iterable[T], representatives: Iterable[Representative]) -> List[T]:
    """Refresh the display owner from owner_id so renamed reps show their current name. Team stays as stored."""
    by_id = {r.id: r for r in representatives}
    resolved = []
    for record in records:
        rep = by_id.get(getattr(record, 'owner_id', None))
        if rep and record.owner != rep.name:
            record = replace(record, owner=rep.name)
        resolved.append(record)
    return resolved


# =============================================================================
# PERIOD FILTER
# =============================================================================

def reference_date(tz: Optional[str] = None) -> date:
    """Today in the organization timezone (configured TIMEZONE by default)."""
    if tz is None:
        from utils.config import config
        tz = config.get_app_setting("TIMEZONE", "Asia/Seoul")
    return datetime.now(ZoneInfo(tz)).date()


def in_period(value: Any, period: str, reference: date) -> bool:
    """
    Decide whether a date falls in the period window around `reference`.

    - month: same calendar month and year
    - quarter: same calendar quarter and year
    - year: same calendar year
    - anything else: True (pass-through default)
    """
    if period not in PERIOD_TYPES:
        return True

    if isinstance(reference, datetime):
        reference = reference.date()
    d = parse_date(value)

    if d.year != reference.year:
        return False
    if period == PERIOD_YEAR:
        return True
    if period == PERIOD_MONTH:
        return d.month == reference.month
    # PERIOD_QUARTER
    return (d.month - 1) // 3 == (reference.month - 1) // 3


def filter_by_period(deals: Iterable[T], period: str, reference: date) -> List[T]:
    """Keep the deals whose expected close date falls in the period."""
    return [d for d in deals if in_period(d.expected_close_date, period, reference)]


# =============================================================================
# SIDEBAR COMPONENT
# =============================================================================

@dataclass
class FilterValues:
    """Values selected in the sidebar."""
    scope: str
    selected_name: Optional[str]
    selected_id: Optional[str]
    period: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'scope': self.scope,
            'selected_name': self.selected_name,
            'selected_id': self.selected_id,
            'period': self.period,
            'period_label': PERIOD_LABELS.get(self.period, self.period),
        }


class PipelineFilters:
    """
    Sidebar filters for the pipeline dashboard.

    Usage:
        filters_ui = PipelineFilters(state.representatives)
        values = filters_ui.render_all_filters()
    """

    SCOPE_LABELS = {
        SCOPE_INDIVIDUAL: "👤 Individual",
        SCOPE_TEAM: "👥 Team",
        SCOPE_ALL: "🏢 All",
    }

    def __init__(self, representatives: Sequence[Representative]):
        self.representatives = list(representatives)
        self.defaults = default_selection(self.representatives)

    def render_all_filters(self) -> FilterValues:
        with st.sidebar:
            st.markdown("### 🔎 Filters")

            scope = st.radio(
                "Scope",
                options=SCOPE_TYPES,
                format_func=lambda s: self.SCOPE_LABELS[s],
                key="filter_scope",
                horizontal=True
            )

            selected_name, selected_id = self._render_selection(scope)

            period = st.radio(
                "Period",
                options=PERIOD_TYPES,
                index=PERIOD_TYPES.index(PERIOD_YEAR),
                format_func=lambda p: PERIOD_LABELS[p],
                key="filter_period",
                horizontal=True
            )

        return FilterValues(
            scope=scope,
            selected_name=selected_name,
            selected_id=selected_id,
            period=period,
        )

    def _render_selection(self, scope: str):
        if scope == SCOPE_INDIVIDUAL:
            if not self.representatives:
                st.info("No representatives yet")
                return None, None
            rep_ids = [r.id for r in self.representatives]
            rep = st.selectbox(
                "Representative",
                options=self.representatives,
                index=rep_ids.index(self.defaults["rep_id"]),
                format_func=lambda r: f"{r.name} ({r.team})" if r.team else r.name,
                key="filter_rep"
            )
            return rep.name, rep.id

        if scope == SCOPE_TEAM:
            teams = list_teams(self.representatives)
            if not teams:
                st.info("No teams yet")
                return None, None
            team = st.selectbox("Team", options=teams, index=teams.index(self.defaults["team"]), key="filter_team")
            return team, None

        return None, None
