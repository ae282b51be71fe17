# utils/sales_pipeline/metrics.py
"""
KPI Calculations for the Sales Pipeline Dashboard

Handles all metric calculations:
- Target allocation to the reporting period (month/quarter/year)
- Status-bucketed sums (Sales / Confirmed / Expected / Undecided)
- Achievement ratio against the allocated target
- Chart series: 12-month status trend, grade distribution
- Summaries by account, by pipeline stage and by representative
- build_dashboard(): scope filter -> period filter -> allocator + aggregator

All functions are pure; callers recompute on every filter change.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .constants import (
    CHART_GRADES,
    DEAL_STAGES,
    DEAL_STATUSES,
    GRADE_UNRATED,
    MONTH_ORDER,
    PERIODS_PER_YEAR,
    SCOPE_INDIVIDUAL,
    STATUS_BUCKET_KEYS,
    UNRATED_FALLBACK_GRADE,
)
from .filters import filter_by_period, filter_by_scope, resolve_owner_names
from .models import Account, Deal, Representative

logger = logging.getLogger(__name__)


# =============================================================================
# TARGET ALLOCATION
# =============================================================================

def allocate_target(accounts: Iterable[Account], period: str) -> int:
    """
    Prorate the annual target of the given accounts to one period.

    Proration logic:
    - month: annual / 12
    - quarter: annual / 4
    - year (or unknown period): annual

    Accounts are scope-filtered only; targets are annual and carry no date.
    Rounds half away from zero with no remainder redistribution.
    """
    annual = sum(a.target_amount for a in accounts)
    divisor = PERIODS_PER_YEAR.get(period, 1)
    if divisor == 1:
        return annual
    allocated = (Decimal(annual) / Decimal(divisor)).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    return int(allocated)


# =============================================================================
# STATUS BUCKETS
# =============================================================================

def calculate_status_buckets(deals: Iterable[Deal]) -> Dict[str, int]:
    """
    Sum deal values per status bucket.

    Returns:
        Dict with performance_amount (Sales), confirmed_amount,
        expected_amount, undecided_amount, total_amount and deal_count.
        The four buckets always sum to total_amount.
    """
    buckets = {key: 0 for key in STATUS_BUCKET_KEYS.values()}
    total = 0
    count = 0

    for deal in deals:
        buckets[STATUS_BUCKET_KEYS[deal.status]] += deal.value
        total += deal.value
        count += 1

    buckets['total_amount'] = total
    buckets['deal_count'] = count
    return buckets


def achievement_ratio(performance: float, target: float) -> float:
    """performance / target, or 0.0 when there is no positive target."""
    if not target or target <= 0:
        return 0.0
    return performance / target


# =============================================================================
# METRICS CLASS
# =============================================================================

class PipelineMetrics:
    """
    KPI calculations for the pipeline dashboard.

    Usage:
        metrics = PipelineMetrics(accounts, deals, 'quarter', reference)

        overview = metrics.calculate_overview_metrics()
        monthly = metrics.prepare_monthly_series()
        grades = metrics.prepare_grade_distribution()
    """

    def __init__(
        self,
        accounts: Sequence[Account],
        deals: Sequence[Deal],
        period: str,
        reference: date
    ):
        """
        Initialize with data.

        Args:
            accounts: Scope-filtered accounts
            deals: Scope-filtered deals (not period-filtered)
            period: 'month', 'quarter' or 'year'
            reference: "Today" for the period window and monthly series
        """
        self.accounts = list(accounts)
        self.deals = list(deals)
        self.period = period
        self.reference = reference
        self.period_deals = filter_by_period(self.deals, period, reference)

    # =========================================================================
    # OVERVIEW METRICS
    # =========================================================================

    def calculate_overview_metrics(self) -> Dict:
        """
        Calculate overview KPIs for display in metric cards.

        Returns:
            Dict with target, status buckets, achievement and pipeline values
        """
        buckets = calculate_status_buckets(self.period_deals)
        target = allocate_target(self.accounts, self.period)

        performance = buckets['performance_amount']
        ratio = achievement_ratio(performance, target)
        pipeline = (
            buckets['confirmed_amount']
            + buckets['expected_amount']
            + buckets['undecided_amount']
        )

        return {
            # Target
            'target_amount': target,

            # Buckets
            **buckets,

            # Achievement
            'achievement_ratio': ratio,
            'achievement_pct': round(ratio * 100, 1),
            'pipeline_amount': pipeline,
            'gap_amount': max(target - performance, 0),

            # Counts
            'account_count': len(self.accounts),
        }

    # =========================================================================
    # MONTHLY SERIES
    # =========================================================================

    def prepare_monthly_series(self) -> pd.DataFrame:
        """
        12-month status trend for the reference year.

        Ignores the period selector; deals closing outside the reference
        year are excluded.

        Returns:
            DataFrame with month (1-12), month_label and one column per status
        """
        year = self.reference.year
        rows = [
            {'month': d.expected_close_date.month, 'status': d.status, 'value': d.value}
            for d in self.deals
            if d.expected_close_date.year == year
        ]

        if not rows:
            return self._get_empty_monthly_series()

        df = pd.DataFrame(rows)
        monthly = df.pivot_table(
            index='month', columns='status', values='value', aggfunc='sum', fill_value=0
        )

        # Ensure all months and statuses present
        monthly = monthly.reindex(index=range(1, 13), columns=DEAL_STATUSES, fill_value=0)
        monthly = monthly.fillna(0).astype(int)
        monthly.columns.name = None
        monthly = monthly.reset_index()
        monthly.insert(1, 'month_label', MONTH_ORDER)

        return monthly

    def _get_empty_monthly_series(self) -> pd.DataFrame:
        """Return empty monthly series with all months."""
        data = {'month': list(range(1, 13)), 'month_label': MONTH_ORDER}
        for status in DEAL_STATUSES:
            data[status] = [0] * 12
        return pd.DataFrame(data)

    # =========================================================================
    # GRADE DISTRIBUTION
    # =========================================================================

    def prepare_grade_distribution(self) -> pd.DataFrame:
        """
        Target amount per account grade.

        Unrated (or blank) accounts count toward D. Grades with a zero sum
        are dropped; rows are sorted by descending sum, ties in S..D order.

        Returns:
            DataFrame with grade, target_amount, share
        """
        sums = {grade: 0 for grade in CHART_GRADES}
        for account in self.accounts:
            grade = account.grade
            if not grade or grade == GRADE_UNRATED:
                grade = UNRATED_FALLBACK_GRADE
            sums[grade] += account.target_amount

        rows = [
            {'grade': grade, 'target_amount': amount, 'rank': CHART_GRADES.index(grade)}
            for grade, amount in sums.items()
            if amount > 0
        ]

        if not rows:
            return pd.DataFrame(columns=['grade', 'target_amount', 'share'])

        df = pd.DataFrame(rows)
        df = df.sort_values(['target_amount', 'rank'], ascending=[False, True])
        df = df.drop(columns='rank').reset_index(drop=True)
        df['share'] = df['target_amount'] / df['target_amount'].sum()

        return df

    # =========================================================================
    # AGGREGATE BY ACCOUNT
    # =========================================================================

    def aggregate_by_account(self) -> pd.DataFrame:
        """
        Per-account status sums for the detail table.

        Returns:
            DataFrame with one row per account, sorted by realized revenue
        """
        if not self.accounts:
            return pd.DataFrame()

        deals_by_account: Dict[str, List[Deal]] = {}
        for deal in self.period_deals:
            deals_by_account.setdefault(deal.contact_id, []).append(deal)

        rows = []
        for account in self.accounts:
            buckets = calculate_status_buckets(deals_by_account.get(account.id, []))
            target = allocate_target([account], self.period)
            rows.append({
                'account_id': account.id,
                'company': account.company,
                'contact_name': account.name,
                'type': account.type,
                'grade': account.grade,
                'owner': account.owner or '',
                'team': account.team or '',
                'target_amount': target,
                **buckets,
                'achievement_ratio': achievement_ratio(buckets['performance_amount'], target),
            })

        summary = pd.DataFrame(rows)
        summary = summary.sort_values(
            ['performance_amount', 'total_amount'], ascending=[False, False], kind='stable'
        ).reset_index(drop=True)

        return summary

    # =========================================================================
    # AGGREGATE BY STAGE (KANBAN)
    # =========================================================================

    def aggregate_by_stage(self) -> pd.DataFrame:
        """
        Kanban column totals over every scoped deal, in stage order.

        Returns:
            DataFrame with stage, deal_count, total_value
        """
        counts = {stage: 0 for stage in DEAL_STAGES}
        values = {stage: 0 for stage in DEAL_STAGES}

        for deal in self.deals:
            counts[deal.stage] += 1
            values[deal.stage] += deal.value

        return pd.DataFrame({
            'stage': DEAL_STAGES,
            'deal_count': [counts[s] for s in DEAL_STAGES],
            'total_value': [values[s] for s in DEAL_STAGES],
        })

    # =========================================================================
    # AGGREGATE BY REPRESENTATIVE
    # =========================================================================

    def aggregate_by_representative(self, representatives: Sequence[Representative]) -> pd.DataFrame:
        """
        Per-representative target vs performance for the period.

        Args:
            representatives: Representatives to report on

        Returns:
            DataFrame with one row per representative, sorted by achievement
        """
        if not representatives:
            return pd.DataFrame()

        rows = []
        for rep in representatives:
            rep_accounts = filter_by_scope(self.accounts, SCOPE_INDIVIDUAL, rep.name, rep.id)
            rep_deals = filter_by_scope(self.period_deals, SCOPE_INDIVIDUAL, rep.name, rep.id)

            target = allocate_target(rep_accounts, self.period)
            buckets = calculate_status_buckets(rep_deals)
            ratio = achievement_ratio(buckets['performance_amount'], target)

            rows.append({
                'rep_id': rep.id,
                'rep_name': rep.name,
                'team': rep.team,
                'role': rep.role,
                'account_count': len(rep_accounts),
                'target_amount': target,
                **buckets,
                'achievement_ratio': ratio,
                'achievement_pct': round(ratio * 100, 1),
            })

        summary = pd.DataFrame(rows)
        summary = summary.sort_values(
            ['achievement_ratio', 'performance_amount'], ascending=[False, False], kind='stable'
        ).reset_index(drop=True)

        return summary


# =============================================================================
# DASHBOARD COMPOSITION
# =============================================================================

@dataclass
class DashboardData:
    """Everything the dashboard page renders for one filter selection."""
    scope: str
    selected_name: Optional[str]
    period: str
    reference: date
    accounts: List[Account]
    deals: List[Deal]
    period_deals: List[Deal]
    overview: Dict
    monthly: pd.DataFrame
    grade_distribution: pd.DataFrame
    by_account: pd.DataFrame
    by_stage: pd.DataFrame
    by_representative: pd.DataFrame = field(default_factory=pd.DataFrame)


def build_dashboard(
    state,
    scope: str,
    selected_name: Optional[str],
    period: str,
    reference: date,
    selected_id: Optional[str] = None
) -> DashboardData:
    """
    Compose scope filter -> period filter -> allocator + aggregator.

    Args:
        state: PipelineState (or anything with accounts/deals/representatives)
        scope: 'individual', 'team' or 'all'
        selected_name: Representative or team name for the scope
        period: 'month', 'quarter' or 'year'
        reference: "Today" in the organization timezone
        selected_id: Representative id (individual scope)
    """
    # Display owner follows the current representative record
    all_accounts = resolve_owner_names(state.accounts, state.representatives)
    all_deals = resolve_owner_names(state.deals, state.representatives)

    accounts = filter_by_scope(all_accounts, scope, selected_name, selected_id)
    deals = filter_by_scope(all_deals, scope, selected_name, selected_id)

    metrics = PipelineMetrics(accounts, deals, period, reference)

    if scope == SCOPE_INDIVIDUAL:
        representatives = [
            r for r in state.representatives
            if r.id == selected_id or (not selected_id and r.name == selected_name)
        ]
    else:
        representatives = filter_by_scope(state.representatives, scope, selected_name)

    overview = metrics.calculate_overview_metrics()
    logger.debug(
        f"Dashboard {scope}/{selected_name or '-'}/{period}: "
        f"{overview['deal_count']} deals, achievement {overview['achievement_pct']}%"
    )

    return DashboardData(
        scope=scope,
        selected_name=selected_name,
        period=period,
        reference=reference,
        accounts=accounts,
        deals=deals,
        period_deals=metrics.period_deals,
        overview=overview,
        monthly=metrics.prepare_monthly_series(),
        grade_distribution=metrics.prepare_grade_distribution(),
        by_account=metrics.aggregate_by_account(),
        by_stage=metrics.aggregate_by_stage(),
        by_representative=metrics.aggregate_by_representative(representatives),
    )


__all__ = [
    'allocate_target',
    'calculate_status_buckets',
    'achievement_ratio',
    'PipelineMetrics',
    'DashboardData',
    'build_dashboard',
]
