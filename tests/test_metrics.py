from datetime import date

import pytest

from conftest import make_account, make_deal
from utils.sales_pipeline.metrics import (
    PipelineMetrics,
    achievement_ratio,
    allocate_target,
    build_dashboard,
    calculate_status_buckets,
)
from utils.sales_pipeline.models import Representative
from utils.sales_pipeline.state import PipelineState


def test_status_buckets_for_current_month(reference):
    deals = [
        make_deal('d1', 'a1', 'Sales', 100),
        make_deal('d2', 'a1', 'Confirmed', 200),
        make_deal('d3', 'a1', 'Expected', 300),
    ]

    overview = PipelineMetrics([], deals, 'month', reference).calculate_overview_metrics()

    assert overview['performance_amount'] == 100
    assert overview['confirmed_amount'] == 200
    assert overview['expected_amount'] == 300
    assert overview['undecided_amount'] == 0
    assert overview['deal_count'] == 3


def test_buckets_partition_the_total(deals):
    buckets = calculate_status_buckets(deals)

    parts = (
        buckets['performance_amount'] + buckets['confirmed_amount']
        + buckets['expected_amount'] + buckets['undecided_amount']
    )
    assert parts == buckets['total_amount'] == sum(d.value for d in deals)


@pytest.mark.parametrize('period, expected', [
    ('month', 100_000),
    ('quarter', 300_000),
    ('year', 1_200_000),
])
def test_allocate_target(period, expected):
    account = make_account('a1', target=1_200_000)

    assert allocate_target([account], period) == expected


def test_allocation_rounds_half_up_and_stays_consistent():
    account = make_account('a1', target=1_000_006)

    month = allocate_target([account], 'month')
    quarter = allocate_target([account], 'quarter')

    assert month == 83_334
    assert quarter == 250_002
    assert abs(month * 12 - 1_000_006) < 12
    assert abs(quarter * 4 - 1_000_006) < 4


def test_achievement_ratio_without_target_is_zero():
    assert achievement_ratio(500, 0) == 0.0
    assert achievement_ratio(50, 200) == 0.25


def test_overview_metrics(accounts, deals, reference):
    overview = PipelineMetrics(accounts, deals, 'year', reference).calculate_overview_metrics()

    assert overview['target_amount'] == 2_100_000
    assert overview['performance_amount'] == 600
    assert overview['pipeline_amount'] == 900
    assert overview['gap_amount'] == 2_100_000 - 600
    assert overview['account_count'] == 3
    assert overview['achievement_pct'] == 0.0


def test_grade_distribution_folds_unrated_into_d(reference):
    accounts = [
        make_account('a1', grade='Unrated', target=50),
        make_account('a2', grade='S', target=100),
    ]

    grades = PipelineMetrics(accounts, [], 'year', reference).prepare_grade_distribution()

    assert grades[['grade', 'target_amount']].values.tolist() == [['S', 100], ['D', 50]]
    assert grades['share'].sum() == pytest.approx(1.0)


def test_grade_distribution_ties_keep_grade_order(reference):
    accounts = [
        make_account('a1', grade='C', target=100),
        make_account('a2', grade='A', target=100),
        make_account('a3', grade='B', target=0),
    ]

    grades = PipelineMetrics(accounts, [], 'year', reference).prepare_grade_distribution()

    assert grades['grade'].tolist() == ['A', 'C']


def test_grade_distribution_empty(reference):
    grades = PipelineMetrics([], [], 'year', reference).prepare_grade_distribution()

    assert grades.empty
    assert list(grades.columns) == ['grade', 'target_amount', 'share']


def test_monthly_series_has_twelve_rows(deals, reference):
    monthly = PipelineMetrics([], deals, 'month', reference).prepare_monthly_series()

    assert len(monthly) == 12
    assert monthly['month'].tolist() == list(range(1, 13))
    may = monthly[monthly['month'] == 5].iloc[0]
    assert (may['Sales'], may['Confirmed'], may['Expected']) == (100, 200, 300)
    # Previous-year deal d6 is not counted
    assert monthly['Sales'].sum() == 600


def test_monthly_series_without_deals(reference):
    monthly = PipelineMetrics([], [], 'year', reference).prepare_monthly_series()

    assert len(monthly) == 12
    assert monthly[['Sales', 'Confirmed', 'Expected', 'Undecided']].to_numpy().sum() == 0


def test_aggregate_by_account_uses_period_deals(accounts, deals, reference):
    summary = PipelineMetrics(accounts, deals, 'month', reference).aggregate_by_account()

    by_id = summary.set_index('account_id')
    assert by_id.loc['a1', 'performance_amount'] == 100
    assert by_id.loc['a1', 'target_amount'] == 100_000
    assert by_id.loc['a2', 'expected_amount'] == 300
    assert by_id.loc['a3', 'total_amount'] == 0
    assert summary['account_id'].iloc[0] == 'a1'


def test_aggregate_by_stage_lists_every_stage(deals, reference):
    stages = PipelineMetrics([], deals, 'month', reference).aggregate_by_stage()

    assert stages['stage'].tolist() == ['Lead', 'Qualified', 'Proposal', 'Negotiation', 'Won', 'Lost']
    won = stages.set_index('stage').loc['Won']
    assert (won['deal_count'], won['total_value']) == (3, 1_200)


def test_aggregate_by_representative(accounts, deals, representatives, reference):
    summary = PipelineMetrics(accounts, deals, 'year', reference).aggregate_by_representative(representatives)

    by_rep = summary.set_index('rep_id')
    assert by_rep.loc['r2', 'performance_amount'] == 500
    assert by_rep.loc['r2', 'target_amount'] == 600_000
    assert by_rep.loc['r1', 'account_count'] == 1
    assert summary['rep_id'].iloc[0] == 'r2'


def test_build_dashboard_individual_scope(state, reference):
    dashboard = build_dashboard(state, 'individual', 'Alice', 'year', reference, selected_id='r1')

    assert [a.id for a in dashboard.accounts] == ['a1']
    assert [d.id for d in dashboard.period_deals] == ['d1', 'd2']
    assert dashboard.overview['target_amount'] == 1_200_000
    assert dashboard.by_representative['rep_id'].tolist() == ['r1']


def test_build_dashboard_team_scope(state, reference):
    dashboard = build_dashboard(state, 'team', 'Team A', 'quarter', reference)

    assert {a.id for a in dashboard.accounts} == {'a1', 'a2'}
    assert dashboard.overview['target_amount'] == 450_000
    assert set(dashboard.by_representative['rep_id']) == {'r1', 'r2'}


def test_build_dashboard_follows_renamed_representative(reference):
    account = make_account('a1', owner='Old Name', team='Team A', owner_id='r1', target=1_200)
    deal = make_deal('d1', 'a1', 'Sales', 100, owner='Old Name', team='Team A', owner_id='r1')
    rep = Representative(id='r1', name='New Name', email='new@test.com', team='Team A')
    state = PipelineState([account], [deal], [rep])

    dashboard = build_dashboard(state, 'individual', 'New Name', 'year', reference, selected_id='r1')

    assert dashboard.accounts[0].owner == 'New Name'
    assert dashboard.overview['performance_amount'] == 100


def test_build_dashboard_team_scope_uses_record_team(reference):
    account = make_account('a1', owner='Alice', team='Team B', owner_id='r1')
    deal = make_deal('d1', 'a1', 'Sales', 100, owner='Alice', team='Team B', owner_id='r1')
    rep = Representative(id='r1', name='Alice', email='alice@test.com', team='Team A')
    state = PipelineState([account], [deal], [rep])

    team_b = build_dashboard(state, 'team', 'Team B', 'month', reference)
    team_a = build_dashboard(state, 'team', 'Team A', 'month', reference)

    assert [a.id for a in team_b.accounts] == ['a1']
    assert team_b.overview['performance_amount'] == 100
    assert team_a.overview['performance_amount'] == 0


def test_build_dashboard_empty_state(reference):
    dashboard = build_dashboard(PipelineState(), 'all', None, 'month', date(2024, 1, 1))

    assert dashboard.overview['total_amount'] == 0
    assert dashboard.by_account.empty
    assert len(dashboard.monthly) == 12
