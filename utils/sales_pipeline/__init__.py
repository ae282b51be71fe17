# utils/sales_pipeline/__init__.py
"""
Sales Pipeline Module

Records, metrics and synchronization for the sales pipeline tracker.

Components:
- models: Account / Deal / Representative records and validation
- filters: Scope and period filters, sidebar filter component
- metrics: Target allocation, status buckets, chart series
- state: In-memory working copy of the three collections
- record_store: SQL and local-cache record stores
- sync: Load / refresh / save reconciliation
- notifier, narrative, reports: Weekly report delivery
- charts: Altair visualizations
- export: Formatted Excel report generation

Usage:
    from utils.sales_pipeline import (
        PipelineState,
        SyncReconciler,
        build_dashboard,
        PipelineCharts,
        PipelineExport,
    )
"""

from .models import (
    Account,
    Deal,
    Representative,
    PipelineError,
    ValidationError,
    generate_id,
)
from .filters import (
    filter_by_scope,
    filter_by_period,
    in_period,
    reference_date,
    default_selection,
    list_teams,
    PipelineFilters,
    FilterValues,
)
from .metrics import (
    allocate_target,
    calculate_status_buckets,
    achievement_ratio,
    PipelineMetrics,
    DashboardData,
    build_dashboard,
)
from .state import PipelineState
from .record_store import (
    RecordStore,
    SqlRecordStore,
    LocalCacheStore,
    StoreError,
    MalformedResponseError,
    create_record_store,
    parse_payload,
)
from .sync import SyncReconciler, SyncResult, SyncStatus
from .sample_data import build_sample_dataset
from .notifier import EmailNotifier, LogNotifier, create_notifier
from .narrative import NarrativeGenerator, NARRATIVE_MISSING_KEY, create_narrative_generator
from .reports import WeeklyReportService
from .charts import PipelineCharts
from .export import PipelineExport

# Constants
from .constants import (
    DEAL_STATUSES,
    DEAL_STAGES,
    ACCOUNT_GRADES,
    ACCOUNT_TYPES,
    REP_ROLES,
    SCOPE_TYPES,
    PERIOD_TYPES,
    PERIOD_LABELS,
    MONTH_ORDER,
)

__all__ = [
    # Records
    'Account',
    'Deal',
    'Representative',
    'PipelineError',
    'ValidationError',
    'generate_id',

    # Filters
    'filter_by_scope',
    'filter_by_period',
    'in_period',
    'reference_date',
    'default_selection',
    'list_teams',
    'PipelineFilters',
    'FilterValues',

    # Metrics
    'allocate_target',
    'calculate_status_buckets',
    'achievement_ratio',
    'PipelineMetrics',
    'DashboardData',
    'build_dashboard',

    # State & sync
    'PipelineState',
    'RecordStore',
    'SqlRecordStore',
    'LocalCacheStore',
    'StoreError',
    'MalformedResponseError',
    'create_record_store',
    'parse_payload',
    'SyncReconciler',
    'SyncResult',
    'SyncStatus',
    'build_sample_dataset',

    # Reporting
    'EmailNotifier',
    'LogNotifier',
    'create_notifier',
    'NarrativeGenerator',
    'NARRATIVE_MISSING_KEY',
    'create_narrative_generator',
    'WeeklyReportService',
    'PipelineCharts',
    'PipelineExport',

    # Constants
    'DEAL_STATUSES',
    'DEAL_STAGES',
    'ACCOUNT_GRADES',
    'ACCOUNT_TYPES',
    'REP_ROLES',
    'SCOPE_TYPES',
    'PERIOD_TYPES',
    'PERIOD_LABELS',
    'MONTH_ORDER',
]

__version__ = '1.0.0'
