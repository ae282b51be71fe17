# utils/sales_pipeline/constants.py
"""
Constants for the Sales Pipeline Module

Centralized configuration for:
- Deal status buckets and pipeline stages
- Account grades and classifications
- Reporting scopes and periods
- Record store collection kinds
- Color schemes and chart settings
"""

# =====================================================================
# DEAL STATUS (KPI BUCKETS)
# =====================================================================

STATUS_SALES = 'Sales'            # realized revenue
STATUS_CONFIRMED = 'Confirmed'
STATUS_EXPECTED = 'Expected'
STATUS_UNDECIDED = 'Undecided'

DEAL_STATUSES = [STATUS_SALES, STATUS_CONFIRMED, STATUS_EXPECTED, STATUS_UNDECIDED]

# Labels written by the first generation of the spreadsheet backend
STATUS_ALIASES = {
    '매출': STATUS_SALES,
    '확정': STATUS_CONFIRMED,
    '예정': STATUS_EXPECTED,
    '미정': STATUS_UNDECIDED,
}

STATUS_BUCKET_KEYS = {
    STATUS_SALES: 'performance_amount',
    STATUS_CONFIRMED: 'confirmed_amount',
    STATUS_EXPECTED: 'expected_amount',
    STATUS_UNDECIDED: 'undecided_amount',
}

# Display-only default close probability per status
STATUS_PROBABILITY = {
    STATUS_SALES: 100,
    STATUS_CONFIRMED: 90,
    STATUS_EXPECTED: 60,
    STATUS_UNDECIDED: 20,
}

# =====================================================================
# PIPELINE STAGES (KANBAN)
# =====================================================================

STAGE_LEAD = 'Lead'
STAGE_QUALIFIED = 'Qualified'
STAGE_PROPOSAL = 'Proposal'
STAGE_NEGOTIATION = 'Negotiation'
STAGE_WON = 'Won'
STAGE_LOST = 'Lost'

DEAL_STAGES = [STAGE_LEAD, STAGE_QUALIFIED, STAGE_PROPOSAL, STAGE_NEGOTIATION, STAGE_WON, STAGE_LOST]

STAGE_ALIASES = {
    '가망 고객 (Lead)': STAGE_LEAD,
    '적격 단계 (Qualified)': STAGE_QUALIFIED,
    '제안 단계 (Proposal)': STAGE_PROPOSAL,
    '협상 단계 (Negotiation)': STAGE_NEGOTIATION,
    '계약 성사 (Closed Won)': STAGE_WON,
    '계약 실패 (Closed Lost)': STAGE_LOST,
    'Closed Won': STAGE_WON,
    'Closed Lost': STAGE_LOST,
}

# Stage is a projection of status
STATUS_STAGE_MAP = {
    STATUS_SALES: STAGE_WON,
    STATUS_CONFIRMED: STAGE_NEGOTIATION,
    STATUS_EXPECTED: STAGE_PROPOSAL,
    STATUS_UNDECIDED: STAGE_LEAD,
}

# =====================================================================
# ACCOUNTS
# =====================================================================

GRADE_UNRATED = 'Unrated'
ACCOUNT_GRADES = ['S', 'A', 'B', 'C', 'D', GRADE_UNRATED]

# Grades charted in the distribution; Unrated folds into D
CHART_GRADES = ['S', 'A', 'B', 'C', 'D']
UNRATED_FALLBACK_GRADE = 'D'

ACCOUNT_TYPES = ['Company', 'University', 'Institute', 'Association']
DEFAULT_ACCOUNT_TYPE = 'Company'

# =====================================================================
# REPRESENTATIVES
# =====================================================================

REP_ROLES = ['staff', 'manager', 'director']
DEFAULT_REP_ROLE = 'staff'

# =====================================================================
# SCOPES & PERIODS
# =====================================================================

SCOPE_INDIVIDUAL = 'individual'
SCOPE_TEAM = 'team'
SCOPE_ALL = 'all'

SCOPE_TYPES = [SCOPE_INDIVIDUAL, SCOPE_TEAM, SCOPE_ALL]

PERIOD_MONTH = 'month'
PERIOD_QUARTER = 'quarter'
PERIOD_YEAR = 'year'

PERIOD_TYPES = [PERIOD_MONTH, PERIOD_QUARTER, PERIOD_YEAR]

# Number of periods per year used by the target allocator
PERIODS_PER_YEAR = {
    PERIOD_MONTH: 12,
    PERIOD_QUARTER: 4,
    PERIOD_YEAR: 1,
}

PERIOD_LABELS = {
    PERIOD_MONTH: 'This Month',
    PERIOD_QUARTER: 'This Quarter',
    PERIOD_YEAR: 'Year to Date',
}

MONTH_ORDER = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"
]

# =====================================================================
# RECORD STORE
# =====================================================================

KIND_ACCOUNTS = 'accounts'
KIND_DEALS = 'deals'
KIND_REPRESENTATIVES = 'representatives'

# Save order matters: accounts, then deals, then representatives
COLLECTION_KINDS = [KIND_ACCOUNTS, KIND_DEALS, KIND_REPRESENTATIVES]

CACHE_KEY_PREFIX = 'pipeline_crm_data'

RECORD_TABLE = 'crm_records'

# =====================================================================
# SYNC
# =====================================================================

DEFAULT_SYNC_INTERVAL_SECONDS = 600  # 10 minutes

SESSION_KEY_STATE = 'pipeline_state'
SESSION_KEY_RECONCILER = 'pipeline_reconciler'

# =====================================================================
# COLOR SCHEME
# =====================================================================

STATUS_COLORS = {
    STATUS_SALES: "#10b981",
    STATUS_CONFIRMED: "#3b82f6",
    STATUS_EXPECTED: "#f59e0b",
    STATUS_UNDECIDED: "#94a3b8",
}

GRADE_COLORS = {
    'S': "#4f46e5",
    'A': "#10b981",
    'B': "#f59e0b",
    'C': "#f97316",
    'D': "#ef4444",
}

COLORS = {
    "target": "#d62728",
    "achievement_good": "#28a745",
    "achievement_bad": "#dc3545",
    "text_dark": "#333333",
    "text_light": "#666666",
    "grid": "#e0e0e0",
}

# =====================================================================
# CHART DIMENSIONS
# =====================================================================

CHART_WIDTH = 800
CHART_HEIGHT = 400

PIE_CHART_WIDTH = 400
PIE_CHART_HEIGHT = 300

# =====================================================================
# EXPORT SETTINGS
# =====================================================================

EXCEL_STYLES = {
    "header_fill_color": "1f77b4",
    "header_font_color": "FFFFFF",
    "currency_format": '#,##0',
    "percent_format": '0.0%',
    "date_format": 'YYYY-MM-DD',
}
