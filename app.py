# app.py
"""
Sales Pipeline Dashboard - Main Entry Point

Target vs actual revenue by scope (individual / team / all) and period
(month / quarter / year), with record store sync, weekly report and
Excel export.

Version: 3.0.0
"""

import logging
from datetime import datetime

import streamlit as st

from utils.config import config
from utils.sales_pipeline import (
    PERIOD_LABELS,
    PipelineCharts,
    PipelineExport,
    PipelineFilters,
    WeeklyReportService,
    build_dashboard,
    create_narrative_generator,
    create_notifier,
    reference_date,
)
from utils.sales_pipeline.session import (
    get_current_user,
    get_pipeline_session,
    run_sync,
    set_current_user,
    show_sync_result,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ==================== PAGE CONFIGURATION ====================

APP_NAME = "Sales Pipeline"
APP_ICON = "📈"
APP_VERSION = "3.0.0"

st.set_page_config(
    page_title=APP_NAME,
    page_icon=APP_ICON,
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
<style>
    .main-header {
        font-size: 2.2rem;
        font-weight: bold;
        margin-bottom: 0.25rem;
        color: #4f46e5;
    }
    .sub-header {
        font-size: 1rem;
        color: #666;
        margin-bottom: 1.5rem;
    }
</style>
""", unsafe_allow_html=True)

# ==================== SESSION ====================

state, reconciler, load_result = get_pipeline_session()
show_sync_result(load_result, quiet=True)

# ==================== SIDEBAR: DATA ====================

def render_data_sidebar():
    """Current user, save / sync buttons and weekly report."""
    with st.sidebar:
        st.markdown(f"### {APP_ICON} {APP_NAME}")

        current = get_current_user(state)
        if state.representatives:
            reps = list(state.representatives)
            index = reps.index(current) if current in reps else 0
            selected = st.selectbox(
                "Current user",
                options=reps,
                index=index,
                format_func=lambda r: f"{r.name} ({r.role})",
                key="current_user_select"
            )
            set_current_user(selected.id)
            current = selected

        st.caption(
            f"Store: {reconciler.store.name} | "
            f"load: {reconciler.load_status.value} | save: {reconciler.save_status.value}"
        )

        col1, col2 = st.columns(2)
        with col1:
            if st.button("💾 Save", use_container_width=True):
                with st.spinner("Saving..."):
                    show_sync_result(run_sync(reconciler.save()))
        with col2:
            sync_clicked = st.button("🔄 Sync", use_container_width=True)

        confirm = st.checkbox(
            "Overwrite local changes on sync",
            key="confirm_manual_sync",
            help="Sync replaces everything on screen with the stored data"
        )
        if sync_clicked:
            if not confirm:
                st.warning("Tick the overwrite box to confirm the sync")
            else:
                with st.spinner("Syncing..."):
                    show_sync_result(run_sync(reconciler.manual_refresh(confirmed=True)))

        if st.button("📨 Send weekly report", use_container_width=True, disabled=current is None):
            service = WeeklyReportService(create_notifier(config), create_narrative_generator(config))
            with st.spinner("Generating report..."):
                ok, message = service.send(state, current.email, reference_date())
            if ok:
                st.success(f"✅ {message}")
            else:
                st.error(f"❌ {message}")

        st.markdown("---")


render_data_sidebar()

# ==================== FILTERS ====================

filter_values = PipelineFilters(state.representatives).render_all_filters()

dashboard = build_dashboard(
    state,
    scope=filter_values.scope,
    selected_name=filter_values.selected_name,
    period=filter_values.period,
    reference=reference_date(),
    selected_id=filter_values.selected_id,
)

# ==================== HEADER ====================

st.markdown(f'<p class="main-header">{APP_ICON} {APP_NAME}</p>', unsafe_allow_html=True)
scope_label = filter_values.selected_name or "All"
st.markdown(
    f'<p class="sub-header">{scope_label} · {PERIOD_LABELS[filter_values.period]} '
    f'(as of {dashboard.reference.isoformat()})</p>',
    unsafe_allow_html=True
)

# ==================== KPI CARDS ====================

PipelineCharts.render_kpi_cards(dashboard.overview, PERIOD_LABELS[filter_values.period])

# ==================== CHARTS ====================

col1, col2 = st.columns([2, 1])
with col1:
    st.altair_chart(PipelineCharts.build_monthly_status_chart(dashboard.monthly), use_container_width=True)
with col2:
    st.altair_chart(
        PipelineCharts.build_grade_distribution_chart(dashboard.grade_distribution),
        use_container_width=True
    )

col1, col2 = st.columns(2)
with col1:
    st.altair_chart(PipelineCharts.build_stage_chart(dashboard.by_stage), use_container_width=True)
with col2:
    st.altair_chart(
        PipelineCharts.build_achievement_chart(dashboard.by_representative),
        use_container_width=True
    )

# ==================== DETAIL TABLE ====================

st.markdown("### 🏢 Accounts")
if dashboard.by_account.empty:
    st.info("No accounts in this scope")
else:
    st.dataframe(
        dashboard.by_account.drop(columns=['account_id']),
        use_container_width=True,
        hide_index=True
    )

# ==================== EXPORT ====================

excel_bytes = PipelineExport().create_report(dashboard, filter_values.to_dict())
st.download_button(
    label="📥 Download Excel Report",
    data=excel_bytes,
    file_name=f"sales_pipeline_{datetime.now():%Y%m%d}.xlsx",
    mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
)

st.caption(f"{APP_NAME} v{APP_VERSION}")
