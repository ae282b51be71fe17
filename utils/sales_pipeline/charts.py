# utils/sales_pipeline/charts.py
"""
Altair Chart Builders for the Sales Pipeline Dashboard

All visualization components using Altair:
- KPI summary cards (using st.metric)
- Monthly status trend (stacked bars)
- Target distribution by account grade (donut)
- Pipeline stage summary (kanban totals)
- Achievement by representative
"""

import logging
from typing import Dict

import altair as alt
import pandas as pd
import streamlit as st

from .constants import (
    CHART_GRADES,
    CHART_HEIGHT,
    CHART_WIDTH,
    COLORS,
    DEAL_STAGES,
    DEAL_STATUSES,
    GRADE_COLORS,
    MONTH_ORDER,
    PIE_CHART_HEIGHT,
    PIE_CHART_WIDTH,
    STATUS_COLORS,
)

logger = logging.getLogger(__name__)


def format_won(amount: float) -> str:
    """₩ amount with thousands separators."""
    return f"₩{amount:,.0f}"


class PipelineCharts:
    """
    Chart builders for the pipeline dashboard.

    All methods are static - can be called without instantiation.

    Usage:
        PipelineCharts.render_kpi_cards(dashboard.overview)
        chart = PipelineCharts.build_monthly_status_chart(dashboard.monthly)
        st.altair_chart(chart, use_container_width=True)
    """

    # =========================================================================
    # KPI CARDS (Using st.metric)
    # =========================================================================

    @staticmethod
    def render_kpi_cards(metrics: Dict, period_label: str = ""):
        """
        Render KPI summary cards.

        Layout:
        - 🎯 PERFORMANCE: Target, Sales, Achievement, Gap
        - 📦 PIPELINE: Confirmed, Expected, Undecided, Total pipeline
        """
        with st.container(border=True):
            st.markdown(f"**🎯 PERFORMANCE** {period_label}")

            col1, col2, col3, col4 = st.columns(4)
            with col1:
                st.metric(
                    label="Target",
                    value=format_won(metrics['target_amount']),
                    help="Annual account targets prorated to the period"
                )
            with col2:
                st.metric(
                    label="Sales",
                    value=format_won(metrics['performance_amount']),
                    help="Realized revenue: deals with status Sales"
                )
            with col3:
                st.metric(
                    label="Achievement",
                    value=f"{metrics['achievement_pct']:.1f}%",
                    help="Sales / Target"
                )
            with col4:
                st.metric(
                    label="Gap to Target",
                    value=format_won(metrics['gap_amount']),
                )

        with st.container(border=True):
            st.markdown("**📦 PIPELINE**")

            col1, col2, col3, col4 = st.columns(4)
            with col1:
                st.metric("Confirmed", format_won(metrics['confirmed_amount']))
            with col2:
                st.metric("Expected", format_won(metrics['expected_amount']))
            with col3:
                st.metric("Undecided", format_won(metrics['undecided_amount']))
            with col4:
                st.metric(
                    label="Open Pipeline",
                    value=format_won(metrics['pipeline_amount']),
                    help=f"{metrics['deal_count']} deals in period"
                )

    # =========================================================================
    # MONTHLY STATUS TREND
    # =========================================================================

    @staticmethod
    def build_monthly_status_chart(
        monthly_df: pd.DataFrame,
        title: str = "📊 Monthly Pipeline by Status"
    ) -> alt.Chart:
        """
        Stacked monthly bars, one segment per status.

        Args:
            monthly_df: Output of PipelineMetrics.prepare_monthly_series()
        """
        if monthly_df.empty:
            return PipelineCharts._empty_chart("No data available")

        bar_data = monthly_df.melt(
            id_vars=['month_label'],
            value_vars=DEAL_STATUSES,
            var_name='Status',
            value_name='Amount'
        )

        color_scale = alt.Scale(
            domain=DEAL_STATUSES,
            range=[STATUS_COLORS[s] for s in DEAL_STATUSES]
        )

        chart = alt.Chart(bar_data).mark_bar().encode(
            x=alt.X('month_label:N', sort=MONTH_ORDER, title='Month'),
            y=alt.Y('Amount:Q', title='Amount (KRW)', stack='zero', axis=alt.Axis(format='~s')),
            color=alt.Color('Status:N', scale=color_scale, sort=DEAL_STATUSES,
                            legend=alt.Legend(orient='bottom')),
            order=alt.Order('status_rank:Q'),
            tooltip=[
                alt.Tooltip('month_label:N', title='Month'),
                alt.Tooltip('Status:N', title='Status'),
                alt.Tooltip('Amount:Q', title='Amount', format=',.0f')
            ]
        ).transform_calculate(
            status_rank=f"indexof({DEAL_STATUSES!r}, datum.Status)"
        ).properties(
            width=CHART_WIDTH,
            height=CHART_HEIGHT,
            title=title
        )

        return chart

    # =========================================================================
    # GRADE DISTRIBUTION
    # =========================================================================

    @staticmethod
    def build_grade_distribution_chart(
        grade_df: pd.DataFrame,
        title: str = "🏷️ Target by Account Grade"
    ) -> alt.Chart:
        """
        Donut chart of target amount per grade.

        Args:
            grade_df: Output of PipelineMetrics.prepare_grade_distribution()
        """
        if grade_df.empty:
            return PipelineCharts._empty_chart("No targets set")

        color_scale = alt.Scale(
            domain=CHART_GRADES,
            range=[GRADE_COLORS[g] for g in CHART_GRADES]
        )

        chart = alt.Chart(grade_df).mark_arc(innerRadius=60).encode(
            theta=alt.Theta('target_amount:Q'),
            color=alt.Color('grade:N', scale=color_scale, title='Grade'),
            tooltip=[
                alt.Tooltip('grade:N', title='Grade'),
                alt.Tooltip('target_amount:Q', title='Target', format=',.0f'),
                alt.Tooltip('share:Q', title='Share', format='.1%')
            ]
        ).properties(
            width=PIE_CHART_WIDTH,
            height=PIE_CHART_HEIGHT,
            title=title
        )

        return chart

    # =========================================================================
    # STAGE SUMMARY (KANBAN)
    # =========================================================================

    @staticmethod
    def build_stage_chart(
        stage_df: pd.DataFrame,
        title: str = "🗂️ Deals by Stage"
    ) -> alt.Chart:
        """Horizontal bars of deal value per pipeline stage."""
        if stage_df.empty or stage_df['deal_count'].sum() == 0:
            return PipelineCharts._empty_chart("No deals")

        bars = alt.Chart(stage_df).mark_bar(color=COLORS['achievement_good']).encode(
            y=alt.Y('stage:N', sort=DEAL_STAGES, title=''),
            x=alt.X('total_value:Q', title='Value (KRW)', axis=alt.Axis(format='~s')),
            tooltip=[
                alt.Tooltip('stage:N', title='Stage'),
                alt.Tooltip('deal_count:Q', title='Deals'),
                alt.Tooltip('total_value:Q', title='Value', format=',.0f')
            ]
        )

        text = alt.Chart(stage_df).mark_text(align='left', dx=5, fontSize=11).encode(
            y=alt.Y('stage:N', sort=DEAL_STAGES),
            x=alt.X('total_value:Q'),
            text=alt.Text('deal_count:Q'),
            color=alt.value(COLORS['text_dark'])
        )

        return alt.layer(bars, text).properties(
            width=CHART_WIDTH,
            height=max(200, len(stage_df) * 35),
            title=title
        )

    # =========================================================================
    # ACHIEVEMENT CHART (Actual vs Target)
    # =========================================================================

    @staticmethod
    def build_achievement_chart(
        rep_df: pd.DataFrame,
        title: str = "🎯 Achievement by Representative"
    ) -> alt.Chart:
        """
        Horizontal bars of realized revenue per representative, green at or
        above target.

        Args:
            rep_df: Output of PipelineMetrics.aggregate_by_representative()
        """
        if rep_df.empty:
            return PipelineCharts._empty_chart("No data available")

        df = rep_df.copy()
        df['color_flag'] = df['achievement_ratio'] >= 1

        bars = alt.Chart(df).mark_bar().encode(
            y=alt.Y('rep_name:N', sort='-x', title=''),
            x=alt.X('performance_amount:Q', title='Sales (KRW)', axis=alt.Axis(format='~s')),
            color=alt.condition(
                alt.datum.color_flag,
                alt.value(COLORS['achievement_good']),
                alt.value(COLORS['achievement_bad'])
            ),
            tooltip=[
                alt.Tooltip('rep_name:N', title='Representative'),
                alt.Tooltip('performance_amount:Q', title='Sales', format=',.0f'),
                alt.Tooltip('target_amount:Q', title='Target', format=',.0f'),
                alt.Tooltip('achievement_pct:Q', title='Achievement %', format='.1f')
            ]
        )

        text = alt.Chart(df).mark_text(align='left', dx=5, fontSize=11).encode(
            y=alt.Y('rep_name:N', sort='-x'),
            x=alt.X('performance_amount:Q'),
            text=alt.Text('achievement_pct:Q', format='.0f'),
            color=alt.value(COLORS['text_dark'])
        )

        return alt.layer(bars, text).properties(
            width=CHART_WIDTH,
            height=max(300, len(df) * 30),
            title=title
        )

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    @staticmethod
    def _empty_chart(message: str = "No data available") -> alt.Chart:
        """Create an empty chart with a message."""
        return alt.Chart(pd.DataFrame({'note': [message]})).mark_text(
            text=message,
            fontSize=16,
            color=COLORS['text_light']
        ).properties(
            width=CHART_WIDTH,
            height=200
        )
