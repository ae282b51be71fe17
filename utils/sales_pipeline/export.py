# utils/sales_pipeline/export.py
"""
Formatted Excel Export for the Sales Pipeline Dashboard

Creates Excel reports with:
- Cover sheet with KPI summary and filter settings
- Monthly status breakdown
- Target distribution by grade
- Account and representative summaries with conditional formatting
- Deal list for the period

Uses openpyxl for formatting capabilities.
"""

import logging
from datetime import datetime
from io import BytesIO
from typing import Dict, List, Tuple

import pandas as pd
from openpyxl import Workbook
from openpyxl.formatting.rule import ColorScaleRule
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .constants import DEAL_STATUSES, EXCEL_STYLES, PERIOD_LABELS

logger = logging.getLogger(__name__)

# (column, header, width)
Column = Tuple[str, str, int]

MONTHLY_COLUMNS: List[Column] = (
    [('month_label', 'Month', 10)]
    + [(status, status, 16) for status in DEAL_STATUSES]
)

GRADE_COLUMNS: List[Column] = [
    ('grade', 'Grade', 10),
    ('target_amount', 'Target (KRW)', 18),
    ('share', 'Share', 10),
]

ACCOUNT_COLUMNS: List[Column] = [
    ('company', 'Account', 28),
    ('contact_name', 'Contact', 16),
    ('grade', 'Grade', 8),
    ('owner', 'Owner', 16),
    ('team', 'Team', 16),
    ('target_amount', 'Target (KRW)', 16),
    ('performance_amount', 'Sales (KRW)', 16),
    ('confirmed_amount', 'Confirmed (KRW)', 16),
    ('expected_amount', 'Expected (KRW)', 16),
    ('undecided_amount', 'Undecided (KRW)', 16),
    ('achievement_ratio', 'Achievement', 12),
]

REP_COLUMNS: List[Column] = [
    ('rep_name', 'Representative', 20),
    ('team', 'Team', 16),
    ('account_count', 'Accounts', 10),
    ('target_amount', 'Target (KRW)', 16),
    ('performance_amount', 'Sales (KRW)', 16),
    ('total_amount', 'Pipeline Total (KRW)', 18),
    ('achievement_ratio', 'Achievement', 12),
]

CURRENCY_COLUMNS = {
    'target_amount', 'performance_amount', 'confirmed_amount', 'expected_amount',
    'undecided_amount', 'total_amount', 'value', *DEAL_STATUSES,
}
PERCENT_COLUMNS = {'share', 'achievement_ratio'}


def _cell_value(value):
    """numpy scalars to plain Python for openpyxl."""
    if hasattr(value, 'item'):
        return value.item()
    return value


class PipelineExport:
    """
    Excel report generator for the pipeline dashboard.

    Usage:
        exporter = PipelineExport()
        excel_bytes = exporter.create_report(dashboard, filters.to_dict())

        st.download_button(
            label="Download Report",
            data=excel_bytes,
            file_name="sales_pipeline.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
    """

    def __init__(self):
        self.wb = None
        self._init_styles()

    def _init_styles(self):
        self.header_fill = PatternFill(
            start_color=EXCEL_STYLES['header_fill_color'],
            end_color=EXCEL_STYLES['header_fill_color'],
            fill_type='solid'
        )
        self.header_font = Font(bold=True, color=EXCEL_STYLES['header_font_color'], size=11)
        self.title_font = Font(bold=True, size=16)
        self.subtitle_font = Font(bold=True, size=12)

        thin_border = Side(style='thin', color='000000')
        self.cell_border = Border(left=thin_border, right=thin_border, top=thin_border, bottom=thin_border)

        self.center_align = Alignment(horizontal='center', vertical='center')
        self.right_align = Alignment(horizontal='right', vertical='center')

        self.currency_format = EXCEL_STYLES['currency_format']
        self.percent_format = EXCEL_STYLES['percent_format']
        self.date_format = EXCEL_STYLES['date_format']

    # =========================================================================
    # MAIN EXPORT METHOD
    # =========================================================================

    def create_report(self, dashboard, filters: Dict) -> BytesIO:
        """
        Create formatted Excel report with multiple sheets.

        Args:
            dashboard: DashboardData from build_dashboard()
            filters: FilterValues.to_dict()

        Returns:
            BytesIO containing Excel file
        """
        self.wb = Workbook()

        self._create_cover_sheet(dashboard.overview, filters, dashboard.reference)
        self._create_table_sheet("Monthly", dashboard.monthly, MONTHLY_COLUMNS)
        self._create_table_sheet("Grades", dashboard.grade_distribution, GRADE_COLUMNS)
        self._create_table_sheet("By Account", dashboard.by_account, ACCOUNT_COLUMNS, achievement=True)
        self._create_table_sheet("By Representative", dashboard.by_representative, REP_COLUMNS, achievement=True)
        self._create_deal_sheet(dashboard.period_deals)

        output = BytesIO()
        self.wb.save(output)
        output.seek(0)

        logger.info("Excel report created successfully")
        return output

    # =========================================================================
    # COVER SHEET
    # =========================================================================

    def _create_cover_sheet(self, metrics: Dict, filters: Dict, reference):
        ws = self.wb.active
        ws.title = "Summary"

        row = 1
        ws.cell(row=row, column=1, value="Sales Pipeline Report")
        ws.cell(row=row, column=1).font = self.title_font
        ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=4)
        row += 2

        period = filters.get('period', '')
        info_rows = [
            ("Scope:", filters.get('scope', '')),
            ("Selection:", filters.get('selected_name') or 'All'),
            ("Report Period:", f"{PERIOD_LABELS.get(period, period)} (as of {reference.isoformat()})"),
            ("Generated:", datetime.now().strftime('%Y-%m-%d %H:%M')),
        ]
        for label, value in info_rows:
            ws.cell(row=row, column=1, value=label)
            ws.cell(row=row, column=2, value=value)
            row += 1
        row += 1

        ws.cell(row=row, column=1, value="Key Performance Indicators")
        ws.cell(row=row, column=1).font = self.subtitle_font
        row += 1

        kpi_rows = [
            ("Target", metrics.get('target_amount', 0), self.currency_format),
            ("Sales", metrics.get('performance_amount', 0), self.currency_format),
            ("Confirmed", metrics.get('confirmed_amount', 0), self.currency_format),
            ("Expected", metrics.get('expected_amount', 0), self.currency_format),
            ("Undecided", metrics.get('undecided_amount', 0), self.currency_format),
            ("Pipeline Total", metrics.get('total_amount', 0), self.currency_format),
            ("Achievement", metrics.get('achievement_ratio', 0.0), self.percent_format),
            ("Gap to Target", metrics.get('gap_amount', 0), self.currency_format),
            ("Accounts", metrics.get('account_count', 0), '0'),
            ("Deals", metrics.get('deal_count', 0), '0'),
        ]
        for label, value, number_format in kpi_rows:
            ws.cell(row=row, column=1, value=label)
            cell = ws.cell(row=row, column=2, value=_cell_value(value))
            cell.number_format = number_format
            cell.alignment = self.right_align
            row += 1

        ws.column_dimensions['A'].width = 25
        ws.column_dimensions['B'].width = 30

    # =========================================================================
    # TABLE SHEETS
    # =========================================================================

    def _write_headers(self, ws, columns: List[Column]):
        for col_idx, (_, header, width) in enumerate(columns, 1):
            cell = ws.cell(row=1, column=col_idx, value=header)
            cell.fill = self.header_fill
            cell.font = self.header_font
            cell.alignment = self.center_align
            cell.border = self.cell_border
            ws.column_dimensions[get_column_letter(col_idx)].width = width

    def _create_table_sheet(
        self,
        title: str,
        df: pd.DataFrame,
        columns: List[Column],
        achievement: bool = False
    ):
        """Write a summary DataFrame; missing frames are skipped."""
        if df is None or df.empty:
            return

        ws = self.wb.create_sheet(title)
        columns = [c for c in columns if c[0] in df.columns]
        self._write_headers(ws, columns)

        for row_idx, record in enumerate(df.to_dict('records'), 2):
            for col_idx, (col_name, _, _) in enumerate(columns, 1):
                cell = ws.cell(row=row_idx, column=col_idx, value=_cell_value(record[col_name]))
                cell.border = self.cell_border
                if col_name in CURRENCY_COLUMNS:
                    cell.number_format = self.currency_format
                    cell.alignment = self.right_align
                elif col_name in PERCENT_COLUMNS:
                    cell.number_format = self.percent_format
                    cell.alignment = self.right_align

        if achievement:
            for col_idx, (col_name, _, _) in enumerate(columns, 1):
                if col_name == 'achievement_ratio':
                    letter = get_column_letter(col_idx)
                    # Red below half, yellow at target, green at 150%
                    ws.conditional_formatting.add(
                        f'{letter}2:{letter}{len(df) + 1}',
                        ColorScaleRule(
                            start_type='num', start_value=0.5, start_color='F8696B',
                            mid_type='num', mid_value=1, mid_color='FFEB84',
                            end_type='num', end_value=1.5, end_color='63BE7B'
                        )
                    )

        ws.freeze_panes = 'A2'

    def _create_deal_sheet(self, deals):
        if not deals:
            return

        ws = self.wb.create_sheet("Deals")
        columns: List[Column] = [
            ('expected_close_date', 'Close Date', 12),
            ('title', 'Deal', 36),
            ('status', 'Status', 12),
            ('stage', 'Stage', 12),
            ('owner', 'Owner', 16),
            ('product_amount', 'Product (KRW)', 16),
            ('goods_amount', 'Goods (KRW)', 16),
            ('value', 'Value (KRW)', 16),
        ]
        self._write_headers(ws, columns)

        for row_idx, deal in enumerate(sorted(deals, key=lambda d: d.expected_close_date), 2):
            for col_idx, (attr, _, _) in enumerate(columns, 1):
                cell = ws.cell(row=row_idx, column=col_idx, value=getattr(deal, attr))
                cell.border = self.cell_border
                if attr == 'expected_close_date':
                    cell.number_format = self.date_format
                elif attr in ('product_amount', 'goods_amount', 'value'):
                    cell.number_format = self.currency_format
                    cell.alignment = self.right_align

        ws.freeze_panes = 'A2'
