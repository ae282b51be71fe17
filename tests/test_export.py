from openpyxl import load_workbook

from utils.sales_pipeline.export import PipelineExport
from utils.sales_pipeline.filters import FilterValues
from utils.sales_pipeline.metrics import build_dashboard
from utils.sales_pipeline.state import PipelineState


def _filters(period='year'):
    return FilterValues(scope='all', selected_name=None, selected_id=None, period=period).to_dict()


def test_report_contains_every_sheet(state, reference):
    dashboard = build_dashboard(state, 'all', None, 'year', reference)

    wb = load_workbook(PipelineExport().create_report(dashboard, _filters()))

    assert wb.sheetnames == ['Summary', 'Monthly', 'Grades', 'By Account', 'By Representative', 'Deals']
    assert wb['Summary']['A1'].value == "Sales Pipeline Report"
    assert wb['Deals'].max_row == 1 + len(dashboard.period_deals)
    assert wb['Monthly'].max_row == 13


def test_summary_sheet_has_kpis(state, reference):
    dashboard = build_dashboard(state, 'all', None, 'year', reference)

    ws = load_workbook(PipelineExport().create_report(dashboard, _filters()))['Summary']
    kpis = {ws.cell(row=r, column=1).value: ws.cell(row=r, column=2).value for r in range(1, ws.max_row + 1)}

    assert kpis['Target'] == 2_100_000
    assert kpis['Sales'] == 600
    assert kpis['Deals'] == 5


def test_empty_dashboard_skips_empty_sheets(reference):
    dashboard = build_dashboard(PipelineState(), 'all', None, 'month', reference)

    wb = load_workbook(PipelineExport().create_report(dashboard, _filters('month')))

    assert wb.sheetnames == ['Summary', 'Monthly']
