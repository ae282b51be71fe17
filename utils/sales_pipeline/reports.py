# utils/sales_pipeline/reports.py
"""
Weekly Sales Report

Builds an HTML digest of the pipeline (status buckets and the S/A grade
accounts whose deals are still undecided), appends the narrative
strategy section and delivers it through the notifier.
"""

import logging
from datetime import date
from html import escape
from typing import List, Optional, Sequence, Tuple

from .constants import DEAL_STATUSES, STATUS_BUCKET_KEYS, STATUS_UNDECIDED
from .metrics import calculate_status_buckets
from .models import Account, Deal
from .narrative import NarrativeGenerator

logger = logging.getLogger(__name__)

PRIORITY_GRADES = ('S', 'A')


def weekly_report_subject(today: date) -> str:
    return f"[Weekly Sales Report] {today.isoformat()}"


def priority_accounts(accounts: Sequence[Account], deals: Sequence[Deal]) -> List[Tuple[Account, int]]:
    """S/A accounts with undecided deals, largest undecided value first."""
    undecided = {}
    for deal in deals:
        if deal.status == STATUS_UNDECIDED:
            undecided[deal.contact_id] = undecided.get(deal.contact_id, 0) + deal.value

    rows = [
        (account, undecided[account.id])
        for account in accounts
        if account.grade in PRIORITY_GRADES and account.id in undecided
    ]
    return sorted(rows, key=lambda row: row[1], reverse=True)


class WeeklyReportService:
    """
    Usage:
        service = WeeklyReportService(create_notifier(), create_narrative_generator())
        ok, message = service.send(state, rep.email, reference_date())
    """

    def __init__(self, notifier, generator: Optional[NarrativeGenerator] = None):
        self.notifier = notifier
        self.generator = generator

    def _build_base_style(self) -> str:
        return """
        <style>
            body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
            h2 { color: #4f46e5; }
            table { border-collapse: collapse; margin: 15px 0; }
            th { background-color: #f5f5f5; padding: 8px; text-align: left; border: 1px solid #ddd; }
            td { padding: 8px; border: 1px solid #ddd; }
            .amount { text-align: right; }
            .footer { margin-top: 30px; font-size: 12px; color: #666; }
        </style>
        """

    def build_digest(self, accounts: Sequence[Account], deals: Sequence[Deal], today: date) -> str:
        """HTML digest of the pipeline (without the narrative)."""
        buckets = calculate_status_buckets(deals)

        status_rows = ''.join(
            f"<tr><td>{status}</td><td class='amount'>₩{buckets[STATUS_BUCKET_KEYS[status]]:,}</td></tr>"
            for status in DEAL_STATUSES
        )

        priority = priority_accounts(accounts, deals)
        if priority:
            priority_rows = ''.join(
                f"<tr><td>{escape(a.company)}</td><td>{a.grade}</td>"
                f"<td>{escape(a.owner or '-')}</td><td class='amount'>₩{amount:,}</td></tr>"
                for a, amount in priority
            )
            priority_html = (
                "<h3>Priority follow-ups (S/A grade, undecided)</h3>"
                "<table><tr><th>Account</th><th>Grade</th><th>Owner</th><th>Undecided</th></tr>"
                f"{priority_rows}</table>"
            )
        else:
            priority_html = "<p>No S/A grade accounts with undecided deals.</p>"

        return (
            f"{self._build_base_style()}"
            f"<h2>Weekly Sales Report - {today.isoformat()}</h2>"
            "<h3>Pipeline by status</h3>"
            f"<table><tr><th>Status</th><th>Amount</th></tr>{status_rows}"
            f"<tr><th>Total</th><th class='amount'>₩{buckets['total_amount']:,}</th></tr></table>"
            f"{priority_html}"
        )

    def build_report(self, accounts: Sequence[Account], deals: Sequence[Deal], today: date) -> str:
        body = self.build_digest(accounts, deals, today)
        if self.generator is not None:
            narrative = self.generator.generate_weekly_report(deals, accounts)
            body += f"<h3>Strategy</h3>{narrative}"
        body += "<div class='footer'>Sent by the Sales Pipeline dashboard.</div>"
        return body

    def send(self, state, recipient: str, today: date) -> Tuple[bool, str]:
        """
        Build the report from the current state and deliver it.

        Returns:
            (ok, message) from the notifier
        """
        if not recipient:
            return False, "No recipient email available"

        body = self.build_report(state.accounts, state.deals, today)
        ok, message = self.notifier.send(recipient, weekly_report_subject(today), body)

        if ok:
            logger.info(f"📨 Weekly report sent to {recipient}")
        else:
            logger.error(f"❌ Weekly report to {recipient} failed: {message}")
        return ok, message


__all__ = ['WeeklyReportService', 'weekly_report_subject', 'priority_accounts']
