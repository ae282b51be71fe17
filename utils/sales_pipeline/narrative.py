# utils/sales_pipeline/narrative.py
"""
Narrative Generator (OpenAI chat completions)

Best-effort text for the sales team:
- generate_email_draft(): outreach email for a contact
- analyze_deal_health(): short assessment + next steps for a deal
- summarize_meeting_notes(): key takeaways and action items
- assess_account_grade(): S-D grade suggestion with rationale
- generate_weekly_report(): HTML strategy section of the weekly report

Never raises: without an API key every operation returns
NARRATIVE_MISSING_KEY, and API errors return an operation-specific
failure string.
"""

import logging
from typing import Iterable, Optional, Sequence

from .constants import GRADE_UNRATED, STATUS_UNDECIDED
from .models import Account, Deal

logger = logging.getLogger(__name__)

NARRATIVE_MISSING_KEY = "Error: no API key configured."

DEFAULT_MODEL = "gpt-4o-mini"

SYSTEM_PROMPT = (
    "You are a seasoned B2B sales assistant. Answer concisely and concretely. "
    "Keep amounts in Korean won (₩)."
)


def _won(amount: int) -> str:
    return f"₩{amount:,}"


class NarrativeGenerator:
    """
    LLM text helper.

    Usage:
        generator = create_narrative_generator()
        text = generator.analyze_deal_health(deal, account.notes)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        client=None,
        temperature: float = 0.4
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self._client = client

    @property
    def is_available(self) -> bool:
        return bool(self._client is not None or self.api_key)

    def _get_client(self):
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def _complete(self, prompt: str, failure_message: str, max_tokens: int = 800) -> str:
        if not self.is_available:
            return NARRATIVE_MISSING_KEY

        try:
            resp = self._get_client().chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=max_tokens,
            )
            content = resp.choices[0].message.content
        except Exception as e:
            logger.error(f"❌ OpenAI API error: {e}")
            return failure_message

        if not content or not content.strip():
            return failure_message
        return content.strip()

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def generate_email_draft(
        self,
        contact_name: str,
        company: str,
        context: str,
        tone: str = 'professional'
    ) -> str:
        style = "polite and professional" if tone == 'professional' else "friendly"
        prompt = f"""
Author: sales representative
Recipient: {contact_name} ({company})
Context / goal: {context}

Write a {style} email draft based on the above.
Give the subject line and the body separately.
"""
        return self._complete(prompt, "Failed to generate the email draft. Please try again.")

    def analyze_deal_health(self, deal: Deal, notes: Iterable[str] = ()) -> str:
        prompt = f"""
Assess the health of this deal:

Deal: {deal.title}
Stage: {deal.stage} ({deal.status})
Value: {_won(deal.value)}
Recent notes: {'; '.join(notes) or 'none'}

Reply in this format, with an assessment of at most three sentences and
two concrete next actions:
[Assessment] ...
[Next steps] 1. ... 2. ...
"""
        return self._complete(prompt, "Deal analysis failed.")

    def summarize_meeting_notes(self, raw_notes: str) -> str:
        prompt = f"""
Turn these unstructured meeting notes into a clean list of
Key Takeaways and Action Items:

"{raw_notes}"
"""
        return self._complete(prompt, "Failed to summarize the notes.")

    def assess_account_grade(self, account: Account, pipeline_value: int) -> str:
        if account.type in ('University', 'Institute'):
            focus = (
                "- This is an educational or research institution.\n"
                "- Weigh student numbers, recent government research grants and research budget size.\n"
                "- Consider the effect of demographic decline and national R&D budget changes."
            )
        else:
            focus = (
                "- Weigh recent financial statements, share price trend (if listed) and new investment.\n"
                "- Compare market share and competitor activity within the industry."
            )

        prompt = f"""
Organization: {account.company}
Type: {account.type}
Current pipeline value: {_won(pipeline_value)}
Internal sales notes: {', '.join(account.notes) or 'none'}

Instructions:
1. Consider what is publicly known about this organization.
{focus}
2. Combine the internal deal size with that outlook and grade the account.

Grades:
- S: strong positive signals (ample budget, large projects). Top priority.
- A: excellent account with high growth potential.
- B: ordinary, expected to hold steady.
- C: risks present (budget cuts, shrinking enrolment, losses).
- D: consider stopping business.

Output format:
Grade: [grade]
Key indicators: [2-3 concrete figures]
Analysis: [three-line summary]
Strategy: [one sentence]
"""
        return self._complete(prompt, "Account grading failed. Please try again later.")

    def generate_weekly_report(self, deals: Sequence[Deal], accounts: Sequence[Account]) -> str:
        by_id = {a.id: a for a in accounts}
        lines = []
        for d in deals:
            account = by_id.get(d.contact_id)
            company = account.company if account else 'Unknown account'
            grade = account.grade if account else GRADE_UNRATED
            lines.append(
                f"- [{d.status}] {d.title} ({company}, grade {grade}): total {_won(d.value)} "
                f"(product {_won(d.product_amount)}, goods {_won(d.goods_amount)})"
            )
        deal_summary = '\n'.join(lines) or '- no deals'

        prompt = f"""
Analyze the pipeline below and write the body of this week's sales
strategy report for the representative, as HTML (body content only).

Pipeline:
{deal_summary}

Guidelines:
1. Summarize by status: Sales / Confirmed / Expected / {STATUS_UNDECIDED}.
2. Recommend visiting or calling first the S and A grade accounts whose deals are still {STATUS_UNDECIDED}.
3. Weigh the product vs goods mix and focus on the more profitable deals.
4. List this week's three key action items.

Style: skip greetings; use <h3>, <ul>, <li> and <b>.
"""
        return self._complete(prompt, "Weekly report generation failed.", max_tokens=1500)


def create_narrative_generator(cfg=None) -> NarrativeGenerator:
    """Generator configured from the OpenAI key and model settings."""
    if cfg is None:
        from utils.config import config as cfg

    api_key = cfg.get_api_key("openai") if cfg.is_feature_enabled("narrative") else None
    model = cfg.get_app_setting("OPENAI_MODEL", DEFAULT_MODEL)
    return NarrativeGenerator(api_key=api_key, model=model)


__all__ = ['NarrativeGenerator', 'NARRATIVE_MISSING_KEY', 'create_narrative_generator']
