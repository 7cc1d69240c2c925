"""AI narrative over dashboard metrics (OpenAI Responses API).

The metrics summary is rendered into a system prompt; the model then either
produces 3-5 short insights (a JSON array of strings) or answers a free-form
question. Answers are requested in Traditional Chinese.

No client is created and no environment is read at import time. A single
:class:`NarrativeService` holds the client and the rate limiter for a session.
"""

from __future__ import annotations

import json
import os
import re
from decimal import Decimal
from typing import Any

from openai import OpenAI

from ..logging_setup import get_logger
from ..models import MetricsSummary
from .rate_limit import SlidingWindowRateLimiter

_MODEL: str = "gpt-5"
_DEFAULT_MAX_REQUESTS: int = 10

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)

_logger = get_logger("pl_analysis.insights.narrative")


def _fmt(value: Decimal | float) -> str:
    return f"{round(value):,}"


def build_system_prompt(summary: MetricsSummary) -> str:
    """Describe ``summary`` for the model and set the answering rules."""

    revenue = ", ".join(f"{a.name} ({_fmt(a.value)})" for a in summary.top_revenue_accounts)
    expenses = ", ".join(f"{a.name} ({_fmt(a.value)})" for a in summary.top_expense_accounts)
    departments = ", ".join(f"{d.name} ({_fmt(d.net)})" for d in summary.top_profit_departments)
    monthly = "\n".join(
        f"{m.name}: Rev {_fmt(m.credit)}, Exp {_fmt(m.debit)}, Net {_fmt(m.net)}"
        for m in summary.monthly
    )
    regions = ", ".join(f"{r.name}: Net {_fmt(r.net)}" for r in summary.regions)
    store_types = ", ".join(
        f"{s.name}: Net {_fmt(s.real_value)}" for s in summary.store_type_shares
    )

    return (
        "You are a financial analyst assistant. You are analyzing Profit & Loss (P&L) data.\n"
        "Here is the summary of the financial data:\n"
        f"Total Revenue (Credit): {_fmt(summary.total_credit)}\n"
        f"Total Expenses (Debit): {_fmt(summary.total_debit)}\n"
        f"Net Income: {_fmt(summary.net_income)}\n"
        f"Profit Margin: {summary.profit_margin:.2f}%\n"
        "\n"
        f"Top Revenue Accounts: {revenue}\n"
        f"Top Expense Accounts: {expenses}\n"
        f"Top Profit Departments: {departments}\n"
        "\n"
        f"Monthly Trend:\n{monthly}\n"
        "\n"
        f"Region Performance:\n{regions}\n"
        "\n"
        f"Store Type Performance:\n{store_types}\n"
        "\n"
        "Please provide concise, professional, and actionable insights based on this data.\n"
        "IMPORTANT: You must answer in Traditional Chinese (繁體中文).\n"
        "When answering questions, be specific and use the provided numbers.\n"
        "If the user asks about something not in the data, politely say you don't have "
        "that information."
    )


INSIGHTS_REQUEST = (
    "Based on the provided financial data, please generate 3-5 key insights.\n"
    "Focus on:\n"
    "1. Overall financial health\n"
    "2. Significant trends (revenue or expense changes)\n"
    "3. Areas of concern (high expenses or low margins)\n"
    "4. Top performing areas\n"
    "\n"
    "IMPORTANT: The output must be a JSON array of strings in Traditional Chinese (繁體中文).\n"
    'Example: ["本月營收成長 10%", "支出主要集中在人事成本"]\n'
    "Do not include markdown formatting like ```json. Just return the raw JSON string."
)


def parse_insights(text: str) -> list[str]:
    """Decode a JSON array of strings; fall back to non-empty lines."""

    clean = _FENCE_RE.sub("", text).strip()
    try:
        decoded = json.loads(clean)
    except json.JSONDecodeError:
        decoded = None
    if isinstance(decoded, list):
        return [str(item).strip() for item in decoded if str(item).strip()]
    return [line.strip() for line in clean.splitlines() if line.strip()]


def _extract_text(resp: Any) -> str:
    """Locate the text output of a Responses API result."""

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        try:
            first = resp.output[0] if getattr(resp, "output", None) else None
            content = getattr(first, "content", None)
            if content:
                text = getattr(content[0], "text", None)
        except (AttributeError, IndexError, TypeError):
            text = None
    if not text or not isinstance(text, str):
        raise ValueError("Unexpected Responses API shape; unable to locate text output")
    return text


def _max_requests_from_env() -> int:
    raw = os.getenv("PL_ANALYSIS_AI_MAX_REQUESTS")
    try:
        value = int(raw) if raw else _DEFAULT_MAX_REQUESTS
    except ValueError:
        value = _DEFAULT_MAX_REQUESTS
    return value if value > 0 else _DEFAULT_MAX_REQUESTS


class NarrativeService:
    """Generate insights and answer questions about a metrics summary.

    Parameters
    ----------
    client:
        An ``openai.OpenAI``-shaped client. Created lazily when omitted, which
        requires ``OPENAI_API_KEY``.
    limiter:
        Shared :class:`SlidingWindowRateLimiter`; defaults to
        ``PL_ANALYSIS_AI_MAX_REQUESTS`` (10) requests per minute.
    model:
        Model name; defaults to ``PL_ANALYSIS_MODEL`` or ``gpt-5``.
    """

    def __init__(
        self,
        *,
        client: Any | None = None,
        limiter: SlidingWindowRateLimiter | None = None,
        model: str | None = None,
    ) -> None:
        self._client = client
        self._limiter = limiter or SlidingWindowRateLimiter(max_requests=_max_requests_from_env())
        self._model = model or os.getenv("PL_ANALYSIS_MODEL") or _MODEL

    @property
    def limiter(self) -> SlidingWindowRateLimiter:
        return self._limiter

    def _get_client(self) -> Any:
        if self._client is None:
            if not os.getenv("OPENAI_API_KEY"):
                raise RuntimeError("AI not initialized: OPENAI_API_KEY is not set")
            self._client = OpenAI()
        return self._client

    def _complete(self, instructions: str, user_input: str) -> str:
        client = self._get_client()
        self._limiter.acquire()
        try:
            resp = client.responses.create(
                model=self._model,
                instructions=instructions,
                input=user_input,
            )
        except Exception as e:
            _logger.error("Narrative request failed: %s", e)
            raise
        return _extract_text(resp)

    def generate_insights(self, summary: MetricsSummary) -> list[str]:
        text = self._complete(build_system_prompt(summary), INSIGHTS_REQUEST)
        insights = parse_insights(text)
        _logger.debug("Model returned %d insights", len(insights))
        return insights

    def ask(self, summary: MetricsSummary, question: str) -> str:
        if not question.strip():
            raise ValueError("question must be non-empty")
        return self._complete(build_system_prompt(summary), question.strip())


__all__ = [
    "INSIGHTS_REQUEST",
    "NarrativeService",
    "build_system_prompt",
    "parse_insights",
]
