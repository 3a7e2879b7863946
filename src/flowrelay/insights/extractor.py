"""Unwrap the fenced JSON block a flow embeds in its text answer."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import structlog

from flowrelay.errors import ExtractionError

logger = structlog.get_logger()

FENCE_OPEN = "```json"
FENCE_CLOSE = "```"

METRIC_KEYS = ("avg_likes", "avg_shares", "avg_comments")


@dataclass(frozen=True)
class ExtractedInsights:
    """Engagement metrics and insights, or an empty result plus the raw text."""

    engagement_metrics: dict[str, dict[str, Any]] = field(default_factory=dict)
    insights_markdown: str = ""
    raw_text: str | None = None
    parsed: bool = False


@dataclass(frozen=True)
class ChartSeries:
    labels: list[str]
    avg_likes: list[Any]
    avg_shares: list[Any]
    avg_comments: list[Any]


def find_fenced_json(text: str) -> str | None:
    """Return the interior of the first ```json ... ``` block, or None."""
    start = text.find(FENCE_OPEN)
    if start == -1:
        return None
    start += len(FENCE_OPEN)
    end = text.find(FENCE_CLOSE, start)
    if end == -1:
        return None
    return text[start:end].strip()


def _parse_block(block: str) -> tuple[dict[str, dict[str, Any]], str]:
    try:
        data = json.loads(block)
    except ValueError as exc:
        raise ExtractionError(f"Embedded block is not valid JSON: {exc}") from exc

    if not isinstance(data, list) or not data:
        raise ExtractionError("Embedded JSON is not a non-empty array")
    first = data[0]
    if not isinstance(first, dict):
        raise ExtractionError("First array element is not an object")

    metrics = first.get("engagement_metrics") or {}
    insights = first.get("insights") or ""
    if not isinstance(metrics, dict):
        raise ExtractionError("engagement_metrics is not an object")
    if not isinstance(insights, str):
        raise ExtractionError("insights is not a string")
    return metrics, insights


def extract_insights(raw_text: str | None) -> ExtractedInsights:
    """Parse the flow text into insights; never raises."""
    text = raw_text or ""
    try:
        block = find_fenced_json(text)
        if block is None:
            raise ExtractionError("No fenced JSON block in flow output")
        metrics, insights = _parse_block(block)
    except ExtractionError as exc:
        logger.info("insights.fallback", reason=str(exc), text_length=len(text))
        return ExtractedInsights(raw_text=text)

    return ExtractedInsights(
        engagement_metrics=metrics,
        insights_markdown=insights,
        parsed=True,
    )


def chart_series(insights: ExtractedInsights) -> ChartSeries:
    """Flatten per-post-type metrics into label-ordered series."""
    labels = list(insights.engagement_metrics)
    rows = [insights.engagement_metrics[label] or {} for label in labels]

    def column(key: str) -> list[Any]:
        return [row.get(key) if isinstance(row, dict) else None for row in rows]

    likes, shares, comments = (column(key) for key in METRIC_KEYS)
    return ChartSeries(labels=labels, avg_likes=likes, avg_shares=shares, avg_comments=comments)
