"""Insight extraction from flow text output."""

from flowrelay.insights.extractor import (
    ChartSeries,
    ExtractedInsights,
    chart_series,
    extract_insights,
    find_fenced_json,
)

__all__ = [
    "ChartSeries",
    "ExtractedInsights",
    "chart_series",
    "extract_insights",
    "find_fenced_json",
]
