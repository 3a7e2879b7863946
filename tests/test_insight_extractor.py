from __future__ import annotations

from flow_fakes import REELS_TEXT
from flowrelay.insights import chart_series, extract_insights, find_fenced_json


def test_extracts_first_element_of_fenced_array() -> None:
    result = extract_insights(REELS_TEXT)

    assert result.parsed is True
    assert result.engagement_metrics == {"reels": {"avg_likes": 10, "avg_shares": 2, "avg_comments": 1}}
    assert result.insights_markdown == "Reels perform well."
    assert result.raw_text is None


def test_only_index_zero_is_consumed() -> None:
    text = (
        '```json\n[{"engagement_metrics": {"carousel": {"avg_likes": 5}}, "insights": "first"},'
        ' {"engagement_metrics": {"reels": {}}, "insights": "second"}]\n```'
    )

    result = extract_insights(text)

    assert result.engagement_metrics == {"carousel": {"avg_likes": 5}}
    assert result.insights_markdown == "first"


def test_plain_text_falls_back_to_raw_text() -> None:
    text = "The flow could not find any posts for that keyword."

    result = extract_insights(text)

    assert result.parsed is False
    assert result.engagement_metrics == {}
    assert result.insights_markdown == ""
    assert result.raw_text == text


def test_invalid_json_falls_back_like_missing_block() -> None:
    text = "```json\n[{\"engagement_metrics\": {\"reels\": }]\n```"

    broken = extract_insights(text)
    plain = extract_insights("no block here")

    assert broken.parsed is False
    assert broken.raw_text == text
    assert (broken.engagement_metrics, broken.insights_markdown) == (
        plain.engagement_metrics,
        plain.insights_markdown,
    )


def test_missing_keys_default_to_empty_values() -> None:
    result = extract_insights("```json\n[{}]\n```")

    assert result.parsed is True
    assert result.engagement_metrics == {}
    assert result.insights_markdown == ""


def test_non_array_or_empty_array_falls_back() -> None:
    assert extract_insights('```json\n{"insights": "x"}\n```').parsed is False
    assert extract_insights("```json\n[]\n```").parsed is False
    assert extract_insights('```json\n["text"]\n```').parsed is False


def test_none_message_is_treated_as_empty_text() -> None:
    result = extract_insights(None)

    assert result.parsed is False
    assert result.raw_text == ""


def test_find_fenced_json_requires_both_markers() -> None:
    assert find_fenced_json("```json\n[1]\n```") == "[1]"
    assert find_fenced_json("```json\n[1]") is None
    assert find_fenced_json("[1]\n```") is None
    assert find_fenced_json("json [1] ``") is None


def test_find_fenced_json_uses_first_block() -> None:
    text = "```json\n[1]\n```\n```json\n[2]\n```"

    assert find_fenced_json(text) == "[1]"


def test_chart_series_follows_label_order() -> None:
    result = extract_insights(
        "```json\n"
        '[{"engagement_metrics": {'
        '"carousel": {"avg_likes": 7, "avg_shares": 3, "avg_comments": 4},'
        '"static_image": {"avg_likes": 2}}}]\n'
        "```"
    )

    series = chart_series(result)

    assert series.labels == ["carousel", "static_image"]
    assert series.avg_likes == [7, 2]
    assert series.avg_shares == [3, None]
    assert series.avg_comments == [4, None]
