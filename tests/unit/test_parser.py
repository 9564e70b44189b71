"""Tests for model response parsing."""

import json

import pytest

from content_mapper.analysis.parser import (
    load_json,
    parse_analysis,
    parse_insights,
    strip_code_fence,
)
from content_mapper.exceptions import InvalidModelResponseError, ModelProviderError


class TestStripCodeFence:
    """Tests for strip_code_fence."""

    def test_plain_text_untouched(self) -> None:
        """Text without a fence is only trimmed."""
        assert strip_code_fence('  {"a": 1}\n') == '{"a": 1}'

    def test_json_fence(self) -> None:
        """A ```json fence is removed."""
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self) -> None:
        """A bare ``` fence is removed."""
        assert strip_code_fence('```\n[1, 2]\n```') == "[1, 2]"


class TestLoadJson:
    """Tests for load_json."""

    def test_empty(self) -> None:
        """Empty output is an invalid response."""
        with pytest.raises(InvalidModelResponseError, match="empty"):
            load_json("   ")

    def test_invalid_json(self) -> None:
        """Non-JSON text carries a json_invalid diagnostic."""
        with pytest.raises(InvalidModelResponseError) as exc_info:
            load_json("Sure! Here is the analysis")

        assert exc_info.value.errors[0]["type"] == "json_invalid"
        assert exc_info.value.raw_content == "Sure! Here is the analysis"


class TestParseAnalysis:
    """Tests for parse_analysis."""

    def test_valid(self, make_payload) -> None:
        """A valid payload parses into a result."""
        result = parse_analysis(json.dumps(make_payload()))

        assert result.page_type == "Landing Page"
        assert result.sections[0].content_variants[0].predicted_ctr == 3.25

    def test_fenced_payload(self, make_payload) -> None:
        """A fenced payload is accepted."""
        result = parse_analysis(f"```json\n{json.dumps(make_payload())}\n```")

        assert len(result.sections) == 2

    def test_not_an_object(self) -> None:
        """A JSON array is not an analysis."""
        with pytest.raises(InvalidModelResponseError, match="Expected a JSON object"):
            parse_analysis("[1, 2, 3]")

    def test_field_diagnostics(self, make_payload) -> None:
        """Missing and out-of-range fields are reported by location."""
        payload = make_payload()
        del payload["pageType"]
        payload["sections"][0]["seoScore"] = 150

        with pytest.raises(InvalidModelResponseError) as exc_info:
            parse_analysis(json.dumps(payload))

        locations = {err["loc"] for err in exc_info.value.errors}
        assert "pageType" in locations
        assert "sections.0.seoScore" in locations
        assert exc_info.value.code == "invalid_model_response"

    def test_distinct_from_provider_error(self) -> None:
        """Shape failures are not transport failures."""
        with pytest.raises(InvalidModelResponseError) as exc_info:
            parse_analysis("{}")

        assert not isinstance(exc_info.value, ModelProviderError)


class TestParseInsights:
    """Tests for parse_insights."""

    def test_array(self) -> None:
        """Parses a bare array."""
        insights = parse_insights(
            json.dumps(
                [
                    {
                        "competitorName": "Competitor 1",
                        "strengths": ["Clear pricing"],
                        "weaknesses": [],
                        "uniqueDifferentiators": ["Free tier"],
                        "keywordGaps": ["crm"],
                    }
                ]
            )
        )

        assert len(insights) == 1
        assert insights[0].keyword_gaps == ["crm"]

    def test_wrapped_object(self) -> None:
        """Parses an object wrapping the array under 'insights'."""
        insights = parse_insights(json.dumps({"insights": [{"competitorName": "Competitor 1"}]}))

        assert insights[0].competitor_name == "Competitor 1"

    def test_invalid_entries_dropped(self) -> None:
        """Entries without a competitor name are skipped."""
        insights = parse_insights(
            json.dumps([{"competitorName": "Competitor 1"}, {"strengths": ["x"]}])
        )

        assert [i.competitor_name for i in insights] == ["Competitor 1"]

    def test_scalar_rejected(self) -> None:
        """A scalar is not an insight list."""
        with pytest.raises(InvalidModelResponseError):
            parse_insights("42")
