"""Parsing and validation of structured model output.

The provider is asked for schema-constrained JSON, but nothing guarantees it.
Everything returned here has been re-validated locally: score ranges, enum
membership, bounding boxes and section id uniqueness.
"""

import json
from typing import Any

import pydantic
import structlog

from content_mapper.analysis.models import AnalysisResult, CompetitorInsight
from content_mapper.exceptions import InvalidModelResponseError

logger = structlog.get_logger(__name__)


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    text = text.strip()
    if text.startswith("```"):
        first_newline = text.find("\n")
        text = text[first_newline + 1 :] if first_newline != -1 else text[3:]
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def load_json(content: str) -> Any:
    """Decode model output as JSON, raising InvalidModelResponseError on failure."""
    text = strip_code_fence(content)
    if not text:
        raise InvalidModelResponseError("Model returned an empty response", raw_content=content)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidModelResponseError(
            f"Model response is not valid JSON: {e.msg} at position {e.pos}",
            errors=[{"loc": "", "msg": e.msg, "type": "json_invalid"}],
            raw_content=content,
        ) from e


def _field_errors(exc: pydantic.ValidationError) -> list[dict[str, Any]]:
    return [
        {
            "loc": ".".join(str(part) for part in err["loc"]),
            "msg": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]


def parse_analysis(content: str) -> AnalysisResult:
    """
    Parse and validate an analysis response.

    Args:
        content: Raw text returned by the model

    Returns:
        A validated AnalysisResult (without client-side decoration)

    Raises:
        InvalidModelResponseError: If the text is not JSON or does not match
            the analysis shape.
    """
    data = load_json(content)
    if not isinstance(data, dict):
        raise InvalidModelResponseError(
            f"Expected a JSON object, got {type(data).__name__}",
            errors=[{"loc": "", "msg": "not an object", "type": "object_type"}],
            raw_content=content,
        )

    try:
        return AnalysisResult.model_validate(data)
    except pydantic.ValidationError as e:
        errors = _field_errors(e)
        logger.warning("analysis_response_invalid", error_count=len(errors), errors=errors[:5])
        raise InvalidModelResponseError(
            f"Model response failed validation ({len(errors)} error(s))",
            errors=errors,
            raw_content=content,
        ) from e


def parse_insights(content: str) -> list[CompetitorInsight]:
    """
    Parse competitor insights.

    Accepts either a bare JSON array or an object wrapping it under
    ``insights``. Entries that fail validation are dropped.
    """
    data = load_json(content)
    if isinstance(data, dict):
        data = data.get("insights", [])
    if not isinstance(data, list):
        raise InvalidModelResponseError(
            "Expected a JSON array of insights",
            errors=[{"loc": "", "msg": "not an array", "type": "list_type"}],
            raw_content=content,
        )

    insights = []
    for i, item in enumerate(data):
        try:
            insights.append(CompetitorInsight.model_validate(item))
        except pydantic.ValidationError as e:
            logger.warning("insight_dropped", index=i, errors=_field_errors(e))
    return insights
