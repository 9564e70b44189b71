"""Structured-output schema handed to the vision model.

Declared in the lower-case JSON-schema dialect. ``to_gemini_schema`` converts
it to the upper-case ``Type`` names the Generative Language API expects.
"""

from copy import deepcopy
from typing import Any

from content_mapper.analysis.models import LengthCategory, SectionType, ToneType

_STRING_LIST: dict[str, Any] = {"type": "array", "items": {"type": "string"}}


def _string_list(description: str) -> dict[str, Any]:
    return {**_STRING_LIST, "description": description}


POSITION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "description": "Bounding box as percentages of the image dimensions.",
    "properties": {
        "x": {"type": "number", "description": "Top-left x as a percentage from the left edge."},
        "y": {"type": "number", "description": "Top-left y as a percentage from the top edge."},
        "width": {"type": "number", "description": "Width as a percentage."},
        "height": {"type": "number", "description": "Height as a percentage."},
    },
    "required": ["x", "y", "width", "height"],
}

VARIANT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "description": "Unique variant ID."},
        "content": {"type": "string", "description": "The variant content."},
        "seoScore": {"type": "number", "description": "SEO score for this variant (0-100)."},
        "tone": {
            "type": "string",
            "enum": [t.value for t in ToneType],
            "description": "Tone of the variant.",
        },
        "lengthCategory": {
            "type": "string",
            "enum": [c.value for c in LengthCategory],
            "description": "Length: short, medium, long.",
        },
        "predictedCTR": {"type": "number", "description": "Predicted click-through rate percentage."},
        "reasoning": {"type": "string", "description": "Why this variant might perform well."},
    },
    "required": ["id", "content", "seoScore", "tone", "lengthCategory", "reasoning"],
}

SECTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "description": "Unique identifier for the section."},
        "type": {
            "type": "string",
            "enum": [t.value for t in SectionType],
            "description": "Section type.",
        },
        "label": {"type": "string", "description": "Descriptive label for the section."},
        "position": POSITION_SCHEMA,
        "currentContent": {"type": "string", "description": "Current text content transcribed from the section."},
        "suggestedContent": {"type": "string", "description": "Primary SEO-optimized content suggestion."},
        "contentVariants": {
            "type": "array",
            "description": "Alternative content variations with different tones and lengths (3-5 variants).",
            "items": VARIANT_SCHEMA,
        },
        "seoScore": {"type": "number", "description": "SEO score for primary content (0-100)."},
        "keywords": _string_list("Keywords used."),
        "characterCount": {"type": "number", "description": "Character count of primary content."},
        "readabilityScore": {"type": "number", "description": "Flesch reading ease score (0-100, higher is easier)."},
        "sentimentScore": {"type": "number", "description": "Sentiment score (-1 to 1, negative to positive)."},
        "brandVoiceMatch": {"type": "number", "description": "How well content matches brand voice (0-100)."},
        "technicalSeoIssues": _string_list("Any technical SEO issues detected in this section."),
        "accessibilityIssues": _string_list("Accessibility concerns (contrast, alt text, etc.)."),
    },
    "required": [
        "id",
        "type",
        "label",
        "position",
        "suggestedContent",
        "contentVariants",
        "seoScore",
        "keywords",
        "characterCount",
    ],
}

ANALYSIS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "sections": {
            "type": "array",
            "description": "All detected content sections with content variants.",
            "items": SECTION_SCHEMA,
        },
        "overallSeoScore": {"type": "number", "description": "Overall SEO score (0-100)."},
        "recommendations": _string_list("5-10 actionable recommendations."),
        "pageType": {"type": "string", "description": "Page type (Landing Page, Product Page, etc.)."},
        "technicalSeo": {
            "type": "object",
            "description": "Technical SEO recommendations.",
            "properties": {
                "metaTitle": {"type": "string", "description": "Suggested meta title (50-60 chars)."},
                "metaDescription": {"type": "string", "description": "Suggested meta description (150-160 chars)."},
                "h1Tags": _string_list("Suggested H1 tags."),
                "imageAltTexts": _string_list("Alt texts for images."),
                "schemaMarkup": {"type": "string", "description": "JSON-LD schema markup suggestion."},
                "internalLinks": _string_list("Suggested internal link anchors."),
            },
        },
        "brandVoiceAnalysis": {
            "type": "object",
            "description": "Analysis of brand voice consistency.",
            "properties": {
                "detectedTone": {"type": "string", "description": "Detected tone from current content."},
                "consistency": {"type": "number", "description": "Voice consistency score (0-100)."},
                "suggestions": _string_list("Suggestions for voice improvement."),
            },
        },
        "performanceMetrics": {
            "type": "object",
            "description": "Estimated performance metrics.",
            "properties": {
                "estimatedLoadTime": {"type": "number", "description": "Estimated load time in seconds."},
                "mobileOptimization": {"type": "number", "description": "Mobile optimization score (0-100)."},
                "coreWebVitals": {
                    "type": "object",
                    "properties": {
                        "lcp": {"type": "string", "description": "Largest Contentful Paint assessment."},
                        "fid": {"type": "string", "description": "First Input Delay assessment."},
                        "cls": {"type": "string", "description": "Cumulative Layout Shift assessment."},
                    },
                },
            },
        },
    },
    "required": ["sections", "overallSeoScore", "recommendations", "pageType"],
}


def to_gemini_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``schema`` with Gemini ``Type`` names (OBJECT, STRING, ...)."""
    converted = deepcopy(schema)

    def _walk(node: Any) -> None:
        if isinstance(node, dict):
            if isinstance(node.get("type"), str):
                node["type"] = node["type"].upper()
            for key, value in node.items():
                if key == "properties" and isinstance(value, dict):
                    for prop in value.values():
                        _walk(prop)
                elif key == "items":
                    _walk(value)

    _walk(converted)
    return converted
