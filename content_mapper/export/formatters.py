"""Report formatters for analysis results.

Each formatter turns an AnalysisResult into one complete document. Markdown
and HTML also take the AnalysisConfig the analysis was produced from; JSON and
CSV only need the result.
"""

import csv
import io
import json
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

import structlog
from jinja2 import Environment, PackageLoader, select_autoescape
from markupsafe import Markup, escape

from content_mapper.analysis.models import AnalysisConfig, AnalysisResult, ExportFormat

logger = structlog.get_logger(__name__)

CSV_HEADERS = ["Section", "Type", "SEO Score", "Keywords", "Character Count", "Content"]

EXPORT_FILE_PREFIX = "content-analysis"


def format_number(value: float | int | None) -> str:
    """Render a number without a trailing ``.0`` (78.0 -> "78")."""
    if value is None:
        return "N/A"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _numeric(value: float) -> int | float:
    return int(value) if float(value).is_integer() else value


def format_timestamp(timestamp_ms: int | None) -> str:
    """Format an epoch-ms timestamp (now when absent) as UTC."""
    if timestamp_ms is None:
        moment = datetime.now(UTC)
    else:
        moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC)
    return moment.strftime("%Y-%m-%d %H:%M:%S UTC")


def sentiment_label(score: float) -> str:
    if score > 0:
        return "Positive"
    if score < 0:
        return "Negative"
    return "Neutral"


def score_class(score: float | None) -> str:
    """Return CSS class for score level."""
    if score is None:
        return "score-fair"
    if score >= 80:
        return "score-excellent"
    if score >= 60:
        return "score-good"
    if score >= 40:
        return "score-fair"
    return "score-poor"


def nl2br(text: str) -> Markup:
    """Escape text and turn newlines into <br> tags."""
    return Markup("<br>").join(escape(text).split("\n"))


def _bullets(items: list[str]) -> list[str]:
    return [f"- {item}" for item in items]


def export_to_markdown(result: AnalysisResult, config: AnalysisConfig) -> str:
    """Readable Markdown report."""
    lines = [
        "# Visual Content Analysis Report",
        "",
        f"**Generated:** {format_timestamp(result.timestamp)}",
        f"**Website:** {config.website_url or 'N/A'}",
        f"**Target Audience:** {config.target_audience}",
        f"**Keywords:** {config.keywords_text}",
        f"**Overall SEO Score:** {format_number(result.overall_seo_score)}/100",
        f"**Page Type:** {result.page_type}",
        "",
        "---",
        "",
    ]

    tech = result.technical_seo
    if tech:
        lines += [
            "## 📋 Technical SEO",
            "",
            f"**Meta Title:** {tech.meta_title or 'N/A'}",
            "",
            f"**Meta Description:** {tech.meta_description or 'N/A'}",
            "",
        ]
        if tech.h1_tags:
            lines += ["**H1 Tags:**", *_bullets(tech.h1_tags), ""]
        if tech.schema_markup:
            lines += ["**Schema Markup:**", "```json", tech.schema_markup, "```", ""]
        lines += ["---", ""]

    voice = result.brand_voice_analysis
    if voice:
        lines += [
            "## 🎯 Brand Voice Analysis",
            "",
            f"**Detected Tone:** {voice.detected_tone}",
            f"**Consistency Score:** {format_number(voice.consistency)}/100",
            "",
        ]
        if voice.suggestions:
            lines += ["**Suggestions:**", *_bullets(voice.suggestions), ""]
        lines += ["---", ""]

    lines += ["## 📝 Content Sections", ""]
    for i, section in enumerate(result.sections, start=1):
        lines += [
            f"### {i}. {section.label} ({section.type.value})",
            "",
            f"**SEO Score:** {format_number(section.seo_score)}/100",
            f"**Keywords:** {', '.join(section.keywords)}",
            f"**Character Count:** {section.character_count}",
        ]
        if section.readability_score:
            lines.append(f"**Readability Score:** {format_number(section.readability_score)}/100")
        if section.sentiment_score is not None:
            lines.append(
                f"**Sentiment:** {sentiment_label(section.sentiment_score)} "
                f"({section.sentiment_score:.2f})"
            )
        if section.brand_voice_match:
            lines.append(f"**Brand Voice Match:** {format_number(section.brand_voice_match)}/100")

        lines += ["", "**Primary Content:**", "", section.suggested_content, ""]

        if section.content_variants:
            lines += ["**Alternative Variants:**", ""]
            for vi, variant in enumerate(section.content_variants, start=1):
                lines += [
                    f"**Variant {vi}** ({variant.tone.value}, {variant.length_category.value})",
                    f"- SEO Score: {format_number(variant.seo_score)}/100",
                ]
                if variant.predicted_ctr:
                    lines.append(f"- Predicted CTR: {variant.predicted_ctr:.1f}%")
                lines += [
                    f"- Reasoning: {variant.reasoning}",
                    f"- Content: {variant.content}",
                    "",
                ]

        if section.technical_seo_issues:
            lines += ["**⚠️ Technical SEO Issues:**", *_bullets(section.technical_seo_issues), ""]
        if section.accessibility_issues:
            lines += ["**♿ Accessibility Issues:**", *_bullets(section.accessibility_issues), ""]

        lines += ["---", ""]

    lines += ["## 💡 Recommendations", ""]
    lines += [f"{i}. {rec}" for i, rec in enumerate(result.recommendations, start=1)]
    lines.append("")

    perf = result.performance_metrics
    if perf:
        lines += [
            "---",
            "",
            "## ⚡ Performance Metrics",
            "",
            f"**Estimated Load Time:** {format_number(perf.estimated_load_time)}s",
            f"**Mobile Optimization:** {format_number(perf.mobile_optimization)}/100",
            "",
        ]
        if perf.core_web_vitals:
            vitals = perf.core_web_vitals
            lines += [
                "**Core Web Vitals:**",
                f"- LCP (Largest Contentful Paint): {vitals.lcp}",
                f"- FID (First Input Delay): {vitals.fid}",
                f"- CLS (Cumulative Layout Shift): {vitals.cls}",
            ]

    return "\n".join(lines) + "\n"


def export_to_json(result: AnalysisResult) -> str:
    """Verbatim JSON serialization of the result."""
    return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)


_environment: Environment | None = None


def _get_environment() -> Environment:
    global _environment
    if _environment is None:
        _environment = Environment(
            loader=PackageLoader("content_mapper", "templates"),
            autoescape=select_autoescape(["html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        _environment.filters["score_class"] = score_class
        _environment.filters["number"] = format_number
        _environment.filters["nl2br"] = nl2br
    return _environment


def export_to_html(result: AnalysisResult, config: AnalysisConfig) -> str:
    """Standalone HTML page with inlined styles. All values are escaped."""
    template = _get_environment().get_template("report.html")
    return template.render(
        result=result,
        config=config,
        generated=format_timestamp(result.timestamp),
    )


def export_to_csv(result: AnalysisResult) -> str:
    """
    One row per section.

    Text fields are always quoted with embedded quotes doubled; scores and
    character counts are left bare.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for section in result.sections:
        writer.writerow(
            [
                section.label,
                section.type.value,
                _numeric(section.seo_score),
                "; ".join(section.keywords),
                section.character_count,
                section.suggested_content,
            ]
        )
    rows = buffer.getvalue()
    return ",".join(CSV_HEADERS) + "\n" + rows.removesuffix("\n")


@dataclass
class ExportDocument:
    """A rendered export ready to be written."""

    content: str
    mime_type: str
    extension: str

    def file_name(self, timestamp_ms: int | None = None) -> str:
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)
        return f"{EXPORT_FILE_PREFIX}-{timestamp_ms}.{self.extension}"


def render_export(
    result: AnalysisResult,
    fmt: ExportFormat | str,
    config: AnalysisConfig | None = None,
) -> ExportDocument:
    """Dispatch to the formatter for ``fmt``; unknown formats render Markdown."""
    config = config or AnalysisConfig()
    try:
        fmt = ExportFormat(fmt)
    except ValueError:
        logger.warning("unknown_export_format", format=str(fmt), fallback="markdown")
        fmt = ExportFormat.MARKDOWN

    if fmt == ExportFormat.JSON:
        return ExportDocument(export_to_json(result), "application/json", "json")
    if fmt == ExportFormat.HTML:
        return ExportDocument(export_to_html(result, config), "text/html", "html")
    if fmt == ExportFormat.CSV:
        return ExportDocument(export_to_csv(result), "text/csv", "csv")
    return ExportDocument(export_to_markdown(result, config), "text/markdown", "md")


def export_analysis(
    result: AnalysisResult,
    fmt: ExportFormat | str,
    config: AnalysisConfig | None = None,
    directory: str | Path = ".",
) -> Path:
    """
    Render and write an export as ``content-analysis-<epoch-ms>.<ext>``.

    Returns:
        Path of the written file
    """
    document = render_export(result, fmt, config)
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / document.file_name()
    path.write_text(document.content, encoding="utf-8")

    logger.info("export_written", path=str(path), mime_type=document.mime_type)
    return path
