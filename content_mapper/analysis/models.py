"""Data models for screenshot analysis.

Wire, storage and export formats all use the camelCase field names the model
is asked to produce, so every pydantic model here aliases its snake_case
attributes to camelCase and dumps by alias.
"""

import base64
import mimetypes
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class ProviderType(StrEnum):
    """Supported model providers."""

    GEMINI = "gemini"
    OPENROUTER = "openrouter"
    MOCK = "mock"


class SectionType(StrEnum):
    """Closed set of content region types."""

    HERO = "hero"
    SUBHEADING = "subheading"
    FEATURES = "features"
    CTA_BUTTON = "cta_button"
    BODY_TEXT = "body_text"
    FOOTER = "footer"
    NAVIGATION = "navigation"
    TESTIMONIAL = "testimonial"
    PRICING = "pricing"
    FORM = "form"


class ToneType(StrEnum):
    """Tones a content variant can be written in."""

    PROFESSIONAL = "professional"
    CASUAL = "casual"
    FRIENDLY = "friendly"
    AUTHORITATIVE = "authoritative"
    PLAYFUL = "playful"
    EMPATHETIC = "empathetic"


class LengthCategory(StrEnum):
    """Relative length of a content variant."""

    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class ExportFormat(StrEnum):
    """Supported export serializations."""

    MARKDOWN = "markdown"
    JSON = "json"
    HTML = "html"
    CSV = "csv"


class JobStatus(StrEnum):
    """Status of a multi-image job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def _normalize_label(value: object) -> object:
    """Lower-case and underscore enum labels ("CTA Button" -> "cta_button")."""
    if isinstance(value, str):
        return value.strip().lower().replace(" ", "_").replace("-", "_")
    return value


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        """Convert to a JSON-compatible dictionary using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Position(CamelModel):
    """Bounding box in percentages of the image dimensions.

    The producer does not guarantee ``x + width <= 100`` or ``y + height <= 100``.
    """

    x: float = Field(ge=0, le=100)
    y: float = Field(ge=0, le=100)
    width: float = Field(ge=0, le=100)
    height: float = Field(ge=0, le=100)

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)


class ContentVariant(CamelModel):
    """Alternative phrasing of a section's content."""

    id: str
    content: str
    seo_score: float = Field(ge=0, le=100)
    tone: ToneType
    length_category: LengthCategory
    predicted_ctr: float | None = Field(default=None, alias="predictedCTR")
    reasoning: str = ""

    @field_validator("tone", "length_category", mode="before")
    @classmethod
    def normalize_enums(cls, v: object) -> object:
        return _normalize_label(v)


class DetectedSection(CamelModel):
    """One visually distinct region of the screenshot."""

    id: str
    type: SectionType
    label: str
    position: Position
    current_content: str | None = None
    suggested_content: str
    content_variants: list[ContentVariant] | None = None
    seo_score: float = Field(ge=0, le=100)
    keywords: list[str] = Field(default_factory=list)
    character_count: int = Field(ge=0)
    readability_score: float | None = None
    sentiment_score: float | None = Field(default=None, ge=-1, le=1)
    brand_voice_match: float | None = Field(default=None, ge=0, le=100)
    technical_seo_issues: list[str] | None = None
    accessibility_issues: list[str] | None = None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: object) -> object:
        return _normalize_label(v)


class TechnicalSEO(CamelModel):
    """Technical SEO suggestions for the page."""

    meta_title: str | None = None
    meta_description: str | None = None
    h1_tags: list[str] = Field(default_factory=list, alias="h1Tags")
    image_alt_texts: list[str] = Field(default_factory=list)
    schema_markup: str | None = None
    internal_links: list[str] = Field(default_factory=list)
    canonical_url: str | None = None
    robots_directive: str | None = None


class CompetitorInsight(CamelModel):
    """Comparative findings for one competitor page."""

    competitor_name: str
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    unique_differentiators: list[str] = Field(default_factory=list)
    keyword_gaps: list[str] = Field(default_factory=list)


class BrandVoiceAnalysis(CamelModel):
    """How consistently the current copy matches a voice."""

    detected_tone: str = ""
    consistency: float = Field(default=0, ge=0, le=100)
    suggestions: list[str] = Field(default_factory=list)


class CoreWebVitals(CamelModel):
    lcp: str = ""
    fid: str = ""
    cls: str = ""


class PerformanceMetrics(CamelModel):
    """Performance estimates inferred from the screenshot."""

    estimated_load_time: float | None = None
    mobile_optimization: float | None = Field(default=None, ge=0, le=100)
    core_web_vitals: CoreWebVitals | None = None


class AnalysisResult(CamelModel):
    """Root aggregate produced by one analysis call."""

    sections: list[DetectedSection] = Field(min_length=1)
    overall_seo_score: float = Field(ge=0, le=100)
    recommendations: list[str] = Field(default_factory=list)
    page_type: str
    image_url: str = ""
    image_file_name: str | None = None
    timestamp: int | None = None  # epoch milliseconds
    technical_seo: TechnicalSEO | None = None
    competitor_insights: list[CompetitorInsight] | None = None
    brand_voice_analysis: BrandVoiceAnalysis | None = None
    performance_metrics: PerformanceMetrics | None = None

    @model_validator(mode="after")
    def check_unique_section_ids(self) -> "AnalysisResult":
        """Section ids must be unique within one result."""
        seen: set[str] = set()
        for section in self.sections:
            if section.id in seen:
                raise ValueError(f"duplicate section id: {section.id}")
            seen.add(section.id)
        return self

    def section_by_id(self, section_id: str) -> DetectedSection | None:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None


class BrandVoiceProfile(CamelModel):
    """User-authored style constraints fed into content generation."""

    tone: ToneType = ToneType.PROFESSIONAL
    vocabulary: list[str] = Field(default_factory=list)
    sentence_structure: Literal["simple", "complex", "mixed"] = "mixed"
    formality_level: int = Field(default=5, ge=0, le=10)
    target_reading_level: int = Field(default=8, ge=1)
    avoid_words: list[str] = Field(default_factory=list)


class AnalysisConfig(CamelModel):
    """Inputs an analysis was produced from."""

    website_url: str = ""
    keywords: list[str] = Field(default_factory=list)
    target_audience: str = ""

    @property
    def keywords_text(self) -> str:
        return ", ".join(self.keywords)


class HistoryRecord(CamelModel):
    """A persisted analysis plus the inputs that produced it."""

    id: str
    result: AnalysisResult
    timestamp: int  # epoch milliseconds
    config: AnalysisConfig


class UserPreferences(CamelModel):
    """User preferences; stored records are merged over these defaults."""

    auto_save_history: bool = True
    default_export_format: ExportFormat = ExportFormat.MARKDOWN
    enable_variants: bool = True
    variant_count: int = Field(default=3, ge=1, le=5)
    theme: Literal["dark", "light", "auto"] = "dark"
    show_advanced_metrics: bool = True
    auto_load_brand_voice: bool = True


@dataclass
class BatchFailure:
    """One input of a batch that could not be analyzed."""

    index: int
    file_name: str
    error: str

    def to_dict(self) -> dict:
        return {"index": self.index, "file_name": self.file_name, "error": self.error}


@dataclass
class BatchAnalysisJob:
    """An in-flight or completed batch of screenshot analyses."""

    id: str = field(default_factory=lambda: f"batch_{uuid4().hex[:12]}")
    file_names: list[str] = field(default_factory=list)
    status: JobStatus = JobStatus.PENDING
    progress: float = 0.0
    results: list[AnalysisResult] = field(default_factory=list)
    failures: list[BatchFailure] = field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def total(self) -> int:
        return len(self.file_names)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "file_names": self.file_names,
            "status": self.status.value,
            "progress": round(self.progress, 1),
            "results": [r.to_dict() for r in self.results],
            "failures": [f.to_dict() for f in self.failures],
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class ComparisonMode:
    """Side-by-side view of an analysis and its updated version."""

    original_analysis: AnalysisResult
    updated_analysis: AnalysisResult
    seo_score_delta: float = 0.0
    sections_changed: list[str] = field(default_factory=list)
    key_insights: list[str] = field(default_factory=list)
    enabled: bool = True


@dataclass
class ImageInput:
    """Screenshot bytes with their declared content type."""

    data: bytes
    mime_type: str
    file_name: str = "screenshot.png"

    @classmethod
    def from_path(cls, path: str | Path) -> "ImageInput":
        """Read an image file, guessing its MIME type from the extension."""
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        return cls(
            data=path.read_bytes(),
            mime_type=mime_type or "application/octet-stream",
            file_name=path.name,
        )

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


@dataclass
class AnalysisRequest:
    """Everything one screenshot analysis needs."""

    image: ImageInput
    keywords: list[str]
    target_audience: str
    website_url: str = ""
    brand_voice: BrandVoiceProfile | None = None
    generate_variants: bool = True
    competitor_context: list[str] = field(default_factory=list)

    @property
    def config(self) -> AnalysisConfig:
        return AnalysisConfig(
            website_url=self.website_url,
            keywords=list(self.keywords),
            target_audience=self.target_audience,
        )
