"""Pytest configuration and fixtures."""

import os
from collections.abc import Callable
from typing import Any

import pytest
import structlog

# Set test environment before any app code runs
os.environ["ENV"] = "test"
os.environ["MODEL_PROVIDER"] = "mock"

# Keep log lines out of captured command output
structlog.configure(
    processors=[structlog.processors.KeyValueRenderer()],
    logger_factory=structlog.ReturnLoggerFactory(),
)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Re-read settings for every test."""
    from content_mapper.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _section(
    section_id: str,
    *,
    label: str | None = None,
    section_type: str = "hero",
    seo_score: float = 70,
    x: float = 0,
    y: float = 0,
    content: str = "Grow your business with smarter SEO",
    variants: bool = False,
) -> dict[str, Any]:
    section: dict[str, Any] = {
        "id": section_id,
        "type": section_type,
        "label": label or f"Section {section_id}",
        "position": {"x": x, "y": y, "width": 100, "height": 20},
        "suggestedContent": content,
        "seoScore": seo_score,
        "keywords": ["seo", "growth"],
        "characterCount": len(content),
    }
    if variants:
        section["contentVariants"] = [
            {
                "id": f"{section_id}-v1",
                "content": "Smarter SEO for growing teams",
                "seoScore": 82,
                "tone": "professional",
                "lengthCategory": "short",
                "predictedCTR": 3.25,
                "reasoning": "Concise and benefit-led",
            }
        ]
    return section


@pytest.fixture
def make_section() -> Callable[..., dict[str, Any]]:
    """Factory for raw section payloads in the wire (camelCase) format."""
    return _section


@pytest.fixture
def make_payload() -> Callable[..., dict[str, Any]]:
    """Factory for raw analysis payloads in the wire (camelCase) format."""

    def factory(
        sections: list[dict[str, Any]] | None = None,
        overall_seo_score: float = 72,
        page_type: str = "Landing Page",
        **extra: Any,
    ) -> dict[str, Any]:
        payload = {
            "sections": sections
            or [
                _section("hero-1", label="Hero", variants=True),
                _section("cta-1", label="Primary CTA", section_type="cta_button", seo_score=64, y=40),
            ],
            "overallSeoScore": overall_seo_score,
            "recommendations": ["Add a meta description", "Shorten the hero headline"],
            "pageType": page_type,
        }
        payload.update(extra)
        return payload

    return factory


@pytest.fixture
def make_result(make_payload):
    """Factory for validated AnalysisResult objects."""
    from content_mapper.analysis.models import AnalysisResult

    def factory(**kwargs: Any) -> AnalysisResult:
        return AnalysisResult.model_validate(make_payload(**kwargs))

    return factory


@pytest.fixture
def image():
    """A small PNG screenshot."""
    from content_mapper.analysis.models import ImageInput

    return ImageInput(data=b"\x89PNG\r\n\x1a\nfake-image-bytes", mime_type="image/png", file_name="home.png")


@pytest.fixture
def mock_provider():
    """Scripted in-process model provider."""
    from content_mapper.analysis.providers import MockProvider

    return MockProvider()


@pytest.fixture
def client(mock_provider):
    """Analysis client backed by the mock provider."""
    from content_mapper.analysis.client import AnalysisClient

    return AnalysisClient(provider=mock_provider, model="test-model")


@pytest.fixture
def store():
    """LocalStore over in-memory storage."""
    from content_mapper.storage.backends import MemoryStorage
    from content_mapper.storage.store import LocalStore

    return LocalStore(MemoryStorage())


@pytest.fixture
def config():
    """Inputs an analysis was produced from."""
    from content_mapper.analysis.models import AnalysisConfig

    return AnalysisConfig(
        website_url="https://example.com",
        keywords=["seo", "growth"],
        target_audience="Small business owners",
    )
