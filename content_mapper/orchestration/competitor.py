"""Competitor comparison: analyze your page, each competitor, then synthesize."""

from dataclasses import dataclass, field

import structlog

from content_mapper.analysis.client import AnalysisClient
from content_mapper.analysis.models import (
    AnalysisRequest,
    AnalysisResult,
    CompetitorInsight,
    ImageInput,
)
from content_mapper.exceptions import ContentMapperError

logger = structlog.get_logger(__name__)

# Competitor identity is never forwarded to the model.
COMPETITOR_PLACEHOLDER = "Competitor"


@dataclass
class CompetitorComparison:
    """Your analysis, each competitor's, and the synthesized insights."""

    your_analysis: AnalysisResult
    competitor_analyses: list[AnalysisResult] = field(default_factory=list)
    insights: list[CompetitorInsight] = field(default_factory=list)

    @property
    def score_gaps(self) -> list[float]:
        """Your overall score minus each competitor's, in competitor order."""
        return [
            self.your_analysis.overall_seo_score - comp.overall_seo_score
            for comp in self.competitor_analyses
        ]

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "yourAnalysis": self.your_analysis.to_dict(),
            "competitorAnalyses": [c.to_dict() for c in self.competitor_analyses],
            "insights": [i.to_dict() for i in self.insights],
        }


async def compare_competitors(
    client: AnalysisClient,
    your_image: ImageInput,
    competitor_images: list[ImageInput],
    website_url: str,
    keywords: list[str],
    target_audience: str,
) -> CompetitorComparison:
    """
    Compare your page against competitor screenshots.

    Image analyses run sequentially and their failures propagate. Only the
    final insight synthesis degrades: on any failure it yields no insights.
    """
    logger.info("comparison_started", competitors=len(competitor_images))

    your_analysis = await client.analyze(
        AnalysisRequest(
            image=your_image,
            keywords=keywords,
            target_audience=target_audience,
            website_url=website_url,
            generate_variants=True,
        )
    )

    competitor_analyses: list[AnalysisResult] = []
    for image in competitor_images:
        analysis = await client.analyze(
            AnalysisRequest(
                image=image,
                keywords=keywords,
                target_audience=target_audience,
                website_url=COMPETITOR_PLACEHOLDER,
                generate_variants=False,
            )
        )
        competitor_analyses.append(analysis)

    try:
        insights = await client.generate_competitive_insights(
            your_analysis, competitor_analyses, keywords
        )
    except ContentMapperError as e:
        logger.warning("competitive_insights_failed", error=e.message)
        insights = []
    except Exception as e:
        logger.exception("competitive_insights_failed", error=str(e))
        insights = []

    your_analysis.competitor_insights = insights or None

    logger.info(
        "comparison_completed",
        competitors=len(competitor_analyses),
        insights=len(insights),
    )
    return CompetitorComparison(
        your_analysis=your_analysis,
        competitor_analyses=competitor_analyses,
        insights=insights,
    )
