"""Analysis client: one model call, one parse, one decoration step."""

import time

import structlog

from content_mapper.analysis.images import ImageRegistry
from content_mapper.analysis.models import (
    AnalysisRequest,
    AnalysisResult,
    CompetitorInsight,
)
from content_mapper.analysis.parser import parse_analysis, parse_insights
from content_mapper.analysis.prompts import (
    RefineContext,
    build_analysis_prompt,
    build_insights_prompt,
    build_refine_prompt,
)
from content_mapper.analysis.providers import (
    GenerationRequest,
    GenerationResponse,
    ModelProvider,
    get_provider,
)
from content_mapper.config import DEFAULT_MODEL, Settings, get_settings
from content_mapper.exceptions import ModelProviderError

logger = structlog.get_logger(__name__)


class AnalysisClient:
    """Issues analysis, insight and refinement calls against one provider.

    The provider, model and image registry are passed in explicitly; there is
    no shared module-level client.
    """

    def __init__(
        self,
        provider: ModelProvider,
        model: str = DEFAULT_MODEL,
        image_registry: ImageRegistry | None = None,
        analysis_temperature: float = 0.7,
        insights_temperature: float = 0.7,
        refine_temperature: float = 0.8,
    ):
        self.provider = provider
        self.model = model
        self.images = image_registry or ImageRegistry()
        self.analysis_temperature = analysis_temperature
        self.insights_temperature = insights_temperature
        self.refine_temperature = refine_temperature

    async def _call(self, request: GenerationRequest, failure_prefix: str) -> GenerationResponse:
        response = await self.provider.generate(request)
        if not response.success:
            error = response.error
            message = error.message if error else "unknown provider error"
            raise ModelProviderError(
                f"{failure_prefix}: {message}",
                provider=self.provider.provider_type.value,
                error_type=error.error_type if error else "unknown",
                retryable=error.retryable if error else False,
            )
        return response

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """
        Analyze one screenshot.

        Args:
            request: Image plus audience, keywords and optional context

        Returns:
            Validated AnalysisResult decorated with imageUrl, imageFileName
            and timestamp

        Raises:
            ValidationError: If audience or keywords are missing
            ModelProviderError: On transport or provider failure
            InvalidModelResponseError: If the response is not a valid analysis
        """
        prompt = build_analysis_prompt(request)

        generation = GenerationRequest(
            prompt=prompt.instruction_text,
            model=self.model,
            images=[request.image],
            temperature=self.analysis_temperature,
            response_mime_type="application/json",
            response_schema=prompt.output_schema,
        )

        logger.info(
            "analysis_started",
            file_name=request.image.file_name,
            model=self.model,
            keywords=len(request.keywords),
            variants=request.generate_variants,
        )
        response = await self._call(generation, "Failed to analyze screenshot")

        result = parse_analysis(response.content)
        result.image_url = self.images.acquire(request.image)
        result.image_file_name = request.image.file_name
        result.timestamp = int(time.time() * 1000)

        logger.info(
            "analysis_completed",
            file_name=request.image.file_name,
            sections=len(result.sections),
            overall_seo_score=result.overall_seo_score,
            latency_ms=round(response.latency_ms, 1),
        )
        return result

    async def generate_competitive_insights(
        self,
        your_analysis: AnalysisResult,
        competitor_analyses: list[AnalysisResult],
        keywords: list[str],
    ) -> list[CompetitorInsight]:
        """Synthesize strengths, weaknesses and keyword gaps per competitor.

        Raises on failure; the comparison orchestrator decides how to degrade.
        """
        generation = GenerationRequest(
            prompt=build_insights_prompt(your_analysis, competitor_analyses, keywords),
            model=self.model,
            temperature=self.insights_temperature,
            response_mime_type="application/json",
        )
        response = await self._call(generation, "Failed to generate competitive insights")
        return parse_insights(response.content)

    async def refine(
        self,
        original_content: str,
        user_feedback: str,
        context: RefineContext,
    ) -> str:
        """Rewrite one content string from free-text feedback. Returns plain text."""
        generation = GenerationRequest(
            prompt=build_refine_prompt(original_content, user_feedback, context),
            model=self.model,
            temperature=self.refine_temperature,
        )
        response = await self._call(generation, "Failed to refine content")
        return response.content.strip()


def create_client(
    settings: Settings | None = None,
    image_registry: ImageRegistry | None = None,
) -> AnalysisClient:
    """Build a client for the provider and model selected in settings."""
    settings = settings or get_settings()
    provider = get_provider(settings.model_provider, settings.provider_config())
    return AnalysisClient(
        provider=provider,
        model=settings.analysis_model,
        image_registry=image_registry,
        analysis_temperature=settings.analysis_temperature,
        insights_temperature=settings.insights_temperature,
        refine_temperature=settings.refine_temperature,
    )
