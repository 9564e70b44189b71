"""Interactive analysis session state.

An AnalysisSession holds what a user is currently looking at: the latest
analysis, its inputs, the selected section and the image reference backing
the result. Each analysis is tagged with a generation number, and a result
arriving after a newer analysis has started is discarded.
"""

import structlog

from content_mapper.analysis.client import AnalysisClient
from content_mapper.analysis.images import ImageRegistry
from content_mapper.analysis.models import (
    AnalysisConfig,
    AnalysisRequest,
    AnalysisResult,
    BrandVoiceProfile,
    DetectedSection,
    ImageInput,
    UserPreferences,
)
from content_mapper.exceptions import ContentMapperError, ValidationError
from content_mapper.storage.store import LocalStore

logger = structlog.get_logger(__name__)

# Advertised upload limit; larger images are still sent
MAX_IMAGE_BYTES = 10 * 1024 * 1024


def parse_keywords(text: str) -> list[str]:
    """Split comma-separated keywords, trimming and dropping empty entries."""
    return [part.strip() for part in text.split(",") if part.strip()]


def validate_inputs(
    image: ImageInput | None,
    keywords: list[str],
    target_audience: str,
) -> None:
    """
    Check analysis inputs before any model call.

    Raises:
        ValidationError: With ``details["field"]`` naming the offending input
    """
    if image is None:
        raise ValidationError("Please upload a screenshot first", field="image")
    if not image.is_image:
        raise ValidationError("Please upload a valid image file", field="image")
    if image.size_bytes > MAX_IMAGE_BYTES:
        logger.warning(
            "image_exceeds_advised_size",
            file_name=image.file_name,
            size_bytes=image.size_bytes,
            limit_bytes=MAX_IMAGE_BYTES,
        )
    if not keywords:
        raise ValidationError("Please enter at least one keyword", field="keywords")
    if not target_audience.strip():
        raise ValidationError("Please describe the target audience", field="target_audience")


class AnalysisSession:
    """State of one user's analysis view."""

    def __init__(
        self,
        client: AnalysisClient | None,
        store: LocalStore | None = None,
        image_registry: ImageRegistry | None = None,
    ):
        self.client = client
        self.store = store
        if image_registry is None:
            image_registry = client.images if client else ImageRegistry()
        self.images = image_registry
        self.result: AnalysisResult | None = None
        self.config: AnalysisConfig | None = None
        self.selected_section_id: str | None = None
        self.error: str | None = None
        self.busy = False
        self._generation = 0
        self._image_uri: str | None = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def image_uri(self) -> str | None:
        """The one live image reference this session owns."""
        return self._image_uri

    @property
    def preferences(self) -> UserPreferences:
        return self.store.get_preferences() if self.store else UserPreferences()

    # Generations

    def begin(self) -> int:
        """Start a new analysis and return its generation number."""
        self._generation += 1
        self.busy = True
        self.error = None
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def apply_result(
        self,
        generation: int,
        result: AnalysisResult,
        config: AnalysisConfig | None = None,
        remember: bool = True,
    ) -> bool:
        """
        Show a finished analysis unless a newer one has started.

        A discarded result has its image reference released. With
        ``remember`` the result is saved to history and recent inputs.

        Returns:
            True if the result was applied
        """
        if not self.is_current(generation):
            logger.info(
                "stale_result_discarded",
                generation=generation,
                current_generation=self._generation,
            )
            if result.image_url:
                self.images.revoke(result.image_url)
            return False

        self._replace_image(result.image_url or None)
        self.result = result
        self.config = config
        self.selected_section_id = result.sections[0].id if result.sections else None
        self.busy = False
        if remember:
            self._remember(result, config)
        return True

    def apply_error(self, generation: int, error: ContentMapperError) -> bool:
        if not self.is_current(generation):
            return False
        self.error = error.message
        self.busy = False
        return True

    async def analyze(
        self,
        image: ImageInput | None,
        keywords_text: str,
        target_audience: str,
        website_url: str = "",
        brand_voice: BrandVoiceProfile | None = None,
    ) -> AnalysisResult | None:
        """
        Validate inputs, run an analysis and show it.

        The stored brand voice is used when none is given and preferences
        allow it. Variants follow the ``enable_variants`` preference.

        Returns:
            The result, or None if a newer analysis superseded it

        Raises:
            ValidationError: If inputs are incomplete
            ContentMapperError: If the analysis fails; also kept on ``error``
        """
        if self.client is None:
            raise ContentMapperError("This session has no analysis client", code="configuration_error")

        keywords = parse_keywords(keywords_text)
        validate_inputs(image, keywords, target_audience)

        preferences = self.preferences
        if brand_voice is None and self.store and preferences.auto_load_brand_voice:
            brand_voice = self.store.get_brand_voice()

        request = AnalysisRequest(
            image=image,
            keywords=keywords,
            target_audience=target_audience.strip(),
            website_url=website_url.strip(),
            brand_voice=brand_voice,
            generate_variants=preferences.enable_variants,
        )

        generation = self.begin()
        try:
            result = await self.client.analyze(request)
        except ContentMapperError as e:
            self.apply_error(generation, e)
            raise

        if not self.apply_result(generation, result, request.config):
            return None
        return result

    def _replace_image(self, uri: str | None) -> None:
        if self._image_uri and self._image_uri != uri:
            self.images.revoke(self._image_uri)
        self._image_uri = uri

    def _remember(self, result: AnalysisResult, config: AnalysisConfig | None) -> None:
        if self.store is None or config is None:
            return
        if self.preferences.auto_save_history:
            self.store.save_history(result, config)
        for keyword in config.keywords:
            self.store.add_recent_keyword(keyword)
        self.store.add_recent_audience(config.target_audience)

    def show(self, result: AnalysisResult, config: AnalysisConfig | None = None) -> None:
        """Display an existing result, e.g. one loaded from history."""
        self.apply_result(self.begin(), result, config, remember=False)

    def close(self) -> None:
        """Release the image reference and forget the current result."""
        self._replace_image(None)
        self.result = None
        self.selected_section_id = None

    # Section navigation

    @property
    def selected_section(self) -> DetectedSection | None:
        if self.result is None or self.selected_section_id is None:
            return None
        return self.result.section_by_id(self.selected_section_id)

    def select_section(self, section_id: str) -> bool:
        if self.result is None or self.result.section_by_id(section_id) is None:
            return False
        self.selected_section_id = section_id
        return True

    def _move_selection(self, step: int) -> DetectedSection | None:
        if self.result is None:
            return None
        ids = [section.id for section in self.result.sections]
        current = ids.index(self.selected_section_id) if self.selected_section_id in ids else 0
        index = min(max(current + step, 0), len(ids) - 1)
        self.selected_section_id = ids[index]
        return self.selected_section

    def next_section(self) -> DetectedSection | None:
        """Select the following section; stays on the last one."""
        return self._move_selection(1)

    def previous_section(self) -> DetectedSection | None:
        """Select the preceding section; stays on the first one."""
        return self._move_selection(-1)
