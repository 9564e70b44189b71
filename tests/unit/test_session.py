"""Tests for the interactive analysis session."""

import pytest

from content_mapper.analysis.models import BrandVoiceProfile, ImageInput
from content_mapper.exceptions import ContentMapperError, ModelProviderError, ValidationError
from content_mapper.session import (
    MAX_IMAGE_BYTES,
    AnalysisSession,
    parse_keywords,
    validate_inputs,
)


@pytest.fixture
def session(client, store) -> AnalysisSession:
    return AnalysisSession(client, store)


class TestInputs:
    """Tests for keyword parsing and input validation."""

    def test_parse_keywords(self) -> None:
        """Splits on commas and drops blanks."""
        assert parse_keywords(" seo , growth,, ") == ["seo", "growth"]

    def test_missing_image(self) -> None:
        """No image is rejected first."""
        with pytest.raises(ValidationError, match="upload a screenshot") as exc_info:
            validate_inputs(None, ["seo"], "Founders")

        assert exc_info.value.details["field"] == "image"

    def test_not_an_image(self) -> None:
        """Non-image files are rejected."""
        doc = ImageInput(data=b"%PDF", mime_type="application/pdf", file_name="a.pdf")

        with pytest.raises(ValidationError, match="valid image"):
            validate_inputs(doc, ["seo"], "Founders")

    def test_large_image_allowed(self) -> None:
        """Images above the advised size are still accepted."""
        big = ImageInput(data=b"x" * (MAX_IMAGE_BYTES + 1), mime_type="image/png")

        validate_inputs(big, ["seo"], "Founders")

    def test_missing_keywords_and_audience(self, image) -> None:
        """Keywords and audience are required."""
        with pytest.raises(ValidationError) as exc_info:
            validate_inputs(image, [], "Founders")
        assert exc_info.value.details["field"] == "keywords"

        with pytest.raises(ValidationError) as exc_info:
            validate_inputs(image, ["seo"], "  ")
        assert exc_info.value.details["field"] == "target_audience"


class TestAnalyze:
    """Tests for AnalysisSession.analyze."""

    @pytest.mark.asyncio
    async def test_success_remembers(self, session, store, mock_provider, make_payload, image) -> None:
        """A result is shown, saved to history and its inputs recorded."""
        mock_provider.enqueue_json(make_payload())

        result = await session.analyze(image, "seo, growth", " Founders ", "https://example.com")

        assert session.result is result
        assert session.selected_section_id == "hero-1"
        assert session.image_uri == result.image_url
        assert not session.busy
        assert len(store.get_history()) == 1
        assert store.get_history()[0].config.target_audience == "Founders"
        assert store.get_recent_keywords() == ["growth", "seo"]
        assert store.get_recent_audiences() == ["Founders"]

    @pytest.mark.asyncio
    async def test_auto_save_disabled(self, session, store, mock_provider, make_payload, image) -> None:
        """History is skipped but recent inputs are still kept."""
        store.save_preferences({"auto_save_history": False})
        mock_provider.enqueue_json(make_payload())

        await session.analyze(image, "seo", "Founders")

        assert store.get_history() == []
        assert store.get_recent_keywords() == ["seo"]

    @pytest.mark.asyncio
    async def test_preferences_shape_request(self, session, store, mock_provider, make_payload, image) -> None:
        """Stored brand voice is loaded and variants follow preferences."""
        store.save_brand_voice(BrandVoiceProfile(tone="friendly"))
        store.save_preferences({"enable_variants": False})
        mock_provider.enqueue_json(make_payload())

        await session.analyze(image, "seo", "Founders")

        prompt = mock_provider.calls[0].prompt
        assert "Tone: friendly" in prompt
        assert "CONTENT VARIANTS" not in prompt

    @pytest.mark.asyncio
    async def test_brand_voice_not_auto_loaded(self, session, store, mock_provider, make_payload, image) -> None:
        """Auto-load can be switched off."""
        store.save_brand_voice(BrandVoiceProfile(tone="friendly"))
        store.save_preferences({"auto_load_brand_voice": False})
        mock_provider.enqueue_json(make_payload())

        await session.analyze(image, "seo", "Founders")

        assert "Brand Voice Guidelines" not in mock_provider.calls[0].prompt

    @pytest.mark.asyncio
    async def test_new_result_releases_old_image(self, session, client, mock_provider, make_payload, image) -> None:
        """Only the current result's image stays live."""
        mock_provider.enqueue_json(make_payload(), make_payload())

        first = await session.analyze(image, "seo", "Founders")
        second = await session.analyze(image, "seo", "Founders")

        assert client.images.resolve(first.image_url) is None
        assert client.images.resolve(second.image_url) is image
        assert client.images.live_count == 1

    @pytest.mark.asyncio
    async def test_failure_recorded(self, session, mock_provider, image) -> None:
        """A failed analysis raises and leaves the error on the session."""
        with pytest.raises(ModelProviderError):
            await session.analyze(image, "seo", "Founders")

        assert session.error.startswith("Failed to analyze screenshot")
        assert not session.busy
        assert session.result is None

    @pytest.mark.asyncio
    async def test_validation_before_call(self, session, mock_provider) -> None:
        """Invalid inputs never reach the provider."""
        with pytest.raises(ValidationError):
            await session.analyze(None, "seo", "Founders")

        assert mock_provider.calls == []

    @pytest.mark.asyncio
    async def test_requires_client(self, store, image) -> None:
        """A viewer-only session cannot analyze."""
        with pytest.raises(ContentMapperError) as exc_info:
            await AnalysisSession(None, store).analyze(image, "seo", "Founders")

        assert exc_info.value.code == "configuration_error"


class TestGenerations:
    """Tests for stale result handling."""

    def test_stale_result_discarded(self, session, client, make_result, image, config) -> None:
        """A result from a superseded generation is dropped and its image released."""
        old = session.begin()
        new = session.begin()
        stale = make_result()
        stale.image_url = client.images.acquire(image)

        assert session.apply_result(old, stale, config) is False
        assert session.result is None
        assert client.images.resolve(stale.image_url) is None
        assert session.is_current(new)

    def test_stale_error_ignored(self, session) -> None:
        """Errors from old generations do not overwrite state."""
        old = session.begin()
        session.begin()

        assert session.apply_error(old, ContentMapperError("late failure")) is False
        assert session.error is None


class TestNavigation:
    """Tests for section selection."""

    def test_show_does_not_save(self, session, store, make_result, config) -> None:
        """Showing a stored result does not add history."""
        session.show(make_result(), config)

        assert session.selected_section.id == "hero-1"
        assert store.get_history() == []

    def test_next_and_previous_clamp(self, session, make_result) -> None:
        """Selection moves one step and stops at the ends."""
        session.show(make_result())

        assert session.next_section().id == "cta-1"
        assert session.next_section().id == "cta-1"
        assert session.previous_section().id == "hero-1"
        assert session.previous_section().id == "hero-1"

    def test_select_section(self, session, make_result) -> None:
        """Only existing ids can be selected."""
        session.show(make_result())

        assert session.select_section("cta-1") is True
        assert session.select_section("missing") is False
        assert session.selected_section_id == "cta-1"

    def test_navigation_without_result(self, session) -> None:
        """Nothing to select before a result is shown."""
        assert session.next_section() is None
        assert session.selected_section is None

    def test_close_releases_image(self, session, client, make_result, image) -> None:
        """Closing revokes the live image reference."""
        result = make_result()
        result.image_url = client.images.acquire(image)
        session.show(result)

        session.close()

        assert client.images.live_count == 0
        assert session.result is None
