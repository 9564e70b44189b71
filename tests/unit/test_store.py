"""Tests for LocalStore persistence."""

import json
import re

import pytest
from structlog.testing import capture_logs

from content_mapper.analysis.models import BrandVoiceProfile, ToneType
from content_mapper.storage.backends import MemoryStorage
from content_mapper.storage.store import (
    MAX_HISTORY,
    MAX_RECENT_AUDIENCES,
    MAX_RECENT_KEYWORDS,
    LocalStore,
    generate_record_id,
)


class TestRecordId:
    """Tests for history record ids."""

    def test_format(self) -> None:
        """Ids embed the timestamp and a base36 suffix."""
        record_id = generate_record_id(1767225600000)

        assert re.fullmatch(r"analysis_1767225600000_[0-9a-z]{7}", record_id)


class TestHistory:
    """Tests for history persistence."""

    def test_save_prepends(self, store, make_result, config) -> None:
        """Newest record comes first."""
        first = store.save_history(make_result(page_type="First"), config).value
        second = store.save_history(make_result(page_type="Second"), config).value

        history = store.get_history()

        assert [r.id for r in history] == [second.id, first.id]
        assert history[0].config.keywords == ["seo", "growth"]

    def test_cap(self, store, make_result, config) -> None:
        """Saving more than the cap keeps only the newest records."""
        for i in range(MAX_HISTORY + 2):
            store.save_history(make_result(page_type=f"Page {i}"), config)

        history = store.get_history()

        assert len(history) == MAX_HISTORY
        assert history[0].result.page_type == f"Page {MAX_HISTORY + 1}"
        assert history[-1].result.page_type == "Page 2"

    def test_get_and_delete_by_id(self, store, make_result, config) -> None:
        """Records can be found and removed by id."""
        record = store.save_history(make_result(), config).value
        store.save_history(make_result(), config)

        assert store.get_by_id(record.id).id == record.id

        assert store.delete_by_id(record.id).ok
        assert store.get_by_id(record.id) is None
        assert len(store.get_history()) == 1

    def test_delete_missing_is_noop(self, store) -> None:
        """Deleting an unknown id succeeds without writing."""
        assert store.delete_by_id("analysis_0_missing").ok

    def test_clear_all(self, store, make_result, config) -> None:
        """Clearing removes the history only."""
        store.save_history(make_result(), config)
        store.add_recent_keyword("seo")

        store.clear_all()

        assert store.get_history() == []
        assert store.get_recent_keywords() == ["seo"]

    def test_quota_exceeded(self, make_result, config) -> None:
        """A write that does not fit degrades instead of raising."""
        store = LocalStore(MemoryStorage(quota=100))

        saved = store.save_history(make_result(), config)

        assert not saved.ok
        assert "Quota" in saved.error
        assert saved.value.result.page_type == "Landing Page"
        assert store.get_history() == []

    def test_corrupt_history(self) -> None:
        """Unparseable stored history reads as empty and degraded."""
        storage = MemoryStorage()
        storage.set_item("vcm_analysis_history", "{not json")

        read = LocalStore(storage).read_history()

        assert read.value == []
        assert not read.ok

    def test_invalid_records_skipped_and_preserved(self, make_result, config) -> None:
        """Invalid entries are skipped on read but survive later writes."""
        storage = MemoryStorage()
        storage.set_item("vcm_analysis_history", json.dumps([{"id": "broken"}]))
        store = LocalStore(storage)

        store.save_history(make_result(), config)
        read = store.read_history()

        assert len(read.value) == 1
        assert not read.ok
        assert len(json.loads(storage.get_item("vcm_analysis_history"))) == 2

    def test_namespace(self, make_result, config) -> None:
        """Keys carry the namespace prefix."""
        storage = MemoryStorage()

        LocalStore(storage, namespace="test_").save_history(make_result(), config)

        assert storage.keys() == ["test_analysis_history"]


class TestBrandVoice:
    """Tests for brand voice persistence."""

    def test_round_trip(self, store) -> None:
        """A saved profile is read back."""
        store.save_brand_voice(BrandVoiceProfile(tone="friendly", avoid_words=["synergy"]))

        profile = store.get_brand_voice()

        assert profile.tone == ToneType.FRIENDLY
        assert profile.avoid_words == ["synergy"]

    def test_absent_and_clear(self, store) -> None:
        """No profile reads as None, including after clearing."""
        assert store.get_brand_voice() is None

        store.save_brand_voice(BrandVoiceProfile())
        store.clear_brand_voice()

        assert store.get_brand_voice() is None


class TestPreferences:
    """Tests for preference persistence."""

    def test_defaults(self, store) -> None:
        """Nothing stored yields the defaults."""
        prefs = store.get_preferences()

        assert prefs.auto_save_history is True
        assert prefs.variant_count == 3

    def test_partial_merge(self, store) -> None:
        """A partial update keeps the other stored fields."""
        store.save_preferences({"theme": "light"})
        store.save_preferences({"variantCount": 5})

        prefs = store.get_preferences()

        assert prefs.theme == "light"
        assert prefs.variant_count == 5
        assert prefs.enable_variants is True

    def test_snake_case_keys(self, store) -> None:
        """Python field names are accepted."""
        saved = store.save_preferences({"auto_save_history": False})

        assert saved.ok
        assert store.get_preferences().auto_save_history is False

    def test_invalid_update_rejected(self, store) -> None:
        """An out-of-range value leaves the stored preferences untouched."""
        store.save_preferences({"theme": "light"})

        saved = store.save_preferences({"variant_count": 9})

        assert not saved.ok
        assert saved.value.theme == "light"
        assert store.get_preferences().variant_count == 3

    def test_unknown_keys_logged(self, store) -> None:
        """Unknown keys are skipped with a warning; known keys still apply."""
        with capture_logs() as logs:
            saved = store.save_preferences({"foo": "bar", "theme": "light"})

        assert saved.ok
        assert store.get_preferences().theme == "light"
        events = [log for log in logs if log["event"] == "preferences_unknown_keys"]
        assert events[0]["keys"] == ["foo"]

    def test_invalid_stored_field_falls_back(self) -> None:
        """An invalid stored value is replaced by its default."""
        storage = MemoryStorage()
        storage.set_item("vcm_preferences", json.dumps({"theme": "neon", "variantCount": 4}))

        read = LocalStore(storage).read_preferences()

        assert not read.ok
        assert read.value.theme == "dark"
        assert read.value.variant_count == 4


class TestRecents:
    """Tests for recent keyword and audience lists."""

    def test_keywords_dedupe(self, store) -> None:
        """Adding an existing keyword does not move or duplicate it."""
        store.add_recent_keyword("seo")
        store.add_recent_keyword("growth")
        store.add_recent_keyword("seo")

        assert store.get_recent_keywords() == ["growth", "seo"]

    def test_keywords_cap(self, store) -> None:
        """Only the newest keywords are kept."""
        for i in range(MAX_RECENT_KEYWORDS + 5):
            store.add_recent_keyword(f"kw{i}")

        keywords = store.get_recent_keywords()

        assert len(keywords) == MAX_RECENT_KEYWORDS
        assert keywords[0] == f"kw{MAX_RECENT_KEYWORDS + 4}"

    def test_audiences_cap(self, store) -> None:
        """Audiences use their own cap."""
        for i in range(MAX_RECENT_AUDIENCES + 3):
            store.add_recent_audience(f"Audience {i}")

        assert len(store.get_recent_audiences()) == MAX_RECENT_AUDIENCES

    def test_blank_ignored(self, store) -> None:
        """Whitespace-only values are not recorded."""
        store.add_recent_audience("   ")

        assert store.get_recent_audiences() == []


class TestSnapshot:
    """Tests for export and import of stored data."""

    def test_export_shape(self, store, make_result, config) -> None:
        """The snapshot holds history, brand voice and preferences."""
        store.save_history(make_result(), config)
        store.save_brand_voice(BrandVoiceProfile(tone="casual"))

        snapshot = json.loads(store.export_history_as_json())

        assert snapshot["version"] == "1.0"
        assert isinstance(snapshot["exportedAt"], int)
        assert len(snapshot["history"]) == 1
        assert snapshot["brandVoice"]["tone"] == "casual"
        assert snapshot["preferences"]["theme"] == "dark"

    def test_import_restores(self, store, make_result, config) -> None:
        """Importing a snapshot into an empty store restores it."""
        store.save_history(make_result(), config)
        store.save_preferences({"theme": "light"})
        payload = store.export_history_as_json()

        other = LocalStore(MemoryStorage())
        assert other.import_history_from_json(payload) is True

        assert len(other.get_history()) == 1
        assert other.get_preferences().theme == "light"
        assert other.get_brand_voice() is None

    def test_import_replaces_history(self, store, make_result, config) -> None:
        """Imported history replaces rather than merges."""
        store.save_history(make_result(), config)
        store.save_history(make_result(), config)

        assert store.import_history_from_json(json.dumps({"history": []})) is True
        assert store.get_history() == []

    @pytest.mark.parametrize("payload", ["not json", "[1, 2]", ""])
    def test_import_rejects_bad_payload(self, store, payload) -> None:
        """Unparseable or non-object payloads fail."""
        assert store.import_history_from_json(payload) is False


class TestStatisticsFromStore:
    """Tests for LocalStore.get_statistics."""

    def test_counts_saved_history(self, store, make_result, config) -> None:
        """Statistics cover the stored records."""
        store.save_history(make_result(overall_seo_score=60), config)
        store.save_history(make_result(overall_seo_score=80), config)

        stats = store.get_statistics()

        assert stats.total_analyses == 2
        assert stats.average_seo_score == 70
        assert stats.top_keywords == [("seo", 2), ("growth", 2)]
