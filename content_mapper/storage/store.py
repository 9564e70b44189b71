"""Persistence of history, brand voice, preferences and recent inputs.

Every operation is best-effort. Storage failures (quota exceeded, unreadable
or corrupt data) are logged and degrade to a safe default instead of raising.
The ``read_*`` methods return a StorageResult so callers can tell a
legitimately empty value from one that could not be read; the plain getters
return the value alone.
"""

import json
import random
import string
import threading
import time
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import structlog
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from content_mapper.analysis.models import (
    AnalysisConfig,
    AnalysisResult,
    BrandVoiceProfile,
    HistoryRecord,
    UserPreferences,
)
from content_mapper.exceptions import StorageError
from content_mapper.storage.backends import KeyValueStorage
from content_mapper.storage.statistics import HistoryStatistics, compute_statistics

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_NAMESPACE = "vcm_"

HISTORY_KEY = "analysis_history"
BRAND_VOICE_KEY = "brand_voice"
PREFERENCES_KEY = "preferences"
RECENT_KEYWORDS_KEY = "recent_keywords"
RECENT_AUDIENCES_KEY = "recent_audiences"

MAX_HISTORY = 50
MAX_RECENT_KEYWORDS = 20
MAX_RECENT_AUDIENCES = 10

PREFERENCE_ALIASES = frozenset(to_camel(name) for name in UserPreferences.model_fields)
PREFERENCE_KEYS = frozenset(UserPreferences.model_fields) | PREFERENCE_ALIASES

EXPORT_VERSION = "1.0"

_ID_ALPHABET = string.digits + string.ascii_lowercase


@dataclass
class StorageResult(Generic[T]):
    """Outcome of a storage operation.

    ``value`` is always usable; when ``ok`` is False it holds the safe default
    (or the subset of data that could be read) and ``error`` says why.
    """

    value: T
    ok: bool = True
    error: str | None = None


def generate_record_id(timestamp_ms: int | None = None) -> str:
    """Create a history id: ``analysis_<epoch-ms>_<7 base36 chars>``.

    Not cryptographically unique.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    suffix = "".join(random.choices(_ID_ALPHABET, k=7))
    return f"analysis_{timestamp_ms}_{suffix}"


class LocalStore:
    """Namespaced JSON records on top of a KeyValueStorage."""

    def __init__(self, storage: KeyValueStorage, namespace: str = DEFAULT_NAMESPACE):
        self.storage = storage
        self.namespace = namespace
        # Guards read-modify-write so caps and dedupe hold across threads
        self._lock = threading.RLock()

    def _key(self, name: str) -> str:
        return f"{self.namespace}{name}"

    # Raw access

    def _read_raw(self, name: str) -> StorageResult[Any]:
        key = self._key(name)
        try:
            data = self.storage.get_item(key)
        except StorageError as e:
            logger.warning("storage_read_failed", key=key, error=e.message)
            return StorageResult(None, ok=False, error=e.message)

        if data is None:
            return StorageResult(None)

        try:
            return StorageResult(json.loads(data))
        except json.JSONDecodeError as e:
            logger.warning("storage_record_corrupt", key=key, error=e.msg)
            return StorageResult(None, ok=False, error=f"Corrupt JSON under {key}: {e.msg}")

    def _write_raw(self, name: str, value: Any) -> StorageResult[None]:
        key = self._key(name)
        try:
            self.storage.set_item(key, json.dumps(value))
        except StorageError as e:
            logger.warning("storage_write_failed", key=key, error=e.message)
            return StorageResult(None, ok=False, error=e.message)
        return StorageResult(None)

    def _remove(self, name: str) -> StorageResult[None]:
        key = self._key(name)
        try:
            self.storage.remove_item(key)
        except StorageError as e:
            logger.warning("storage_remove_failed", key=key, error=e.message)
            return StorageResult(None, ok=False, error=e.message)
        return StorageResult(None)

    def _raw_list(self, name: str) -> list:
        read = self._read_raw(name)
        return read.value if isinstance(read.value, list) else []

    # History

    def read_history(self) -> StorageResult[list[HistoryRecord]]:
        """Read history newest-first, skipping records that fail validation."""
        read = self._read_raw(HISTORY_KEY)
        if not read.ok:
            return StorageResult([], ok=False, error=read.error)
        if read.value is None:
            return StorageResult([])
        if not isinstance(read.value, list):
            logger.warning("history_not_a_list", found=type(read.value).__name__)
            return StorageResult([], ok=False, error="Stored history is not a list")

        records: list[HistoryRecord] = []
        skipped = 0
        for item in read.value:
            try:
                records.append(HistoryRecord.model_validate(item))
            except PydanticValidationError:
                skipped += 1

        if skipped:
            logger.warning("history_records_skipped", skipped=skipped, kept=len(records))
            return StorageResult(
                records, ok=False, error=f"{skipped} invalid history record(s) skipped"
            )
        return StorageResult(records)

    def get_history(self) -> list[HistoryRecord]:
        return self.read_history().value

    def save_history(
        self, result: AnalysisResult, config: AnalysisConfig
    ) -> StorageResult[HistoryRecord]:
        """
        Prepend a history record, keeping the newest MAX_HISTORY.

        Returns:
            StorageResult whose value is the new record; ``ok`` is False if it
            could not be persisted
        """
        timestamp = int(time.time() * 1000)
        record = HistoryRecord(
            id=generate_record_id(timestamp),
            result=result,
            timestamp=timestamp,
            config=config,
        )

        with self._lock:
            history = self._raw_list(HISTORY_KEY)
            history.insert(0, record.to_dict())
            del history[MAX_HISTORY:]
            written = self._write_raw(HISTORY_KEY, history)

        if written.ok:
            logger.debug("history_saved", record_id=record.id, size=len(history))
        return StorageResult(record, ok=written.ok, error=written.error)

    def get_by_id(self, record_id: str) -> HistoryRecord | None:
        for record in self.get_history():
            if record.id == record_id:
                return record
        return None

    def delete_by_id(self, record_id: str) -> StorageResult[None]:
        with self._lock:
            history = self._raw_list(HISTORY_KEY)
            kept = [
                item
                for item in history
                if not (isinstance(item, dict) and item.get("id") == record_id)
            ]
            if len(kept) == len(history):
                return StorageResult(None)
            return self._write_raw(HISTORY_KEY, kept)

    def clear_all(self) -> StorageResult[None]:
        """Remove the whole history."""
        return self._remove(HISTORY_KEY)

    # Brand voice

    def read_brand_voice(self) -> StorageResult[BrandVoiceProfile | None]:
        read = self._read_raw(BRAND_VOICE_KEY)
        if not read.ok or read.value is None:
            return StorageResult(None, ok=read.ok, error=read.error)
        try:
            return StorageResult(BrandVoiceProfile.model_validate(read.value))
        except PydanticValidationError as e:
            logger.warning("brand_voice_invalid", errors=e.error_count())
            return StorageResult(None, ok=False, error="Stored brand voice is invalid")

    def get_brand_voice(self) -> BrandVoiceProfile | None:
        return self.read_brand_voice().value

    def save_brand_voice(self, profile: BrandVoiceProfile) -> StorageResult[None]:
        """Overwrite the stored profile."""
        return self._write_raw(BRAND_VOICE_KEY, profile.to_dict())

    def clear_brand_voice(self) -> StorageResult[None]:
        return self._remove(BRAND_VOICE_KEY)

    # Preferences

    def read_preferences(self) -> StorageResult[UserPreferences]:
        """Stored preferences merged over defaults.

        Always a complete record. Fields holding invalid values fall back to
        their defaults and mark the result as degraded.
        """
        read = self._read_raw(PREFERENCES_KEY)
        if not read.ok:
            return StorageResult(UserPreferences(), ok=False, error=read.error)
        stored = read.value if isinstance(read.value, dict) else {}

        try:
            return StorageResult(UserPreferences.model_validate(stored))
        except PydanticValidationError as e:
            invalid = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
            logger.warning("preferences_invalid", fields=sorted(invalid))
            cleaned = {k: v for k, v in stored.items() if k not in invalid}
            return StorageResult(
                UserPreferences.model_validate(cleaned),
                ok=False,
                error=f"Invalid preference value(s): {', '.join(sorted(invalid))}",
            )

    def get_preferences(self) -> UserPreferences:
        return self.read_preferences().value

    def save_preferences(self, partial: dict[str, Any]) -> StorageResult[UserPreferences]:
        """
        Merge ``partial`` over the current preferences and persist the result.

        Keys may be given in snake_case or camelCase. Unknown keys are logged and ignored.
        An invalid value leaves the stored preferences untouched.
        """
        fields = UserPreferences.model_fields
        updates = {}
        unknown = []
        for name, value in partial.items():
            if name in fields:
                updates[to_camel(name)] = value
            elif name in PREFERENCE_ALIASES:
                updates[name] = value
            else:
                unknown.append(name)
        if unknown:
            logger.warning("preferences_unknown_keys", keys=sorted(unknown))

        with self._lock:
            current = self.get_preferences()
            try:
                merged = UserPreferences.model_validate({**current.to_dict(), **updates})
            except PydanticValidationError as e:
                logger.warning("preferences_update_rejected", errors=e.error_count())
                return StorageResult(current, ok=False, error=str(e))
            written = self._write_raw(PREFERENCES_KEY, merged.to_dict())

        return StorageResult(merged, ok=written.ok, error=written.error)

    # Recent inputs

    def _add_recent(self, name: str, value: str, cap: int) -> StorageResult[None]:
        value = value.strip()
        if not value:
            return StorageResult(None)

        with self._lock:
            recent = [v for v in self._raw_list(name) if isinstance(v, str)]
            # Existing entries keep their position
            if value in recent:
                return StorageResult(None)
            recent.insert(0, value)
            del recent[cap:]
            return self._write_raw(name, recent)

    def _get_recent(self, name: str) -> list[str]:
        return [v for v in self._raw_list(name) if isinstance(v, str)]

    def add_recent_keyword(self, keyword: str) -> StorageResult[None]:
        return self._add_recent(RECENT_KEYWORDS_KEY, keyword, MAX_RECENT_KEYWORDS)

    def get_recent_keywords(self) -> list[str]:
        return self._get_recent(RECENT_KEYWORDS_KEY)

    def add_recent_audience(self, audience: str) -> StorageResult[None]:
        return self._add_recent(RECENT_AUDIENCES_KEY, audience, MAX_RECENT_AUDIENCES)

    def get_recent_audiences(self) -> list[str]:
        return self._get_recent(RECENT_AUDIENCES_KEY)

    # Snapshot

    def export_history_as_json(self) -> str:
        """Serialize history, brand voice and preferences as one document."""
        brand_voice = self.get_brand_voice()
        snapshot = {
            "exportedAt": int(time.time() * 1000),
            "version": EXPORT_VERSION,
            "history": [record.to_dict() for record in self.get_history()],
            "brandVoice": brand_voice.to_dict() if brand_voice else None,
            "preferences": self.get_preferences().to_dict(),
        }
        return json.dumps(snapshot, indent=2)

    def import_history_from_json(self, payload: str) -> bool:
        """
        Restore a snapshot produced by export_history_as_json.

        Each of history, brandVoice and preferences present in the payload
        replaces the stored value wholesale. Contents are not validated here;
        invalid records are skipped later when read.

        Returns:
            False if the payload does not parse or a write fails
        """
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            logger.warning("history_import_failed", error=e.msg)
            return False
        if not isinstance(data, dict):
            logger.warning("history_import_failed", error="payload is not an object")
            return False

        ok = True
        with self._lock:
            for field_name, key in (
                ("history", HISTORY_KEY),
                ("brandVoice", BRAND_VOICE_KEY),
                ("preferences", PREFERENCES_KEY),
            ):
                if data.get(field_name) is not None:
                    ok = self._write_raw(key, data[field_name]).ok and ok

        logger.info("history_imported", success=ok)
        return ok

    def get_statistics(self) -> HistoryStatistics:
        return compute_statistics(self.get_history())
