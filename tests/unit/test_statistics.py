"""Tests for history statistics."""

from content_mapper.analysis.models import AnalysisConfig, HistoryRecord
from content_mapper.storage.statistics import HistoryStatistics, compute_statistics

DAY_MS = 86_400_000
JAN_1_2026 = 1_767_225_600_000


def record(make_result, timestamp: int, keywords: list[str], score: float, page_type: str) -> HistoryRecord:
    return HistoryRecord(
        id=f"analysis_{timestamp}_abcdefg",
        result=make_result(overall_seo_score=score, page_type=page_type),
        timestamp=timestamp,
        config=AnalysisConfig(keywords=keywords),
    )


class TestComputeStatistics:
    """Tests for compute_statistics."""

    def test_empty(self) -> None:
        """Empty history yields zeros."""
        stats = compute_statistics([])

        assert stats.total_analyses == 0
        assert stats.average_seo_score == 0
        assert stats.top_keywords == []

    def test_aggregates(self, make_result) -> None:
        """Counts keywords, days and page types."""
        history = [
            record(make_result, JAN_1_2026 + DAY_MS + 5, ["seo", "crm"], 90, "Pricing"),
            record(make_result, JAN_1_2026 + 10, ["seo"], 60, "Landing Page"),
            record(make_result, JAN_1_2026 + 20, ["growth", "seo"], 75, "Landing Page"),
        ]

        stats = compute_statistics(history)

        assert stats.total_analyses == 3
        assert stats.average_seo_score == 75
        assert stats.top_keywords[0] == ("seo", 3)
        assert stats.analysis_over_time == [("2026-01-01", 2), ("2026-01-02", 1)]
        assert stats.top_page_types == [("Landing Page", 2), ("Pricing", 1)]

    def test_keyword_limit(self, make_result) -> None:
        """At most ten keywords are reported."""
        keywords = [f"kw{i}" for i in range(15)]

        stats = compute_statistics([record(make_result, JAN_1_2026, keywords, 50, "Blog")])

        assert len(stats.top_keywords) == 10


class TestHistoryStatistics:
    """Tests for HistoryStatistics."""

    def test_to_dict(self) -> None:
        """Serializes pairs as objects."""
        d = HistoryStatistics(
            total_analyses=1,
            average_seo_score=50.0,
            top_keywords=[("seo", 1)],
            analysis_over_time=[("2026-01-01", 1)],
            top_page_types=[("Blog", 1)],
        ).to_dict()

        assert d["topKeywords"] == [{"keyword": "seo", "count": 1}]
        assert d["analysisOverTime"] == [{"date": "2026-01-01", "count": 1}]
        assert d["topPageTypes"] == [{"type": "Blog", "count": 1}]
