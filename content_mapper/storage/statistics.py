"""Aggregate statistics over analysis history."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime

from content_mapper.analysis.models import HistoryRecord

TOP_KEYWORDS_LIMIT = 10


@dataclass
class HistoryStatistics:
    total_analyses: int = 0
    average_seo_score: float = 0.0
    top_keywords: list[tuple[str, int]] = field(default_factory=list)
    analysis_over_time: list[tuple[str, int]] = field(default_factory=list)
    top_page_types: list[tuple[str, int]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "totalAnalyses": self.total_analyses,
            "averageSeoScore": self.average_seo_score,
            "topKeywords": [{"keyword": k, "count": c} for k, c in self.top_keywords],
            "analysisOverTime": [{"date": d, "count": c} for d, c in self.analysis_over_time],
            "topPageTypes": [{"type": t, "count": c} for t, c in self.top_page_types],
        }


def _day(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC).date().isoformat()


def _by_count(counts: Counter) -> list[tuple[str, int]]:
    # Stable: ties keep first-seen order
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)


def compute_statistics(history: list[HistoryRecord]) -> HistoryStatistics:
    """
    Aggregate a history list.

    Keywords and page types are ranked by count, descending. Analyses are
    bucketed per UTC calendar day in ascending date order. An empty history
    yields zeroed statistics.
    """
    if not history:
        return HistoryStatistics()

    keyword_counts: Counter = Counter()
    day_counts: Counter = Counter()
    page_type_counts: Counter = Counter()
    for record in history:
        keyword_counts.update(record.config.keywords)
        day_counts[_day(record.timestamp)] += 1
        page_type_counts[record.result.page_type] += 1

    total = len(history)
    return HistoryStatistics(
        total_analyses=total,
        average_seo_score=sum(r.result.overall_seo_score for r in history) / total,
        top_keywords=_by_count(keyword_counts)[:TOP_KEYWORDS_LIMIT],
        analysis_over_time=sorted(day_counts.items()),
        top_page_types=_by_count(page_type_counts),
    )
