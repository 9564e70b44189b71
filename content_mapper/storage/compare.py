"""Delta comparison between two analyses of a page.

Sections are matched by id. Ids are generated per analysis, so two
independent analyses of the same page rarely share any. When no id is shared
at all, sections are matched instead by type and nearest bounding-box centre.
"""

import math
from dataclasses import dataclass, field
from enum import StrEnum

import structlog

from content_mapper.analysis.models import AnalysisResult, ComparisonMode, DetectedSection

logger = structlog.get_logger(__name__)

# Max centre distance (percentage points) for a position match
POSITION_MATCH_DISTANCE = 15.0


class MatchStrategy(StrEnum):
    """How sections of the two analyses were paired."""

    ID = "id"
    POSITION = "position"


@dataclass
class AnalysisDelta:
    """Score and section changes from one analysis to the next."""

    seo_score_delta: float
    sections_added: list[str] = field(default_factory=list)
    sections_removed: list[str] = field(default_factory=list)
    sections_improved: list[str] = field(default_factory=list)
    sections_declined: list[str] = field(default_factory=list)
    matched_by: MatchStrategy = MatchStrategy.ID

    @property
    def overall_improvement(self) -> bool:
        return self.seo_score_delta > 0

    @property
    def delta_display(self) -> str:
        """Human-readable delta string."""
        if abs(self.seo_score_delta) < 0.5:
            return "—"
        sign = "+" if self.seo_score_delta > 0 else ""
        return f"{sign}{self.seo_score_delta:.0f}"

    def to_dict(self) -> dict:
        return {
            "seoScoreDelta": self.seo_score_delta,
            "sectionsAdded": self.sections_added,
            "sectionsRemoved": self.sections_removed,
            "sectionsImproved": self.sections_improved,
            "sectionsDeclined": self.sections_declined,
            "overallImprovement": self.overall_improvement,
            "matchedBy": self.matched_by.value,
        }


def _distance(a: DetectedSection, b: DetectedSection) -> float:
    ax, ay = a.position.center
    bx, by = b.position.center
    return math.hypot(ax - bx, ay - by)


def _match_by_position(
    before: list[DetectedSection],
    after: list[DetectedSection],
) -> list[tuple[DetectedSection, DetectedSection]]:
    """Greedy nearest-centre pairing of same-type sections."""
    candidates = [
        (_distance(a, b), i, j)
        for i, a in enumerate(before)
        for j, b in enumerate(after)
        if a.type == b.type and _distance(a, b) <= POSITION_MATCH_DISTANCE
    ]
    candidates.sort()

    used_before: set[int] = set()
    used_after: set[int] = set()
    pairs: list[tuple[DetectedSection, DetectedSection]] = []
    for _, i, j in candidates:
        if i in used_before or j in used_after:
            continue
        used_before.add(i)
        used_after.add(j)
        pairs.append((before[i], after[j]))
    return pairs


def compare_analyses(before: AnalysisResult, after: AnalysisResult) -> AnalysisDelta:
    """
    Compare two analyses.

    Args:
        before: The earlier analysis
        after: The later analysis

    Returns:
        AnalysisDelta listing section labels added, removed, improved and
        declined. Sections with an equal score are in neither list.
    """
    delta = AnalysisDelta(seo_score_delta=after.overall_seo_score - before.overall_seo_score)

    before_ids = {s.id for s in before.sections}
    after_ids = {s.id for s in after.sections}

    if before_ids & after_ids:
        after_by_id = {s.id: s for s in after.sections}
        pairs = [(s, after_by_id[s.id]) for s in before.sections if s.id in after_by_id]
    else:
        logger.warning(
            "comparison_without_shared_ids",
            before_sections=len(before.sections),
            after_sections=len(after.sections),
        )
        delta.matched_by = MatchStrategy.POSITION
        pairs = _match_by_position(before.sections, after.sections)

    matched_before = {id(a) for a, _ in pairs}
    matched_after = {id(b) for _, b in pairs}

    delta.sections_added = [s.label for s in after.sections if id(s) not in matched_after]
    delta.sections_removed = [s.label for s in before.sections if id(s) not in matched_before]

    for old, new in pairs:
        if new.seo_score > old.seo_score:
            delta.sections_improved.append(new.label)
        elif new.seo_score < old.seo_score:
            delta.sections_declined.append(new.label)

    return delta


def build_comparison_mode(original: AnalysisResult, updated: AnalysisResult) -> ComparisonMode:
    """Summarize an original/updated pair for side-by-side display."""
    delta = compare_analyses(original, updated)

    insights = []
    if delta.overall_improvement:
        insights.append(f"Overall SEO score improved by {delta.seo_score_delta:g} points")
    elif delta.seo_score_delta < 0:
        insights.append(f"Overall SEO score dropped by {abs(delta.seo_score_delta):g} points")
    if delta.sections_improved:
        insights.append(f"{len(delta.sections_improved)} section(s) scored higher")
    if delta.sections_declined:
        insights.append(f"{len(delta.sections_declined)} section(s) scored lower")
    if delta.matched_by == MatchStrategy.POSITION:
        insights.append("Sections were matched by position because the analyses share no ids")

    return ComparisonMode(
        original_analysis=original,
        updated_analysis=updated,
        seo_score_delta=delta.seo_score_delta,
        sections_changed=(
            delta.sections_added
            + delta.sections_removed
            + delta.sections_improved
            + delta.sections_declined
        ),
        key_insights=insights,
    )
