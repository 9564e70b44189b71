"""Orchestrators that sequence single-image analyses.

Use explicit imports:
    from content_mapper.orchestration.batch import BatchOrchestrator, batch_analyze
    from content_mapper.orchestration.competitor import compare_competitors
"""

__all__ = [
    "BatchOrchestrator",
    "ProgressCallback",
    "batch_analyze",
    "CompetitorComparison",
    "compare_competitors",
    "COMPETITOR_PLACEHOLDER",
]
