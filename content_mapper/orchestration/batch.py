"""Batch orchestrator: sequential analysis of many screenshots."""

from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from content_mapper.analysis.client import AnalysisClient
from content_mapper.analysis.models import (
    AnalysisRequest,
    AnalysisResult,
    BatchAnalysisJob,
    BatchFailure,
    BrandVoiceProfile,
    ImageInput,
    JobStatus,
)
from content_mapper.exceptions import ContentMapperError

logger = structlog.get_logger(__name__)

# Progress callback: (percent 0-100, current file name)
ProgressCallback = Callable[[float, str], None]


class BatchOrchestrator:
    """Runs one analysis per image, strictly in order.

    A failed item is logged, recorded on the job and skipped; the run carries on
    with the next image.
    """

    def __init__(
        self,
        client: AnalysisClient,
        progress_callback: ProgressCallback | None = None,
    ):
        self.client = client
        self.progress_callback = progress_callback

    def _report_progress(self, job: BatchAnalysisJob, percent: float, label: str) -> None:
        job.progress = percent
        if self.progress_callback:
            self.progress_callback(percent, label)

    async def run(
        self,
        images: list[ImageInput],
        website_url: str,
        keywords: list[str],
        target_audience: str,
        brand_voice: BrandVoiceProfile | None = None,
    ) -> BatchAnalysisJob:
        """
        Analyze every image in order.

        Args:
            images: Screenshots to analyze
            website_url: Website the screenshots belong to
            keywords: Target SEO keywords
            target_audience: Target audience description
            brand_voice: Optional brand voice profile

        Returns:
            BatchAnalysisJob with successful results in input order and one
            BatchFailure per skipped image
        """
        job = BatchAnalysisJob(
            file_names=[image.file_name for image in images],
            status=JobStatus.PROCESSING,
            started_at=datetime.now(UTC),
        )
        total = len(images)
        logger.info("batch_started", job_id=job.id, total=total)

        for index, image in enumerate(images):
            self._report_progress(job, index / total * 100, image.file_name)

            request = AnalysisRequest(
                image=image,
                keywords=keywords,
                target_audience=target_audience,
                website_url=website_url,
                brand_voice=brand_voice,
                generate_variants=True,
            )
            try:
                result = await self.client.analyze(request)
            except ContentMapperError as e:
                logger.warning(
                    "batch_item_failed",
                    job_id=job.id,
                    index=index,
                    file_name=image.file_name,
                    error=e.message,
                )
                job.failures.append(BatchFailure(index=index, file_name=image.file_name, error=e.message))
                continue
            except Exception as e:
                logger.exception(
                    "batch_item_failed",
                    job_id=job.id,
                    index=index,
                    file_name=image.file_name,
                    error=str(e),
                )
                job.failures.append(BatchFailure(index=index, file_name=image.file_name, error=str(e)))
                continue

            job.results.append(result)

        self._report_progress(job, 100.0, "Completed")

        job.status = JobStatus.FAILED if total and not job.results else JobStatus.COMPLETED
        job.completed_at = datetime.now(UTC)
        logger.info(
            "batch_completed",
            job_id=job.id,
            succeeded=len(job.results),
            failed=len(job.failures),
            status=job.status.value,
        )
        return job


async def batch_analyze(
    client: AnalysisClient,
    images: list[ImageInput],
    website_url: str,
    keywords: list[str],
    target_audience: str,
    brand_voice: BrandVoiceProfile | None = None,
    on_progress: ProgressCallback | None = None,
) -> list[AnalysisResult]:
    """
    Convenience function returning only the successful results.

    The list may be shorter than ``images``; use BatchOrchestrator.run to see
    which inputs failed.
    """
    orchestrator = BatchOrchestrator(client, progress_callback=on_progress)
    job = await orchestrator.run(
        images=images,
        website_url=website_url,
        keywords=keywords,
        target_audience=target_audience,
        brand_voice=brand_voice,
    )
    return job.results
