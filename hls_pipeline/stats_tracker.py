"""Conversion telemetry: observer interface, logging and statistics."""

import logging
import math
import threading
from typing import Dict, Optional

from hls_pipeline.data_models import ConversionJob, JobStage, StatsSummary
from hls_pipeline.errors import PipelineFailure


def format_size(size_bytes: int) -> str:
    """
    Format a byte count for humans.

    Returns:
        Formatted size (e.g., "0 Bytes", "1.5 KB", "47.68 MB")
    """
    sizes = ["Bytes", "KB", "MB", "GB"]
    if size_bytes <= 0:
        return "0 Bytes"
    i = min(int(math.floor(math.log(size_bytes, 1024))), len(sizes) - 1)
    return f"{round(size_bytes / (1024 ** i), 2):g} {sizes[i]}"


def format_duration(seconds: float) -> str:
    """Format seconds as H:MM:SS."""
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"


def format_time(seconds: float) -> str:
    """
    Format seconds into human-readable time string.

    Returns:
        Formatted time string (e.g., "1h 23m 45s" or "5m 30s" or "45s")
    """
    if seconds < 60:
        return f"{seconds:.0f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = int(seconds % 60)
        return f"{minutes}m {secs}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        secs = int(seconds % 60)
        return f"{hours}h {minutes}m {secs}s"


class ConversionObserver:
    """
    Receives lifecycle events from VideoConverter.

    Subclasses override the hooks they care about. Hooks must not raise;
    VideoConverter logs and ignores observer errors.
    """

    def stage_entered(self, job: ConversionJob, stage: JobStage, rendition: Optional[str] = None) -> None:
        pass

    def stage_completed(self, job: ConversionJob, stage: JobStage, metrics: Dict) -> None:
        pass

    def stage_failed(self, job: ConversionJob, stage: JobStage, failure: PipelineFailure) -> None:
        pass


class LoggingObserver(ConversionObserver):
    """Writes conversion progress and the final job summary to the log."""

    def stage_entered(self, job, stage, rendition=None):
        if stage == JobStage.ENCODING:
            logging.info(f"[{job.job_id}] Encoding {rendition}...")
        else:
            logging.debug(f"[{job.job_id}] Entering {stage.value}")

    def stage_completed(self, job, stage, metrics):
        if stage == JobStage.LADDER_SELECTED:
            names = metrics.get("renditions") or []
            if names:
                logging.info(f"[{job.job_id}] Will encode {len(names)} renditions: {names}")
            else:
                logging.warning(f"[{job.job_id}] Source too small for any rendition")
        elif stage == JobStage.ENCODING:
            logging.info(f"[{job.job_id}] Conversion details for {metrics['rendition']}:")
            logging.info(f"  Time taken:        {metrics['duration']:.2f} seconds")
            logging.info(f"  Target bitrate:    {metrics['target_bitrate'] / 1_000_000:g} Mbps")
            logging.info(f"  Output size:       {format_size(metrics['output_size'])}")
            logging.info(f"  Segments:          {metrics['segment_count']}")
            logging.info(f"  Compression ratio: {metrics['compression_ratio']:.2f}% of original")
            logging.info(f"  Processing speed:  {metrics['realtime_factor']:.2f}x realtime")
        elif stage == JobStage.DONE:
            self._log_summary(job, metrics)
        else:
            logging.debug(f"[{job.job_id}] Completed {stage.value}: {metrics}")

    def stage_failed(self, job, stage, failure):
        logging.error(
            f"[{job.job_id}] Conversion failed during {stage.value} "
            f"after {job.elapsed:.2f} seconds: {failure}"
        )

    def _log_summary(self, job, metrics):
        logging.info("=" * 60)
        logging.info(f"Final conversion summary for {job.job_id}")
        logging.info("=" * 60)
        for result in job.results:
            logging.info(
                f"{result.name}: {result.duration:.2f}s, "
                f"{format_size(result.output_size)}, "
                f"{result.target_bitrate / 1_000_000:g} Mbps, "
                f"compression {result.compression_ratio:.2f}%"
            )
        logging.info(f"Total processing time: {metrics['total_duration']:.2f} seconds")


class StatsTracker(ConversionObserver):
    """Tracks conversion statistics across jobs and generates summary reports."""

    def __init__(self):
        """Initialize StatsTracker with zero counters."""
        self._lock = threading.Lock()
        self._total_source_bytes = 0
        self._total_output_bytes = 0
        self._successful_conversions = 0
        self._failed_conversions = 0
        self._empty_ladder_jobs = 0
        self._renditions_encoded = 0
        self._total_conversion_time = 0.0
        self._failures_by_kind: Dict[str, int] = {}
        logging.info("StatsTracker initialized")

    def stage_completed(self, job, stage, metrics):
        with self._lock:
            if stage == JobStage.ENCODING:
                self._renditions_encoded += 1
            elif stage == JobStage.DONE:
                self._successful_conversions += 1
                self._total_conversion_time += metrics["total_duration"]
                if job.results:
                    self._total_output_bytes += sum(r.output_size for r in job.results)
                    self._total_source_bytes += job.metadata.size
                if job.empty_ladder:
                    self._empty_ladder_jobs += 1

    def stage_failed(self, job, stage, failure):
        with self._lock:
            self._failed_conversions += 1
            self._failures_by_kind[failure.kind] = self._failures_by_kind.get(failure.kind, 0) + 1
        logging.debug(f"Recorded failed conversion (total: {self._failed_conversions})")

    def get_summary(self) -> StatsSummary:
        """
        Return StatsSummary with GB conversions.

        Sizes and compression ratio only cover successful jobs that encoded
        at least one rendition; empty-ladder jobs are counted but not sized.

        Returns:
            StatsSummary dataclass with statistics in gigabytes
        """
        with self._lock:
            bytes_per_gb = 1024 * 1024 * 1024
            if self._total_source_bytes > 0:
                compression_ratio = self._total_output_bytes / self._total_source_bytes
            else:
                compression_ratio = 0.0

            return StatsSummary(
                total_source_gb=self._total_source_bytes / bytes_per_gb,
                total_output_gb=self._total_output_bytes / bytes_per_gb,
                successful_conversions=self._successful_conversions,
                failed_conversions=self._failed_conversions,
                empty_ladder_jobs=self._empty_ladder_jobs,
                renditions_encoded=self._renditions_encoded,
                compression_ratio=compression_ratio,
                failures_by_kind=dict(self._failures_by_kind),
            )

    def print_summary(self) -> None:
        """Display formatted statistics report."""
        summary = self.get_summary()

        avg_time_per_video = 0.0
        if summary.successful_conversions > 0:
            avg_time_per_video = self._total_conversion_time / summary.successful_conversions

        print("\n" + "=" * 60)
        print("CONVERSION STATISTICS SUMMARY")
        print("=" * 60)
        if summary.successful_conversions > 0:
            print(f"Average Time per Video:   {format_time(avg_time_per_video)}")
        print(f"Total Source Size:        {summary.total_source_gb:.2f} GB")
        print(f"Total Output Size:        {summary.total_output_gb:.2f} GB")
        print(f"Compression Ratio:        {summary.compression_ratio:.2%}")
        print(f"Renditions Encoded:       {summary.renditions_encoded}")
        print(f"Successful Conversions:   {summary.successful_conversions}")
        if summary.empty_ladder_jobs > 0:
            print(f"  - Below 480p (no output): {summary.empty_ladder_jobs}")
        print(f"Failed Conversions:       {summary.failed_conversions}")
        for kind, count in sorted(summary.failures_by_kind.items()):
            print(f"  - {kind}: {count}")
        print("=" * 60 + "\n")

        logging.info(
            f"Statistics: {summary.total_source_gb:.2f} GB source, "
            f"{summary.total_output_gb:.2f} GB output, "
            f"{summary.successful_conversions} successful, "
            f"{summary.failed_conversions} failed"
        )
