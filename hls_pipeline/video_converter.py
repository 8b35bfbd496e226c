"""Conversion of an uploaded video into a multi-rendition HLS package."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

from hls_pipeline.config_manager import ConfigManager
from hls_pipeline.data_models import (
    ConversionJob,
    JobStage,
    JobStatus,
    JobSummary,
    Outcome,
    RenditionResult,
    RenditionSpec,
)
from hls_pipeline.errors import (
    CancelledFailure,
    ConversionError,
    PipelineFailure,
    ValidationFailure,
)
from hls_pipeline.file_processor import (
    delete_source_file,
    ensure_directory,
    remove_directories,
    remove_empty_directory,
)
from hls_pipeline.hls_encoder import RenditionEncoder, realtime_factor
from hls_pipeline.ladder import select_ladder, source_tier
from hls_pipeline.manifest import MASTER_MANIFEST_NAME, build_master_manifest, write_master_manifest
from hls_pipeline.prober import probe
from hls_pipeline.stats_tracker import ConversionObserver, LoggingObserver
from hls_pipeline.stop_flag import StopFlag

PathLike = Union[str, Path]


class VideoConverter:
    """
    Runs one conversion job through probe, ladder selection, per-rendition
    encoding, master playlist creation and source cleanup.

    Every stage reports an Outcome; the first failure ends the job. The
    source file is only deleted once the master playlist has been written.
    """

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        encoder: Optional[RenditionEncoder] = None,
        observers: Optional[Iterable[ConversionObserver]] = None,
    ):
        """
        Initialize VideoConverter.

        Args:
            config: Pipeline configuration (defaults when omitted)
            encoder: Rendition encoder (built from config when omitted)
            observers: Receivers of lifecycle events (a LoggingObserver when omitted)
        """
        self.config = config or ConfigManager.defaults()
        self.encoder = encoder or RenditionEncoder(
            segment_duration=self.config.segment_duration,
            video_codec=self.config.video_codec,
            audio_codec=self.config.audio_codec,
            ffmpeg_binary=self.config.ffmpeg_binary,
            timeout=self.config.encode_timeout,
        )
        self.observers = list(observers) if observers is not None else [LoggingObserver()]
        logging.info(
            f"VideoConverter initialized with max_rendition_workers="
            f"{self.config.max_rendition_workers}, delete_source={self.config.delete_source}"
        )

    def _emit(self, hook: str, *args):
        for observer in self.observers:
            try:
                getattr(observer, hook)(*args)
            except Exception as e:
                logging.error(f"Observer {type(observer).__name__}.{hook} failed: {e}", exc_info=True)

    def _enter(self, job: ConversionJob, stage: JobStage, rendition: Optional[str] = None):
        job.stage = stage
        self._emit("stage_entered", job, stage, rendition)

    def convert(
        self,
        input_path: PathLike,
        output_dir: PathLike,
        job_id: str,
        stop_flag: Optional[StopFlag] = None,
    ) -> JobSummary:
        """
        Convert a source video and return the job summary.

        Args:
            input_path: Uploaded source file
            output_dir: Directory for this job's HLS package
            job_id: Identifier assigned by the caller
            stop_flag: Optional flag that cancels the job when set

        Returns:
            JobSummary for the successful job

        Raises:
            ConversionError: If any stage failed or the job was cancelled
        """
        job = self.run(input_path, output_dir, job_id, stop_flag)
        if not job.succeeded:
            raise ConversionError(job.job_id, job.failure)
        return self.summarize(job)

    def run(
        self,
        input_path: PathLike,
        output_dir: PathLike,
        job_id: str,
        stop_flag: Optional[StopFlag] = None,
    ) -> ConversionJob:
        """
        Execute a job to its terminal state.

        Failures are recorded on the returned job rather than raised.
        """
        job = ConversionJob(job_id=job_id, input_path=Path(input_path), output_dir=Path(output_dir))
        job_flag = stop_flag.child() if stop_flag is not None else StopFlag()
        logging.info(f"[{job_id}] Starting conversion of {job.input_path.name} into {job.output_dir}")

        try:
            failure = self._execute(job, job_flag)
        except Exception as e:
            logging.error(f"[{job_id}] Unexpected error during conversion: {e}", exc_info=True)
            failure = PipelineFailure(f"Unexpected error during conversion: {e}", e)

        job.finished_at = time.monotonic()
        if failure is not None:
            self._fail(job, failure)
        else:
            job.status = JobStatus.SUCCESS
            job.stage = JobStage.DONE
            self._emit("stage_completed", job, JobStage.DONE, {
                "total_duration": job.elapsed,
                "renditions": len(job.results),
            })
        return job

    def summarize(self, job: ConversionJob) -> JobSummary:
        """Build the caller-facing summary of a finished job."""
        manifest_url = None
        if job.master_manifest_path is not None:
            manifest_url = f"{self.config.url_prefix}/{job.job_id}/{MASTER_MANIFEST_NAME}"
        return JobSummary(
            job_id=job.job_id,
            success=job.succeeded,
            master_manifest_url=manifest_url,
            renditions=tuple(job.results),
            total_duration=job.elapsed,
            status=job.status,
            empty_ladder=job.empty_ladder,
        )

    def _check_stop(self, stop_flag: StopFlag) -> Optional[PipelineFailure]:
        if stop_flag.is_stop_requested():
            return CancelledFailure(f"Conversion cancelled: {stop_flag.reason}")
        return None

    def _execute(self, job: ConversionJob, stop_flag: StopFlag) -> Optional[PipelineFailure]:
        self._enter(job, JobStage.PROBING)
        probed = probe(
            job.input_path,
            timeout=self.config.probe_timeout,
            stop_flag=stop_flag,
            ffprobe_binary=self.config.ffprobe_binary,
        )
        if not probed.ok:
            return probed.error
        job.metadata = metadata = probed.value
        self._emit("stage_completed", job, JobStage.PROBING, {
            "resolution": metadata.resolution,
            "bitrate": metadata.bitrate,
            "duration": metadata.duration,
            "size": metadata.size,
            "codec": metadata.codec,
            "fps": metadata.fps,
            "audio_codec": metadata.audio_codec,
        })

        self._enter(job, JobStage.LADDER_SELECTED)
        job.ladder = select_ladder(metadata.height)
        self._emit("stage_completed", job, JobStage.LADDER_SELECTED, {
            "tier": source_tier(metadata.height),
            "renditions": [spec.name for spec in job.ladder],
        })

        if not job.ladder:
            if self.config.fail_on_empty_ladder:
                return ValidationFailure(
                    f"Source height {metadata.height} is below the lowest rendition tier"
                )
            logging.warning(
                f"[{job.job_id}] Source {metadata.resolution} is below 480p, "
                f"no renditions or master playlist will be produced"
            )
            return self._cleanup(job)

        failure = self._check_stop(stop_flag)
        if failure is not None:
            return failure

        job.created_output_dir = not job.output_dir.exists()
        created = ensure_directory(job.output_dir)
        if not created.ok:
            job.created_output_dir = False
            return created.error

        failure = self._encode_ladder(job, stop_flag)
        if failure is not None:
            return failure

        failure = self._check_stop(stop_flag)
        if failure is not None:
            return failure

        self._enter(job, JobStage.MANIFEST_WRITTEN)
        text = build_master_manifest(job.ladder, metadata)
        written = write_master_manifest(job.output_dir, text)
        if not written.ok:
            return written.error
        job.master_manifest_path = written.value
        self._emit("stage_completed", job, JobStage.MANIFEST_WRITTEN, {
            "path": str(written.value),
            "variants": len(job.ladder),
        })

        return self._cleanup(job)

    def _encode_ladder(self, job: ConversionJob, stop_flag: StopFlag) -> Optional[PipelineFailure]:
        job.stage = JobStage.ENCODING
        workers = min(self.config.max_rendition_workers, len(job.ladder))
        if workers <= 1:
            return self._encode_sequential(job, stop_flag)
        return self._encode_parallel(job, stop_flag, workers)

    def _encode_entry(
        self,
        job: ConversionJob,
        spec: RenditionSpec,
        stop_flag: StopFlag,
    ) -> Outcome[RenditionResult]:
        failure = self._check_stop(stop_flag)
        if failure is not None:
            return Outcome.failure(failure)
        self._emit("stage_entered", job, JobStage.ENCODING, spec.name)
        return self.encoder.encode(job.input_path, job.output_dir, spec, job.metadata, stop_flag=stop_flag)

    def _record_rendition(self, job: ConversionJob, index: int, result: RenditionResult):
        self._emit("stage_completed", job, JobStage.ENCODING, {
            "index": index,
            "rendition": result.name,
            "duration": result.duration,
            "output_size": result.output_size,
            "compression_ratio": result.compression_ratio,
            "target_bitrate": result.target_bitrate,
            "segment_count": result.segment_count,
            "realtime_factor": realtime_factor(job.metadata.duration, result.duration),
        })

    def _encode_sequential(self, job: ConversionJob, stop_flag: StopFlag) -> Optional[PipelineFailure]:
        for index, spec in enumerate(job.ladder):
            outcome = self._encode_entry(job, spec, stop_flag)
            if not outcome.ok:
                return outcome.error
            job.results.append(outcome.value)
            self._record_rendition(job, index, outcome.value)
        return None

    def _encode_parallel(
        self,
        job: ConversionJob,
        stop_flag: StopFlag,
        workers: int,
    ) -> Optional[PipelineFailure]:
        abort_flag = stop_flag.child()
        outcomes: Dict[int, Outcome[RenditionResult]] = {}

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"encode-{job.job_id}") as executor:
            futures = {
                executor.submit(self._encode_entry, job, spec, abort_flag): index
                for index, spec in enumerate(job.ladder)
            }
            for future in as_completed(futures):
                if future.cancelled():
                    continue
                index = futures[future]
                outcome = future.result()
                outcomes[index] = outcome
                if outcome.ok:
                    self._record_rendition(job, index, outcome.value)
                elif not abort_flag.is_stop_requested():
                    abort_flag.request_stop(
                        f"{job.ladder[index].name} failed, aborting remaining renditions"
                    )
                    for pending in futures:
                        pending.cancel()

        job.results = [outcomes[i].value for i in sorted(outcomes) if outcomes[i].ok]
        failures = [outcomes[i].error for i in sorted(outcomes) if not outcomes[i].ok]
        if not failures:
            return None
        # report the root cause, not the renditions it cancelled
        for failure in failures:
            if not isinstance(failure, CancelledFailure):
                return failure
        return failures[0]

    def _cleanup(self, job: ConversionJob) -> Optional[PipelineFailure]:
        self._enter(job, JobStage.CLEANUP)
        if not self.config.delete_source:
            logging.info(f"[{job.job_id}] Source deletion disabled, keeping {job.input_path.name}")
            self._emit("stage_completed", job, JobStage.CLEANUP, {"source_deleted": False})
            return None

        deleted = delete_source_file(job.input_path)
        if not deleted.ok:
            return deleted.error
        self._emit("stage_completed", job, JobStage.CLEANUP, {"source_deleted": True})
        return None

    def _fail(self, job: ConversionJob, failure: PipelineFailure):
        failed_stage = job.stage
        job.failure = failure
        job.status = JobStatus.FAILED
        job.stage = JobStage.FAILED
        self._emit("stage_failed", job, failed_stage, failure)

        partial = [job.output_dir / spec.name for spec in job.ladder if (job.output_dir / spec.name).exists()]
        if job.master_manifest_path is not None:
            partial.append(job.master_manifest_path)

        if self.config.cleanup_on_failure:
            remove_directories([path for path in partial if path.is_dir()])
            if job.master_manifest_path is not None:
                try:
                    job.master_manifest_path.unlink()
                except OSError as e:
                    logging.error(f"Error removing {job.master_manifest_path}: {e}")
            job.master_manifest_path = None
            # only a directory this job made, and only once nothing is left in it
            if job.created_output_dir:
                remove_empty_directory(job.output_dir)
        elif partial:
            logging.warning(
                f"[{job.job_id}] Partial output left on disk: {[path.name for path in partial]}"
            )
