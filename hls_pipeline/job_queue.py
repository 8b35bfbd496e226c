"""Bounded queue of conversion jobs."""

import logging
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Union

from hls_pipeline.data_models import JobSummary
from hls_pipeline.stop_flag import StopFlag
from hls_pipeline.video_converter import VideoConverter


class JobQueue:
    """Runs conversions on a fixed number of workers; extra jobs wait their turn."""

    def __init__(
        self,
        converter: VideoConverter,
        max_concurrent_jobs: Optional[int] = None,
        stop_flag: Optional[StopFlag] = None,
    ):
        """
        Initialize JobQueue.

        Args:
            converter: Converter shared by all jobs
            max_concurrent_jobs: Worker count (config.max_concurrent_jobs when omitted)
            stop_flag: Flag that cancels every queued and running job
        """
        self.converter = converter
        self.max_concurrent_jobs = max_concurrent_jobs or converter.config.max_concurrent_jobs
        self.stop_flag = stop_flag or StopFlag()
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_concurrent_jobs,
            thread_name_prefix="conversion",
        )
        logging.info(f"JobQueue initialized with max_concurrent_jobs={self.max_concurrent_jobs}")

    def submit(
        self,
        input_path: Union[str, Path],
        output_root: Union[str, Path],
        job_id: Optional[str] = None,
    ) -> 'Future[JobSummary]':
        """
        Queue a conversion.

        Args:
            input_path: Uploaded source file
            output_root: Parent directory; the job writes to output_root/<job_id>
            job_id: Identifier, generated when omitted

        Returns:
            Future resolving to the JobSummary, or raising ConversionError
        """
        job_id = job_id or uuid.uuid4().hex
        output_dir = Path(output_root) / job_id
        logging.info(f"Queued job {job_id} for {Path(input_path).name}")
        return self._executor.submit(self.converter.convert, input_path, output_dir, job_id, self.stop_flag)

    def shutdown(self, wait: bool = True, cancel_pending: bool = False):
        """Stop accepting jobs; optionally drop the ones not started yet."""
        self._executor.shutdown(wait=wait, cancel_futures=cancel_pending)

    def __enter__(self) -> 'JobQueue':
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.shutdown(wait=True, cancel_pending=exc_type is not None)
