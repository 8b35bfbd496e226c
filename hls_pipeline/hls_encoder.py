"""HLS encoding of a single rendition."""

import logging
import time
from pathlib import Path
from typing import List, Optional

from hls_pipeline.data_models import Outcome, RenditionResult, RenditionSpec, SourceVideoMetadata
from hls_pipeline.errors import CancelledFailure, EncodeFailure
from hls_pipeline.file_processor import ensure_directory, get_segments_size
from hls_pipeline.process_runner import run_process
from hls_pipeline.stats_tracker import format_size
from hls_pipeline.stop_flag import StopFlag
from hls_pipeline.validator import SUB_MANIFEST_NAME, Validator

SEGMENT_PATTERN = "segment%03d.ts"


def compression_ratio(output_size: int, input_size: int) -> float:
    """Output size as a percentage of the input, rounded to 2 decimals."""
    if input_size <= 0:
        return 0.0
    return round(output_size / input_size * 100, 2)


def realtime_factor(source_duration: float, encode_duration: float) -> float:
    """Seconds of source encoded per wall-clock second."""
    if encode_duration <= 0:
        return 0.0
    return source_duration / encode_duration


class RenditionEncoder:
    """Encodes a source video into one segmented HLS rendition."""

    def __init__(
        self,
        segment_duration: int = 10,
        video_codec: str = "h264",
        audio_codec: str = "aac",
        ffmpeg_binary: str = "ffmpeg",
        timeout: Optional[float] = None,
    ):
        """
        Initialize RenditionEncoder.

        Args:
            segment_duration: Duration of each HLS segment in seconds
            video_codec: FFmpeg video encoder name
            audio_codec: FFmpeg audio encoder name
            ffmpeg_binary: FFmpeg executable
            timeout: Seconds before an encode is terminated, None for no limit
        """
        self.segment_duration = segment_duration
        self.video_codec = video_codec
        self.audio_codec = audio_codec
        self.ffmpeg_binary = ffmpeg_binary
        self.timeout = timeout
        self.validator = Validator()
        logging.info(
            f"RenditionEncoder initialized with segment_duration={segment_duration}s, "
            f"codecs={video_codec}/{audio_codec}"
        )

    def build_command(self, input_path: Path, rendition_dir: Path, spec: RenditionSpec) -> List[str]:
        """FFmpeg arguments for one capped-bitrate VOD rendition."""
        bitrate = spec.ffmpeg_bitrate
        return [
            self.ffmpeg_binary,
            "-y",
            "-i", str(input_path.absolute()),
            "-c:v", self.video_codec,
            "-c:a", self.audio_codec,
            # target, ceiling and buffer all equal: hard-capped rate
            "-b:v", bitrate,
            "-maxrate", bitrate,
            "-bufsize", bitrate,
            "-hls_time", str(self.segment_duration),
            "-hls_playlist_type", "vod",
            "-hls_segment_filename", str(rendition_dir / SEGMENT_PATTERN),
            str(rendition_dir / SUB_MANIFEST_NAME),
        ]

    def encode(
        self,
        input_path: Path,
        output_dir: Path,
        spec: RenditionSpec,
        metadata: SourceVideoMetadata,
        stop_flag: Optional[StopFlag] = None,
    ) -> Outcome[RenditionResult]:
        """
        Encode one rendition into output_dir/<spec.name>/.

        Args:
            input_path: Path to the source video
            output_dir: Job output directory
            spec: Rendition to produce
            metadata: Probed source metadata
            stop_flag: Cancellation flag

        Returns:
            Outcome holding a RenditionResult, or an EncodeFailure/CancelledFailure
        """
        rendition_dir = output_dir / spec.name
        created = ensure_directory(rendition_dir)
        if not created.ok:
            return Outcome.failure(EncodeFailure(spec.name, created.error.message, created.error))

        logging.info(f"Encoding {spec.name} at {spec.ffmpeg_bitrate} to {rendition_dir}")
        command = self.build_command(input_path, rendition_dir, spec)

        start = time.monotonic()
        result = run_process(command, timeout=self.timeout, stop_flag=stop_flag)
        duration = time.monotonic() - start

        if result.stderr:
            logging.debug(f"FFmpeg stderr (last 1000 chars): {result.stderr[-1000:]}")

        if result.cancelled:
            return Outcome.failure(CancelledFailure(f"Encoding {spec.name} cancelled"))
        if not result.success:
            error_msg = f"FFmpeg encoding failed: {result.describe_error()}"
            logging.error(f"{error_msg} ({spec.name})")
            return Outcome.failure(EncodeFailure(spec.name, error_msg))

        validated = self.validator.validate_rendition(rendition_dir, spec.name)
        if not validated.ok:
            return Outcome.failure(validated.error)

        segments = validated.value
        try:
            output_size = get_segments_size(rendition_dir)
            segment_sizes = [(segment.name, segment.stat().st_size) for segment in segments]
        except OSError as e:
            return Outcome.failure(EncodeFailure(spec.name, f"Could not stat segments: {e}", e))

        logging.debug(f"Segments for {spec.name}:")
        for name, size in segment_sizes:
            logging.debug(f"  {name}: {format_size(size)}")

        ratio = compression_ratio(output_size, metadata.size)
        speed = realtime_factor(metadata.duration, duration)
        time_per_minute = duration / (metadata.duration / 60) if metadata.duration > 0 else 0.0
        logging.info(
            f"Encoded {spec.name}: {len(segments)} segments, {format_size(output_size)}, "
            f"{ratio:.2f}% of original, {duration:.2f}s "
            f"({speed:.2f}x realtime, {time_per_minute:.2f}s per source minute)"
        )

        return Outcome.success(RenditionResult(
            name=spec.name,
            duration=duration,
            output_size=output_size,
            compression_ratio=ratio,
            target_bitrate=spec.bitrate,
            segment_count=len(segments),
        ))
