"""Source video inspection with FFprobe."""

import json
import logging
from pathlib import Path
from typing import Optional

from hls_pipeline.data_models import Outcome, SourceVideoMetadata
from hls_pipeline.errors import CancelledFailure, ProbeFailure, ValidationFailure
from hls_pipeline.process_runner import run_process
from hls_pipeline.stats_tracker import format_duration, format_size
from hls_pipeline.stop_flag import StopFlag


def parse_frame_rate(rate: str) -> float:
    """
    Convert an FFprobe rational such as "30000/1001" to frames per second.

    Args:
        rate: "numerator/denominator" string, or a bare integer

    Returns:
        Frame rate rounded to 2 decimal places

    Raises:
        ValidationFailure: If either part is not an integer or the rate is not positive
    """
    if not isinstance(rate, str) or not rate.strip():
        raise ValidationFailure(f"Missing frame rate: {rate!r}")

    numerator, _, denominator = rate.strip().partition("/")
    try:
        num = int(numerator)
        den = int(denominator) if denominator else 1
    except ValueError as e:
        raise ValidationFailure(f"Malformed frame rate: {rate!r}", e)

    if den == 0:
        raise ValidationFailure(f"Frame rate has zero denominator: {rate!r}")
    if num / den <= 0:
        raise ValidationFailure(f"Frame rate must be positive: {rate!r}")

    return round(num / den, 2)


def _positive(value, name: str, cast):
    try:
        number = cast(value)
    except (TypeError, ValueError) as e:
        raise ValidationFailure(f"Invalid {name}: {value!r}", e)
    if number <= 0:
        raise ValidationFailure(f"Invalid {name}: {value!r}")
    return number


def parse_probe_output(info: dict) -> SourceVideoMetadata:
    """
    Build SourceVideoMetadata from FFprobe's JSON document.

    Raises:
        ProbeFailure: If there is no video stream
        ValidationFailure: If required fields are missing or not positive
    """
    streams = info.get("streams") or []
    video = next((s for s in streams if s.get("codec_type") == "video"), None)
    audio = next((s for s in streams if s.get("codec_type") == "audio"), None)

    if video is None:
        raise ProbeFailure("No video stream found")

    fmt = info.get("format") or {}
    bit_rate = fmt.get("bit_rate")
    try:
        bitrate = int(bit_rate) if bit_rate not in (None, "", "N/A") else 0
    except ValueError:
        logging.warning(f"Could not parse bitrate: {bit_rate}")
        bitrate = 0

    return SourceVideoMetadata(
        width=_positive(video.get("width"), "width", int),
        height=_positive(video.get("height"), "height", int),
        bitrate=bitrate,
        duration=_positive(fmt.get("duration"), "duration", float),
        size=_positive(fmt.get("size"), "size", int),
        codec=video.get("codec_name", "unknown"),
        fps=parse_frame_rate(video.get("r_frame_rate", "")),
        audio_codec=audio.get("codec_name", "unknown") if audio else "none",
    )


def probe(
    input_path: Path,
    timeout: Optional[float] = None,
    stop_flag: Optional[StopFlag] = None,
    ffprobe_binary: str = "ffprobe",
) -> Outcome[SourceVideoMetadata]:
    """
    Extract source metadata using FFprobe.

    Args:
        input_path: Path to the source video
        timeout: Seconds before FFprobe is terminated
        stop_flag: Cancellation flag
        ffprobe_binary: FFprobe executable

    Returns:
        Outcome holding SourceVideoMetadata, or a ProbeFailure/ValidationFailure
    """
    logging.debug(f"Probing {input_path.name}")
    command = [
        ffprobe_binary,
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_path.absolute()),
    ]

    result = run_process(command, timeout=timeout, stop_flag=stop_flag)
    if result.cancelled:
        return Outcome.failure(CancelledFailure("Probe cancelled"))
    if not result.success:
        error_msg = f"FFprobe failed for {input_path.name}: {result.describe_error()}"
        logging.error(error_msg)
        return Outcome.failure(ProbeFailure(error_msg))

    try:
        info = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        logging.error(f"FFprobe returned invalid JSON for {input_path.name}: {e}")
        return Outcome.failure(ProbeFailure("FFprobe output is not valid JSON", e))

    if not isinstance(info, dict):
        return Outcome.failure(ProbeFailure("FFprobe output is not a JSON object"))

    try:
        metadata = parse_probe_output(info)
    except (ProbeFailure, ValidationFailure) as e:
        logging.error(f"Unusable metadata for {input_path.name}: {e}")
        return Outcome.failure(e)

    logging.info(
        f"Input video: {metadata.resolution}, "
        f"{metadata.bitrate / 1024 / 1024:.2f} Mbps, "
        f"{metadata.fps} fps, "
        f"duration {format_duration(metadata.duration)}, "
        f"size {format_size(metadata.size)}, "
        f"codec {metadata.codec}/{metadata.audio_codec}"
    )
    return Outcome.success(metadata)
