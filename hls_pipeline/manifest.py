"""Master playlist generation."""

import logging
from pathlib import Path
from typing import Sequence

from hls_pipeline.data_models import Outcome, RenditionSpec, SourceVideoMetadata
from hls_pipeline.file_processor import write_text_atomic
from hls_pipeline.validator import SUB_MANIFEST_NAME

MASTER_MANIFEST_NAME = "master.m3u8"
HLS_VERSION = 3


def build_master_manifest(ladder: Sequence[RenditionSpec], metadata: SourceVideoMetadata) -> str:
    """
    Master playlist text listing every rendition in ladder order.

    Args:
        ladder: Renditions, in the order they were encoded
        metadata: Source metadata; its resolution is advertised for each variant

    Returns:
        Playlist text with "\\n" line endings
    """
    lines = ["#EXTM3U", f"#EXT-X-VERSION:{HLS_VERSION}"]
    for spec in ladder:
        lines.append(
            f"#EXT-X-STREAM-INF:BANDWIDTH={spec.kbps * 1000},"
            f"RESOLUTION={metadata.resolution}"
        )
        lines.append(f"{spec.name}/{SUB_MANIFEST_NAME}")
    return "\n".join(lines) + "\n"


def write_master_manifest(output_dir: Path, text: str) -> Outcome[Path]:
    """Atomically write the master playlist to output_dir/master.m3u8."""
    master_path = output_dir / MASTER_MANIFEST_NAME
    logging.info(f"Creating master playlist: {master_path}")
    return write_text_atomic(master_path, text)
