"""Validates encoded rendition output for completeness."""

import logging
from pathlib import Path
from typing import List

from hls_pipeline.data_models import Outcome
from hls_pipeline.errors import EncodeFailure
from hls_pipeline.file_processor import SEGMENT_SUFFIX, list_segments

SUB_MANIFEST_NAME = "index.m3u8"


class Validator:
    """Checks that a rendition directory holds a usable HLS stream."""

    def _parse_playlist(self, playlist_path: Path) -> List[str]:
        """
        Extract segment references from an m3u8 playlist file.

        Args:
            playlist_path: Path to the playlist file

        Returns:
            Segment filenames referenced in the playlist, in playlist order
        """
        segment_files = []
        with open(playlist_path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and line.endswith(SEGMENT_SUFFIX):
                    segment_files.append(line)

        logging.debug(f"Parsed {len(segment_files)} segment references from playlist")
        return segment_files

    def validate_rendition(self, rendition_dir: Path, rendition: str) -> Outcome[List[Path]]:
        """
        Run all checks on one rendition directory.

        Args:
            rendition_dir: Directory the encoder wrote to
            rendition: Rendition name, used in failures

        Returns:
            Outcome holding the segment files, or an EncodeFailure
        """
        playlist = rendition_dir / SUB_MANIFEST_NAME
        if not playlist.is_file():
            error_msg = f"Sub-manifest not created: {playlist}"
            logging.error(error_msg)
            return Outcome.failure(EncodeFailure(rendition, error_msg))

        try:
            referenced = self._parse_playlist(playlist)
        except (OSError, UnicodeDecodeError) as e:
            logging.error(f"Error reading sub-manifest {playlist}: {e}")
            return Outcome.failure(EncodeFailure(rendition, f"Unreadable sub-manifest: {e}", e))

        try:
            segments = list_segments(rendition_dir)
        except OSError as e:
            return Outcome.failure(EncodeFailure(rendition, f"Could not list segments: {e}", e))
        if not segments:
            error_msg = f"No segments produced in {rendition_dir}"
            logging.error(error_msg)
            return Outcome.failure(EncodeFailure(rendition, error_msg))

        present = {segment.name for segment in segments}
        missing = [name for name in referenced if Path(name).name not in present]
        if missing:
            error_msg = f"Missing segment files: {', '.join(missing)}"
            logging.error(error_msg)
            return Outcome.failure(EncodeFailure(rendition, error_msg))

        logging.debug(f"Rendition {rendition} validated: {len(segments)} segments")
        return Outcome.success(segments)
