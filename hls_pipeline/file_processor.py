"""File system operations for the conversion workflow."""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import List

from hls_pipeline.data_models import Outcome
from hls_pipeline.errors import FilesystemFailure

SEGMENT_SUFFIX = ".ts"


def ensure_directory(path: Path) -> Outcome[Path]:
    """
    Create a directory (and parents) if it does not exist yet.

    Safe to call concurrently for the same path.

    Args:
        path: Directory to create

    Returns:
        Outcome holding the path, or a FilesystemFailure
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        error_msg = f"Failed to create directory {path}: {e}"
        logging.error(error_msg)
        return Outcome.failure(FilesystemFailure(error_msg, e))
    return Outcome.success(path)


def list_segments(directory: Path) -> List[Path]:
    """Segment files in a rendition directory, sorted by name."""
    if not directory.is_dir():
        return []
    return sorted(
        item for item in directory.iterdir()
        if item.is_file() and item.suffix == SEGMENT_SUFFIX
    )


def get_segments_size(directory: Path) -> int:
    """
    Calculate total size of all segment files in a directory in bytes.

    Args:
        directory: Rendition directory

    Returns:
        Total size in bytes
    """
    return sum(segment.stat().st_size for segment in list_segments(directory))


def write_text_atomic(path: Path, text: str) -> Outcome[Path]:
    """
    Write text so readers see either the old file or the complete new one.

    The content goes to a temporary file in the same directory which then
    replaces the target.

    Args:
        path: Destination file
        text: Content to write

    Returns:
        Outcome holding the path, or a FilesystemFailure
    """
    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        error_msg = f"Failed to write {path}: {e}"
        logging.error(error_msg)
        return Outcome.failure(FilesystemFailure(error_msg, e))

    logging.debug(f"Wrote {path} ({len(text)} bytes)")
    return Outcome.success(path)


def delete_source_file(path: Path) -> Outcome[Path]:
    """
    Remove the uploaded source file.

    A file that is already gone is not an error.

    Returns:
        Outcome holding the path, or a FilesystemFailure
    """
    try:
        path.unlink()
    except FileNotFoundError:
        logging.warning(f"Source file already removed: {path}")
    except OSError as e:
        error_msg = f"Failed to delete source file {path}: {e}"
        logging.error(error_msg)
        return Outcome.failure(FilesystemFailure(error_msg, e))
    else:
        logging.info(f"Deleted source file: {path.name}")
    return Outcome.success(path)


def remove_directories(directories: List[Path]) -> None:
    """
    Remove partially written rendition directories.

    Errors are logged; cleanup never masks the failure that triggered it.
    """
    for directory in directories:
        if not directory.exists():
            continue
        try:
            shutil.rmtree(directory)
            logging.info(f"Removed partial output: {directory}")
        except OSError as e:
            logging.error(f"Error removing partial output {directory}: {e}")


def remove_empty_directory(directory: Path) -> bool:
    """Remove directory if it exists and holds nothing. Returns True when removed."""
    try:
        directory.rmdir()
    except FileNotFoundError:
        return False
    except OSError as e:
        logging.debug(f"Keeping {directory}: {e}")
        return False
    logging.info(f"Removed empty output directory: {directory}")
    return True
