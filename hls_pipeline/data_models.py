"""Data models and dataclasses for the HLS pipeline."""

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Generic, List, Optional, Tuple, TypeVar

from hls_pipeline.errors import PipelineFailure

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Value or failure returned by a pipeline stage."""
    value: Optional[T] = None
    error: Optional[PipelineFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: PipelineFailure) -> "Outcome[T]":
        return cls(error=error)


@dataclass(frozen=True)
class SourceVideoMetadata:
    """Properties of the uploaded source, as reported by ffprobe."""
    width: int
    height: int
    bitrate: int  # bits/sec, 0 when unknown
    duration: float  # seconds
    size: int  # bytes
    codec: str
    fps: float
    audio_codec: str = "none"

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class RenditionSpec:
    """One entry of the rendition ladder."""
    name: str  # e.g. "720p"
    bitrate: int  # bits/sec

    @property
    def kbps(self) -> int:
        return self.bitrate // 1000

    @property
    def ffmpeg_bitrate(self) -> str:
        """Bitrate in the form ffmpeg expects, e.g. "2500k"."""
        return f"{self.kbps}k"

    @property
    def height(self) -> int:
        return int(self.name.rstrip("p"))


@dataclass(frozen=True)
class RenditionResult:
    """Statistics for one encoded rendition."""
    name: str
    duration: float  # wall-clock seconds spent encoding
    output_size: int  # bytes, sum of all segment files
    compression_ratio: float  # output size as a percentage of the source
    target_bitrate: int  # bits/sec
    segment_count: int

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "duration": round(self.duration, 2),
            "outputSize": self.output_size,
            "compressionRatio": self.compression_ratio,
            "targetBitrate": self.target_bitrate,
            "segmentCount": self.segment_count,
        }


class JobStage(str, Enum):
    CREATED = "created"
    PROBING = "probing"
    LADDER_SELECTED = "ladder_selected"
    ENCODING = "encoding"
    MANIFEST_WRITTEN = "manifest_written"
    CLEANUP = "cleanup"
    DONE = "done"
    FAILED = "failed"


class JobStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class ConversionJob:
    """State of a single conversion, owned by VideoConverter for one run."""
    job_id: str
    input_path: Path
    output_dir: Path
    metadata: Optional[SourceVideoMetadata] = None
    ladder: Tuple[RenditionSpec, ...] = ()
    results: List[RenditionResult] = field(default_factory=list)
    master_manifest_path: Optional[Path] = None
    created_output_dir: bool = False
    stage: JobStage = JobStage.CREATED
    status: JobStatus = JobStatus.PENDING
    failure: Optional[PipelineFailure] = None
    started_at: float = field(default_factory=time.monotonic)
    finished_at: Optional[float] = None

    @property
    def elapsed(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return end - self.started_at

    @property
    def succeeded(self) -> bool:
        return self.status == JobStatus.SUCCESS

    @property
    def empty_ladder(self) -> bool:
        return self.metadata is not None and not self.ladder


@dataclass(frozen=True)
class JobSummary:
    """Result handed back to the caller of VideoConverter.convert."""
    job_id: str
    success: bool
    master_manifest_url: Optional[str]
    renditions: Tuple[RenditionResult, ...]
    total_duration: float
    status: JobStatus
    empty_ladder: bool = False  # source below the lowest tier, nothing encoded

    def to_dict(self) -> dict:
        return {
            "jobId": self.job_id,
            "success": self.success,
            "masterManifestUrl": self.master_manifest_url,
            "renditions": [r.to_dict() for r in self.renditions],
            "totalDuration": round(self.total_duration, 2),
            "emptyLadder": self.empty_ladder,
        }


@dataclass
class StatsSummary:
    """Summary statistics across conversion jobs."""
    total_source_gb: float
    total_output_gb: float
    successful_conversions: int
    failed_conversions: int
    empty_ladder_jobs: int
    renditions_encoded: int
    compression_ratio: float
    failures_by_kind: Dict[str, int]
