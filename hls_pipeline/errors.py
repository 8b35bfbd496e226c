"""Failure types raised or returned by the conversion pipeline."""

from typing import Optional


class PipelineFailure(Exception):
    """Base class for every failure a pipeline stage can report."""

    kind = "pipeline"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class ProbeFailure(PipelineFailure):
    """Source could not be inspected or has no video stream."""

    kind = "probe"


class ValidationFailure(PipelineFailure):
    """Source metadata is malformed or unusable."""

    kind = "validation"


class EncodeFailure(PipelineFailure):
    """Encoder failed or left no usable output for a rendition."""

    kind = "encode"

    def __init__(self, rendition: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"{rendition}: {message}", cause)
        self.rendition = rendition


class FilesystemFailure(PipelineFailure):
    """Directory creation, manifest write or source deletion failed."""

    kind = "filesystem"


class CancelledFailure(PipelineFailure):
    """Job was stopped before it could finish."""

    kind = "cancelled"


class ConversionError(Exception):
    """Raised by VideoConverter.convert when a job ends in failure."""

    def __init__(self, job_id: str, failure: PipelineFailure):
        super().__init__(f"Conversion {job_id} failed ({failure.kind}): {failure.message}")
        self.job_id = job_id
        self.failure = failure
        self.__cause__ = failure
