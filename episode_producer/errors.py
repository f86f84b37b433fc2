"""Exceptions raised by the production pipeline.

Segmentation never raises: malformed scripts degrade to fewer segments.
"""


class ProducerError(Exception):
    """Base class for pipeline failures."""


class SynthesisError(ProducerError):
    """One external synthesis call failed. Callers skip the segment and log."""

    def __init__(self, kind: str, detail: str, index: int | None = None):
        self.kind = kind
        self.detail = detail
        self.index = index
        where = f" (segment {index})" if index is not None else ""
        super().__init__(f"{kind} synthesis failed{where}: {detail}")


class MixingStageError(ProducerError):
    """An audio-processing step failed. Fatal for the current mix."""

    def __init__(self, stage: str, detail: str, segment_index: int | None = None):
        self.stage = stage
        self.detail = detail
        self.segment_index = segment_index
        where = f" at segment {segment_index}" if segment_index is not None else ""
        super().__init__(f"Mixing stage '{stage}' failed{where}: {detail}")


class NoContentError(ProducerError):
    """Nothing usable to render or mix."""
