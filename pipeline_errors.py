"""Error taxonomy shared by the text and rendering stages."""
from __future__ import annotations

from typing import Optional


class PipelineError(RuntimeError):
    """Base class for every failure surfaced by a pipeline stage."""


class StateUnavailable(PipelineError):
    """Raised when no persisted content snapshot can be loaded."""


class SourceUnavailable(PipelineError):
    """Raised when the text source cannot return article content."""


class ExtractionUnavailable(PipelineError):
    """Raised when keyword extraction fails for a sentence."""


class TemplateNotFound(PipelineError):
    """Raised when a sentence index has no entry in the template table."""

    def __init__(self, index: int, table_size: Optional[int] = None) -> None:
        self.index = index
        self.table_size = table_size
        if table_size is None:
            message = f"No sentence template for index {index}"
        else:
            message = f"No sentence template for index {index} (table defines 0..{table_size - 1})"
        super().__init__(message)


class CompositionFailed(PipelineError):
    """Raised when the compositor cannot produce an output image."""

    def __init__(self, reason: str, *, sentence_index: Optional[int] = None) -> None:
        self.reason = reason
        self.sentence_index = sentence_index
        super().__init__(reason)

    def __str__(self) -> str:
        if self.sentence_index is None:
            return f"Composition failed: {self.reason}"
        return f"Composition failed for sentence {self.sentence_index}: {self.reason}"


class RenderProcessFailed(PipelineError):
    """Raised when the external renderer fails to start, times out or exits non-zero."""

    def __init__(self, exit_code: Optional[int] = None, reason: Optional[str] = None) -> None:
        self.exit_code = exit_code
        self.reason = reason
        if reason:
            message = f"Render process failed: {reason}"
        else:
            message = f"Render process failed with exit code {exit_code}"
        super().__init__(message)
