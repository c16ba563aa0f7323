"""Domain-level error types."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from unifyr.domain.model import TransformRun


class DatasetNotFoundError(LookupError):
    """Raised when a dataset id does not exist."""

    def __init__(self, dataset_id: UUID) -> None:
        super().__init__(f"Dataset not found: {dataset_id}")
        self.dataset_id = dataset_id


class TransformFailedError(RuntimeError):
    """Raised after a transform run has been recorded as failed."""

    def __init__(self, run: TransformRun) -> None:
        super().__init__(run.error_message or "Transform run failed")
        self.run = run


class UnsupportedSourceFormatError(ValueError):
    """Raised when no extractor is registered for a source format."""


class SourceConfigError(ValueError):
    """Raised when a source's configuration cannot be used by its extractor."""
