"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from unifyr.domain.ports.persistence import (
        DatasetFieldRepository,
        DatasetRepository,
        FieldMappingRepository,
        IngestionRunRepository,
        RawRecordRepository,
        RelationshipRepository,
        SourceRepository,
        TransformRunRepository,
        UnifiedRowRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection."""

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class TransformRepositories(RepositoryCollection):
    """Repositories a transform run reads from and writes to."""

    datasets: DatasetRepository
    raw_records: RawRecordRepository
    relationships: RelationshipRepository
    fields: DatasetFieldRepository
    mappings: FieldMappingRepository
    unified_rows: UnifiedRowRepository
    transform_runs: TransformRunRepository


@dataclass(slots=True)
class IngestRepositories(RepositoryCollection):
    """Repositories required to ingest a dataset's sources."""

    datasets: DatasetRepository
    sources: SourceRepository
    raw_records: RawRecordRepository
    relationships: RelationshipRepository
    ingestion_runs: IngestionRunRepository


type TransformUnitOfWork = UnitOfWork[TransformRepositories]
type IngestUnitOfWork = UnitOfWork[IngestRepositories]
