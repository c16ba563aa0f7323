"""Ports for persisting dataset aggregates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from unifyr.domain.model import (
    Dataset,
    DatasetField,
    FieldMapping,
    IngestionRun,
    RawRecord,
    Relationship,
    Source,
    TransformRun,
    UnifiedRow,
)

if TYPE_CHECKING:
    from uuid import UUID


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class DatasetScopedRepository[TEntity](Repository[TEntity], Protocol):
    """Repository whose rows all belong to a dataset."""

    def list_for_dataset(self, dataset_id: UUID) -> list[TEntity]: ...


@runtime_checkable
class DatasetRepository(Repository[Dataset], Protocol):
    def get(self, dataset_id: UUID) -> Dataset | None: ...


@runtime_checkable
class SourceRepository(DatasetScopedRepository[Source], Protocol):
    """Sources of a dataset, in creation order."""


@runtime_checkable
class RawRecordRepository(DatasetScopedRepository[RawRecord], Protocol):
    def payload_hashes(self, source_id: UUID) -> set[str]: ...


@runtime_checkable
class RelationshipRepository(DatasetScopedRepository[Relationship], Protocol):
    def dedup_keys(self, dataset_id: UUID) -> set[tuple[str, str, str]]: ...


@runtime_checkable
class DatasetFieldRepository(DatasetScopedRepository[DatasetField], Protocol):
    """Target schema columns of a dataset."""


@runtime_checkable
class FieldMappingRepository(DatasetScopedRepository[FieldMapping], Protocol):
    """Field mappings of a dataset."""


@runtime_checkable
class UnifiedRowRepository(DatasetScopedRepository[UnifiedRow], Protocol):
    def delete_for_dataset(self, dataset_id: UUID) -> int: ...


@runtime_checkable
class TransformRunRepository(DatasetScopedRepository[TransformRun], Protocol):
    def get(self, run_id: UUID) -> TransformRun | None: ...


@runtime_checkable
class IngestionRunRepository(DatasetScopedRepository[IngestionRun], Protocol):
    def get(self, run_id: UUID) -> IngestionRun | None: ...
