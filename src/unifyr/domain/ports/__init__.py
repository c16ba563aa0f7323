"""Domain ports (interfaces) for adapters."""

from __future__ import annotations

from .extraction import RecordExtractor
from .persistence import (
    DatasetFieldRepository,
    DatasetRepository,
    FieldMappingRepository,
    IngestionRunRepository,
    RawRecordRepository,
    RelationshipRepository,
    Repository,
    SourceRepository,
    TransformRunRepository,
    UnifiedRowRepository,
)
from .unit_of_work import (
    IngestRepositories,
    IngestUnitOfWork,
    RepositoryCollection,
    TransformRepositories,
    TransformUnitOfWork,
    UnitOfWork,
)

__all__ = [
    "DatasetFieldRepository",
    "DatasetRepository",
    "FieldMappingRepository",
    "IngestRepositories",
    "IngestUnitOfWork",
    "IngestionRunRepository",
    "RawRecordRepository",
    "RecordExtractor",
    "RelationshipRepository",
    "Repository",
    "RepositoryCollection",
    "SourceRepository",
    "TransformRepositories",
    "TransformRunRepository",
    "TransformUnitOfWork",
    "UnifiedRowRepository",
    "UnitOfWork",
]
