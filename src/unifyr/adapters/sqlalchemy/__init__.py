"""SQLAlchemy adapter package for unifyr."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyDatasetFieldRepository,
    SqlAlchemyDatasetRepository,
    SqlAlchemyFieldMappingRepository,
    SqlAlchemyIngestionRunRepository,
    SqlAlchemyRawRecordRepository,
    SqlAlchemyRelationshipRepository,
    SqlAlchemySourceRepository,
    SqlAlchemyTransformRunRepository,
    SqlAlchemyUnifiedRowRepository,
)
from .unit_of_work import (
    SqlAlchemyIngestUnitOfWork,
    SqlAlchemyTransformUnitOfWork,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyDatasetFieldRepository",
    "SqlAlchemyDatasetRepository",
    "SqlAlchemyFieldMappingRepository",
    "SqlAlchemyIngestUnitOfWork",
    "SqlAlchemyIngestionRunRepository",
    "SqlAlchemyRawRecordRepository",
    "SqlAlchemyRelationshipRepository",
    "SqlAlchemySourceRepository",
    "SqlAlchemyTransformRunRepository",
    "SqlAlchemyTransformUnitOfWork",
    "SqlAlchemyUnifiedRowRepository",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "startup",
]
