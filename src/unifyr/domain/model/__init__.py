"""Public domain model surface."""

from __future__ import annotations

from unifyr.domain.model.entity import Entity, new_id, utcnow
from unifyr.domain.model.enums import (
    DatasetStatus,
    DataType,
    RunStatus,
    SourceFormat,
    SourceRole,
    TransformType,
)
from unifyr.domain.model.records import (
    Dataset,
    DatasetField,
    FieldMapping,
    IngestionRun,
    Payload,
    RawRecord,
    Relationship,
    Source,
    TransformRun,
    UnifiedRow,
)

__all__ = [
    "DataType",
    "Dataset",
    "DatasetField",
    "DatasetStatus",
    "Entity",
    "FieldMapping",
    "IngestionRun",
    "Payload",
    "RawRecord",
    "Relationship",
    "RunStatus",
    "Source",
    "SourceFormat",
    "SourceRole",
    "TransformRun",
    "TransformType",
    "UnifiedRow",
    "new_id",
    "utcnow",
]
