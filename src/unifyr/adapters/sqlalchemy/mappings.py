"""SQLAlchemy mapping metadata for the unifyr domain model."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)

from unifyr.domain.model import (
    Dataset,
    DatasetField,
    DatasetStatus,
    DataType,
    FieldMapping,
    IngestionRun,
    RawRecord,
    Relationship,
    RunStatus,
    Source,
    SourceFormat,
    SourceRole,
    TransformRun,
    TransformType,
    UnifiedRow,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _dataset_fk() -> Column[uuid.UUID]:
    return Column(
        "dataset_id",
        UUIDColumnType,
        ForeignKey("dataset.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


dataset_table = Table(
    "dataset",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String, nullable=False),
    Column("description", Text, nullable=True),
    Column("primary_record_type", String, nullable=True),
    Column("status", Enum(DatasetStatus, native_enum=False), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
)

source_table = Table(
    "source",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _dataset_fk(),
    Column("name", String, nullable=False),
    Column("format", Enum(SourceFormat, native_enum=False), nullable=False),
    Column("role", Enum(SourceRole, native_enum=False), nullable=False),
    Column("config", JSON, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    UniqueConstraint("dataset_id", "name", name="uq_source_dataset_name"),
)

ingestion_run_table = Table(
    "ingestion_run",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _dataset_fk(),
    Column(
        "source_id",
        UUIDColumnType,
        ForeignKey("source.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("status", Enum(RunStatus, native_enum=False), nullable=False),
    Column("started_at", UTCDateTime(), nullable=True),
    Column("ended_at", UTCDateTime(), nullable=True),
    Column("rows_read", Integer, nullable=False),
    Column("rows_stored", Integer, nullable=False),
    Column("error_message", Text, nullable=True),
)

raw_record_table = Table(
    "raw_record",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _dataset_fk(),
    Column(
        "source_id",
        UUIDColumnType,
        ForeignKey("source.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "ingestion_run_id",
        UUIDColumnType,
        ForeignKey("ingestion_run.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("payload", JSON, nullable=False),
    Column("payload_hash", String(64), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Index("ix_raw_record_source_hash", "source_id", "payload_hash"),
)

relationship_table = Table(
    "relationship",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _dataset_fk(),
    Column(
        "source_id",
        UUIDColumnType,
        ForeignKey("source.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column(
        "ingestion_run_id",
        UUIDColumnType,
        ForeignKey("ingestion_run.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("from_type", String, nullable=False),
    Column("from_id", Text, nullable=False),
    Column("to_type", String, nullable=False),
    Column("to_id", Text, nullable=False),
    Column("relation_type", String, nullable=False),
    Column("payload", JSON, nullable=True),
    Column("ingested_at", UTCDateTime(), nullable=False),
)

dataset_field_table = Table(
    "dataset_field",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _dataset_fk(),
    Column("name", String, nullable=False),
    Column("dtype", Enum(DataType, native_enum=False), nullable=False),
    Column("is_nullable", Boolean, nullable=False),
    Column("is_unique", Boolean, nullable=False),
    Column("position", Integer, nullable=True),
    Column("default_expr", String, nullable=True),
    UniqueConstraint("dataset_id", "name", name="uq_dataset_field_dataset_name"),
)

field_mapping_table = Table(
    "field_mapping",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _dataset_fk(),
    Column(
        "source_id",
        UUIDColumnType,
        ForeignKey("source.id", ondelete="CASCADE"),
        nullable=True,
    ),
    Column(
        "field_id",
        UUIDColumnType,
        ForeignKey("dataset_field.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("src_path", String, nullable=True),
    Column("src_json_path", String, nullable=True),
    Column("transform_type", Enum(TransformType, native_enum=False), nullable=False),
    Column("required", Boolean, nullable=False),
    Column("priority", Integer, nullable=True),
)

unified_row_table = Table(
    "unified_row",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _dataset_fk(),
    Column(
        "source_id",
        UUIDColumnType,
        ForeignKey("source.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("record_key", Text, nullable=True),
    Column("data", JSON, nullable=False),
    Column("is_excluded", Boolean, nullable=False),
    Column("observed_at", UTCDateTime(), nullable=True),
    Column("ingested_at", UTCDateTime(), nullable=False),
)

transform_run_table = Table(
    "transform_run",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _dataset_fk(),
    Column("status", Enum(RunStatus, native_enum=False), nullable=False),
    Column("started_at", UTCDateTime(), nullable=False),
    Column("ended_at", UTCDateTime(), nullable=True),
    Column("rows_in", Integer, nullable=False),
    Column("rows_out", Integer, nullable=False),
    Column("error_message", Text, nullable=True),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Dataset, dataset_table)
    mapper_registry.map_imperatively(Source, source_table)
    mapper_registry.map_imperatively(IngestionRun, ingestion_run_table)
    mapper_registry.map_imperatively(RawRecord, raw_record_table)
    mapper_registry.map_imperatively(Relationship, relationship_table)
    mapper_registry.map_imperatively(DatasetField, dataset_field_table)
    mapper_registry.map_imperatively(FieldMapping, field_mapping_table)
    mapper_registry.map_imperatively(UnifiedRow, unified_row_table)
    mapper_registry.map_imperatively(TransformRun, transform_run_table)
    orm.configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
