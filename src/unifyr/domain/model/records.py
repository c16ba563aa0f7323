"""Persistent aggregates of a dataset.

Foreign keys are plain UUID attributes; the resolution core only ever works on
snapshots of these objects and never navigates between them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .entity import Entity, utcnow
from .enums import DatasetStatus, DataType, RunStatus, SourceFormat, SourceRole, TransformType

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


type Payload = dict[str, Any]


@dataclass(eq=False, kw_only=True)
class Dataset(Entity):
    name: str
    description: str | None = None
    primary_record_type: str | None = None
    status: DatasetStatus = DatasetStatus.ACTIVE
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def assign_primary_type(self, record_type: str) -> None:
        self.primary_record_type = record_type
        self.updated_at = utcnow()

    def mark_finished(self) -> None:
        self.status = DatasetStatus.FINISHED
        self.updated_at = utcnow()


@dataclass(eq=False, kw_only=True)
class Source(Entity):
    dataset_id: UUID
    name: str
    format: SourceFormat
    role: SourceRole = SourceRole.SOURCE
    config: Payload = field(default_factory=dict[str, Any])
    created_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class RawRecord(Entity):
    """One ingested entity observation; read-only to the resolution core."""

    dataset_id: UUID
    source_id: UUID
    ingestion_run_id: UUID | None = None
    payload: Payload = field(default_factory=dict[str, Any])
    payload_hash: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class Relationship(Entity):
    """Directed edge between two (type, id) endpoints."""

    dataset_id: UUID
    source_id: UUID | None = None
    ingestion_run_id: UUID | None = None
    from_type: str
    from_id: str
    to_type: str
    to_id: str
    relation_type: str
    payload: Payload | None = None
    ingested_at: datetime = field(default_factory=utcnow)

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        return (self.relation_type, self.from_id, self.to_id)


@dataclass(eq=False, kw_only=True)
class DatasetField(Entity):
    dataset_id: UUID
    name: str
    dtype: DataType = DataType.STRING
    is_nullable: bool = True
    is_unique: bool = False
    position: int | None = None
    default_expr: str | None = None


@dataclass(eq=False, kw_only=True)
class FieldMapping(Entity):
    """Binds a dataset field to a source and an extraction path."""

    dataset_id: UUID
    source_id: UUID | None
    field_id: UUID
    src_path: str | None = None
    src_json_path: str | None = None
    transform_type: TransformType = TransformType.NONE
    required: bool = False
    priority: int | None = None

    @property
    def path(self) -> str | None:
        if self.src_path and self.src_path.strip():
            return self.src_path
        return self.src_json_path


@dataclass(eq=False, kw_only=True)
class UnifiedRow(Entity):
    dataset_id: UUID
    source_id: UUID | None = None
    record_key: str | None = None
    data: Payload = field(default_factory=dict[str, Any])
    is_excluded: bool = False
    observed_at: datetime | None = None
    ingested_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class TransformRun(Entity):
    dataset_id: UUID
    status: RunStatus = RunStatus.RUNNING
    started_at: datetime = field(default_factory=utcnow)
    ended_at: datetime | None = None
    rows_in: int = 0
    rows_out: int = 0
    error_message: str | None = None

    def succeed(self, *, rows_in: int, rows_out: int) -> None:
        self.status = RunStatus.SUCCESS
        self.rows_in = rows_in
        self.rows_out = rows_out
        self.ended_at = utcnow()

    def fail(self, message: str) -> None:
        self.status = RunStatus.FAILED
        self.error_message = message
        self.ended_at = utcnow()


@dataclass(eq=False, kw_only=True)
class IngestionRun(Entity):
    dataset_id: UUID
    source_id: UUID
    status: RunStatus = RunStatus.QUEUED
    started_at: datetime | None = None
    ended_at: datetime | None = None
    rows_read: int = 0
    rows_stored: int = 0
    error_message: str | None = None

    def start(self) -> None:
        self.status = RunStatus.RUNNING
        self.started_at = utcnow()

    def succeed(self, *, rows_read: int, rows_stored: int) -> None:
        self.status = RunStatus.SUCCESS
        self.rows_read = rows_read
        self.rows_stored = rows_stored
        self.ended_at = utcnow()

    def fail(self, message: str) -> None:
        self.status = RunStatus.FAILED
        self.error_message = message
        self.ended_at = utcnow()
