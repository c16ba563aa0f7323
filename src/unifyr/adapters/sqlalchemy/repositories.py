"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, select

from unifyr.adapters.sqlalchemy.mappings import (
    dataset_field_table,
    field_mapping_table,
    ingestion_run_table,
    raw_record_table,
    relationship_table,
    source_table,
    transform_run_table,
    unified_row_table,
)
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

    from sqlalchemy import ColumnElement, Table
    from sqlalchemy.orm import Session


class SqlAlchemyRepository[TEntity]:
    """Shared helpers for repositories of one mapped aggregate."""

    entity_cls: type[TEntity]
    table: Table

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: TEntity) -> None:
        self.session.add(entity)

    def get(self, entity_id: UUID) -> TEntity | None:
        return self.session.get(self.entity_cls, entity_id)

    def list_for_dataset(self, dataset_id: UUID) -> list[TEntity]:
        stmt = (
            select(self.entity_cls)
            .where(self.table.c.dataset_id == dataset_id)
            .order_by(*self._ordering())
        )
        return list(self.session.execute(stmt).scalars())

    def _ordering(self) -> tuple[ColumnElement[object], ...]:
        return (self.table.c.id,)


class SqlAlchemyDatasetRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Dataset) -> None:
        self.session.add(entity)

    def get(self, dataset_id: UUID) -> Dataset | None:
        return self.session.get(Dataset, dataset_id)


class SqlAlchemySourceRepository(SqlAlchemyRepository[Source]):
    entity_cls = Source
    table = source_table

    def _ordering(self) -> tuple[ColumnElement[object], ...]:
        return (source_table.c.created_at, source_table.c.name)


class SqlAlchemyRawRecordRepository(SqlAlchemyRepository[RawRecord]):
    entity_cls = RawRecord
    table = raw_record_table

    def _ordering(self) -> tuple[ColumnElement[object], ...]:
        return (raw_record_table.c.created_at, raw_record_table.c.id)

    def payload_hashes(self, source_id: UUID) -> set[str]:
        stmt = select(raw_record_table.c.payload_hash).where(
            raw_record_table.c.source_id == source_id
        )
        return set(self.session.execute(stmt).scalars())


class SqlAlchemyRelationshipRepository(SqlAlchemyRepository[Relationship]):
    entity_cls = Relationship
    table = relationship_table

    def _ordering(self) -> tuple[ColumnElement[object], ...]:
        return (relationship_table.c.ingested_at, relationship_table.c.id)

    def dedup_keys(self, dataset_id: UUID) -> set[tuple[str, str, str]]:
        stmt = select(
            relationship_table.c.relation_type,
            relationship_table.c.from_id,
            relationship_table.c.to_id,
        ).where(relationship_table.c.dataset_id == dataset_id)
        return {
            (relation_type, from_id, to_id)
            for relation_type, from_id, to_id in self.session.execute(stmt)
        }


class SqlAlchemyDatasetFieldRepository(SqlAlchemyRepository[DatasetField]):
    entity_cls = DatasetField
    table = dataset_field_table

    def _ordering(self) -> tuple[ColumnElement[object], ...]:
        return (
            dataset_field_table.c.position.is_(None),
            dataset_field_table.c.position,
            dataset_field_table.c.name,
        )


class SqlAlchemyFieldMappingRepository(SqlAlchemyRepository[FieldMapping]):
    entity_cls = FieldMapping
    table = field_mapping_table

    def _ordering(self) -> tuple[ColumnElement[object], ...]:
        return (
            field_mapping_table.c.priority.is_(None),
            field_mapping_table.c.priority,
            field_mapping_table.c.id,
        )


class SqlAlchemyUnifiedRowRepository(SqlAlchemyRepository[UnifiedRow]):
    entity_cls = UnifiedRow
    table = unified_row_table

    def _ordering(self) -> tuple[ColumnElement[object], ...]:
        return (unified_row_table.c.record_key, unified_row_table.c.id)

    def delete_for_dataset(self, dataset_id: UUID) -> int:
        stmt = delete(unified_row_table).where(unified_row_table.c.dataset_id == dataset_id)
        result = self.session.execute(stmt)
        return result.rowcount or 0


class SqlAlchemyTransformRunRepository(SqlAlchemyRepository[TransformRun]):
    entity_cls = TransformRun
    table = transform_run_table

    def _ordering(self) -> tuple[ColumnElement[object], ...]:
        return (transform_run_table.c.started_at, transform_run_table.c.id)


class SqlAlchemyIngestionRunRepository(SqlAlchemyRepository[IngestionRun]):
    entity_cls = IngestionRun
    table = ingestion_run_table

    def _ordering(self) -> tuple[ColumnElement[object], ...]:
        return (ingestion_run_table.c.started_at, ingestion_run_table.c.id)
