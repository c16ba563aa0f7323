"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING, Any

from unifyr.adapters.extractors import build_extractor_registry, validate_source_config
from unifyr.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyIngestUnitOfWork,
    SqlAlchemyTransformUnitOfWork,
    is_started,
    startup,
)
from unifyr.config import get_transform_config
from unifyr.domain.errors import DatasetNotFoundError
from unifyr.domain.ingest import IngestDatasetResult, ingest_dataset
from unifyr.domain.model import Dataset, Source, SourceRole
from unifyr.domain.ports.unit_of_work import IngestUnitOfWork, TransformUnitOfWork
from unifyr.domain.resolution import TransformEngine
from unifyr.domain.transform import run_transform

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from unifyr.domain.model import SourceFormat, TransformRun
    from unifyr.domain.ports import RecordExtractor

IngestUnitOfWorkFactory = Callable[[], IngestUnitOfWork]
TransformUnitOfWorkFactory = Callable[[], TransformUnitOfWork]


log = getLogger(__name__)


def _ensure_started() -> None:
    if not is_started():
        startup()


def build_transform_engine() -> TransformEngine:
    """Create an engine from the environment-driven transform settings."""

    config = get_transform_config()
    return TransformEngine(
        default_primary_type=config.default_primary_type,
        sample_rows_logged=config.sample_rows_logged,
    )


def create_dataset(
    *,
    name: str,
    description: str | None = None,
    primary_record_type: str | None = None,
    unit_of_work_factory: IngestUnitOfWorkFactory | None = None,
) -> Dataset:
    """Create and persist a new dataset."""

    if unit_of_work_factory is None:
        _ensure_started()
    effective_uow = unit_of_work_factory or SqlAlchemyIngestUnitOfWork
    dataset = Dataset(
        name=name,
        description=description,
        primary_record_type=primary_record_type,
    )
    with effective_uow() as uow:
        uow.repositories.datasets.add(dataset)
        uow.commit()
    log.info("Created dataset %s (%s)", dataset.name, dataset.id)
    return dataset


def add_source(
    dataset_id: UUID,
    *,
    name: str,
    source_format: SourceFormat,
    config: Mapping[str, Any],
    role: SourceRole = SourceRole.SOURCE,
    unit_of_work_factory: IngestUnitOfWorkFactory | None = None,
) -> Source:
    """Register a source on an existing dataset after validating its config."""

    if unit_of_work_factory is None:
        _ensure_started()
    effective_uow = unit_of_work_factory or SqlAlchemyIngestUnitOfWork
    source = Source(
        dataset_id=dataset_id,
        name=name,
        format=source_format,
        role=role,
        config=dict(config),
    )
    validate_source_config(source)
    with effective_uow() as uow:
        if uow.repositories.datasets.get(dataset_id) is None:
            raise DatasetNotFoundError(dataset_id)
        uow.repositories.sources.add(source)
        uow.commit()
    log.info("Added %s source %s to dataset %s", source.format, source.name, dataset_id)
    return source


def ingest_dataset_sources(
    dataset_id: UUID,
    *,
    unit_of_work_factory: IngestUnitOfWorkFactory | None = None,
    extractors: Mapping[SourceFormat, RecordExtractor] | None = None,
) -> IngestDatasetResult:
    """Extract every source of a dataset into raw records and relationships."""

    if unit_of_work_factory is None:
        _ensure_started()
    effective_uow = unit_of_work_factory or SqlAlchemyIngestUnitOfWork
    effective_extractors = extractors if extractors is not None else build_extractor_registry()
    log.info("Starting ingestion for dataset %s", dataset_id)

    result = ingest_dataset(
        dataset_id,
        unit_of_work_factory=effective_uow,
        extractors=effective_extractors,
    )

    log.info(
        "Finished ingestion for dataset %s: runs=%d, stored=%d, relationships=%d, failed=%d",
        dataset_id,
        len(result.runs),
        result.records_stored,
        result.relationships_stored,
        len(result.failed_runs),
    )
    return result


def transform_dataset(
    dataset_id: UUID,
    *,
    unit_of_work_factory: TransformUnitOfWorkFactory | None = None,
    engine: TransformEngine | None = None,
) -> TransformRun:
    """Rebuild the unified rows of a dataset."""

    if unit_of_work_factory is None:
        _ensure_started()
    effective_uow = unit_of_work_factory or SqlAlchemyTransformUnitOfWork
    effective_engine = engine or build_transform_engine()
    log.info("Starting transform for dataset %s", dataset_id)

    run = run_transform(dataset_id, unit_of_work_factory=effective_uow, engine=effective_engine)

    log.info(
        "Finished transform for dataset %s: run=%s, rows_in=%s, rows_out=%s",
        dataset_id,
        run.id,
        run.rows_in,
        run.rows_out,
    )
    return run
