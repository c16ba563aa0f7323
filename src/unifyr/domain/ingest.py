"""Ingestion service: pull every source of a dataset into raw records.

Each source gets its own ingestion run. A source that fails is recorded as
FAILED and the remaining sources are still ingested. Once all sources are read,
relationships are derived across everything extracted in this pass.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from unifyr.domain.errors import DatasetNotFoundError, UnsupportedSourceFormatError
from unifyr.domain.model import IngestionRun, RawRecord, RunStatus, SourceRole
from unifyr.domain.resolution import derive_relationships

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from uuid import UUID

    from unifyr.domain.model import Relationship, Source, SourceFormat
    from unifyr.domain.ports.extraction import RecordExtractor
    from unifyr.domain.ports.unit_of_work import IngestUnitOfWork

type IngestUnitOfWorkFactory = Callable[[], IngestUnitOfWork]

log = logging.getLogger(__name__)


@dataclass(slots=True)
class IngestDatasetResult:
    runs: list[IngestionRun] = field(default_factory=list[IngestionRun])
    records_read: int = 0
    records_stored: int = 0
    relationships_stored: int = 0

    @property
    def failed_runs(self) -> list[IngestionRun]:
        return [run for run in self.runs if run.status == RunStatus.FAILED]


def payload_hash(payload: Mapping[str, Any]) -> str:
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def ingest_dataset(
    dataset_id: UUID,
    *,
    unit_of_work_factory: IngestUnitOfWorkFactory,
    extractors: Mapping[SourceFormat, RecordExtractor],
) -> IngestDatasetResult:
    with unit_of_work_factory() as uow:
        if uow.repositories.datasets.get(dataset_id) is None:
            raise DatasetNotFoundError(dataset_id)
        sources = [
            source
            for source in uow.repositories.sources.list_for_dataset(dataset_id)
            if source.role == SourceRole.SOURCE
        ]

    result = IngestDatasetResult()
    records_by_source: dict[UUID | None, list[dict[str, Any]]] = {}
    for source in sources:
        run, payloads = _ingest_source(source, unit_of_work_factory, extractors)
        result.runs.append(run)
        result.records_read += run.rows_read
        result.records_stored += run.rows_stored
        if payloads is not None:
            records_by_source[source.id] = payloads

    relationships = derive_relationships(records_by_source, dataset_id=dataset_id)
    result.relationships_stored = _store_relationships(
        dataset_id, relationships, unit_of_work_factory
    )
    log.info(
        "Ingested dataset %s: sources=%d, read=%d, stored=%d, relationships=%d, failed=%d",
        dataset_id,
        len(sources),
        result.records_read,
        result.records_stored,
        result.relationships_stored,
        len(result.failed_runs),
    )
    return result


def _ingest_source(
    source: Source,
    unit_of_work_factory: IngestUnitOfWorkFactory,
    extractors: Mapping[SourceFormat, RecordExtractor],
) -> tuple[IngestionRun, list[dict[str, Any]] | None]:
    with unit_of_work_factory() as uow:
        run = IngestionRun(dataset_id=source.dataset_id, source_id=source.id)
        run.start()
        uow.repositories.ingestion_runs.add(run)
        uow.commit()

    try:
        extractor = extractors.get(source.format)
        if extractor is None:
            raise UnsupportedSourceFormatError(  # noqa: TRY301
                f"No extractor registered for {source.format!r}"
            )
        payloads = extractor.extract(source)
        with unit_of_work_factory() as uow:
            stored = _store_records(uow, source, run.id, payloads)
            stored_run = uow.repositories.ingestion_runs.get(run.id) or run
            stored_run.succeed(rows_read=len(payloads), rows_stored=stored)
            uow.commit()
    except Exception as exc:  # noqa: BLE001
        log.exception("Ingestion of source %s (%s) failed", source.name, source.id)
        with unit_of_work_factory() as uow:
            stored_run = uow.repositories.ingestion_runs.get(run.id) or run
            stored_run.fail(str(exc) or type(exc).__name__)
            uow.commit()
        return stored_run, None

    log.info(
        "Ingested source %s: read=%d, stored=%d",
        source.name,
        stored_run.rows_read,
        stored_run.rows_stored,
    )
    return stored_run, payloads


def _store_records(
    uow: IngestUnitOfWork,
    source: Source,
    run_id: UUID,
    payloads: Sequence[Mapping[str, Any]],
) -> int:
    seen = uow.repositories.raw_records.payload_hashes(source.id)
    stored = 0
    for payload in payloads:
        digest = payload_hash(payload)
        if digest in seen:
            continue
        seen.add(digest)
        uow.repositories.raw_records.add(
            RawRecord(
                dataset_id=source.dataset_id,
                source_id=source.id,
                ingestion_run_id=run_id,
                payload=dict(payload),
                payload_hash=digest,
            )
        )
        stored += 1
    return stored


def _store_relationships(
    dataset_id: UUID,
    relationships: Sequence[Relationship],
    unit_of_work_factory: IngestUnitOfWorkFactory,
) -> int:
    if not relationships:
        return 0
    with unit_of_work_factory() as uow:
        existing = uow.repositories.relationships.dedup_keys(dataset_id)
        stored = 0
        for relationship in relationships:
            if relationship.dedup_key in existing:
                continue
            existing.add(relationship.dedup_key)
            uow.repositories.relationships.add(relationship)
            stored += 1
        uow.commit()
    return stored
