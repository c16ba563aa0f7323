"""Transform run service.

A run replaces a dataset's unified rows wholesale. The delete of the previous
rows and the insert of the new ones share one transaction, so a failed run
rolls back to the rows of the last successful run.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from unifyr.domain.errors import DatasetNotFoundError, TransformFailedError
from unifyr.domain.model import TransformRun
from unifyr.domain.resolution import TransformEngine, TransformSnapshot

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from unifyr.domain.model import Dataset
    from unifyr.domain.ports.unit_of_work import TransformRepositories, TransformUnitOfWork

type TransformUnitOfWorkFactory = Callable[[], TransformUnitOfWork]

log = logging.getLogger(__name__)


def load_snapshot(repositories: TransformRepositories, dataset: Dataset) -> TransformSnapshot:
    dataset_id = dataset.id
    return TransformSnapshot(
        dataset_id=dataset.id,
        primary_record_type=dataset.primary_record_type,
        fields=tuple(repositories.fields.list_for_dataset(dataset_id)),
        mappings=tuple(repositories.mappings.list_for_dataset(dataset_id)),
        records=tuple(repositories.raw_records.list_for_dataset(dataset_id)),
        relationships=tuple(repositories.relationships.list_for_dataset(dataset_id)),
    )


def run_transform(
    dataset_id: UUID,
    *,
    unit_of_work_factory: TransformUnitOfWorkFactory,
    engine: TransformEngine | None = None,
) -> TransformRun:
    """Rebuild the unified rows of ``dataset_id`` and return the finished run.

    Raises ``DatasetNotFoundError`` for unknown datasets and ``TransformFailedError``
    (chained to the original exception) once a failed run has been recorded.
    """

    effective_engine = engine or TransformEngine()

    with unit_of_work_factory() as uow:
        dataset = uow.repositories.datasets.get(dataset_id)
        if dataset is None:
            raise DatasetNotFoundError(dataset_id)
        snapshot = load_snapshot(uow.repositories, dataset)
        primary_type = effective_engine.resolve_primary_type(snapshot)
        dataset.assign_primary_type(primary_type)
        run = TransformRun(dataset_id=dataset_id)
        uow.repositories.transform_runs.add(run)
        uow.commit()
    log.info(
        "Started transform run %s for dataset %s with primary type %r",
        run.id,
        dataset_id,
        primary_type,
    )

    snapshot = replace(snapshot, primary_record_type=primary_type)
    try:
        with unit_of_work_factory() as uow:
            repositories = uow.repositories
            removed = repositories.unified_rows.delete_for_dataset(dataset_id)
            log.debug("Removed %d unified rows of dataset %s", removed, dataset_id)
            outcome = effective_engine.run(snapshot)
            for row in outcome.rows:
                repositories.unified_rows.add(row)
            stored_run = repositories.transform_runs.get(run.id)
            stored_dataset = repositories.datasets.get(dataset_id)
            if stored_run is None or stored_dataset is None:
                raise DatasetNotFoundError(dataset_id)
            stored_run.succeed(rows_in=outcome.rows_in, rows_out=outcome.rows_out)
            stored_dataset.mark_finished()
            uow.commit()
    except Exception as exc:
        log.exception("Transform run %s for dataset %s failed", run.id, dataset_id)
        failed = _record_failure(unit_of_work_factory, run, str(exc) or type(exc).__name__)
        raise TransformFailedError(failed) from exc

    log.info(
        "Finished transform run %s: rows_in=%d, rows_out=%d",
        stored_run.id,
        stored_run.rows_in,
        stored_run.rows_out,
    )
    return stored_run


def _record_failure(
    unit_of_work_factory: TransformUnitOfWorkFactory,
    run: TransformRun,
    message: str,
) -> TransformRun:
    with unit_of_work_factory() as uow:
        stored_run = uow.repositories.transform_runs.get(run.id) or run
        stored_run.fail(message)
        uow.repositories.transform_runs.add(stored_run)
        uow.commit()
    return stored_run
