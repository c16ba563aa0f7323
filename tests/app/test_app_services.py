from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from unifyr import app
from unifyr.adapters.extractors import build_extractor_registry
from unifyr.domain.errors import DatasetNotFoundError, SourceConfigError
from unifyr.domain.model import RunStatus, SourceFormat
from tests.helpers.datasets import FakeIngestUnitOfWork, InMemoryStore

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.engine import Engine


def test_create_dataset_uses_given_unit_of_work() -> None:
    store = InMemoryStore()

    dataset = app.create_dataset(
        name="Customers",
        primary_record_type="customers",
        unit_of_work_factory=lambda: FakeIngestUnitOfWork(store),
    )

    assert store.datasets == [dataset]
    assert store.commits == 1
    assert dataset.primary_record_type == "customers"


def test_add_source_rejects_invalid_config_before_storing() -> None:
    store = InMemoryStore()
    dataset = app.create_dataset(
        name="Customers", unit_of_work_factory=lambda: FakeIngestUnitOfWork(store)
    )

    with pytest.raises(SourceConfigError):
        app.add_source(
            dataset.id,
            name="crm",
            source_format=SourceFormat.SQL,
            config={"table": "customers"},
            unit_of_work_factory=lambda: FakeIngestUnitOfWork(store),
        )

    assert store.sources == []


def test_add_source_requires_existing_dataset() -> None:
    store = InMemoryStore()

    with pytest.raises(DatasetNotFoundError):
        app.add_source(
            uuid4(),
            name="customers",
            source_format=SourceFormat.CSV,
            config={"file_path": "customers.csv"},
            unit_of_work_factory=lambda: FakeIngestUnitOfWork(store),
        )


def test_full_run_through_started_adapter(sqlite_started: Engine, tmp_path: Path) -> None:
    _ = sqlite_started
    (tmp_path / "customers.csv").write_text(
        "id,email\n1,olivia@example.com\n2,noah@example.com\n",
        encoding="utf-8",
    )
    dataset = app.create_dataset(name="Customers")
    app.add_source(
        dataset.id,
        name="customers",
        source_format=SourceFormat.CSV,
        config={"relativePath": "customers.csv"},
    )

    result = app.ingest_dataset_sources(
        dataset.id, extractors=build_extractor_registry(uploads_dir=tmp_path)
    )
    run = app.transform_dataset(dataset.id)

    assert result.records_stored == 2
    assert result.failed_runs == []
    assert run.status == RunStatus.SUCCESS
    assert (run.rows_in, run.rows_out) == (2, 2)


def test_build_transform_engine_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("UNIFYR_DEFAULT_PRIMARY_TYPE", "people")
    monkeypatch.setenv("UNIFYR_SAMPLE_ROWS_LOGGED", "1")

    engine = app.build_transform_engine()

    assert engine.default_primary_type == "people"
    assert engine.sample_rows_logged == 1
