from __future__ import annotations

from uuid import uuid4

import pytest

from unifyr.domain.errors import DatasetNotFoundError
from unifyr.domain.ingest import ingest_dataset, payload_hash
from unifyr.domain.model import RunStatus, SourceFormat, SourceRole
from tests.helpers.datasets import (
    FakeIngestUnitOfWork,
    FakeRecordExtractor,
    InMemoryStore,
    make_dataset,
    make_source,
)

CUSTOMERS = [
    {"__table__": "customers", "id": "C-1", "customer_id": "CUST-100", "email": "o@example.com"},
    {"__table__": "customers", "id": "C-2", "customer_id": "CUST-200", "email": "n@example.com"},
]
CONTACTS = [
    {"__table__": "contacts", "id": "P-1", "customer_id": "CUST-100", "phone": "555-0100"},
]


def test_payload_hash_ignores_key_order() -> None:
    assert payload_hash({"a": 1, "b": [1, 2]}) == payload_hash({"b": [1, 2], "a": 1})
    assert payload_hash({"a": 1}) != payload_hash({"a": 2})


def test_ingest_stores_records_and_derives_relationships() -> None:
    dataset = make_dataset()
    customers = make_source(dataset.id, "customers")
    contacts = make_source(dataset.id, "contacts")
    store = InMemoryStore().seed(dataset, customers, contacts)
    extractor = FakeRecordExtractor({"customers": CUSTOMERS, "contacts": CONTACTS})

    result = ingest_dataset(
        dataset.id,
        unit_of_work_factory=lambda: FakeIngestUnitOfWork(store),
        extractors={SourceFormat.CSV: extractor},
    )

    assert extractor.calls == ["customers", "contacts"]
    assert [run.status for run in result.runs] == [RunStatus.SUCCESS, RunStatus.SUCCESS]
    assert (result.records_read, result.records_stored) == (3, 3)
    assert result.relationships_stored == 1
    assert result.failed_runs == []
    assert [record.source_id for record in store.raw_records] == [
        customers.id,
        customers.id,
        contacts.id,
    ]
    assert {record.ingestion_run_id for record in store.raw_records} == {
        run.id for run in result.runs
    }
    (relationship,) = store.relationships
    assert relationship.relation_type == "shared_customer_id"
    assert (relationship.from_id, relationship.to_id) == ("C-1", "P-1")
    assert store.ingestion_runs == result.runs


def test_reingesting_the_same_data_stores_nothing_new() -> None:
    dataset = make_dataset()
    customers = make_source(dataset.id, "customers")
    contacts = make_source(dataset.id, "contacts")
    store = InMemoryStore().seed(dataset, customers, contacts)
    extractors = {
        SourceFormat.CSV: FakeRecordExtractor({"customers": CUSTOMERS, "contacts": CONTACTS})
    }

    def factory() -> FakeIngestUnitOfWork:
        return FakeIngestUnitOfWork(store)

    ingest_dataset(dataset.id, unit_of_work_factory=factory, extractors=extractors)
    second = ingest_dataset(dataset.id, unit_of_work_factory=factory, extractors=extractors)

    assert (second.records_read, second.records_stored) == (3, 0)
    assert second.relationships_stored == 0
    assert len(store.raw_records) == 3
    assert len(store.relationships) == 1
    assert len(store.ingestion_runs) == 4


def test_duplicate_payloads_in_one_batch_are_stored_once() -> None:
    dataset = make_dataset()
    source = make_source(dataset.id, "customers")
    store = InMemoryStore().seed(dataset, source)
    extractor = FakeRecordExtractor({"customers": [CUSTOMERS[0], dict(CUSTOMERS[0])]})

    result = ingest_dataset(
        dataset.id,
        unit_of_work_factory=lambda: FakeIngestUnitOfWork(store),
        extractors={SourceFormat.CSV: extractor},
    )

    (run,) = result.runs
    assert (run.rows_read, run.rows_stored) == (2, 1)
    assert len(store.raw_records) == 1


def test_failing_source_is_recorded_and_others_continue() -> None:
    dataset = make_dataset()
    broken = make_source(dataset.id, "broken")
    customers = make_source(dataset.id, "customers")
    store = InMemoryStore().seed(dataset, broken, customers)
    extractor = FakeRecordExtractor({"customers": CUSTOMERS}, failing=["broken"])

    result = ingest_dataset(
        dataset.id,
        unit_of_work_factory=lambda: FakeIngestUnitOfWork(store),
        extractors={SourceFormat.CSV: extractor},
    )

    failed, succeeded = result.runs
    assert failed.status == RunStatus.FAILED
    assert failed.error_message == "cannot read broken"
    assert failed.source_id == broken.id
    assert succeeded.status == RunStatus.SUCCESS
    assert result.failed_runs == [failed]
    assert len(store.raw_records) == 2
    assert store.relationships == []


def test_source_without_extractor_fails_its_run() -> None:
    dataset = make_dataset()
    source = make_source(dataset.id, "warehouse", source_format=SourceFormat.SQL)
    store = InMemoryStore().seed(dataset, source)

    result = ingest_dataset(
        dataset.id,
        unit_of_work_factory=lambda: FakeIngestUnitOfWork(store),
        extractors={SourceFormat.CSV: FakeRecordExtractor({})},
    )

    (run,) = result.runs
    assert run.status == RunStatus.FAILED
    assert run.error_message is not None
    assert "No extractor registered" in run.error_message


def test_destination_sources_are_not_ingested() -> None:
    dataset = make_dataset()
    source = make_source(dataset.id, "customers")
    source.role = SourceRole.DESTINATION
    store = InMemoryStore().seed(dataset, source)
    extractor = FakeRecordExtractor({"customers": CUSTOMERS})

    result = ingest_dataset(
        dataset.id,
        unit_of_work_factory=lambda: FakeIngestUnitOfWork(store),
        extractors={SourceFormat.CSV: extractor},
    )

    assert result.runs == []
    assert extractor.calls == []


def test_ingest_unknown_dataset() -> None:
    with pytest.raises(DatasetNotFoundError):
        ingest_dataset(
            uuid4(),
            unit_of_work_factory=lambda: FakeIngestUnitOfWork(InMemoryStore()),
            extractors={},
        )
