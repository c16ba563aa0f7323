from __future__ import annotations

from uuid import uuid4

from unifyr.domain.resolution import index_records, resolve_primary_type
from unifyr.domain.resolution.primary import type_from_relationships
from tests.helpers.datasets import make_record, make_relationship


def test_configured_type_wins_and_is_normalised() -> None:
    dataset_id = uuid4()
    relationships = [
        make_relationship(dataset_id, from_type="orders", from_id="1", to_type="x", to_id="2")
    ]

    result = resolve_primary_type(
        " Sales.Customers ",
        relationships=relationships,
        index=index_records([]),
        records=[],
    )

    assert result == "customers"


def test_relationship_type_with_most_distinct_ids_is_chosen() -> None:
    dataset_id = uuid4()
    relationships = [
        make_relationship(
            dataset_id, from_type="orders", from_id=order_id, to_type="customers", to_id="C-1"
        )
        for order_id in ("O-1", "O-2", "O-2")
    ]

    assert type_from_relationships(relationships) == "orders"


def test_relationship_ties_break_on_occurrences_then_first_seen() -> None:
    dataset_id = uuid4()
    by_occurrence = [
        make_relationship(dataset_id, from_type="a", from_id="1", to_type="b", to_id="1"),
        make_relationship(dataset_id, from_type="b", from_id="1", to_type="c", to_id="1"),
    ]
    first_seen = [
        make_relationship(dataset_id, from_type="a", from_id="1", to_type="b", to_id="2"),
    ]

    assert type_from_relationships(by_occurrence) == "b"
    assert type_from_relationships(first_seen) == "a"


def test_record_types_are_used_without_relationships() -> None:
    dataset_id = uuid4()
    records = [
        make_record(dataset_id, {"__table__": "orders", "id": "O-1"}),
        make_record(dataset_id, {"__table__": "customers", "id": "C-1"}),
        make_record(dataset_id, {"__table__": "customers", "id": "C-2"}),
    ]

    result = resolve_primary_type(
        None, relationships=[], index=index_records(records), records=records
    )

    assert result == "customers"


def test_default_is_used_when_nothing_is_typed() -> None:
    dataset_id = uuid4()
    records = [make_record(dataset_id, {"id": "1"})]

    result = resolve_primary_type(
        None,
        relationships=[],
        index=index_records(records),
        records=records,
        default="Fallback",
    )

    assert result == "fallback"
