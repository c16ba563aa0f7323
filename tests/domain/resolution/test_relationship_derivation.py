from __future__ import annotations

from uuid import uuid4

from unifyr.domain.resolution import NodeRef, derive_relationships
from unifyr.domain.resolution.relationships import (
    canonical_value,
    is_candidate_field,
    record_identity,
    record_type,
)


def test_candidate_fields_follow_naming_rules() -> None:
    assert is_candidate_field("customer_id", "CUST-100")
    assert is_candidate_field("Name", "Olivia")
    assert is_candidate_field("invoice_number", 7)
    assert not is_candidate_field("email", "olivia@example.com")
    assert not is_candidate_field("customer_id", None)
    assert not is_candidate_field("customer_id", "   ")


def test_record_identity_and_type_fallbacks() -> None:
    assert record_identity({"uuid": "U-1", "id": "I-1"}) == "I-1"
    assert record_identity({"__meta__": {"record_uid": "M-1"}}) == "M-1"
    assert record_identity({"b": 1, "a": 2}) == '{"a":2,"b":1}'
    assert record_type({"__meta__": {"wrapper_name": "w"}, "__table__": "t"}) == "w"
    assert record_type({"__theme__": "theme", "__table__": "t"}) == "theme"
    assert record_type({}) == "record"


def test_canonical_value_is_key_order_independent() -> None:
    assert canonical_value({"b": [1, 2], "a": None}) == canonical_value({"a": None, "b": [1, 2]})


def test_shared_field_across_sources_yields_one_edge() -> None:
    dataset_id = uuid4()
    customers_source = uuid4()
    contacts_source = uuid4()
    records = {
        customers_source: [{"__table__": "customers", "id": "C-1", "customer_id": "CUST-100"}],
        contacts_source: [{"__table__": "contacts", "id": "P-1", "customer_id": "CUST-100"}],
    }

    (relationship,) = derive_relationships(records, dataset_id=dataset_id)

    assert relationship.relation_type == "shared_customer_id"
    assert (relationship.from_type, relationship.from_id) == ("customers", "C-1")
    assert (relationship.to_type, relationship.to_id) == ("contacts", "P-1")
    assert relationship.source_id == customers_source
    assert relationship.dataset_id == dataset_id
    assert relationship.payload == {"field": "customer_id", "records": ["C-1", "P-1"]}


def test_edge_direction_does_not_depend_on_batch_order() -> None:
    dataset_id = uuid4()
    left = {"__table__": "orders", "id": "B", "order_code": "X"}
    right = {"__table__": "orders", "id": "A", "order_code": "X"}

    forward = derive_relationships({None: [left, right]}, dataset_id=dataset_id)
    backward = derive_relationships({None: [right, left]}, dataset_id=dataset_id)

    assert [(item.from_id, item.to_id) for item in forward] == [("A", "B")]
    assert [(item.from_id, item.to_id) for item in backward] == [("A", "B")]


def test_records_with_the_same_identity_produce_no_edge() -> None:
    records = {
        None: [
            {"__table__": "customers", "id": "C-1", "name": "Olivia"},
            {"__table__": "Customers", "id": "C-1", "name": "Olivia"},
        ]
    }

    assert derive_relationships(records, dataset_id=uuid4()) == []


def test_same_label_records_sharing_a_key_are_linked() -> None:
    first_source, second_source = uuid4(), uuid4()
    records = {
        first_source: [
            {"__table__": "customers", "customer_id": "CUST-100", "email": "o@example.com"}
        ],
        second_source: [
            {"__table__": "customers", "customer_id": "CUST-100", "phone": "555-0100"}
        ],
    }

    (relationship,) = derive_relationships(records, dataset_id=uuid4())

    assert relationship.relation_type == "shared_customer_id"
    assert (relationship.from_type, relationship.to_type) == ("customers", "customers")
    assert relationship.from_id != relationship.to_id


def test_duplicate_pairs_across_buckets_keep_distinct_relation_types() -> None:
    records = {
        None: [
            {"__table__": "customers", "id": "C-1", "name": "Olivia", "code": "Z"},
            {"__table__": "contacts", "id": "P-1", "name": "Olivia", "code": "Z"},
        ]
    }

    relationships = derive_relationships(records, dataset_id=uuid4())

    assert [item.relation_type for item in relationships] == ["shared_code", "shared_name"]


def test_map_string_identity_resolves_to_node() -> None:
    records = {
        None: [
            {"__table__": "customers", "customer_id": "CUST-100", "first_name": "Olivia"},
            {"__table__": "orders", "customer_id": "CUST-100", "total": 5},
        ]
    }

    (relationship,) = derive_relationships(records, dataset_id=uuid4())

    from_node = NodeRef.of(relationship.from_type, relationship.from_id)
    to_node = NodeRef.of(relationship.to_type, relationship.to_id)
    assert {from_node, to_node} == {
        NodeRef("customers", "CUST-100"),
        NodeRef("orders", "CUST-100"),
    }


def test_singleton_buckets_yield_nothing() -> None:
    records = {
        None: [{"__table__": "customers", "id": "C-1"}, {"__table__": "orders", "id": "O-1"}]
    }

    assert derive_relationships(records, dataset_id=uuid4()) == []
