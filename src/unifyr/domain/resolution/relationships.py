"""Derive relationship edges from values shared across records.

Records are indexed by ``<field>::<canonical value>`` for a deliberately narrow
set of identity-bearing field names. Every bucket holding two or more records
yields one ``shared_<field>`` edge per pair. Widening the candidate set makes the
pairing quadratic on low-cardinality columns, so keep it narrow.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

from unifyr.domain.model import Relationship

from .identity import TABLE_KEY, meta_block

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from uuid import UUID

log = logging.getLogger(__name__)

CANDIDATE_NAMES: Final[frozenset[str]] = frozenset({"id", "uid", "name", "code", "number"})
CANDIDATE_SUFFIXES: Final[tuple[str, ...]] = ("_id", "_uid", "_name", "_code", "_number")
RELATION_PREFIX: Final[str] = "shared_"
DEFAULT_RECORD_TYPE: Final[str] = "record"

_IDENTITY_KEYS: Final[tuple[str, ...]] = (
    "id",
    "uid",
    "uuid",
    "guid",
    "identifier",
    "record_id",
    "global_id",
)
_META_IDENTITY_KEYS: Final[tuple[str, ...]] = ("record_uid", "uid", "id")
_META_TYPE_KEYS: Final[tuple[str, ...]] = ("destination_table", "wrapper_name", "record_type")
_THEME_KEY: Final[str] = "__theme__"


def is_candidate_field(name: str, value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    lowered = name.lower()
    return lowered in CANDIDATE_NAMES or lowered.endswith(CANDIDATE_SUFFIXES)


def canonical_value(value: Any) -> str:
    """Compact, key-sorted JSON rendering used for bucketing and fallback identities."""

    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def _first_text(container: Mapping[str, Any], keys: Iterable[str]) -> str | None:
    for key in keys:
        value = container.get(key)
        if value is not None and str(value).strip():
            return str(value)
    return None


def record_identity(record: Mapping[str, Any]) -> str:
    identity = _first_text(record, _IDENTITY_KEYS)
    if identity is not None:
        return identity
    meta = meta_block(record)
    if meta is not None:
        identity = _first_text(meta, _META_IDENTITY_KEYS)
        if identity is not None:
            return identity
    return canonical_value(record)


def record_type(record: Mapping[str, Any]) -> str:
    meta = meta_block(record)
    if meta is not None:
        for key in _META_TYPE_KEYS:
            value = meta.get(key)
            if value is not None:
                return str(value)
    for key in (_THEME_KEY, TABLE_KEY):
        value = record.get(key)
        if value is not None:
            return str(value)
    return DEFAULT_RECORD_TYPE


@dataclass(frozen=True, slots=True)
class RecordDescriptor:
    identity: str
    record_type: str
    ordinal: int
    source_id: UUID | None

    @property
    def sort_key(self) -> tuple[str, str, int]:
        return (self.identity, self.record_type, self.ordinal)


def _build_index(
    records_by_source: Mapping[UUID | None, Sequence[Mapping[str, Any]]],
) -> dict[str, list[RecordDescriptor]]:
    index: dict[str, list[RecordDescriptor]] = {}
    ordinal = 0
    for source_id, records in records_by_source.items():
        for record in records:
            descriptor = RecordDescriptor(
                identity=record_identity(record),
                record_type=record_type(record),
                ordinal=ordinal,
                source_id=source_id,
            )
            ordinal += 1
            for name, value in record.items():
                if not is_candidate_field(name, value):
                    continue
                bucket_key = f"{name.lower()}::{canonical_value(value)}"
                index.setdefault(bucket_key, []).append(descriptor)
    return index


def derive_relationships(
    records_by_source: Mapping[UUID | None, Sequence[Mapping[str, Any]]],
    *,
    dataset_id: UUID,
) -> list[Relationship]:
    """Derive ``shared_<field>`` edges for records of one or more sources.

    The "from" side of each pair is the descriptor that sorts first by
    ``(identity, type, ordinal)``, so the result does not depend on batch order.
    Pairs of records with the same identity are dropped. Pairs whose identities
    differ but normalise onto one node are kept; the graph drops their self-loop.
    """

    index = _build_index(records_by_source)
    relationships: list[Relationship] = []
    seen: set[tuple[str, str, str]] = set()

    for bucket_key in sorted(index):
        descriptors = index[bucket_key]
        if len(descriptors) < 2:
            continue
        field_name = bucket_key.split("::", 1)[0]
        relation_type = f"{RELATION_PREFIX}{field_name}"
        identities = list(dict.fromkeys(descriptor.identity for descriptor in descriptors))
        for position, left in enumerate(descriptors):
            for right in descriptors[position + 1 :]:
                first, second = sorted((left, right), key=lambda item: item.sort_key)
                if first.identity == second.identity:
                    continue
                key = (relation_type, first.identity, second.identity)
                if key in seen:
                    continue
                seen.add(key)
                relationships.append(
                    Relationship(
                        dataset_id=dataset_id,
                        source_id=first.source_id,
                        from_type=first.record_type,
                        from_id=first.identity,
                        to_type=second.record_type,
                        to_id=second.identity,
                        relation_type=relation_type,
                        payload={"field": field_name, "records": list(identities)},
                    )
                )

    log.debug(
        "Derived %d relationships from %d candidate buckets", len(relationships), len(index)
    )
    return relationships
