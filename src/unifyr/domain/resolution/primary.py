"""Choose the record type that anchors unified rows."""

from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING, Final

from .identity import normalize_id, normalize_type, resolve_record_type

if TYPE_CHECKING:
    from collections.abc import Sequence

    from unifyr.domain.model import RawRecord, Relationship

    from .identity import RecordIndex

log = logging.getLogger(__name__)

DEFAULT_PRIMARY_TYPE: Final[str] = "default"


def _most_common(counts: Counter[str]) -> str | None:
    # most_common keeps first-seen order on ties
    ranked = counts.most_common(1)
    return ranked[0][0] if ranked else None


def type_from_relationships(relationships: Sequence[Relationship]) -> str | None:
    """Endpoint type with the most distinct ids, ties broken by occurrence count."""

    distinct_ids: dict[str, set[str]] = {}
    occurrences: Counter[str] = Counter()
    for relationship in relationships:
        for raw_type, raw_id in (
            (relationship.from_type, relationship.from_id),
            (relationship.to_type, relationship.to_id),
        ):
            record_type = normalize_type(raw_type)
            record_id = normalize_id(raw_id)
            if record_type is None or record_id is None:
                continue
            distinct_ids.setdefault(record_type, set()).add(record_id)
            occurrences[record_type] += 1
    if not distinct_ids:
        return None
    return max(distinct_ids, key=lambda name: (len(distinct_ids[name]), occurrences[name]))


def type_from_records(index: RecordIndex, records: Sequence[RawRecord]) -> str | None:
    """Most frequent indexed type, else most frequent type read straight from payloads."""

    if index:
        return _most_common(index.type_counts())
    counts: Counter[str] = Counter()
    for record in records:
        record_type = normalize_type(resolve_record_type(record.payload))
        if record_type is not None:
            counts[record_type] += 1
    return _most_common(counts)


def first_payload_type(records: Sequence[RawRecord]) -> str | None:
    for record in records:
        record_type = normalize_type(resolve_record_type(record.payload))
        if record_type is not None:
            return record_type
    return None


def resolve_primary_type(
    configured: str | None,
    *,
    relationships: Sequence[Relationship],
    index: RecordIndex,
    records: Sequence[RawRecord],
    default: str = DEFAULT_PRIMARY_TYPE,
) -> str:
    explicit = normalize_type(configured)
    if explicit is not None:
        return explicit

    detected = (
        type_from_relationships(relationships)
        or type_from_records(index, records)
        or first_payload_type(records)
    )
    if detected is not None:
        log.info("Detected primary record type %r", detected)
        return detected

    log.warning("No primary record type could be detected, falling back to %r", default)
    return normalize_type(default) or DEFAULT_PRIMARY_TYPE
