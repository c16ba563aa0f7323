"""Identity and type resolution for raw record payloads.

Every raw record is reduced to a normalised record type plus an ordered set of
candidate identifiers. Records are then indexed under every spelling variant of
every candidate so relationship endpoints can find them regardless of casing
or stray punctuation.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Final, cast

from .values import normalize_payload

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping
    from datetime import datetime
    from uuid import UUID

    from unifyr.domain.model import RawRecord

log = logging.getLogger(__name__)

META_KEY: Final[str] = "__meta__"
TABLE_KEY: Final[str] = "__table__"

_META_TYPE_KEYS: Final[tuple[str, ...]] = ("destination_table", "record_type", "type")
_META_ID_KEYS: Final[tuple[str, ...]] = ("record_uid", "recordUid", "id", "uid")
_META_RESOLVED_ID_KEYS: Final[tuple[str, ...]] = ("record_uid", "recordUid", "id")
_PAYLOAD_ID_KEYS: Final[tuple[str, ...]] = ("id", "uid", "record_id", "recordId")
_QUOTES: Final[re.Pattern[str]] = re.compile(r"[\"`]")
_NON_ID_CHARS: Final[re.Pattern[str]] = re.compile(r"[^A-Za-z0-9_-]")


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def _strip_quotes(value: str) -> str:
    return _QUOTES.sub("", value).strip()


def meta_block(payload: Mapping[str, Any] | None) -> Mapping[str, Any] | None:
    if payload is None:
        return None
    meta = payload.get(META_KEY)
    if isinstance(meta, dict):
        return cast("dict[str, Any]", meta)
    return None


def normalize_type(raw: str | None) -> str | None:
    """Lowercase, drop any dotted namespace prefix and strip quote characters."""

    if raw is None or not raw.strip():
        return None
    normalized = raw.strip().lower()
    if "." in normalized:
        normalized = normalized.rsplit(".", 1)[1]
    normalized = _strip_quotes(normalized)
    return normalized or None


def normalize_id(raw: str | None) -> str | None:
    """Normalise an identifier token.

    Relationship endpoints sometimes carry a whole serialised record instead of a
    scalar id (``{customer_id:CUST-100,first_name:Olivia}``). For those the value
    of the first key mentioning ``id`` is returned.
    """

    if raw is None or not raw.strip():
        return None
    trimmed = raw.strip()
    if trimmed.startswith("{") and trimmed.endswith("}"):
        for part in trimmed[1:-1].split(","):
            key, sep, value = part.partition(":")
            if not sep:
                continue
            key = _strip_quotes(key)
            value = _strip_quotes(value)
            if value and "id" in key:
                return value
    normalized = _strip_quotes(trimmed)
    return normalized or None


def id_variants(raw: str | None) -> list[str]:
    """Return the lookup spellings of an id: as-is, lowercased and collapsed."""

    normalized = normalize_id(raw)
    if normalized is None:
        return []
    variants = [normalized, normalized.lower()]
    collapsed = _NON_ID_CHARS.sub("", normalized)
    if collapsed:
        variants.extend((collapsed, collapsed.lower()))
    return list(dict.fromkeys(variants))


def resolve_record_type(payload: Mapping[str, Any] | None) -> str | None:
    if payload is None:
        return None
    table = payload.get(TABLE_KEY)
    if table is not None:
        return str(table)
    meta = meta_block(payload)
    if meta is not None:
        for key in _META_TYPE_KEYS:
            value = _text(meta.get(key))
            if value is not None:
                return value
    fallback = payload.get("type")
    return str(fallback) if fallback is not None else None


def resolve_record_id(payload: Mapping[str, Any] | None) -> str | None:
    if payload is None:
        return None
    meta = meta_block(payload)
    if meta is not None:
        for key in _META_RESOLVED_ID_KEYS:
            value = _text(meta.get(key))
            if value is not None:
                return value
    for key in _PAYLOAD_ID_KEYS:
        value = _text(payload.get(key))
        if value is not None:
            return value
    return None


def _is_id_key(name: str) -> bool:
    return name.lower().endswith("id")


def collect_candidate_ids(payload: Mapping[str, Any] | None, fallback_id: str | None) -> list[str]:
    """Ordered, de-duplicated candidate identifiers; the first one is the primary id."""

    candidates: list[str | None] = []
    if payload is not None:
        meta = meta_block(payload)
        if meta is not None:
            candidates.extend(normalize_id(_text(meta.get(key))) for key in _META_ID_KEYS)
        for key, value in payload.items():
            if value is None or not _is_id_key(key):
                continue
            candidates.append(normalize_id(str(value)))
        candidates.append(normalize_id(resolve_record_id(payload)))
    candidates.append(normalize_id(fallback_id))
    return list(dict.fromkeys(candidate for candidate in candidates if candidate))


@dataclass(frozen=True, slots=True)
class NodeRef:
    """Normalised (type, id) key of a logical entity in the relationship graph."""

    type: str
    id: str

    @classmethod
    def of(cls, record_type: str | None, record_id: str | None) -> NodeRef | None:
        normalized_type = normalize_type(record_type)
        normalized_id = normalize_id(record_id)
        if normalized_type is None or normalized_id is None:
            return None
        return cls(normalized_type, normalized_id)

    def __str__(self) -> str:
        return f"{self.type}:{self.id}"


@dataclass(frozen=True, slots=True, eq=False)
class RecordContext:
    """A raw record prepared for clustering.

    ``record_id`` is the primary candidate id; ``record_key`` is the storage
    identifier of the underlying raw record (or relationship for placeholders).
    """

    source_id: UUID | None
    payload: Mapping[str, Any]
    created_at: datetime | None
    record_type: str
    record_id: str
    record_key: str | None
    synthetic: bool = False

    @property
    def node(self) -> NodeRef | None:
        return NodeRef.of(self.record_type, self.record_id)


@dataclass(slots=True)
class RecordIndex:
    """Contexts keyed by every id variant of every candidate id.

    Iteration order of ``contexts()`` is insertion order, which keeps every
    downstream step deterministic.
    """

    _by_id: dict[str, list[RecordContext]] = field(
        default_factory=dict[str, list["RecordContext"]]
    )
    _contexts: dict[RecordContext, None] = field(default_factory=dict["RecordContext", None])

    def add(self, context: RecordContext, candidate_ids: Iterable[str]) -> None:
        self._contexts.setdefault(context, None)
        for candidate in candidate_ids:
            for variant in id_variants(candidate):
                bucket = self._by_id.setdefault(variant, [])
                if not any(existing is context for existing in bucket):
                    bucket.append(context)

    def lookup(self, variant: str) -> list[RecordContext]:
        return list(self._by_id.get(variant, ()))

    def contexts(self) -> list[RecordContext]:
        return list(self._contexts)

    def __iter__(self) -> Iterator[RecordContext]:
        return iter(self.contexts())

    def __len__(self) -> int:
        return len(self._contexts)

    def __bool__(self) -> bool:
        return bool(self._contexts)

    def type_counts(self) -> Counter[str]:
        return Counter(context.record_type for context in self._contexts)


def build_context(record: RawRecord) -> tuple[RecordContext, list[str]] | None:
    """Prepare one raw record, or return ``None`` when it has no type or no id."""

    payload = normalize_payload(record.payload)
    record_type = normalize_type(resolve_record_type(payload))
    record_key = str(record.id)
    candidate_ids = collect_candidate_ids(payload, record_key)
    if record_type is None or not candidate_ids:
        return None
    context = RecordContext(
        source_id=record.source_id,
        payload=payload,
        created_at=record.created_at,
        record_type=record_type,
        record_id=candidate_ids[0],
        record_key=record_key,
    )
    return context, candidate_ids


def index_records(records: Iterable[RawRecord]) -> RecordIndex:
    index = RecordIndex()
    skipped = 0
    for record in records:
        prepared = build_context(record)
        if prepared is None:
            skipped += 1
            continue
        context, candidate_ids = prepared
        log.debug(
            "Indexed record %s as %s with candidates %s",
            record.id,
            context.node,
            candidate_ids,
        )
        index.add(context, candidate_ids)
    if skipped:
        log.debug("Skipped %d records without resolvable type or id", skipped)
    return index


def contexts_by_node(index: RecordIndex) -> dict[NodeRef, list[RecordContext]]:
    grouped: dict[NodeRef, list[RecordContext]] = {}
    for context in index:
        node = context.node
        if node is None:
            continue
        grouped.setdefault(node, []).append(context)
    return grouped
