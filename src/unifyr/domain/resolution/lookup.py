"""Resolve record contexts for graph nodes.

A relationship endpoint that has no indexed record of its own is resolved by a
priority-ordered chain, each step a pure function over the index:

1. ``find_by_node``: the endpoint id's lookup variants, narrowed to its type
2. ``find_by_payload_value``: records holding the id anywhere in their payload
3. ``find_by_type``: every record of the endpoint's type
4. ``synthetic_context``: a placeholder built from the relationship payload

The chain never falls back to "any record of any type"; an endpoint that
matches nothing real becomes a placeholder instead of absorbing unrelated
records.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .identity import (
    META_KEY,
    TABLE_KEY,
    NodeRef,
    RecordContext,
    RecordIndex,
    contexts_by_node,
    id_variants,
    normalize_id,
)
from .mapping import flatten_payload

if TYPE_CHECKING:
    from collections.abc import Iterable

    from unifyr.domain.model import Relationship

log = logging.getLogger(__name__)


def _unique(contexts: Iterable[RecordContext]) -> list[RecordContext]:
    return list(dict.fromkeys(contexts))


def find_by_node(index: RecordIndex, node: NodeRef) -> list[RecordContext]:
    matches = _unique(
        context for variant in id_variants(node.id) for context in index.lookup(variant)
    )
    typed = [context for context in matches if context.record_type == node.type]
    return typed or matches


def find_by_payload_value(index: RecordIndex, record_id: str) -> list[RecordContext]:
    wanted = normalize_id(record_id)
    if wanted is None:
        return []
    matches: list[RecordContext] = []
    for context in index:
        values = flatten_payload(context.payload).values()
        if any(value is not None and normalize_id(str(value)) == wanted for value in values):
            matches.append(context)
    return matches


def find_by_type(index: RecordIndex, record_type: str) -> list[RecordContext]:
    return [context for context in index if context.record_type == record_type]


def synthetic_context(node: NodeRef, relationship: Relationship) -> RecordContext:
    payload: dict[str, Any] = dict(relationship.payload or {})
    payload[META_KEY] = {"record_uid": node.id, "type": node.type}
    payload[TABLE_KEY] = node.type
    return RecordContext(
        source_id=relationship.source_id,
        payload=payload,
        created_at=relationship.ingested_at,
        record_type=node.type,
        record_id=node.id,
        record_key=str(relationship.id),
        synthetic=True,
    )


@dataclass(slots=True)
class ContextCatalog:
    """Per-run cache of contexts by node, backed by the record index.

    Placeholders created by the lookup chain are added to the index so later
    lookups for the same endpoint resolve to the same placeholder.
    """

    index: RecordIndex
    by_node: dict[NodeRef, list[RecordContext]] = field(
        default_factory=dict[NodeRef, list[RecordContext]]
    )

    @classmethod
    def from_index(cls, index: RecordIndex) -> ContextCatalog:
        return cls(index=index, by_node=contexts_by_node(index))

    def indexed(self, node: NodeRef) -> list[RecordContext]:
        return list(self.by_node.get(node, ()))

    def resolve(self, node: NodeRef, relationship: Relationship) -> list[RecordContext]:
        cached = self.by_node.get(node)
        if cached:
            return list(cached)
        contexts = self.ensure_contexts(node, relationship)
        self.by_node[node] = contexts
        return list(contexts)

    def ensure_contexts(self, node: NodeRef, relationship: Relationship) -> list[RecordContext]:
        found = find_by_node(self.index, node)
        if found:
            return found
        found = find_by_payload_value(self.index, node.id)
        if found:
            log.debug("Resolved %s through a payload value match", node)
            return found
        found = find_by_type(self.index, node.type)
        if found:
            log.debug("Resolved %s through a type-only match", node)
            return found
        placeholder = synthetic_context(node, relationship)
        self.index.add(placeholder, [placeholder.record_id])
        log.debug("Created placeholder for %s from relationship %s", node, relationship.id)
        return [placeholder]
