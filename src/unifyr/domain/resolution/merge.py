"""Cluster traversal and first-write-wins payload merging."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .values import normalize_payload, normalize_value

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from .graph import RelationshipGraph
    from .identity import NodeRef, RecordContext
    from .lookup import ContextCatalog

log = logging.getLogger(__name__)


def merge_into(target: dict[str, Any], payload: Mapping[str, Any]) -> None:
    """Copy ``payload`` into ``target`` without overwriting present values.

    ``None`` values are never written, so a later non-null value can still fill
    a key an earlier payload left empty.
    """

    for key, value in payload.items():
        normalized = normalize_value(value)
        if normalized is None or target.get(key) is not None:
            continue
        target[key] = normalized


@dataclass(slots=True)
class MergedPayload:
    """Unified payload of a cluster plus one merged payload per contributing source."""

    unified: dict[str, Any] = field(default_factory=dict[str, Any])
    by_source: dict[UUID, dict[str, Any]] = field(default_factory=dict["UUID", dict[str, Any]])

    def merge_context(self, context: RecordContext) -> None:
        payload = normalize_payload(context.payload)
        if context.source_id is not None:
            merge_into(self.by_source.setdefault(context.source_id, {}), payload)
        merge_into(self.unified, payload)

    def merge_relation_payload(self, payload: Mapping[str, Any]) -> None:
        merge_into(self.unified, normalize_payload(payload))


@dataclass(slots=True)
class Cluster:
    """Everything reachable from one primary node without crossing another primary."""

    primary: NodeRef
    primary_contexts: list[RecordContext] = field(default_factory=list["RecordContext"])
    related_contexts: list[RecordContext] = field(default_factory=list["RecordContext"])
    relation_payloads: list[dict[str, Any]] = field(default_factory=list[dict[str, Any]])
    visited: list[NodeRef] = field(default_factory=list["NodeRef"])

    @property
    def is_empty(self) -> bool:
        return not self.primary_contexts and not self.related_contexts

    @property
    def size(self) -> int:
        return len(self.primary_contexts) + len(self.related_contexts)

    @property
    def primary_context(self) -> RecordContext | None:
        return self.primary_contexts[0] if self.primary_contexts else None

    @property
    def related_context(self) -> RecordContext | None:
        return self.related_contexts[0] if self.related_contexts else None

    def merge(self) -> MergedPayload:
        """Merge primary records, then edge payloads, then related records."""

        merged = MergedPayload()
        for context in self.primary_contexts:
            merged.merge_context(context)
        for payload in self.relation_payloads:
            merged.merge_relation_payload(payload)
        for context in self.related_contexts:
            merged.merge_context(context)
        return merged


def single_record_cluster(context: RecordContext) -> Cluster:
    node = context.node
    if node is None:
        raise ValueError("record context has no resolvable node")
    return Cluster(primary=node, primary_contexts=[context], visited=[node])


def _belongs_to_other_primary(context: RecordContext, primary: NodeRef) -> bool:
    return context.record_type == primary.type and context.node != primary


def traverse(
    graph: RelationshipGraph,
    primary: NodeRef,
    catalog: ContextCatalog,
) -> Cluster:
    """Breadth-first walk from ``primary`` that never enters another node of its type."""

    cluster = Cluster(primary=primary, primary_contexts=catalog.indexed(primary))
    visited: dict[NodeRef, None] = {primary: None}
    seen_relationships: set[UUID] = set()
    queue: deque[NodeRef] = deque([primary])

    while queue:
        current = queue.popleft()
        for edge in graph.neighbors(current):
            target = edge.target
            if target.type == primary.type and target.id != primary.id:
                log.debug("Not crossing from %s into primary node %s", primary, target)
                continue
            relationship = edge.relationship
            if relationship.payload is not None and relationship.id not in seen_relationships:
                seen_relationships.add(relationship.id)
                cluster.relation_payloads.append(normalize_payload(relationship.payload))
            if target in visited:
                continue
            visited[target] = None
            queue.append(target)
            for context in catalog.resolve(target, relationship):
                if _belongs_to_other_primary(context, primary):
                    continue
                if context in cluster.primary_contexts or context in cluster.related_contexts:
                    continue
                cluster.related_contexts.append(context)

    cluster.visited = list(visited)
    return cluster
