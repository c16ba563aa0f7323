"""Undirected adjacency view over stored relationship edges."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .identity import NodeRef

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from unifyr.domain.model import Relationship

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Edge:
    target: NodeRef
    relationship: Relationship


@dataclass(frozen=True, slots=True)
class RelationshipGraph:
    """Read-only adjacency lists keyed by normalised node.

    Every stored edge is inserted in both directions, so traversal ignores which
    endpoint was recorded as "from".
    """

    _adjacency: dict[NodeRef, tuple[Edge, ...]] = field(
        default_factory=dict[NodeRef, tuple[Edge, ...]]
    )

    def neighbors(self, node: NodeRef) -> tuple[Edge, ...]:
        return self._adjacency.get(node, ())

    @property
    def nodes(self) -> tuple[NodeRef, ...]:
        return tuple(self._adjacency)

    def __contains__(self, node: object) -> bool:
        return node in self._adjacency

    def __iter__(self) -> Iterator[NodeRef]:
        return iter(self._adjacency)

    def __len__(self) -> int:
        return len(self._adjacency)


def build_graph(relationships: Iterable[Relationship]) -> RelationshipGraph:
    adjacency: dict[NodeRef, list[Edge]] = {}
    skipped = 0
    for relationship in relationships:
        source = NodeRef.of(relationship.from_type, relationship.from_id)
        target = NodeRef.of(relationship.to_type, relationship.to_id)
        if source is None or target is None or source == target:
            skipped += 1
            continue
        adjacency.setdefault(source, []).append(Edge(target, relationship))
        adjacency.setdefault(target, []).append(Edge(source, relationship))
    if skipped:
        log.debug("Skipped %d relationships with unresolvable or identical endpoints", skipped)
    return RelationshipGraph({node: tuple(edges) for node, edges in adjacency.items()})
