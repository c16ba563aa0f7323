"""Entity-resolution pipeline for one dataset snapshot.

The engine performs no I/O. It receives everything a run needs as an immutable
``TransformSnapshot`` and returns the unified rows together with run counters;
persisting them is left to the transform service.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from unifyr.domain.model import UnifiedRow, utcnow

from .graph import RelationshipGraph, build_graph
from .identity import RecordIndex, index_records, normalize_type
from .lookup import ContextCatalog
from .mapping import FieldResolver
from .merge import Cluster, single_record_cluster, traverse
from .primary import DEFAULT_PRIMARY_TYPE, resolve_primary_type

if TYPE_CHECKING:
    from uuid import UUID

    from unifyr.domain.model import DatasetField, FieldMapping, RawRecord, Relationship

log = logging.getLogger(__name__)

type IndexRecords = Callable[[Iterable[RawRecord]], RecordIndex]
type BuildGraph = Callable[[Iterable[Relationship]], RelationshipGraph]


@dataclass(frozen=True, slots=True)
class TransformSnapshot:
    """Committed state of a dataset at the moment a run starts."""

    dataset_id: UUID
    primary_record_type: str | None
    fields: tuple[DatasetField, ...]
    mappings: tuple[FieldMapping, ...]
    records: tuple[RawRecord, ...]
    relationships: tuple[Relationship, ...]


@dataclass(frozen=True, slots=True)
class TransformOutcome:
    primary_type: str
    rows: tuple[UnifiedRow, ...]
    rows_in: int

    @property
    def rows_out(self) -> int:
        return len(self.rows)


def build_record_key(
    primary_id: str | None,
    related_id: str | None,
    primary_key: str | None,
    related_key: str | None,
) -> str | None:
    if primary_key and related_key:
        return f"{primary_key}:{related_key}"
    if primary_id and related_id:
        return f"{primary_id}:{related_id}"
    return primary_key if primary_key is not None else primary_id


def _primary_key(relationship: Relationship, primary_type: str) -> str:
    if normalize_type(relationship.from_type) == primary_type:
        return relationship.from_id
    if normalize_type(relationship.to_type) == primary_type:
        return relationship.to_id
    return ""


def order_relationships(
    relationships: Sequence[Relationship], primary_type: str
) -> list[Relationship]:
    """Order edges by their primary-side id, then ingestion time."""

    return sorted(
        relationships,
        key=lambda item: (_primary_key(item, primary_type), item.ingested_at),
    )


@dataclass(slots=True)
class TransformEngine:
    """Turn a dataset snapshot into unified rows."""

    default_primary_type: str = DEFAULT_PRIMARY_TYPE
    sample_rows_logged: int = 3
    index: IndexRecords = field(default=index_records)
    graph: BuildGraph = field(default=build_graph)

    def resolve_primary_type(self, snapshot: TransformSnapshot) -> str:
        return self._primary_type(snapshot, self.index(snapshot.records))

    def _primary_type(self, snapshot: TransformSnapshot, index: RecordIndex) -> str:
        return resolve_primary_type(
            snapshot.primary_record_type,
            relationships=snapshot.relationships,
            index=index,
            records=snapshot.records,
            default=self.default_primary_type,
        )

    def run(self, snapshot: TransformSnapshot) -> TransformOutcome:
        index = self.index(snapshot.records)
        primary_type = self._primary_type(snapshot, index)
        log.info(
            "Transforming dataset %s: records=%d, indexed=%d, relationships=%d, primary=%r",
            snapshot.dataset_id,
            len(snapshot.records),
            len(index),
            len(snapshot.relationships),
            primary_type,
        )

        if snapshot.relationships:
            clusters = self._clusters_from_graph(snapshot, index, primary_type)
        else:
            log.warning(
                "No relationships for dataset %s, mapping every record on its own",
                snapshot.dataset_id,
            )
            clusters = [single_record_cluster(context) for context in index]

        resolver = FieldResolver(fields=snapshot.fields, mappings=snapshot.mappings)
        rows: list[UnifiedRow] = []
        rows_in = 0
        for cluster in clusters:
            if cluster.is_empty:
                continue
            rows_in += cluster.size
            rows.append(self._build_row(snapshot.dataset_id, cluster, resolver))

        for row in rows[: self.sample_rows_logged]:
            log.debug("Sample unified row %s: %s", row.record_key, row.data)
        return TransformOutcome(primary_type=primary_type, rows=tuple(rows), rows_in=rows_in)

    def _clusters_from_graph(
        self,
        snapshot: TransformSnapshot,
        index: RecordIndex,
        primary_type: str,
    ) -> list[Cluster]:
        graph = self.graph(order_relationships(snapshot.relationships, primary_type))
        catalog = ContextCatalog.from_index(index)
        primaries = [node for node in catalog.by_node if node.type == primary_type]
        log.debug("Graph has %d nodes, %d primary nodes", len(graph), len(primaries))

        clusters: list[Cluster] = []
        processed: set[str] = set()
        for primary in primaries:
            if primary.id in processed:
                continue
            processed.add(primary.id)
            cluster = traverse(graph, primary, catalog)
            log.debug("Cluster for %s spans %s", primary, [str(node) for node in cluster.visited])
            clusters.append(cluster)
        return clusters

    @staticmethod
    def _build_row(dataset_id: UUID, cluster: Cluster, resolver: FieldResolver) -> UnifiedRow:
        primary = cluster.primary_context
        related = cluster.related_context
        anchor = primary or related
        primary_id = primary.record_id if primary is not None else cluster.primary.id
        record_key = build_record_key(
            primary_id,
            related.record_id if related is not None else None,
            primary.record_key if primary is not None else None,
            related.record_key if related is not None else None,
        )
        observed_at = primary.created_at if primary is not None else None
        if observed_at is None and related is not None:
            observed_at = related.created_at
        return UnifiedRow(
            dataset_id=dataset_id,
            source_id=anchor.source_id if anchor is not None else None,
            record_key=record_key,
            data=resolver.resolve(cluster.merge()),
            is_excluded=False,
            observed_at=observed_at,
            ingested_at=utcnow(),
        )

