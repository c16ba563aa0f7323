"""Project a merged cluster payload onto the dataset's target fields.

Each field walks a fixed fallback chain and stops at the first non-null value:

1. source-scoped mappings against that source's merged payload, by priority
2. every mapping of the field against the unified payload, by priority
3. exact key (or dotted path) of the field name in the unified payload
4. case-insensitive key
5. flattened unified payload, keyed by the field name and every mapping path
6. fuzzy key search through the unified payload
7. fuzzy key search through each per-source payload

Within steps 1 and 2 a ``required`` mapping ends the scan of that step even
when it yields nothing. If every field comes out null, one more
case-insensitive pass is made over the unified payload.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Final, cast

from unifyr.domain.model import TransformType

from .values import normalize_value

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence
    from uuid import UUID

    from unifyr.domain.model import DatasetField, FieldMapping

    from .merge import MergedPayload

log = logging.getLogger(__name__)

_INDEXED_SEGMENT: Final[re.Pattern[str]] = re.compile(r"^(?P<name>[^\[]*)\[(?P<index>[^\]]*)\]")
_NON_KEY_CHARS: Final[re.Pattern[str]] = re.compile(r"[^a-z0-9]")


def normalize_key(key: str | None) -> str:
    if key is None or not key.strip():
        return ""
    return _NON_KEY_CHARS.sub("", key.strip().lower())


def extract_value(payload: Any, path: str | None) -> Any:
    """Follow a dotted path with at most one ``[n]`` list index per segment."""

    if payload is None or path is None or not path.strip():
        return None
    value: Any = payload
    for raw_segment in path.split("."):
        if value is None:
            return None
        name = raw_segment
        index: int | None = None
        match = _INDEXED_SEGMENT.match(raw_segment)
        if match is not None:
            name = match.group("name")
            try:
                index = int(match.group("index"))
            except ValueError:
                index = None
        if not isinstance(value, Mapping):
            return None
        value = cast("Mapping[str, Any]", value).get(name)
        if index is not None and isinstance(value, list):
            items = cast("list[Any]", value)
            value = items[index] if 0 <= index < len(items) else None
    return normalize_value(value)


def _to_int(value: Any) -> int:
    return int(str(value))


def _to_float(value: Any) -> float:
    return float(str(value))


_TRANSFORMS: Final[dict[TransformType, Callable[[Any], Any]]] = {
    TransformType.LOWERCASE: lambda value: str(value).lower(),
    TransformType.UPPERCASE: lambda value: str(value).upper(),
    TransformType.TRIM: lambda value: str(value).strip(),
    TransformType.INT: _to_int,
    TransformType.FLOAT: _to_float,
}


def apply_transform(value: Any, transform_type: TransformType | None) -> Any:
    """Apply a scalar transform; failures keep the untransformed value."""

    if value is None:
        return None
    transform = _TRANSFORMS.get(transform_type or TransformType.NONE)
    if transform is None:
        return value
    try:
        return transform(value)
    except (TypeError, ValueError, OverflowError):
        log.warning("Failed to apply transform %s on value %r", transform_type, value)
        return value


def flatten_payload(payload: Any) -> dict[str, Any]:
    """Flatten nested maps and lists into normalised keys.

    Every scalar is registered under its own normalised key and under the
    normalised dotted path leading to it; the first value seen for a key wins.
    """

    flat: dict[str, Any] = {}
    _flatten_into(payload, "", flat)
    return flat


def _flatten_into(current: Any, prefix: str, flat: dict[str, Any]) -> None:
    if isinstance(current, Mapping):
        for raw_key, raw_value in cast("Mapping[Any, Any]", current).items():
            if raw_key is None:
                continue
            key = str(raw_key)
            path = f"{prefix}.{key}" if prefix else key
            value = normalize_value(raw_value)
            if isinstance(value, Mapping | list):
                _flatten_into(value, path, flat)
                continue
            for flat_key in (normalize_key(key), normalize_key(path)):
                flat.setdefault(flat_key, value)
    elif isinstance(current, list):
        for position, item in enumerate(cast("list[Any]", current)):
            _flatten_into(normalize_value(item), f"{prefix}[{position}]", flat)


def find_case_insensitive_key(payload: Mapping[str, Any] | None, name: str | None) -> str | None:
    if payload is None or name is None or not name.strip():
        return None
    wanted = name.strip().lower()
    for key in payload:
        if key.strip().lower() == wanted:
            return key
    return None


def fuzzy_lookup(payload: Any, name: str | None) -> Any:
    """Depth-first search for a key matching ``name`` once both are normalised."""

    target = normalize_key(name)
    if not target:
        return None
    return _fuzzy(payload, target)


def _fuzzy(current: Any, target: str) -> Any:
    if isinstance(current, Mapping):
        for raw_key, raw_value in cast("Mapping[Any, Any]", current).items():
            if raw_key is None:
                continue
            value = normalize_value(raw_value)
            if value is not None and normalize_key(str(raw_key)) == target:
                return value
            if isinstance(value, Mapping | list):
                nested = _fuzzy(value, target)
                if nested is not None:
                    return nested
    elif isinstance(current, list):
        for item in cast("list[Any]", current):
            nested = _fuzzy(item, target)
            if nested is not None:
                return nested
    return None


def _priority_order(mappings: Iterable[FieldMapping]) -> list[FieldMapping]:
    return sorted(mappings, key=lambda mapping: (mapping.priority is None, mapping.priority or 0))


def _first_mapped(
    candidates: Iterable[tuple[FieldMapping, Mapping[str, Any]]],
) -> Any:
    for mapping, payload in candidates:
        value = apply_transform(extract_value(payload, mapping.path), mapping.transform_type)
        if value is not None or mapping.required:
            return value
    return None


@dataclass(slots=True)
class FieldResolver:
    """Resolves unified row data for one dataset's fields and mappings."""

    fields: Sequence[DatasetField]
    mappings: Sequence[FieldMapping] = ()
    _by_source: dict[UUID, dict[UUID, list[FieldMapping]]] = field(init=False, repr=False)
    _by_field: dict[UUID, list[FieldMapping]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.fields = sorted(
            self.fields,
            key=lambda item: (item.position is None, item.position or 0),
        )
        self._by_source = {}
        self._by_field = {}
        for mapping in _priority_order(self.mappings):
            self._by_field.setdefault(mapping.field_id, []).append(mapping)
            if mapping.source_id is not None:
                by_field = self._by_source.setdefault(mapping.source_id, {})
                by_field.setdefault(mapping.field_id, []).append(mapping)

    def resolve(self, merged: MergedPayload) -> dict[str, Any]:
        unified = merged.unified
        flattened = flatten_payload(unified)
        result: dict[str, Any] = {}
        for target in self.fields:
            result[str(target.id)] = self._resolve_field(target, merged, flattened)

        if all(value is None for value in result.values()):
            for target in self.fields:
                key = find_case_insensitive_key(unified, target.name)
                if key is not None:
                    result[str(target.id)] = unified[key]
        return result

    def _resolve_field(
        self,
        target: DatasetField,
        merged: MergedPayload,
        flattened: Mapping[str, Any],
    ) -> Any:
        unified = merged.unified
        steps: tuple[Callable[[], Any], ...] = (
            lambda: self._from_source_mappings(target, merged),
            lambda: _first_mapped(
                (mapping, unified) for mapping in self._by_field.get(target.id, ())
            ),
            lambda: self._direct(unified, target.name),
            lambda: self._case_insensitive(unified, target.name),
            lambda: self._from_flattened(target, flattened),
            lambda: fuzzy_lookup(unified, target.name),
            lambda: self._fuzzy_per_source(merged, target.name),
        )
        for step in steps:
            value = step()
            if value is not None:
                return value
        return None

    def _from_source_mappings(self, target: DatasetField, merged: MergedPayload) -> Any:
        candidates = (
            (mapping, payload)
            for source_id, payload in merged.by_source.items()
            for mapping in self._by_source.get(source_id, {}).get(target.id, ())
        )
        return _first_mapped(candidates)

    @staticmethod
    def _direct(unified: Mapping[str, Any], name: str) -> Any:
        if name in unified:
            return unified[name]
        return extract_value(unified, name)

    @staticmethod
    def _case_insensitive(unified: Mapping[str, Any], name: str) -> Any:
        key = find_case_insensitive_key(unified, name)
        return unified[key] if key is not None else None

    def _from_flattened(self, target: DatasetField, flattened: Mapping[str, Any]) -> Any:
        if not flattened:
            return None
        names = [target.name]
        for mapping in self._by_field.get(target.id, ()):
            names.extend(path for path in (mapping.src_path, mapping.src_json_path) if path)
        for name in names:
            key = normalize_key(name)
            if key in flattened:
                return flattened[key]
        return None

    @staticmethod
    def _fuzzy_per_source(merged: MergedPayload, name: str) -> Any:
        for payload in merged.by_source.values():
            value = fuzzy_lookup(payload, name)
            if value is not None:
                return value
        return None
