"""Ports for reading records out of external sources."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from unifyr.domain.model import Source, SourceFormat


@runtime_checkable
class RecordExtractor(Protocol):
    """Reads every record of a source as a plain payload mapping."""

    @property
    def format(self) -> SourceFormat: ...

    def extract(self, source: Source) -> list[dict[str, Any]]: ...
