"""Record extractors for the supported source formats."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from unifyr.config import get_storage_config
from unifyr.domain.errors import UnsupportedSourceFormatError
from unifyr.domain.model import SourceFormat

from .csv_file import CsvRecordExtractor
from .schema import CsvSourceConfig, SqlSourceConfig, TableSelection, parse_source_config
from .sql_table import SqlTableRecordExtractor, to_json_value

if TYPE_CHECKING:
    from pathlib import Path

    from pydantic import BaseModel

    from unifyr.domain.model import Source
    from unifyr.domain.ports import RecordExtractor

SOURCE_CONFIG_MODELS: Final[dict[SourceFormat, type[BaseModel]]] = {
    SourceFormat.CSV: CsvSourceConfig,
    SourceFormat.SQL: SqlSourceConfig,
}


def build_extractor_registry(
    *, uploads_dir: Path | None = None
) -> dict[SourceFormat, RecordExtractor]:
    """Return one extractor per supported source format."""

    base_dir = uploads_dir if uploads_dir is not None else get_storage_config().uploads_dir()
    extractors: list[RecordExtractor] = [
        CsvRecordExtractor(base_dir=base_dir),
        SqlTableRecordExtractor(),
    ]
    return {extractor.format: extractor for extractor in extractors}


def validate_source_config(source: Source) -> None:
    """Raise ``SourceConfigError`` unless the config suits the source format."""

    model = SOURCE_CONFIG_MODELS.get(source.format)
    if model is None:
        raise UnsupportedSourceFormatError(f"Unsupported source format: {source.format!r}")
    parse_source_config(model, source)


__all__ = [
    "SOURCE_CONFIG_MODELS",
    "CsvRecordExtractor",
    "CsvSourceConfig",
    "SqlSourceConfig",
    "SqlTableRecordExtractor",
    "TableSelection",
    "build_extractor_registry",
    "parse_source_config",
    "to_json_value",
    "validate_source_config",
]
