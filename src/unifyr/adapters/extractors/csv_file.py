"""Record extractor for delimited text files."""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from unifyr.domain.errors import SourceConfigError
from unifyr.domain.model import SourceFormat
from unifyr.domain.resolution import TABLE_KEY

from .schema import CsvSourceConfig, parse_source_config

if TYPE_CHECKING:
    from unifyr.domain.model import Source

log = logging.getLogger(__name__)


class CsvRecordExtractor:
    """Read each CSV row as one payload keyed by the header line."""

    def __init__(self, *, base_dir: Path | None = None) -> None:
        self._base_dir = base_dir

    @property
    def format(self) -> SourceFormat:
        return SourceFormat.CSV

    def resolve_path(self, config: CsvSourceConfig) -> Path:
        if config.file_path and config.file_path.strip():
            return Path(config.file_path).expanduser()
        if not config.relative_path:
            raise SourceConfigError("CSV source requires file_path or relative_path")
        relative = Path(config.relative_path)
        if self._base_dir is None or relative.is_absolute():
            return relative
        return self._base_dir / relative

    def extract(self, source: Source) -> list[dict[str, Any]]:
        config = parse_source_config(CsvSourceConfig, source)
        path = self.resolve_path(config)
        if not path.is_file():
            raise SourceConfigError(f"CSV file not found for source {source.name!r}: {path}")

        label = config.table or source.name
        records: list[dict[str, Any]] = []
        with path.open(newline="", encoding=config.encoding) as handle:
            reader = csv.DictReader(handle, delimiter=config.delimiter)
            for row in reader:
                # DictReader files surplus cells under a None key.
                payload: dict[str, Any] = {
                    key: value for key, value in row.items() if key is not None
                }
                payload.setdefault(TABLE_KEY, label)
                records.append(payload)
        log.debug("Read %d rows from %s", len(records), path)
        return records
