from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from unifyr.adapters.extractors import (
    CsvRecordExtractor,
    SqlTableRecordExtractor,
    build_extractor_registry,
    validate_source_config,
)
from unifyr.domain.errors import SourceConfigError
from unifyr.domain.model import SourceFormat
from tests.helpers.datasets import make_source

if TYPE_CHECKING:
    from pathlib import Path


def test_registry_has_one_extractor_per_format(tmp_path: Path) -> None:
    registry = build_extractor_registry(uploads_dir=tmp_path)

    assert set(registry) == {SourceFormat.CSV, SourceFormat.SQL}
    assert isinstance(registry[SourceFormat.CSV], CsvRecordExtractor)
    assert isinstance(registry[SourceFormat.SQL], SqlTableRecordExtractor)


def test_registry_resolves_uploads_from_data_dir(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("UNIFYR_DATA_DIR", str(tmp_path))
    (tmp_path / "uploads").mkdir()
    (tmp_path / "uploads" / "people.csv").write_text("id\n7\n", encoding="utf-8")
    source = make_source(uuid4(), "people", config={"relative_path": "people.csv"})

    records = build_extractor_registry()[SourceFormat.CSV].extract(source)

    assert records == [{"id": "7", "__table__": "people"}]


@pytest.mark.parametrize(
    ("source_format", "config"),
    [
        (SourceFormat.CSV, {"filePath": "/data/people.csv"}),
        (SourceFormat.SQL, {"url": "sqlite://", "tables": [{"table": "people"}]}),
    ],
)
def test_valid_configs_pass(source_format: SourceFormat, config: dict[str, object]) -> None:
    validate_source_config(make_source(uuid4(), source_format=source_format, config=config))


@pytest.mark.parametrize(
    ("source_format", "config"),
    [
        (SourceFormat.CSV, {"delimiter": ","}),
        (SourceFormat.SQL, {"table": "people"}),
        (SourceFormat.SQL, {"database_uri": "sqlite://"}),
    ],
)
def test_invalid_configs_raise(source_format: SourceFormat, config: dict[str, object]) -> None:
    with pytest.raises(SourceConfigError):
        validate_source_config(make_source(uuid4(), source_format=source_format, config=config))
