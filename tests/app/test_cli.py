from __future__ import annotations

from uuid import uuid4

import pytest

from unifyr.domain.ingest import IngestDatasetResult
from unifyr.domain.model import (
    Dataset,
    IngestionRun,
    RunStatus,
    Source,
    SourceFormat,
    SourceRole,
    TransformRun,
)
from unifyr.ui import cli


def _source_add_argv(config: str) -> list[str]:
    return [
        "source",
        "add",
        "--dataset-id",
        str(uuid4()),
        "--name",
        "x",
        "--format",
        "csv",
        "--config",
        config,
    ]


def test_dataset_create_forwards_options(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_create(**kwargs: object) -> Dataset:
        captured.update(kwargs)
        return Dataset(name="Customers")

    monkeypatch.setattr(cli, "create_dataset", fake_create)

    cli.main(["dataset", "create", "--name", "Customers", "--primary-type", "customers"])

    assert captured == {
        "name": "Customers",
        "description": None,
        "primary_record_type": "customers",
    }


def test_source_add_parses_format_and_config(monkeypatch: pytest.MonkeyPatch) -> None:
    dataset_id = uuid4()
    captured: dict[str, object] = {}

    def fake_add(target: object, **kwargs: object) -> Source:
        captured["dataset_id"] = target
        captured.update(kwargs)
        return Source(dataset_id=dataset_id, name="crm", format=SourceFormat.SQL)

    monkeypatch.setattr(cli, "add_source", fake_add)

    cli.main(
        [
            "source",
            "add",
            "--dataset-id",
            str(dataset_id),
            "--name",
            "crm",
            "--format",
            "sql",
            "--config",
            '{"database_uri": "sqlite://", "table": "customers"}',
        ]
    )

    assert captured == {
        "dataset_id": dataset_id,
        "name": "crm",
        "source_format": SourceFormat.SQL,
        "config": {"database_uri": "sqlite://", "table": "customers"},
        "role": SourceRole.SOURCE,
    }


def test_ingest_and_transform_receive_dataset_id(monkeypatch: pytest.MonkeyPatch) -> None:
    dataset_id = uuid4()
    calls: list[tuple[str, object]] = []

    def fake_ingest(target: object) -> IngestDatasetResult:
        calls.append(("ingest", target))
        return IngestDatasetResult()

    def fake_transform(target: object) -> TransformRun:
        calls.append(("transform", target))
        return TransformRun(dataset_id=dataset_id, status=RunStatus.SUCCESS)

    monkeypatch.setattr(cli, "ingest_dataset_sources", fake_ingest)
    monkeypatch.setattr(cli, "transform_dataset", fake_transform)

    cli.main(["ingest", "--dataset-id", str(dataset_id)])
    cli.main(["--verbose", "transform", "--dataset-id", str(dataset_id)])

    assert calls == [("ingest", dataset_id), ("transform", dataset_id)]


@pytest.mark.parametrize(
    "argv",
    [
        ["transform", "--dataset-id", "not-a-uuid"],
        _source_add_argv("{broken"),
        _source_add_argv("[1, 2]"),
    ],
)
def test_invalid_arguments_exit_with_validation_code(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)

    assert excinfo.value.code == 2


def test_failing_command_exits_with_error_code(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_transform(_: object) -> TransformRun:
        raise RuntimeError("boom")

    monkeypatch.setattr(cli, "transform_dataset", fake_transform)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["transform", "--dataset-id", str(uuid4())])

    assert excinfo.value.code == 1


def test_failed_ingestion_runs_exit_with_error_code(monkeypatch: pytest.MonkeyPatch) -> None:
    dataset_id = uuid4()
    failed = IngestionRun(dataset_id=dataset_id, source_id=uuid4())
    failed.fail("cannot read customers")

    monkeypatch.setattr(
        cli, "ingest_dataset_sources", lambda _: IngestDatasetResult(runs=[failed])
    )

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["ingest", "--dataset-id", str(dataset_id)])

    assert excinfo.value.code == 1


def test_missing_dataset_id_exits_with_error_code(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "_parse_uuid", lambda _: None)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["transform", "--dataset-id", "ignored"])

    assert excinfo.value.code == 1
