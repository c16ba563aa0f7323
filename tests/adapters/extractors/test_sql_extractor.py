from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

import pytest
from sqlalchemy import Column, DateTime, Integer, MetaData, Numeric, String, Table, create_engine

from unifyr.adapters.extractors import SqlSourceConfig, SqlTableRecordExtractor, to_json_value
from unifyr.config import MissingConfigurationError
from unifyr.domain.errors import SourceConfigError
from unifyr.domain.model import SourceFormat
from tests.helpers.datasets import make_source

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def source_database(tmp_path: Path) -> str:
    uri = f"sqlite+pysqlite:///{tmp_path / 'crm.db'}"
    engine = create_engine(uri)
    metadata = MetaData()
    customers = Table(
        "customers",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("email", String),
        Column("balance", Numeric(10, 2)),
        Column("joined", DateTime),
    )
    orders = Table(
        "orders",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("customer_id", Integer),
    )
    metadata.create_all(engine)
    with engine.begin() as connection:
        connection.execute(
            customers.insert(),
            [
                {
                    "id": 1,
                    "email": "o@example.com",
                    "balance": Decimal("12.50"),
                    "joined": datetime(2024, 1, 2, 3, 4, 5),
                },
                {"id": 2, "email": None, "balance": Decimal("3.00"), "joined": None},
            ],
        )
        connection.execute(orders.insert(), [{"id": 10, "customer_id": 1}])
    engine.dispose()
    return uri


def test_reads_every_row_of_a_table(source_database: str) -> None:
    source = make_source(
        uuid4(),
        "crm",
        source_format=SourceFormat.SQL,
        config={"database_uri": source_database, "table": "customers"},
    )

    records = SqlTableRecordExtractor().extract(source)

    assert records == [
        {
            "id": 1,
            "email": "o@example.com",
            "balance": 12.5,
            "joined": "2024-01-02T03:04:05",
            "__table__": "customers",
        },
        {"id": 2, "email": None, "balance": 3, "joined": None, "__table__": "customers"},
    ]


def test_reads_selected_columns_of_several_tables(source_database: str) -> None:
    source = make_source(
        uuid4(),
        "crm",
        source_format=SourceFormat.SQL,
        config={
            "database_uri": source_database,
            "tables": [
                {"table": "customers", "columns": ["id", "email"]},
                {"tableName": "orders"},
            ],
        },
    )

    records = SqlTableRecordExtractor().extract(source)

    assert records == [
        {"id": 1, "email": "o@example.com", "__table__": "customers"},
        {"id": 2, "email": None, "__table__": "customers"},
        {"id": 10, "customer_id": 1, "__table__": "orders"},
    ]


def test_database_uri_can_come_from_environment(
    source_database: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("CRM_DATABASE_URI", source_database)
    source = make_source(
        uuid4(),
        "crm",
        source_format=SourceFormat.SQL,
        config={"databaseUriEnv": "CRM_DATABASE_URI", "table": "orders"},
    )

    assert SqlTableRecordExtractor().extract(source) == [
        {"id": 10, "customer_id": 1, "__table__": "orders"}
    ]


def test_missing_environment_variable_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CRM_DATABASE_URI", raising=False)
    source = make_source(
        uuid4(),
        "crm",
        source_format=SourceFormat.SQL,
        config={"database_uri_env": "CRM_DATABASE_URI", "table": "orders"},
    )

    with pytest.raises(MissingConfigurationError):
        SqlTableRecordExtractor().extract(source)


def test_unknown_table_is_a_config_error(source_database: str) -> None:
    source = make_source(
        uuid4(),
        "crm",
        source_format=SourceFormat.SQL,
        config={"database_uri": source_database, "table": "invoices"},
    )

    with pytest.raises(SourceConfigError, match="invoices"):
        SqlTableRecordExtractor().extract(source)


def test_unknown_column_is_a_config_error(source_database: str) -> None:
    source = make_source(
        uuid4(),
        "crm",
        source_format=SourceFormat.SQL,
        config={"database_uri": source_database, "table": "orders", "columns": ["total"]},
    )

    with pytest.raises(SourceConfigError, match="total"):
        SqlTableRecordExtractor().extract(source)


@pytest.mark.parametrize(
    "config",
    [
        {"table": "orders"},
        {"database_uri": "sqlite://"},
    ],
)
def test_incomplete_config_is_rejected(config: dict[str, object]) -> None:
    with pytest.raises(SourceConfigError):
        SqlTableRecordExtractor().extract(
            make_source(uuid4(), source_format=SourceFormat.SQL, config=config)
        )


def test_single_table_config_becomes_one_selection() -> None:
    config = SqlSourceConfig.model_validate(
        {"url": "sqlite://", "table": "orders", "schema": "sales", "columns": ["id"]}
    )

    (selection,) = config.selections()

    assert (selection.table, selection.db_schema, selection.columns) == ("orders", "sales", ("id",))


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (Decimal("2.00"), 2),
        (Decimal("2.25"), 2.25),
        (date(2024, 1, 2), "2024-01-02"),
        (datetime(2024, 1, 2, 3, 4, tzinfo=UTC), "2024-01-02T03:04:00+00:00"),
        (UUID("12345678-1234-5678-1234-567812345678"), "12345678-1234-5678-1234-567812345678"),
        (b"\x01\xff", "01ff"),
        (True, True),
        (None, None),
    ],
)
def test_to_json_value(value: object, expected: object) -> None:
    assert to_json_value(value) == expected


def test_selections_without_any_table_is_a_config_error() -> None:
    config = SqlSourceConfig.model_construct(database_uri="sqlite://", table=None, tables=())

    with pytest.raises(SourceConfigError, match="table or tables"):
        config.selections()


def test_connection_without_uri_or_env_is_a_config_error() -> None:
    config = SqlSourceConfig.model_construct(
        database_uri=None, database_uri_env=None, table="orders"
    )

    with pytest.raises(SourceConfigError, match="database_uri or database_uri_env"):
        SqlTableRecordExtractor._database_uri(config)  # noqa: SLF001
