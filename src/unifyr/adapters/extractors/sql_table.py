"""Record extractor for tables in an external SQL database."""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import MetaData, Table, create_engine, select
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from unifyr.config import require_env_vars
from unifyr.domain.errors import SourceConfigError
from unifyr.domain.model import SourceFormat
from unifyr.domain.resolution import TABLE_KEY

from .schema import SqlSourceConfig, TableSelection, parse_source_config

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.engine import Connection

    from unifyr.domain.model import Source

log = logging.getLogger(__name__)


def to_json_value(value: object) -> object:
    """Convert a driver value into something the JSON payload column accepts."""

    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return str(value)


class SqlTableRecordExtractor:
    """Read every row of the configured tables through SQLAlchemy reflection."""

    @property
    def format(self) -> SourceFormat:
        return SourceFormat.SQL

    def extract(self, source: Source) -> list[dict[str, Any]]:
        config = parse_source_config(SqlSourceConfig, source)
        engine = create_engine(self._database_uri(config))
        try:
            records: list[dict[str, Any]] = []
            with engine.connect() as connection:
                for selection in config.selections():
                    records.extend(self._read_table(connection, selection))
            return records
        except NoSuchTableError as exc:
            raise SourceConfigError(
                f"Table {exc.args[0]!r} not found for source {source.name!r}"
            ) from exc
        finally:
            engine.dispose()

    @staticmethod
    def _database_uri(config: SqlSourceConfig) -> str:
        if config.database_uri:
            return config.database_uri
        if not config.database_uri_env:
            raise SourceConfigError("SQL source requires database_uri or database_uri_env")
        return require_env_vars([config.database_uri_env])[config.database_uri_env]

    def _read_table(
        self, connection: Connection, selection: TableSelection
    ) -> list[dict[str, Any]]:
        table = Table(
            selection.table,
            MetaData(),
            schema=selection.db_schema,
            autoload_with=connection,
        )
        if selection.columns:
            unknown = [name for name in selection.columns if name not in table.c]
            if unknown:
                raise SourceConfigError(
                    f"Unknown columns for table {selection.table!r}: {', '.join(unknown)}"
                )
            statement = select(*(table.c[name] for name in selection.columns))
        else:
            statement = select(table)

        try:
            rows = connection.execute(statement).mappings().all()
        except SQLAlchemyError:
            log.exception("Reading table %s failed", selection.table)
            raise
        log.debug("Read %d rows from table %s", len(rows), selection.table)
        return [self._payload(row, selection.label) for row in rows]

    @staticmethod
    def _payload(row: Mapping[str, Any], label: str) -> dict[str, Any]:
        payload = {str(key): to_json_value(value) for key, value in row.items()}
        payload.setdefault(TABLE_KEY, label)
        return payload
