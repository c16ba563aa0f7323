"""Pydantic models for validating source configuration blobs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Self

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, model_validator

from unifyr.domain.errors import SourceConfigError

if TYPE_CHECKING:
    from unifyr.domain.model import Source


class _SourceConfig(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class CsvSourceConfig(_SourceConfig):
    file_path: str | None = Field(
        default=None, validation_alias=AliasChoices("file_path", "filePath")
    )
    relative_path: str | None = Field(
        default=None, validation_alias=AliasChoices("relative_path", "relativePath")
    )
    delimiter: str = Field(default=",", min_length=1, max_length=1)
    encoding: str = "utf-8"
    table: str | None = Field(
        default=None, validation_alias=AliasChoices("table", "table_name", "tableName")
    )

    @model_validator(mode="after")
    def _require_path(self) -> Self:
        if not (self.file_path or "").strip() and not (self.relative_path or "").strip():
            raise ValueError("CSV source requires file_path or relative_path")
        return self


class TableSelection(_SourceConfig):
    table: str = Field(validation_alias=AliasChoices("table", "table_name", "tableName"))
    db_schema: str | None = Field(
        default=None, validation_alias=AliasChoices("schema", "db_schema")
    )
    columns: tuple[str, ...] | None = None

    @property
    def label(self) -> str:
        return self.table


class SqlSourceConfig(_SourceConfig):
    database_uri: str | None = Field(
        default=None,
        validation_alias=AliasChoices("database_uri", "databaseUri", "url"),
    )
    database_uri_env: str | None = Field(
        default=None,
        validation_alias=AliasChoices("database_uri_env", "databaseUriEnv"),
    )
    table: str | None = Field(
        default=None, validation_alias=AliasChoices("table", "table_name", "tableName")
    )
    db_schema: str | None = Field(
        default=None, validation_alias=AliasChoices("schema", "db_schema")
    )
    columns: tuple[str, ...] | None = None
    tables: tuple[TableSelection, ...] = ()

    @model_validator(mode="after")
    def _require_connection_and_table(self) -> Self:
        if not self.database_uri and not self.database_uri_env:
            raise ValueError("SQL source requires database_uri or database_uri_env")
        if not self.table and not self.tables:
            raise ValueError("SQL source requires table or tables")
        return self

    def selections(self) -> tuple[TableSelection, ...]:
        if self.tables:
            return self.tables
        if not self.table:
            raise SourceConfigError("SQL source requires table or tables")
        return (TableSelection(table=self.table, db_schema=self.db_schema, columns=self.columns),)


def parse_source_config[TConfig: BaseModel](model: type[TConfig], source: Source) -> TConfig:
    """Validate ``source.config`` against ``model``."""

    try:
        return model.model_validate(source.config)
    except ValidationError as exc:
        raise SourceConfigError(f"Invalid config for source {source.name!r}: {exc}") from exc
