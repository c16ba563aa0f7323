"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class DatasetStatus(StrEnum):
    ACTIVE = "ACTIVE"
    FINISHED = "FINISHED"


class RunStatus(StrEnum):
    """Lifecycle of ingestion and transform runs.

    Transform runs only ever use RUNNING, SUCCESS and FAILED.
    """

    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class SourceFormat(StrEnum):
    CSV = "csv"
    SQL = "sql"


class SourceRole(StrEnum):
    SOURCE = "SOURCE"
    DESTINATION = "DESTINATION"


class DataType(StrEnum):
    STRING = "STRING"
    INTEGER = "INTEGER"
    FLOAT = "FLOAT"
    BOOLEAN = "BOOLEAN"
    TIMESTAMP = "TIMESTAMP"
    JSON = "JSON"


class TransformType(StrEnum):
    """Scalar transform applied to a mapped value."""

    NONE = "NONE"
    LOWERCASE = "LOWERCASE"
    UPPERCASE = "UPPERCASE"
    TRIM = "TRIM"
    INT = "INT"
    FLOAT = "FLOAT"
