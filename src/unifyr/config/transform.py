"""Transform run configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

from .env import optional_int_env
from .errors import ConfigurationError

DEFAULT_PRIMARY_TYPE: Final[str] = "default"
DEFAULT_SAMPLE_ROWS_LOGGED: Final[int] = 3


@dataclass(frozen=True, slots=True)
class TransformConfig:
    """Knobs for transform runs.

    ``default_primary_type`` is the last-resort anchor type when neither the dataset
    nor the data suggests one. ``sample_rows_logged`` bounds how many produced rows
    are echoed at DEBUG level after a run.
    """

    default_primary_type: str = DEFAULT_PRIMARY_TYPE
    sample_rows_logged: int = DEFAULT_SAMPLE_ROWS_LOGGED

    def __post_init__(self) -> None:
        if not self.default_primary_type.strip():
            raise ConfigurationError("default_primary_type must not be blank")
        if self.sample_rows_logged < 0:
            raise ConfigurationError("sample_rows_logged must be non-negative")


def get_transform_config() -> TransformConfig:
    primary = os.getenv("UNIFYR_DEFAULT_PRIMARY_TYPE") or DEFAULT_PRIMARY_TYPE
    sample_rows = optional_int_env("UNIFYR_SAMPLE_ROWS_LOGGED", DEFAULT_SAMPLE_ROWS_LOGGED)
    return TransformConfig(default_primary_type=primary.strip(), sample_rows_logged=sample_rows)
