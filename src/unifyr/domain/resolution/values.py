"""Value normalisation applied while merging and flattening payloads.

Numbers that look like epoch milliseconds are rewritten as ISO-8601 UTC instants
(``2023-11-14T22:13:20Z``; a ``.SSS`` fraction only when the milliseconds are
non-zero). Everything else passes through untouched, so normalising an already
normalised value is a no-op.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Final, cast

if TYPE_CHECKING:
    from collections.abc import Mapping

EPOCH_MILLIS_THRESHOLD: Final[int] = 100_000_000_000
_EPOCH: Final[datetime] = datetime(1970, 1, 1)
_DIGITS_PATTERN: Final[re.Pattern[str]] = re.compile(r"-?\d{10,}", re.ASCII)


def looks_like_epoch_millis(value: int) -> bool:
    return abs(value) >= EPOCH_MILLIS_THRESHOLD


def format_epoch_millis(millis: int) -> str | None:
    """Render epoch milliseconds as an ISO instant, or ``None`` when out of range."""

    try:
        moment = _EPOCH + timedelta(milliseconds=millis)
    except OverflowError:
        return None
    text = moment.isoformat(timespec="seconds")
    fraction = moment.microsecond // 1000
    if fraction:
        text = f"{text}.{fraction:03d}"
    return f"{text}Z"


def normalize_value(value: Any) -> Any:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        try:
            millis = int(value)
        except (OverflowError, ValueError):
            return value
        if looks_like_epoch_millis(millis):
            return format_epoch_millis(millis) or value
        return value
    if isinstance(value, str):
        trimmed = value.strip()
        if _DIGITS_PATTERN.fullmatch(trimmed):
            millis = int(trimmed)
            if looks_like_epoch_millis(millis):
                return format_epoch_millis(millis) or value
    return value


def normalize_payload(payload: Mapping[str, Any] | None) -> dict[str, Any]:
    """Return a deep copy of ``payload`` with every scalar passed through ``normalize_value``."""

    if payload is None:
        return {}
    return {key: _normalize_nested(value) for key, value in payload.items()}


def _normalize_nested(value: Any) -> Any:
    if isinstance(value, dict):
        return normalize_payload(cast("dict[str, Any]", value))
    if isinstance(value, list):
        return [_normalize_nested(item) for item in cast("list[Any]", value)]
    return normalize_value(value)
