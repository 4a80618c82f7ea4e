"""Null-coalescing helpers for building parameter values and reading rows."""

from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional, Union

from sqlhelper.db.parameters import DB_NULL, is_absent
from sqlhelper.exceptions import ArgumentError, ConversionError


def as_value_or_db_null(text: Optional[str]) -> Any:
    """``text``, or the NULL sentinel when it is None, empty or whitespace."""
    if text is None or not str(text).strip():
        return DB_NULL
    return text


def as_value_or_default(text: Optional[str], default: Any) -> Any:
    """``text``, or ``default`` when it is None, empty or whitespace."""
    if text is None or not str(text).strip():
        return default
    return text


def date_or_db_null(value: Optional[Union[date, datetime]]) -> Any:
    """The date itself, or the NULL sentinel when it is missing (None or NaT)."""
    if is_absent(value):
        return DB_NULL
    return value


def when_valid(row: Mapping[str, Any], column: str, action: Callable[[Any], None]) -> bool:
    """Call ``action`` with ``row[column]`` when the column exists and is not NULL.

    ``row`` may be a dict or a pandas Series (a DataFrame row).

    Returns:
        True if ``action`` was called.
    """
    if column not in row.keys():
        return False

    value = row[column]
    if is_absent(value):
        return False

    action(value)
    return True


def value_as_int(values: Mapping[str, Any], key: str) -> int:
    """Read ``values[key]`` as an int.

    Raises:
        ArgumentError: If the key is missing or None.
        ConversionError: If the value is not a valid integer.
    """
    value = values.get(key)
    if value is None:
        raise ArgumentError(f"The key {key} has not been set")

    try:
        return int(str(value).strip())
    except ValueError as e:
        raise ConversionError(
            f"The key {key} has a value of {value} which is not a valid int",
            value=value,
            target_type=int,
        ) from e
