"""Result containers."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterator, List

import pandas as pd

from sqlhelper.exceptions import ConversionError


@dataclass
class DataSet:
    """Every result set returned by one command, in order."""

    tables: List[pd.DataFrame] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.tables)

    def __iter__(self) -> Iterator[pd.DataFrame]:
        return iter(self.tables)

    def __getitem__(self, index: int) -> pd.DataFrame:
        return self.tables[index]

    @property
    def is_empty(self) -> bool:
        return not self.tables

    @property
    def row_counts(self) -> List[int]:
        return [len(table) for table in self.tables]


@dataclass(frozen=True)
class SchemaColumn:
    """One column of a probed table: its name and the driver's type code."""

    name: str
    type_code: Any = None


def frame_from_rows(rows: List[Any], columns: List[str]) -> pd.DataFrame:
    """Build a DataFrame from fetched rows."""
    if rows:
        return pd.DataFrame([tuple(row) for row in rows], columns=columns)
    return pd.DataFrame(columns=columns)


def to_int_identifier(value: Any) -> int:
    """Convert a scalar result (typically a generated id) to int.

    Raises:
        ConversionError: If the value is absent or not integral.
    """
    if value is None:
        raise ConversionError("Cannot convert an empty result to an integer identifier", value=value, target_type=int)

    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value

    try:
        if isinstance(value, (float, Decimal)):
            if value != int(value):
                raise ValueError(f"{value} is not integral")
            return int(value)
        if isinstance(value, (str, bytes)):
            return int(value.strip())
        return int(value)
    except (TypeError, ValueError, OverflowError, ArithmeticError) as e:
        raise ConversionError(
            f"Cannot convert {value!r} to an integer identifier",
            value=value,
            target_type=int,
        ) from e

