"""Bound parameters and the parameter binder."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from sqlhelper.exceptions import ArgumentError

# DB-API drivers transmit None as SQL NULL.
DB_NULL = None

DATA_PARAMETER_PREFIX = "@Param"
WHERE_PARAMETER_PREFIX = "@WhereParam"


class CommandType(str, Enum):
    """How the command text is interpreted."""
    TEXT = "text"
    STORED_PROCEDURE = "stored_procedure"


@dataclass(frozen=True)
class BoundParameter:
    """A named placeholder and the value bound to it."""

    name: str
    value: Any = DB_NULL

    def __post_init__(self) -> None:
        if not self.name or not self.name.lstrip("@"):
            raise ArgumentError("Parameter name must not be empty")
        if not self.name.startswith("@"):
            object.__setattr__(self, "name", f"@{self.name}")

    def as_tuple(self) -> Tuple[str, Any]:
        return self.name, self.value


ParametersLike = Union[Sequence[BoundParameter], Mapping[str, Any], None]


def is_absent(value: Any) -> bool:
    """Return True for None and for pandas-style missing values (NaN, NA, NaT)."""
    if value is None:
        return True
    if isinstance(value, float):
        return math.isnan(value)
    # pd.NA and pd.NaT are singletons whose type names are stable.
    return type(value).__name__ in ("NAType", "NaTType")


def to_db_value(value: Any) -> Any:
    """Map an absent value to the NULL sentinel, returning others unchanged."""
    return DB_NULL if is_absent(value) else value


def normalize_parameters(parameters: ParametersLike) -> List[BoundParameter]:
    """Turn caller-supplied parameters into an ordered list of BoundParameter."""
    if parameters is None:
        return []
    if isinstance(parameters, Mapping):
        return [BoundParameter(name, to_db_value(value)) for name, value in parameters.items()]

    normalized = []
    for parameter in parameters:
        if isinstance(parameter, BoundParameter):
            normalized.append(BoundParameter(parameter.name, to_db_value(parameter.value)))
        elif isinstance(parameter, tuple) and len(parameter) == 2:
            normalized.append(BoundParameter(parameter[0], to_db_value(parameter[1])))
        else:
            raise ArgumentError(f"Unsupported parameter: {parameter!r}")
    return normalized


class ParameterBinder:
    """Converts column/value mappings into sequentially named bound parameters.

    Numbering is 1-based and follows the mapping's iteration order, so the
    returned tokens line up positionally with the mapping's keys.
    """

    def __init__(self, prefix: str = DATA_PARAMETER_PREFIX) -> None:
        self.prefix = prefix

    def token(self, index: int) -> str:
        return f"{self.prefix}{index}"

    def bind_value(self, value: Any, index: int = 1) -> BoundParameter:
        """Bind a single value as parameter ``index``."""
        return BoundParameter(self.token(index), to_db_value(value))

    def bind(
        self,
        mapping: Optional[Mapping[str, Any]],
        start: int = 1,
        required: bool = True,
        operation: str = "this operation",
    ) -> Tuple[List[BoundParameter], List[str]]:
        """Bind every value in ``mapping``.

        Args:
            mapping: Ordered column -> value mapping.
            start: Number of the first generated parameter.
            required: Reject a None or empty mapping.
            operation: Operation name used in the error message.

        Returns:
            (parameters, tokens), both ordered like ``mapping``.

        Raises:
            ArgumentError: If ``required`` and the mapping is None or empty.
        """
        if not mapping:
            if required:
                raise ArgumentError(f"You must provide a non-null, non-empty mapping to {operation}")
            return [], []

        parameters = [
            self.bind_value(value, index)
            for index, value in enumerate(mapping.values(), start=start)
        ]
        return parameters, [parameter.name for parameter in parameters]
