"""Generated commands and their rendering to driver SQL."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from sqlhelper.db.parameters import BoundParameter, CommandType, ParametersLike, normalize_parameters
from sqlhelper.exceptions import ArgumentError

# Quoted text, identifiers and comments are copied verbatim; only @name
# tokens outside them are candidates for binding.
_TOKEN_REGEX = re.compile(
    r"""
    (?P<squote>'(?:[^']|'')*') |
    (?P<dquote>"(?:[^"]|"")*") |
    (?P<bracket>\[[^\]]*\]) |
    (?P<line_comment>--[^\r\n]*) |
    (?P<block_comment>/\*[\s\S]*?\*/) |
    (?P<system>@@\w+) |
    (?P<param>@\w+)
    """,
    re.VERBOSE,
)

POSITIONAL_STYLES = {"qmark", "numeric", "format"}
NAMED_STYLES = {"named", "pyformat"}
DriverParameters = Union[Tuple[Any, ...], Dict[str, Any], None]


def _placeholder(paramstyle: str, position: int, name: str) -> str:
    bare = name.lstrip("@")
    if paramstyle == "qmark":
        return "?"
    if paramstyle == "numeric":
        return f":{position}"
    if paramstyle == "format":
        return "%s"
    if paramstyle == "named":
        return f":{bare}"
    if paramstyle == "pyformat":
        return f"%({bare})s"
    raise ArgumentError(f"Unsupported DB-API paramstyle: {paramstyle}")


@dataclass
class SqlCommand:
    """A single command: SQL text, command type, bound parameters, timeout
    and optional caller transaction.

    Commands are created fresh for each operation and never reused.
    """

    text: str
    parameters: List[BoundParameter] = field(default_factory=list)
    command_type: CommandType = CommandType.TEXT
    timeout: int = 30
    transaction: Any = None

    @classmethod
    def create(
        cls,
        text: str,
        parameters: ParametersLike = None,
        command_type: CommandType = CommandType.TEXT,
        timeout: int = 30,
        transaction: Any = None,
    ) -> "SqlCommand":
        """Build a command from caller-supplied parameters."""
        if not text or not text.strip():
            raise ArgumentError("Command text must not be empty")
        return cls(
            text=text,
            parameters=normalize_parameters(parameters),
            command_type=CommandType(command_type),
            timeout=timeout,
            transaction=transaction,
        )

    @property
    def parameter_names(self) -> List[str]:
        return [parameter.name for parameter in self.parameters]

    def parameter_pairs(self) -> List[Tuple[str, Any]]:
        return [parameter.as_tuple() for parameter in self.parameters]

    def render(self, paramstyle: str = "qmark") -> Tuple[str, DriverParameters]:
        """Render the command for a DB-API driver.

        Returns:
            (sql, parameters) where parameters is a tuple for positional
            paramstyles, a dict for named ones, or None when nothing is bound.
        """
        if self.command_type == CommandType.STORED_PROCEDURE:
            return self._render_procedure(paramstyle)
        return render_sql(self.text, self.parameters, paramstyle)

    def _render_procedure(self, paramstyle: str) -> Tuple[str, DriverParameters]:
        sql = f"EXEC {self.text.strip()}"
        if not self.parameters:
            return sql, None

        assignments = [
            f"{parameter.name} = {_placeholder(paramstyle, position, parameter.name)}"
            for position, parameter in enumerate(self.parameters, start=1)
        ]
        sql += " " + ", ".join(assignments)

        if paramstyle in NAMED_STYLES:
            return sql, {parameter.name.lstrip("@"): parameter.value for parameter in self.parameters}
        return sql, tuple(parameter.value for parameter in self.parameters)


def render_sql(
    text: str,
    parameters: Sequence[BoundParameter],
    paramstyle: str = "qmark",
) -> Tuple[str, DriverParameters]:
    """Replace bound ``@name`` tokens in ``text`` with driver placeholders.

    Tokens are matched case-insensitively. ``@@system`` variables and
    ``@locals`` with no bound value are left untouched; a token used
    twice repeats its value for positional paramstyles.
    """
    if paramstyle not in POSITIONAL_STYLES | NAMED_STYLES:
        raise ArgumentError(f"Unsupported DB-API paramstyle: {paramstyle}")

    by_name = {parameter.name.lower(): parameter for parameter in parameters}

    # (segment, is_placeholder) pairs; literal text is escaped once the
    # final parameter set is known.
    pieces: List[Tuple[str, bool]] = []
    positional: List[Any] = []
    named: Dict[str, Any] = {}
    last = 0

    for match in _TOKEN_REGEX.finditer(text):
        pieces.append((text[last:match.start()], False))
        last = match.end()

        token = match.group("param")
        parameter = by_name.get(token.lower()) if token else None
        if parameter is None:
            pieces.append((match.group(0), False))
            continue

        positional.append(parameter.value)
        named[parameter.name.lstrip("@")] = parameter.value
        pieces.append((_placeholder(paramstyle, len(positional), parameter.name), True))

    pieces.append((text[last:], False))

    escape_percent = paramstyle in ("format", "pyformat") and bool(positional)
    sql = "".join(
        segment.replace("%", "%%") if escape_percent and not is_placeholder else segment
        for segment, is_placeholder in pieces
    )

    if not positional:
        return sql, None
    if paramstyle in NAMED_STYLES:
        return sql, named
    return sql, tuple(positional)
