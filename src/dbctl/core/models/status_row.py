"""StatusRow - one row of engine introspection output.

Holds the raw output of commands such as `show slave status` as an ordered,
case-sensitive column -> value mapping. Values are kept as the engine
rendered them (strings, or None for SQL NULL); typed getters coerce on read.
"""

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

_TRUE_VALUES = frozenset({"1", "on", "yes", "true", "t", "y"})
_FALSE_VALUES = frozenset({"0", "off", "no", "false", "f", "n", ""})


def _to_cell(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode()
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


class StatusRow(Mapping[str, str | None]):
    """Immutable ordered mapping of column name to cell value.

    An empty StatusRow is the valid "no rows" answer (e.g. no replication
    configured) and is distinct from a failed query.
    """

    __slots__ = ("_cells",)

    def __init__(self, cells: Mapping[str, Any] | Iterable[tuple[str, Any]] = ()) -> None:
        items = cells.items() if isinstance(cells, Mapping) else cells
        self._cells: dict[str, str | None] = {str(k): _to_cell(v) for k, v in items}

    @classmethod
    def from_row(cls, keys: Iterable[str], values: Iterable[Any]) -> "StatusRow":
        return cls(zip(keys, values))

    def __getitem__(self, key: str) -> str | None:
        return self._cells[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    def __repr__(self) -> str:
        return f"StatusRow({self._cells!r})"

    def get_string(self, key: str, default: str = "") -> str:
        value = self._cells.get(key)
        return default if value is None else value

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Coerce a cell to bool (ON/OFF, Yes/No, 1/0, true/false).

        Raises:
            ValueError: If the cell holds something that is not a boolean.
        """
        value = self._cells.get(key)
        if value is None:
            return default
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"column {key!r} is not a boolean: {value!r}")

    def get_int(self, key: str, default: int = 0) -> int:
        value = self._cells.get(key)
        if value is None or value == "" or value.upper() == "NULL":
            return default
        return int(value)
