"""JSON row encoding shared by query() and the role strategies."""

import json
from typing import Any

from dbctl.core.errors import ProtocolError


def parse_query(data: str | bytes) -> list[dict[str, Any]]:
    """Decode the JSON array of row objects produced by query().

    Raises:
        ProtocolError: If the payload is not a JSON array of objects.
    """
    try:
        rows = json.loads(data)
    except ValueError as e:
        raise ProtocolError(f"query result is not valid JSON: {e}") from e

    if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
        raise ProtocolError("query result is not a list of rows")
    return rows


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"
