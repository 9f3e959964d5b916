"""
Result type coercion for MySQL rows.

The driver decodes TINYINT(1) as a plain integer. dsync exposes those
columns as booleans, the way MySQL itself uses the type for BOOL.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

from pymysql.constants import FIELD_TYPE


def is_boolean_field(field: Sequence[Any]) -> bool:
    """Check whether a DB-API description entry is a single-width TINY column."""
    if len(field) < 4:
        return False
    return field[1] == FIELD_TYPE.TINY and field[3] == 1


def coerce_value(value: Any) -> bool:
    """Coerce a TINYINT(1) value by its string form; NULL reads as False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode()
    return str(value) == "1"


def _boolean_keys(
    keys: Sequence[str], description: Sequence[Sequence[Any]]
) -> List[str]:
    positions = [i for i, field in enumerate(description) if is_boolean_field(field)]
    if len(keys) == len(description):
        return [keys[i] for i in positions]

    # Row keys collapsed onto each other; only unambiguous names can be matched.
    names = [field[0] for field in description]
    return [names[i] for i in positions if names.count(names[i]) == 1]


def coerce_rows(
    rows: Iterable[Dict[str, Any]],
    description: Optional[Sequence[Sequence[Any]]],
) -> List[Dict[str, Any]]:
    """
    Apply boolean coercion to every TINYINT(1) column of the given rows.

    Columns are matched by position. DictCursor renames a repeated column
    name to ``table.name``, so the row keys can differ from the names in
    ``description``.
    """
    rows = list(rows)
    if not description or not rows:
        return rows

    boolean_keys = _boolean_keys(list(rows[0]), description)
    if not boolean_keys:
        return rows

    coerced = []
    for row in rows:
        row = dict(row)
        for key in boolean_keys:
            row[key] = coerce_value(row[key])
        coerced.append(row)
    return coerced
