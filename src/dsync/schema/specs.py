"""
Declared table shapes for schema reconciliation.

Column and key types are raw MySQL fragments and are passed through to the
generated DDL untouched; only names are validated.
"""

import re
from typing import Annotated, Optional, Tuple

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator


IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*$")


def validate_identifier(value: str) -> str:
    if not IDENTIFIER_PATTERN.match(value):
        raise ValueError(f"Invalid identifier: {value!r}")
    return value


Identifier = Annotated[str, AfterValidator(validate_identifier)]


class ColumnSpec(BaseModel):
    """A declared column, e.g. ``ColumnSpec(name="email", type="VARCHAR(255) NOT NULL")``."""

    model_config = ConfigDict(frozen=True)

    name: Identifier = Field(..., description="Column name")
    type: str = Field(..., description="Column type expression, used verbatim")


class KeySpec(BaseModel):
    """A declared key clause, e.g. ``KeySpec(name="PRIMARY KEY", type="(id)")``."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Key clause, e.g. PRIMARY KEY or UNIQUE KEY uq_email")
    type: str = Field(..., description="Column list, e.g. (id)")


class TableSpec(BaseModel):
    """Desired end state of one table."""

    model_config = ConfigDict(frozen=True)

    name: Identifier = Field(..., description="Table name")
    columns: Tuple[ColumnSpec, ...] = Field(..., min_length=1, description="Ordered columns")
    keys: Optional[Tuple[KeySpec, ...]] = Field(None, description="Keys added after creation")
    auto_increment: Optional[str] = Field(
        None, description="Column definition applied with ALTER TABLE ... MODIFY"
    )

    @field_validator("columns")
    @classmethod
    def check_unique_columns(cls, v: Tuple[ColumnSpec, ...]) -> Tuple[ColumnSpec, ...]:
        seen = set()
        for column in v:
            if column.name in seen:
                raise ValueError(f"Duplicate column: {column.name}")
            seen.add(column.name)
        return v

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(column.name for column in self.columns)
