"""
DDL rendering for dsync.

Table and column names are always backtick-quoted; column types, key
clauses and auto-increment definitions are inserted as given.
"""

from typing import Iterable

from .specs import ColumnSpec, TableSpec


DEFAULT_ENGINE = "InnoDB"
DEFAULT_CHARSET = "utf8mb4"
DEFAULT_COLLATION = "utf8mb4_general_ci"


def quote_identifier(name: str) -> str:
    """Quote a MySQL identifier, doubling any embedded backticks."""
    return "`" + name.replace("`", "``") + "`"


class DDLBuilder:
    """Renders CREATE/ALTER TABLE statements from table specs."""

    def __init__(
        self,
        engine: str = DEFAULT_ENGINE,
        charset: str = DEFAULT_CHARSET,
        collation: str = DEFAULT_COLLATION,
    ):
        self.engine = engine
        self.charset = charset
        self.collation = collation

    @property
    def table_options(self) -> str:
        return f"ENGINE={self.engine} DEFAULT CHARSET={self.charset} COLLATE={self.collation}"

    def column_definition(self, column: ColumnSpec) -> str:
        return f"{quote_identifier(column.name)} {column.type}"

    def create_table(self, spec: TableSpec) -> str:
        """Render CREATE TABLE with every declared column, in order."""
        columns = ", ".join(self.column_definition(column) for column in spec.columns)
        return f"CREATE TABLE {quote_identifier(spec.name)} ({columns}) {self.table_options}"

    def add_keys(self, spec: TableSpec) -> str:
        """Render one ALTER TABLE adding every declared key."""
        if not spec.keys:
            raise ValueError(f"Table {spec.name} declares no keys")
        keys = ", ".join(f"ADD {key.name} {key.type}" for key in spec.keys)
        return f"ALTER TABLE {quote_identifier(spec.name)} {keys}"

    def modify_auto_increment(self, spec: TableSpec) -> str:
        """Render the ALTER TABLE ... MODIFY applying the auto-increment definition."""
        if not spec.auto_increment:
            raise ValueError(f"Table {spec.name} declares no auto-increment column")
        return f"ALTER TABLE {quote_identifier(spec.name)} MODIFY {spec.auto_increment}"

    def add_columns(self, table: str, columns: Iterable[ColumnSpec]) -> str:
        """Render one ALTER TABLE with an ADD COLUMN clause per column."""
        clauses = ", ".join(f"ADD COLUMN {self.column_definition(column)}" for column in columns)
        if not clauses:
            raise ValueError(f"No columns to add to {table}")
        return f"ALTER TABLE {quote_identifier(table)} {clauses}"
