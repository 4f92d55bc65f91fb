"""Builders that render PostgreSQL data definition statements."""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import ClassVar, Union


def quote_ident(name: str) -> str:
    """Quote an SQL identifier, doubling embedded quotes."""
    if not name:
        raise ValueError("identifier must not be empty")
    return '"' + name.replace('"', '""') + '"'


def _ident_list(names: Sequence[str]) -> str:
    return ", ".join(quote_ident(name) for name in names)


def _names(value: Union[str, Sequence[str]]) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    return tuple(value)


class ColumnType(enum.Enum):
    """Column types and their PostgreSQL spelling."""

    UUID = "uuid"
    STRING = "varchar"
    TEXT = "text"
    BINARY = "bytea"
    BOOLEAN = "boolean"
    SMALL_INTEGER = "smallint"
    INTEGER = "integer"
    BIG_INTEGER = "bigint"
    TIMESTAMP_TZ = "timestamp with time zone"
    JSON_BINARY = "jsonb"


_SERIAL_TYPES = {
    ColumnType.SMALL_INTEGER: "smallserial",
    ColumnType.INTEGER: "serial",
    ColumnType.BIG_INTEGER: "bigserial",
}


class ForeignKeyAction(enum.Enum):
    """Referential actions for ON DELETE and ON UPDATE."""

    CASCADE = "CASCADE"
    RESTRICT = "RESTRICT"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"
    NO_ACTION = "NO ACTION"


@dataclass(frozen=True)
class SqlExpr:
    """A raw SQL expression inserted verbatim."""

    sql: str
    CURRENT_TIMESTAMP: ClassVar[SqlExpr]

    def __str__(self) -> str:
        return self.sql


SqlExpr.CURRENT_TIMESTAMP = SqlExpr("CURRENT_TIMESTAMP")


def _literal(value: object) -> str:
    if isinstance(value, SqlExpr):
        return value.sql
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return "'" + value.replace("'", "''") + "'"
    raise TypeError(f"cannot render {type(value).__name__} as an SQL literal")


def between(column: str, low: object, high: object) -> SqlExpr:
    """Build a ``column BETWEEN low AND high`` expression."""
    return SqlExpr(f"{quote_ident(column)} BETWEEN {_literal(low)} AND {_literal(high)}")


@dataclass(frozen=True)
class Column:
    """A column definition."""

    name: str
    type: ColumnType
    length: int | None = None
    not_null: bool = False
    nullable: bool = False
    primary_key: bool = False
    unique: bool = False
    auto_increment: bool = False
    default: object = None
    extra: str | None = None

    def __post_init__(self) -> None:
        quote_ident(self.name)
        if self.not_null and self.nullable:
            raise ValueError(f"column {self.name!r} cannot be both NULL and NOT NULL")
        if self.length is not None:
            if self.type is not ColumnType.STRING:
                raise ValueError(f"column {self.name!r}: only strings take a length")
            if self.length <= 0:
                raise ValueError(f"column {self.name!r}: length must be positive")
        if self.auto_increment and self.type not in _SERIAL_TYPES:
            raise ValueError(f"column {self.name!r}: only integers can auto-increment")
        if self.default is not None:
            _literal(self.default)

    @property
    def type_sql(self) -> str:
        if self.auto_increment:
            return _SERIAL_TYPES[self.type]
        if self.length is not None:
            return f"{self.type.value}({self.length})"
        return self.type.value

    def to_sql(self) -> str:
        parts = [quote_ident(self.name), self.type_sql]
        if self.not_null:
            parts.append("NOT NULL")
        elif self.nullable:
            parts.append("NULL")
        if self.default is not None:
            parts.append("DEFAULT " + _literal(self.default))
        if self.unique:
            parts.append("UNIQUE")
        if self.primary_key:
            parts.append("PRIMARY KEY")
        if self.extra:
            parts.append(self.extra)
        return " ".join(parts)


@dataclass(frozen=True)
class ForeignKey:
    """A named foreign key constraint."""

    name: str
    from_table: str
    from_columns: Union[str, Sequence[str]]
    to_table: str
    to_columns: Union[str, Sequence[str]]
    on_delete: ForeignKeyAction | None = None
    on_update: ForeignKeyAction | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "from_columns", _names(self.from_columns))
        object.__setattr__(self, "to_columns", _names(self.to_columns))
        if not self.from_columns:
            raise ValueError(f"foreign key {self.name!r} has no columns")
        if len(self.from_columns) != len(self.to_columns):
            raise ValueError(f"foreign key {self.name!r}: column counts differ")

    def to_sql(self, table: str) -> str:
        """Render the constraint clause for use inside ``table``."""
        if table != self.from_table:
            raise ValueError(
                f"foreign key {self.name!r} belongs to {self.from_table!r}, not {table!r}"
            )
        sql = (
            f"CONSTRAINT {quote_ident(self.name)} FOREIGN KEY ({_ident_list(self.from_columns)})"
            f" REFERENCES {quote_ident(self.to_table)} ({_ident_list(self.to_columns)})"
        )
        if self.on_delete is not None:
            sql += " ON DELETE " + self.on_delete.value
        if self.on_update is not None:
            sql += " ON UPDATE " + self.on_update.value
        return sql


@dataclass(frozen=True)
class CreateTable:
    """CREATE TABLE with columns, composite key, foreign keys and checks."""

    name: str
    columns: Sequence[Column]
    primary_key: Union[str, Sequence[str]] = ()
    foreign_keys: Sequence[ForeignKey] = field(default=())
    checks: Sequence[SqlExpr] = field(default=())
    if_not_exists: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "primary_key", _names(self.primary_key))
        object.__setattr__(self, "foreign_keys", tuple(self.foreign_keys))
        object.__setattr__(self, "checks", tuple(self.checks))
        quote_ident(self.name)
        if not self.columns:
            raise ValueError(f"table {self.name!r} has no columns")
        names = [column.name for column in self.columns]
        if len(set(names)) != len(names):
            raise ValueError(f"table {self.name!r} has duplicate columns")
        known = set(names)
        if self.primary_key:
            if any(column.primary_key for column in self.columns):
                raise ValueError(f"table {self.name!r} declares its primary key twice")
            unknown = [n for n in self.primary_key if n not in known]
            if unknown:
                raise ValueError(f"table {self.name!r}: unknown key column {unknown[0]!r}")
        for fk in self.foreign_keys:
            if fk.from_table != self.name:
                raise ValueError(f"foreign key {fk.name!r} belongs to {fk.from_table!r}")
            unknown = [n for n in fk.from_columns if n not in known]
            if unknown:
                raise ValueError(f"foreign key {fk.name!r}: unknown column {unknown[0]!r}")

    def to_sql(self) -> str:
        items = [column.to_sql() for column in self.columns]
        if self.primary_key:
            items.append(f"PRIMARY KEY ({_ident_list(self.primary_key)})")
        items.extend(fk.to_sql(self.name) for fk in self.foreign_keys)
        items.extend(f"CHECK ({check.sql})" for check in self.checks)
        head = "CREATE TABLE IF NOT EXISTS" if self.if_not_exists else "CREATE TABLE"
        return f"{head} {quote_ident(self.name)} ( {', '.join(items)} )"


@dataclass(frozen=True)
class DropTable:
    """DROP TABLE."""

    name: str
    if_exists: bool = False

    def to_sql(self) -> str:
        head = "DROP TABLE IF EXISTS" if self.if_exists else "DROP TABLE"
        return f"{head} {quote_ident(self.name)}"


@dataclass(frozen=True)
class AddColumn:
    """ALTER TABLE ... ADD COLUMN."""

    table: str
    column: Column

    def to_sql(self) -> str:
        return f"ALTER TABLE {quote_ident(self.table)} ADD COLUMN {self.column.to_sql()}"


@dataclass(frozen=True)
class DropColumn:
    """ALTER TABLE ... DROP COLUMN."""

    table: str
    column: str

    def to_sql(self) -> str:
        return f"ALTER TABLE {quote_ident(self.table)} DROP COLUMN {quote_ident(self.column)}"


@dataclass(frozen=True)
class CreateIndex:
    """CREATE INDEX over one or more columns."""

    name: str
    table: str
    columns: Union[str, Sequence[str]]
    unique: bool = False
    if_not_exists: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", _names(self.columns))
        if not self.columns:
            raise ValueError(f"index {self.name!r} has no columns")

    def to_sql(self) -> str:
        head = "CREATE UNIQUE INDEX" if self.unique else "CREATE INDEX"
        if self.if_not_exists:
            head += " IF NOT EXISTS"
        return (
            f"{head} {quote_ident(self.name)} ON {quote_ident(self.table)}"
            f" ({_ident_list(self.columns)})"
        )


@dataclass(frozen=True)
class DropIndex:
    """DROP INDEX."""

    name: str
    if_exists: bool = False

    def to_sql(self) -> str:
        head = "DROP INDEX IF EXISTS" if self.if_exists else "DROP INDEX"
        return f"{head} {quote_ident(self.name)}"