"""Ordered application and rollback of recorded schema migrations."""

from __future__ import annotations

import abc
import enum
import time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Protocol, Union

import sqlalchemy as sa
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

DEFAULT_TABLE = "seaql_migrations"


class MigrationError(Exception):
    """Raised when migrations cannot be applied or rolled back."""


class _Statement(Protocol):
    def to_sql(self) -> str: ...


class SchemaManager:
    """Runs schema statements on a connection and keeps the SQL it ran.

    Without a connection the statements are only recorded.
    """

    def __init__(self, connection: Connection | None = None) -> None:
        self.connection = connection
        self.statements: list[str] = []

    def execute(self, statement: Union[_Statement, str]) -> None:
        sql = statement if isinstance(statement, str) else statement.to_sql()
        self.statements.append(sql)
        if self.connection is not None:
            self.connection.exec_driver_sql(sql)


class Migration(abc.ABC):
    """One schema change, identified by its unique ``name``."""

    name: str = ""

    @abc.abstractmethod
    def up(self, manager: SchemaManager) -> None:
        """Apply the change."""

    def down(self, manager: SchemaManager) -> None:
        raise MigrationError(f"migration {self.name!r} cannot be rolled back")


class MigrationStatus(enum.Enum):
    PENDING = "pending"
    APPLIED = "applied"


def _check_steps(steps: int | None) -> None:
    if steps is not None and steps < 0:
        raise ValueError("steps must not be negative")


class Migrator:
    """Applies an ordered list of migrations and records them in a table."""

    def __init__(self, migrations: Iterable[Migration], table_name: str = DEFAULT_TABLE) -> None:
        self.migrations = tuple(migrations)
        self._by_name: dict[str, Migration] = {}
        for migration in self.migrations:
            if not migration.name:
                raise MigrationError(f"{type(migration).__name__} has no name")
            if migration.name in self._by_name:
                raise MigrationError(f"duplicate migration name {migration.name!r}")
            self._by_name[migration.name] = migration
        self._table = sa.Table(
            table_name,
            sa.MetaData(),
            sa.Column("version", sa.String, primary_key=True),
            sa.Column("applied_at", sa.BigInteger, nullable=False),
        )

    @contextmanager
    def _transaction(self, connection: Connection) -> Iterator[None]:
        if connection.in_transaction():
            transaction = connection.begin_nested()
        else:
            transaction = connection.begin()
        with transaction:
            yield

    def _applied(self, connection: Connection) -> list[str]:
        if not sa.inspect(connection).has_table(self._table.name):
            return []
        query = sa.select(self._table.c.version).order_by(self._table.c.version)
        return list(connection.execute(query).scalars())

    def _known_applied(self, connection: Connection) -> set[str]:
        applied = self._applied(connection)
        for version in applied:
            if version not in self._by_name:
                raise MigrationError(f"applied migration {version!r} is not known")
        return set(applied)

    def _pending(self, connection: Connection) -> list[Migration]:
        done = self._known_applied(connection)
        return [m for m in self.migrations if m.name not in done]

    def applied(self, connection: Connection) -> list[str]:
        """Names of the recorded migrations, ordered by name."""
        with self._transaction(connection):
            return self._applied(connection)

    def pending(self, connection: Connection) -> list[Migration]:
        """Migrations not yet applied, in declaration order."""
        with self._transaction(connection):
            return self._pending(connection)

    def status(self, connection: Connection) -> list[tuple[str, MigrationStatus]]:
        """Every migration with whether it has been applied."""
        with self._transaction(connection):
            done = self._known_applied(connection)
        return [
            (m.name, MigrationStatus.APPLIED if m.name in done else MigrationStatus.PENDING)
            for m in self.migrations
        ]

    @staticmethod
    def _run(action, migration: Migration, manager: SchemaManager) -> None:
        try:
            action(manager)
        except SQLAlchemyError as exc:
            raise MigrationError(f"migration {migration.name!r} failed: {exc}") from exc

    def up(self, connection: Connection, steps: int | None = None) -> list[str]:
        """Apply pending migrations, all of them or the first ``steps``."""
        _check_steps(steps)
        with self._transaction(connection):
            self._table.create(connection, checkfirst=True)
            todo = self._pending(connection)
            if steps is not None:
                todo = todo[:steps]
            manager = SchemaManager(connection)
            for migration in todo:
                self._run(migration.up, migration, manager)
                connection.execute(
                    sa.insert(self._table).values(
                        version=migration.name, applied_at=int(time.time())
                    )
                )
        return [m.name for m in todo]

    def down(self, connection: Connection, steps: int | None = None) -> list[str]:
        """Roll back applied migrations, newest first: all or the last ``steps``."""
        _check_steps(steps)
        with self._transaction(connection):
            done = self._known_applied(connection)
            todo = [m for m in reversed(self.migrations) if m.name in done]
            if steps is not None:
                todo = todo[:steps]
            manager = SchemaManager(connection)
            for migration in todo:
                self._run(migration.down, migration, manager)
                connection.execute(
                    sa.delete(self._table).where(self._table.c.version == migration.name)
                )
        return [m.name for m in todo]

    def reset(self, connection: Connection) -> list[str]:
        """Roll back every applied migration."""
        return self.down(connection)

    def refresh(self, connection: Connection) -> list[str]:
        """Roll back everything, then apply everything again."""
        self.reset(connection)
        return self.up(connection)