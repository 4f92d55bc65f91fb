"""Command line tool that applies, rolls back and reports migrations."""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Sequence

import sqlalchemy as sa

from chatschema.migrator import MigrationError, Migrator
from chatschema.registry import default_migrator


def _steps(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError("must not be negative")
    return value


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chatschema", description="Manage the database schema.")
    parser.add_argument(
        "-u",
        "--database-url",
        default=os.environ.get("DATABASE_URL"),
        help="database URL (defaults to $DATABASE_URL)",
    )
    commands = parser.add_subparsers(dest="command")
    up = commands.add_parser("up", help="apply pending migrations")
    up.add_argument("-n", "--num", type=_steps, default=None, help="number to apply")
    down = commands.add_parser("down", help="roll back applied migrations")
    down.add_argument("-n", "--num", type=_steps, default=1, help="number to roll back")
    commands.add_parser("status", help="show which migrations are applied")
    commands.add_parser("reset", help="roll back every applied migration")
    commands.add_parser("refresh", help="roll back everything and apply it again")
    commands.add_parser("fresh", help="drop all tables and apply every migration")
    return parser


def _report(verb: str, names: list[str], nothing: str) -> None:
    if not names:
        print(nothing)
    for name in names:
        print(f"{verb} migration '{name}'")


def _drop_all_tables(connection: sa.engine.Connection) -> None:
    with connection.begin():
        metadata = sa.MetaData()
        metadata.reflect(connection)
        metadata.drop_all(connection)


def _run(command: str, args: argparse.Namespace, migrator: Migrator, connection) -> None:
    if command == "status":
        for name, status in migrator.status(connection):
            print(f"Migration '{name}'... {status.value.capitalize()}")
    elif command == "up":
        _report("Applied", migrator.up(connection, args.num), "No pending migrations")
    elif command == "down":
        _report("Rolled back", migrator.down(connection, args.num), "No applied migrations")
    elif command == "reset":
        _report("Rolled back", migrator.reset(connection), "No applied migrations")
    elif command == "refresh":
        _report("Applied", migrator.refresh(connection), "No pending migrations")
    elif command == "fresh":
        _drop_all_tables(connection)
        _report("Applied", migrator.up(connection), "No pending migrations")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the migration command line; returns the exit status."""
    parser = _parser()
    args = parser.parse_args(argv)
    if not args.database_url:
        parser.error("no database URL: pass --database-url or set DATABASE_URL")
    command = args.command or "up"
    if args.command is None:
        args.num = None
    migrator = default_migrator()
    engine = sa.create_engine(args.database_url)
    try:
        with engine.connect() as connection:
            _run(command, args, migrator, connection)
    except (MigrationError, sa.exc.SQLAlchemyError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())