"""Later migrations that extend existing tables and add device linking."""

from __future__ import annotations

from collections.abc import Iterable
from typing import ClassVar

from chatschema.migrator import Migration, SchemaManager
from chatschema.schema import (
    AddColumn,
    Column,
    ColumnType,
    CreateIndex,
    CreateTable,
    DropColumn,
    DropIndex,
    DropTable,
    ForeignKey,
    ForeignKeyAction,
    SqlExpr,
)

_NOW = SqlExpr.CURRENT_TIMESTAMP


def _add_columns(manager: SchemaManager, table: str, columns: Iterable[Column]) -> None:
    for column in columns:
        manager.execute(AddColumn(table, column))


def _drop_columns(manager: SchemaManager, table: str, columns: Iterable[Column]) -> None:
    for column in columns:
        manager.execute(DropColumn(table, column.name))


class AlterMessageDeliveries(Migration):
    """Give each delivery its own optional encrypted ``content``."""

    name = "m20251205_alter_message_deliveries"
    table_name: ClassVar[str] = "message_deliveries"
    columns: ClassVar[tuple[Column, ...]] = (
        Column("content", ColumnType.BINARY, nullable=True),
    )

    def up(self, manager: SchemaManager) -> None:
        _add_columns(manager, self.table_name, self.columns)

    def down(self, manager: SchemaManager) -> None:
        _drop_columns(manager, self.table_name, self.columns)


class AddClientMessageIdToMessages(Migration):
    """Add the optional ``client_message_id`` to messages."""

    name = "m20251205_add_client_message_id_to_messages"
    table_name: ClassVar[str] = "messages"
    columns: ClassVar[tuple[Column, ...]] = (
        Column("client_message_id", ColumnType.UUID, nullable=True),
    )

    def up(self, manager: SchemaManager) -> None:
        _add_columns(manager, self.table_name, self.columns)

    def down(self, manager: SchemaManager) -> None:
        _drop_columns(manager, self.table_name, self.columns)


class AddPinToUsers(Migration):
    """Add PIN and registration lock columns to users."""

    name = "m20251207000001_add_pin_to_users"
    table_name: ClassVar[str] = "users"
    columns: ClassVar[tuple[Column, ...]] = (
        Column("pin_hash", ColumnType.TEXT),
        Column("registration_lock", ColumnType.BOOLEAN, not_null=True, default=False),
        Column("registration_lock_expires_at", ColumnType.TIMESTAMP_TZ),
        Column("pin_set_at", ColumnType.TIMESTAMP_TZ),
    )

    def up(self, manager: SchemaManager) -> None:
        _add_columns(manager, self.table_name, self.columns)

    def down(self, manager: SchemaManager) -> None:
        _drop_columns(manager, self.table_name, self.columns)


class AddDeviceTypeToDevices(Migration):
    """Add device type (1 primary, 2 linked), activity and linking columns."""

    name = "m20251207000002_add_device_type_to_devices"
    table_name: ClassVar[str] = "devices"
    index_name: ClassVar[str] = "idx_devices_user_id_active"
    columns: ClassVar[tuple[Column, ...]] = (
        Column("device_type", ColumnType.SMALL_INTEGER, not_null=True, default=1),
        Column("is_active", ColumnType.BOOLEAN, not_null=True, default=True),
        Column("linked_at", ColumnType.TIMESTAMP_TZ),
        Column("linked_by_device_id", ColumnType.BIG_INTEGER),
    )

    def up(self, manager: SchemaManager) -> None:
        _add_columns(manager, self.table_name, self.columns)
        manager.execute(
            CreateIndex(self.index_name, self.table_name, ("user_id", "is_active"))
        )

    def down(self, manager: SchemaManager) -> None:
        manager.execute(DropIndex(self.index_name))
        _drop_columns(manager, self.table_name, reversed(self.columns))


class CreateDeviceLinkingSessions(Migration):
    """Create ``device_linking_sessions`` with its token and status indexes.

    Status is 1 pending, 2 approved, 3 expired or 4 rejected.
    """

    name = "m20251207000003_create_device_linking_sessions"
    table: ClassVar[CreateTable] = CreateTable(
        "device_linking_sessions",
        columns=[
            Column(
                "session_id",
                ColumnType.UUID,
                not_null=True,
                primary_key=True,
                extra="DEFAULT gen_random_uuid()",
            ),
            Column("primary_device_id", ColumnType.BIG_INTEGER, not_null=True),
            Column("qr_code_token", ColumnType.TEXT, not_null=True, unique=True),
            Column("status", ColumnType.SMALL_INTEGER, not_null=True, default=1),
            Column("new_device_uuid", ColumnType.UUID),
            Column("new_device_name", ColumnType.TEXT),
            Column("expires_at", ColumnType.TIMESTAMP_TZ, not_null=True),
            Column("created_at", ColumnType.TIMESTAMP_TZ, default=_NOW),
            Column("approved_at", ColumnType.TIMESTAMP_TZ),
        ],
        foreign_keys=[
            ForeignKey(
                "fk_linking_sessions_primary_device",
                "device_linking_sessions",
                "primary_device_id",
                "devices",
                "device_id",
                on_delete=ForeignKeyAction.CASCADE,
            ),
        ],
        if_not_exists=True,
    )
    indexes: ClassVar[tuple[CreateIndex, ...]] = (
        CreateIndex("idx_linking_sessions_token", "device_linking_sessions", "qr_code_token"),
        CreateIndex(
            "idx_linking_sessions_status_expires",
            "device_linking_sessions",
            ("status", "expires_at"),
        ),
    )

    def up(self, manager: SchemaManager) -> None:
        manager.execute(self.table)
        for index in self.indexes:
            manager.execute(index)

    def down(self, manager: SchemaManager) -> None:
        manager.execute(DropTable(self.table.name))


class AddBackgroundImageToUsers(Migration):
    """Add the optional ``background_image`` to users."""

    name = "m20251207000004_add_background_image_to_users"
    table_name: ClassVar[str] = "users"
    columns: ClassVar[tuple[Column, ...]] = (Column("background_image", ColumnType.TEXT),)

    def up(self, manager: SchemaManager) -> None:
        _add_columns(manager, self.table_name, self.columns)

    def down(self, manager: SchemaManager) -> None:
        _drop_columns(manager, self.table_name, self.columns)