"""Migrations for conversations, their members, messages, deliveries and push tokens."""

from __future__ import annotations

from chatschema.migrator import Migration, SchemaManager
from chatschema.schema import (
    Column,
    ColumnType,
    CreateTable,
    DropTable,
    ForeignKey,
    ForeignKeyAction,
    SqlExpr,
    between,
)

_NOW = SqlExpr.CURRENT_TIMESTAMP


class CreateConversations(Migration):
    """Create the ``conversations`` table; ``conv_type`` is 1 or 2."""

    name = "m20251201000005_create_conversations"
    table = CreateTable(
        "conversations",
        columns=[
            Column(
                "conv_id",
                ColumnType.UUID,
                not_null=True,
                primary_key=True,
                extra="DEFAULT gen_random_uuid()",
            ),
            Column("conv_type", ColumnType.SMALL_INTEGER, not_null=True),
            Column("name", ColumnType.TEXT),
            Column("avatar", ColumnType.TEXT),
            Column("created_at", ColumnType.TIMESTAMP_TZ, default=_NOW),
            Column("creator_id", ColumnType.UUID),
            Column("metadata", ColumnType.JSON_BINARY),
        ],
        foreign_keys=[
            ForeignKey(
                "fk_conversations_creator_id",
                "conversations",
                "creator_id",
                "users",
                "user_id",
            ),
        ],
        checks=[between("conv_type", 1, 2)],
        if_not_exists=True,
    )

    def up(self, manager: SchemaManager) -> None:
        manager.execute(self.table)

    def down(self, manager: SchemaManager) -> None:
        manager.execute(DropTable(self.table.name))


class CreateConvMembers(Migration):
    """Create the ``conv_members`` table, keyed by conversation and user."""

    name = "m20251201000006_create_conv_members"
    table = CreateTable(
        "conv_members",
        columns=[
            Column("conv_id", ColumnType.UUID, not_null=True),
            Column("user_id", ColumnType.UUID, not_null=True),
            Column("role", ColumnType.SMALL_INTEGER, default=0),
            Column("joined_at", ColumnType.TIMESTAMP_TZ, default=_NOW),
            Column("left_at", ColumnType.TIMESTAMP_TZ),
        ],
        primary_key=("conv_id", "user_id"),
        foreign_keys=[
            ForeignKey(
                "fk_conv_members_conv_id",
                "conv_members",
                "conv_id",
                "conversations",
                "conv_id",
                on_delete=ForeignKeyAction.CASCADE,
            ),
            ForeignKey(
                "fk_conv_members_user_id",
                "conv_members",
                "user_id",
                "users",
                "user_id",
                on_delete=ForeignKeyAction.CASCADE,
            ),
        ],
        if_not_exists=True,
    )

    def up(self, manager: SchemaManager) -> None:
        manager.execute(self.table)

    def down(self, manager: SchemaManager) -> None:
        manager.execute(DropTable(self.table.name))


class CreateMessages(Migration):
    """Create the ``messages`` table, with replies referring to other messages."""

    name = "m20251201000007_create_messages"
    table = CreateTable(
        "messages",
        columns=[
            Column(
                "message_id",
                ColumnType.BIG_INTEGER,
                not_null=True,
                auto_increment=True,
                primary_key=True,
            ),
            Column("conv_id", ColumnType.UUID, not_null=True),
            Column("sender_user_id", ColumnType.UUID, not_null=True),
            Column("sender_device_id", ColumnType.BIG_INTEGER, not_null=True),
            Column("message_type", ColumnType.SMALL_INTEGER, not_null=True),
            Column("content", ColumnType.TEXT, not_null=True),
            Column("iv", ColumnType.BINARY, not_null=True),
            Column("attachment_url", ColumnType.TEXT),
            Column("thumbnail_url", ColumnType.TEXT),
            Column("sender_key_distribution", ColumnType.BINARY),
            Column("reply_to_message_id", ColumnType.BIG_INTEGER),
            Column("sent_at", ColumnType.TIMESTAMP_TZ, default=_NOW),
            Column("edited_at", ColumnType.TIMESTAMP_TZ),
            Column("deleted_at", ColumnType.TIMESTAMP_TZ),
            Column("expires_at", ColumnType.TIMESTAMP_TZ),
            Column("extra", ColumnType.JSON_BINARY),
        ],
        foreign_keys=[
            ForeignKey(
                "fk_messages_conv_id",
                "messages",
                "conv_id",
                "conversations",
                "conv_id",
            ),
            ForeignKey(
                "fk_messages_sender_user_id",
                "messages",
                "sender_user_id",
                "users",
                "user_id",
            ),
            ForeignKey(
                "fk_messages_reply_to_message_id",
                "messages",
                "reply_to_message_id",
                "messages",
                "message_id",
            ),
        ],
        if_not_exists=True,
    )

    def up(self, manager: SchemaManager) -> None:
        manager.execute(self.table)

    def down(self, manager: SchemaManager) -> None:
        manager.execute(DropTable(self.table.name))


class CreateMessageDeliveries(Migration):
    """Create the ``message_deliveries`` table, keyed by message and device."""

    name = "m20251201000008_create_message_deliveries"
    table = CreateTable(
        "message_deliveries",
        columns=[
            Column("message_id", ColumnType.BIG_INTEGER, not_null=True),
            Column("device_id", ColumnType.BIG_INTEGER, not_null=True),
            Column("delivered_at", ColumnType.TIMESTAMP_TZ),
            Column("read_at", ColumnType.TIMESTAMP_TZ),
        ],
        primary_key=("message_id", "device_id"),
        foreign_keys=[
            ForeignKey(
                "fk_message_deliveries_message_id",
                "message_deliveries",
                "message_id",
                "messages",
                "message_id",
                on_delete=ForeignKeyAction.CASCADE,
            ),
            ForeignKey(
                "fk_message_deliveries_device_id",
                "message_deliveries",
                "device_id",
                "devices",
                "device_id",
                on_delete=ForeignKeyAction.CASCADE,
            ),
        ],
        if_not_exists=True,
    )

    def up(self, manager: SchemaManager) -> None:
        manager.execute(self.table)

    def down(self, manager: SchemaManager) -> None:
        manager.execute(DropTable(self.table.name))


class CreatePushTokens(Migration):
    """Create the ``push_tokens`` table, keyed by user and device."""

    name = "m20251201000009_create_push_tokens"
    table = CreateTable(
        "push_tokens",
        columns=[
            Column("user_id", ColumnType.UUID, not_null=True),
            Column("device_id", ColumnType.BIG_INTEGER, not_null=True),
            Column("platform", ColumnType.SMALL_INTEGER, not_null=True),
            Column("token", ColumnType.TEXT, not_null=True),
            Column("updated_at", ColumnType.TIMESTAMP_TZ, default=_NOW),
        ],
        primary_key=("user_id", "device_id"),
        foreign_keys=[
            ForeignKey(
                "fk_push_tokens_user_id",
                "push_tokens",
                "user_id",
                "users",
                "user_id",
            ),
            ForeignKey(
                "fk_push_tokens_device_id",
                "push_tokens",
                "device_id",
                "devices",
                "device_id",
            ),
        ],
        if_not_exists=True,
    )

    def up(self, manager: SchemaManager) -> None:
        manager.execute(self.table)

    def down(self, manager: SchemaManager) -> None:
        manager.execute(DropTable(self.table.name))