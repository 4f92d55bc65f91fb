"""Migrations for users, their devices, key material and phone verification."""

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
)

_NOW = SqlExpr.CURRENT_TIMESTAMP


class InitialSchema(Migration):
    """Placeholder first migration; it changes nothing either way."""

    name = "m20220101_000001_create_table"

    def up(self, manager: SchemaManager) -> None:
        return None

    def down(self, manager: SchemaManager) -> None:
        return None


class CreateUsers(Migration):
    """Create the ``users`` table."""

    name = "m20251201000001_create_users"
    table = CreateTable(
        "users",
        columns=[
            Column(
                "user_id",
                ColumnType.UUID,
                not_null=True,
                primary_key=True,
                extra="DEFAULT gen_random_uuid()",
            ),
            Column("phone_number", ColumnType.STRING, length=20, not_null=True, unique=True),
            Column("phone_number_hash", ColumnType.BINARY, not_null=True, unique=True),
            Column("username", ColumnType.STRING, length=50, unique=True),
            Column("display_name", ColumnType.TEXT),
            Column("bio", ColumnType.TEXT),
            Column("profile_picture", ColumnType.TEXT),
            Column("last_seen_at", ColumnType.TIMESTAMP_TZ),
            Column("is_online", ColumnType.BOOLEAN, default=False),
            Column("is_deleted", ColumnType.BOOLEAN, default=False),
            Column("deleted_at", ColumnType.TIMESTAMP_TZ),
            Column("created_at", ColumnType.TIMESTAMP_TZ, default=_NOW),
            Column("updated_at", ColumnType.TIMESTAMP_TZ, default=_NOW),
        ],
        if_not_exists=True,
    )

    def up(self, manager: SchemaManager) -> None:
        manager.execute(self.table)

    def down(self, manager: SchemaManager) -> None:
        manager.execute(DropTable(self.table.name))


class CreateDevices(Migration):
    """Create the ``devices`` table, owned by a user."""

    name = "m20251201000002_create_devices"
    table = CreateTable(
        "devices",
        columns=[
            Column(
                "device_id",
                ColumnType.BIG_INTEGER,
                not_null=True,
                auto_increment=True,
                primary_key=True,
            ),
            Column("user_id", ColumnType.UUID, not_null=True),
            Column("device_uuid", ColumnType.UUID, not_null=True, unique=True),
            Column("device_name", ColumnType.TEXT),
            Column("platform", ColumnType.SMALL_INTEGER, not_null=True),
            Column("identity_key_public", ColumnType.BINARY, not_null=True),
            Column("registration_id", ColumnType.INTEGER, not_null=True),
            Column("signed_prekey_id", ColumnType.INTEGER, not_null=True),
            Column("signed_prekey_public", ColumnType.BINARY, not_null=True),
            Column("signed_prekey_signature", ColumnType.BINARY, not_null=True),
            Column("last_seen_at", ColumnType.TIMESTAMP_TZ, default=_NOW),
            Column("created_at", ColumnType.TIMESTAMP_TZ, default=_NOW),
        ],
        foreign_keys=[
            ForeignKey(
                "fk_devices_user_id",
                "devices",
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


class CreateOneTimePrekeys(Migration):
    """Create the ``one_time_prekeys`` table, keyed by device and prekey id."""

    name = "m20251201000003_create_one_time_prekeys"
    table = CreateTable(
        "one_time_prekeys",
        columns=[
            Column("device_id", ColumnType.BIG_INTEGER, not_null=True),
            Column("prekey_id", ColumnType.INTEGER, not_null=True),
            Column("public_key", ColumnType.BINARY, not_null=True),
        ],
        primary_key=("device_id", "prekey_id"),
        foreign_keys=[
            ForeignKey(
                "fk_one_time_prekeys_device_id",
                "one_time_prekeys",
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


class CreateSignalSessions(Migration):
    """Create the ``signal_sessions`` table, keyed by device and address."""

    name = "m20251201000004_create_signal_sessions"
    table = CreateTable(
        "signal_sessions",
        columns=[
            Column("device_id", ColumnType.BIG_INTEGER, not_null=True),
            Column("address", ColumnType.TEXT, not_null=True),
            Column("session_record", ColumnType.BINARY, not_null=True),
            Column("updated_at", ColumnType.TIMESTAMP_TZ, default=_NOW),
        ],
        primary_key=("device_id", "address"),
        foreign_keys=[
            ForeignKey(
                "fk_signal_sessions_device_id",
                "signal_sessions",
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


class CreateOtpVerifications(Migration):
    """Create the ``otp_verifications`` table, keyed by phone number."""

    name = "m20251202000010_create_otp_verifications"
    table = CreateTable(
        "otp_verifications",
        columns=[
            Column("phone_number", ColumnType.STRING, not_null=True, primary_key=True),
            Column("otp_code", ColumnType.STRING, not_null=True),
            Column("expires_at", ColumnType.TIMESTAMP_TZ, not_null=True),
            Column("attempt_count", ColumnType.INTEGER, default=0),
            Column("created_at", ColumnType.TIMESTAMP_TZ, default=_NOW),
        ],
        if_not_exists=True,
    )

    def up(self, manager: SchemaManager) -> None:
        manager.execute(self.table)

    def down(self, manager: SchemaManager) -> None:
        manager.execute(DropTable(self.table.name))