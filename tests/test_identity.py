import pytest
import sqlalchemy as sa

from chatschema.identity import (
    CreateDevices,
    CreateOneTimePrekeys,
    CreateOtpVerifications,
    CreateSignalSessions,
    CreateUsers,
    InitialSchema,
)
from chatschema.migrator import Migrator, SchemaManager
from chatschema.schema import ColumnType, DropTable, ForeignKeyAction, SqlExpr, quote_ident

CREATE_MIGRATIONS = [
    CreateUsers,
    CreateDevices,
    CreateOneTimePrekeys,
    CreateSignalSessions,
    CreateOtpVerifications,
]


def _columns(migration_class):
    return {column.name: column for column in migration_class().table.columns}


def _statements(migration_class):
    manager = SchemaManager()
    migration_class().up(manager)
    return manager.statements


def test_migration_names():
    migrator = Migrator([cls() for cls in [InitialSchema, *CREATE_MIGRATIONS]])
    engine = sa.create_engine("sqlite://")
    with engine.connect() as connection:
        pending = migrator.pending(connection)
    assert [migration.name for migration in pending] == [
        "m20220101_000001_create_table",
        "m20251201000001_create_users",
        "m20251201000002_create_devices",
        "m20251201000003_create_one_time_prekeys",
        "m20251201000004_create_signal_sessions",
        "m20251202000010_create_otp_verifications",
    ]


def test_initial_schema_is_a_no_op():
    manager = SchemaManager()
    InitialSchema().up(manager)
    InitialSchema().down(manager)
    assert manager.statements == []


@pytest.mark.parametrize("migration_class", CREATE_MIGRATIONS)
def test_up_creates_table(migration_class):
    statements = _statements(migration_class)
    assert statements == [migration_class.table.to_sql()]
    assert statements[0].startswith("CREATE TABLE IF NOT EXISTS")


@pytest.mark.parametrize("migration_class", CREATE_MIGRATIONS)
def test_down_drops_table(migration_class):
    manager = SchemaManager()
    migration_class().down(manager)
    assert manager.statements == [DropTable(migration_class.table.name).to_sql()]


@pytest.mark.parametrize(
    "migration_class, table_name",
    [
        (CreateUsers, "users"),
        (CreateDevices, "devices"),
        (CreateOneTimePrekeys, "one_time_prekeys"),
        (CreateSignalSessions, "signal_sessions"),
        (CreateOtpVerifications, "otp_verifications"),
    ],
)
def test_table_names(migration_class, table_name):
    (sql,) = _statements(migration_class)
    assert migration_class.table.name == table_name
    assert quote_ident(table_name) in sql


def test_users_columns():
    columns = _columns(CreateUsers)
    assert list(columns) == [
        "user_id",
        "phone_number",
        "phone_number_hash",
        "username",
        "display_name",
        "bio",
        "profile_picture",
        "last_seen_at",
        "is_online",
        "is_deleted",
        "deleted_at",
        "created_at",
        "updated_at",
    ]
    assert columns["user_id"].primary_key and columns["user_id"].type is ColumnType.UUID
    assert columns["user_id"].extra == "DEFAULT gen_random_uuid()"
    assert columns["phone_number"].length == 20
    assert columns["phone_number"].unique and columns["phone_number"].not_null
    assert columns["username"].length == 50 and not columns["username"].not_null
    assert columns["is_online"].default is False
    assert columns["created_at"].default == SqlExpr.CURRENT_TIMESTAMP
    assert columns["user_id"].to_sql().endswith("DEFAULT gen_random_uuid()")


def test_users_sql_contains_defaults():
    sql = CreateUsers.table.to_sql()
    assert "gen_random_uuid()" in sql
    assert "CURRENT_TIMESTAMP" in sql
    assert sql.index('"user_id"') < sql.index('"phone_number"') < sql.index('"updated_at"')


def test_devices_columns_and_key():
    columns = _columns(CreateDevices)
    device_id = columns["device_id"]
    assert device_id.auto_increment and device_id.primary_key
    assert device_id.type is ColumnType.BIG_INTEGER
    assert "bigserial" in CreateDevices.table.to_sql()
    assert columns["device_uuid"].unique
    assert columns["platform"].type is ColumnType.SMALL_INTEGER
    assert columns["signed_prekey_signature"].type is ColumnType.BINARY
    (fk,) = CreateDevices.table.foreign_keys
    assert fk.name == "fk_devices_user_id"
    assert (fk.to_table, fk.to_columns) == ("users", ("user_id",))
    assert fk.on_delete is ForeignKeyAction.CASCADE


@pytest.mark.parametrize(
    "migration_class, key, fk_name",
    [
        (CreateOneTimePrekeys, ("device_id", "prekey_id"), "fk_one_time_prekeys_device_id"),
        (CreateSignalSessions, ("device_id", "address"), "fk_signal_sessions_device_id"),
    ],
)
def test_composite_keys(migration_class, key, fk_name):
    table = migration_class.table
    assert table.primary_key == key
    (fk,) = table.foreign_keys
    assert fk.name == fk_name
    assert fk.to_table == "devices"
    assert fk.on_delete is ForeignKeyAction.CASCADE
    assert f'"{fk_name}"' in table.to_sql()


def test_otp_verifications_columns():
    columns = _columns(CreateOtpVerifications)
    assert columns["phone_number"].primary_key
    assert columns["phone_number"].length is None
    assert columns["expires_at"].not_null
    assert columns["attempt_count"].default == 0
    assert CreateOtpVerifications.table.foreign_keys == ()
    (sql,) = _statements(CreateOtpVerifications)
    assert quote_ident("otp_code") in sql
    assert "NOT NULL" in columns["expires_at"].to_sql()


def test_foreign_keys_point_to_earlier_tables():
    created = set()
    for migration_class in CREATE_MIGRATIONS:
        table = migration_class().table
        for fk in table.foreign_keys:
            assert fk.to_table in created
            assert quote_ident(fk.name) in fk.to_sql(table.name)
            target = next(m for m in CREATE_MIGRATIONS if m.table.name == fk.to_table)
            target_columns = {c.name for c in target.table.columns}
            assert set(fk.to_columns) <= target_columns
        created.add(table.name)
    assert len(created) == len(CREATE_MIGRATIONS)


def test_initial_schema_with_migrator_on_sqlite():
    engine = sa.create_engine("sqlite://")
    migrator = Migrator([InitialSchema()])
    with engine.connect() as connection:
        assert migrator.up(connection) == [InitialSchema.name]
        assert migrator.applied(connection) == [InitialSchema.name]
        assert migrator.down(connection) == [InitialSchema.name]
        assert migrator.applied(connection) == []