from chatschema.migrator import SchemaManager
from chatschema.registry import default_migrator, migrations

EXPECTED_ORDER = [
    "m20220101_000001_create_table",
    "m20251201000001_create_users",
    "m20251201000002_create_devices",
    "m20251201000003_create_one_time_prekeys",
    "m20251201000004_create_signal_sessions",
    "m20251201000005_create_conversations",
    "m20251201000006_create_conv_members",
    "m20251201000007_create_messages",
    "m20251201000008_create_message_deliveries",
    "m20251201000009_create_push_tokens",
    "m20251202000010_create_otp_verifications",
    "m20251205_alter_message_deliveries",
    "m20251205_add_client_message_id_to_messages",
    "m20251207000001_add_pin_to_users",
    "m20251207000002_add_device_type_to_devices",
    "m20251207000003_create_device_linking_sessions",
    "m20251207000004_add_background_image_to_users",
]


def test_order_matches_declaration():
    assert [m.name for m in migrations()] == EXPECTED_ORDER


def test_names_are_unique():
    names = [m.name for m in migrations()]
    assert len(set(names)) == len(names)


def test_each_call_returns_new_list():
    first = migrations()
    second = migrations()
    assert first is not second
    first.clear()
    assert len(migrations()) == len(EXPECTED_ORDER)


def test_default_migrator_holds_all():
    migrator = default_migrator()
    assert [m.name for m in migrator.migrations] == EXPECTED_ORDER


def test_tables_created_before_they_are_referenced():
    manager = SchemaManager()
    for migration in migrations():
        migration.up(manager)
    sql = manager.statements
    users = next(i for i, s in enumerate(sql) if 'TABLE IF NOT EXISTS "users"' in s)
    devices = next(i for i, s in enumerate(sql) if 'TABLE IF NOT EXISTS "devices"' in s)
    messages = next(i for i, s in enumerate(sql) if 'TABLE IF NOT EXISTS "messages"' in s)
    alter = next(i for i, s in enumerate(sql) if 'ALTER TABLE "messages"' in s)
    assert users < devices < messages < alter


def test_full_rollback_runs_without_error_in_reverse():
    manager = SchemaManager()
    for migration in reversed(migrations()):
        migration.down(manager)
    assert manager.statements[0] == 'ALTER TABLE "users" DROP COLUMN "background_image"'
    assert manager.statements[-1] == 'DROP TABLE "users"'