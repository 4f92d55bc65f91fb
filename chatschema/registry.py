"""The ordered list of the chat service's schema migrations."""

from __future__ import annotations

from chatschema.alterations import (
    AddBackgroundImageToUsers,
    AddClientMessageIdToMessages,
    AddDeviceTypeToDevices,
    AddPinToUsers,
    AlterMessageDeliveries,
    CreateDeviceLinkingSessions,
)
from chatschema.identity import (
    CreateDevices,
    CreateOneTimePrekeys,
    CreateOtpVerifications,
    CreateSignalSessions,
    CreateUsers,
    InitialSchema,
)
from chatschema.messaging import (
    CreateConversations,
    CreateConvMembers,
    CreateMessageDeliveries,
    CreateMessages,
    CreatePushTokens,
)
from chatschema.migrator import Migration, Migrator


def migrations() -> list[Migration]:
    """Every migration, in the order it is applied."""
    return [
        InitialSchema(),
        CreateUsers(),
        CreateDevices(),
        CreateOneTimePrekeys(),
        CreateSignalSessions(),
        CreateConversations(),
        CreateConvMembers(),
        CreateMessages(),
        CreateMessageDeliveries(),
        CreatePushTokens(),
        CreateOtpVerifications(),
        AlterMessageDeliveries(),
        AddClientMessageIdToMessages(),
        AddPinToUsers(),
        AddDeviceTypeToDevices(),
        CreateDeviceLinkingSessions(),
        AddBackgroundImageToUsers(),
    ]


def default_migrator() -> Migrator:
    """A migrator over all migrations, recording them in the default table."""
    return Migrator(migrations())