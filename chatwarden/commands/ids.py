"""Closed set of admin command identifiers and their parameter shapes."""

from enum import Enum
from typing import Optional


class CommandId(str, Enum):
    CLEAR_MESSAGES = "clearMessages"
    KICK_USER = "kickUser"
    BAN_USER = "banUser"
    MUTE_USER = "muteUser"
    CREATE_ROLE = "createRole"
    DELETE_ROLE = "deleteRole"
    RENAME_ROLE = "renameRole"
    ADD_TO_ROLE = "addToRole"
    REMOVE_FROM_ROLE = "removeFromRole"
    DISCONNECT_USER = "disconnectUser"
    MOVE_USER = "moveUser"
    MOVE_ALL_USERS = "moveAllUsers"
    DISCONNECT_ALL_USERS = "disconnectAllUsers"

    @classmethod
    def parse(cls, value) -> Optional["CommandId"]:
        """Return the matching id, or None for anything not in the catalog."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class ParamShape(str, Enum):
    """What a command's confirmation token carries besides its id."""

    NONE = "none"
    ROLE_NAME = "role_name"  # one name
    RENAME = "rename"  # current name + new name


ROLE_NAME_COMMANDS = frozenset({
    CommandId.CREATE_ROLE,
    CommandId.DELETE_ROLE,
    CommandId.ADD_TO_ROLE,
    CommandId.REMOVE_FROM_ROLE,
})


def param_shape(command_id: CommandId) -> ParamShape:
    if command_id == CommandId.RENAME_ROLE:
        return ParamShape.RENAME
    if command_id in ROLE_NAME_COMMANDS:
        return ParamShape.ROLE_NAME
    return ParamShape.NONE
