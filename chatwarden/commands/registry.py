"""Admin command registry.

Each entry pairs a command id with the button label shown when it is
proposed, a description fed to the model so it knows when the command
applies, and an executor. Executors read their targets from the
*original* user message (the one the bot replied to), never from the
button click itself, and return a CommandResult instead of raising for
expected failures (missing mention, role hierarchy, etc).
"""

import sys
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional

import discord

from chatwarden.commands.ids import CommandId, ParamShape, param_shape
from chatwarden.commands.targets import (
    channel_name_candidates,
    find_role_by_name,
    find_voice_channel_by_name,
    ordered_unique,
)
from chatwarden.config import ROLE_NAME_MAX, TIMEOUT_MINUTES
from chatwarden.domain.models import CommandParams, CommandResult


def _log(msg: str):
    print(msg, file=sys.stderr)


@dataclass
class ActorContext:
    """Who clicked, and where."""

    actor: Any  # discord.Member | discord.User
    guild: Any  # discord.Guild
    channel: Any  # channel the button lives in

    @property
    def bot_id(self) -> Optional[int]:
        me = getattr(self.guild, "me", None)
        return me.id if me else None

    def reason(self, verb: str) -> str:
        return f"{verb} by {self.actor} via bot"


Executor = Callable[[ActorContext, Optional[discord.Message], CommandParams], Awaitable[CommandResult]]


@dataclass(frozen=True)
class AdminCommand:
    id: CommandId
    confirm_label: str
    description: str
    execute: Executor

    @property
    def params(self) -> ParamShape:
        return param_shape(self.id)


# ---------------------------------------------------------------------------
# Target resolution against the guild
# ---------------------------------------------------------------------------

def mentioned_users(ctx: ActorContext, message: Optional[discord.Message]) -> List[Any]:
    """Users mentioned in the message, in text order, without the bot itself."""
    if message is None:
        return []
    by_id = {u.id: u for u in message.mentions}
    out = []
    for user_id in ordered_unique(message.raw_mentions, exclude=ctx.bot_id):
        user = ctx.guild.get_member(user_id) or by_id.get(user_id)
        out.append(user if user is not None else discord.Object(id=user_id))
    return out


def mentioned_members(ctx: ActorContext, message: Optional[discord.Message]) -> List[discord.Member]:
    if message is None:
        return []
    members = []
    for user_id in ordered_unique(message.raw_mentions, exclude=ctx.bot_id):
        member = ctx.guild.get_member(user_id)
        if member is not None:
            members.append(member)
    return members


def first_mentioned_member(ctx: ActorContext, message: Optional[discord.Message]) -> Optional[discord.Member]:
    members = mentioned_members(ctx, message)
    return members[0] if members else None


def resolve_role(ctx: ActorContext, message: Optional[discord.Message], role_name: Optional[str]):
    """First role mention in the message, else a lookup by ``role_name``."""
    if message is not None:
        for role_id in message.raw_role_mentions:
            role = ctx.guild.get_role(role_id)
            if role is not None:
                return role
    return find_role_by_name(ctx.guild.roles, role_name)


def _is_voice(channel) -> bool:
    return isinstance(channel, (discord.VoiceChannel, discord.StageChannel))


def _voice_channels(guild) -> List[Any]:
    return list(guild.voice_channels) + list(guild.stage_channels)


def mentioned_voice_channels(ctx: ActorContext, message: Optional[discord.Message]) -> List[Any]:
    if message is None:
        return []
    channels = []
    for channel_id in ordered_unique(message.raw_channel_mentions):
        channel = ctx.guild.get_channel(channel_id)
        if _is_voice(channel):
            channels.append(channel)
    return channels


def voice_channel_from_text(ctx: ActorContext, message: Optional[discord.Message], *keywords: str):
    if message is None or not message.content:
        return None
    channels = _voice_channels(ctx.guild)
    for name in channel_name_candidates(message.content, keywords):
        channel = find_voice_channel_by_name(channels, name)
        if channel is not None:
            return channel
    return None


def _outranks(ctx: ActorContext, member: discord.Member) -> bool:
    """Whether the bot sits above ``member`` in the role hierarchy."""
    me = ctx.guild.me
    if member.id == ctx.guild.owner_id:
        return False
    return me.top_role > member.top_role


def _can(ctx: ActorContext, permission: str, member: discord.Member) -> bool:
    return bool(getattr(ctx.guild.me.guild_permissions, permission, False)) and _outranks(ctx, member)


def _clean_name(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return value.strip()[:ROLE_NAME_MAX] or None


# ---------------------------------------------------------------------------
# Executors
# ---------------------------------------------------------------------------

async def _clear_messages(ctx, original, params):
    channel = ctx.channel
    if not callable(getattr(channel, "purge", None)):
        return CommandResult.fail("Can't clear messages in this channel.")
    # Bulk delete rejects messages older than 14 days.
    cutoff = discord.utils.utcnow() - timedelta(days=14)
    try:
        deleted = await channel.purge(
            limit=100,
            after=cutoff,
            oldest_first=False,
            bulk=True,
            reason=ctx.reason("Cleared"),
        )
    except discord.Forbidden:
        return CommandResult.fail("I don't have permission to delete messages here.")
    return CommandResult(f"Cleared {len(deleted)} message(s).")


async def _kick_user(ctx, original, params):
    member = first_mentioned_member(ctx, original)
    if member is None:
        return CommandResult.fail("Mention a user to kick (e.g. kick @user).")
    if not _can(ctx, "kick_members", member):
        return CommandResult.fail("I can't kick that user (role hierarchy or permissions).")
    try:
        await member.kick(reason=ctx.reason("Kicked"))
    except discord.Forbidden:
        return CommandResult.fail("I can't kick that user (role hierarchy or permissions).")
    return CommandResult(f"Kicked {member.name}.")


async def _ban_user(ctx, original, params):
    users = mentioned_users(ctx, original)
    if not users:
        return CommandResult.fail("Mention a user to ban (e.g. ban @user).")
    target = users[0]
    if isinstance(target, discord.Member) and not _can(ctx, "ban_members", target):
        return CommandResult.fail("I can't ban that user (role hierarchy or permissions).")
    try:
        await ctx.guild.ban(target, reason=ctx.reason("Banned"))
    except discord.Forbidden:
        return CommandResult.fail("I can't ban that user (role hierarchy or permissions).")
    return CommandResult(f"Banned {getattr(target, 'name', target.id)}.")


async def _mute_user(ctx, original, params):
    member = first_mentioned_member(ctx, original)
    if member is None:
        return CommandResult.fail("Mention a user to mute/timeout (e.g. mute @user).")
    if not _can(ctx, "moderate_members", member):
        return CommandResult.fail("I can't timeout that user (role hierarchy or permissions).")
    try:
        await member.timeout(timedelta(minutes=TIMEOUT_MINUTES), reason=ctx.reason("Timeout"))
    except discord.Forbidden:
        return CommandResult.fail("I can't timeout that user (role hierarchy or permissions).")
    return CommandResult(f"Timed out {member.name} for {TIMEOUT_MINUTES} minutes.")


async def _create_role(ctx, original, params):
    name = _clean_name(params.role_name)
    if not name:
        return CommandResult.fail(
            "No role name was provided. Try again and say e.g. 'create role called Moderator'."
        )
    try:
        role = await ctx.guild.create_role(name=name, reason=ctx.reason("Created"))
    except discord.Forbidden:
        return CommandResult.fail("I don't have permission to create roles.")
    return CommandResult(f"Created role **{role.name}**.")


async def _delete_role(ctx, original, params):
    role = resolve_role(ctx, original, params.role_name)
    if role is None:
        return CommandResult.fail(
            "Mention a role (@Role) or give the role name (e.g. delete role Moderator)."
        )
    if role.managed:
        return CommandResult.fail("Can't delete that role (it's managed by an integration).")
    name = role.name
    try:
        await role.delete(reason=ctx.reason("Deleted"))
    except discord.Forbidden:
        return CommandResult.fail("I can't delete that role (role hierarchy or permissions).")
    return CommandResult(f"Deleted role **{name}**.")


async def _rename_role(ctx, original, params):
    role = resolve_role(ctx, original, params.role_name)
    new_name = _clean_name(params.new_role_name)
    if role is None:
        return CommandResult.fail("Mention the role or give its name (e.g. rename Moderator to Helper).")
    if not new_name:
        return CommandResult.fail("No new name provided. Say e.g. 'rename Moderator to Helper'.")
    if role.managed:
        return CommandResult.fail("Can't rename that role (it's managed by an integration).")
    old_name = role.name
    try:
        await role.edit(name=new_name, reason=ctx.reason("Renamed"))
    except discord.Forbidden:
        return CommandResult.fail("I can't rename that role (role hierarchy or permissions).")
    return CommandResult(f"Renamed **{old_name}** to **{new_name}**.")


async def _add_to_role(ctx, original, params):
    role = resolve_role(ctx, original, params.role_name)
    members = mentioned_members(ctx, original)
    if role is None:
        return CommandResult.fail("Mention the role (@Role) or give its name (e.g. add @user to Moderator).")
    if not members:
        return CommandResult.fail("Mention at least one user (e.g. add @user to Moderator).")
    added = 0
    for member in members:
        if role in member.roles:
            continue
        try:
            await member.add_roles(role, reason=ctx.reason("Added"))
            added += 1
        except discord.HTTPException as e:
            _log(f"[admin] addToRole skipped {member.id}: {e}")
    return CommandResult(f"Added {added} user(s) to **{role.name}**.")


async def _remove_from_role(ctx, original, params):
    role = resolve_role(ctx, original, params.role_name)
    members = mentioned_members(ctx, original)
    if role is None:
        return CommandResult.fail("Mention the role (@Role) or give its name (e.g. remove @user from Moderator).")
    if not members:
        return CommandResult.fail("Mention at least one user (e.g. remove @user from Moderator).")
    removed = 0
    for member in members:
        if role not in member.roles:
            continue
        try:
            await member.remove_roles(role, reason=ctx.reason("Removed"))
            removed += 1
        except discord.HTTPException as e:
            _log(f"[admin] removeFromRole skipped {member.id}: {e}")
    return CommandResult(f"Removed {removed} user(s) from **{role.name}**.")


async def _disconnect_user(ctx, original, params):
    member = first_mentioned_member(ctx, original)
    if member is None:
        return CommandResult.fail("Mention a user to disconnect from voice.")
    if member.voice is None or member.voice.channel is None:
        return CommandResult.fail("That user is not in a voice channel.")
    try:
        await member.move_to(None, reason=ctx.reason("Disconnected"))
    except discord.Forbidden:
        return CommandResult.fail("I can't disconnect that user (missing Move Members permission).")
    return CommandResult(f"Disconnected {member.name} from voice.")


async def _move_user(ctx, original, params):
    member = first_mentioned_member(ctx, original)
    if member is None:
        return CommandResult.fail("Mention a user to move (e.g. move @user to General).")
    mentioned = mentioned_voice_channels(ctx, original)
    target = mentioned[0] if mentioned else voice_channel_from_text(ctx, original, "to")
    if target is None:
        return CommandResult.fail("Specify a voice channel (e.g. move @user to #General).")
    if member.voice is None or member.voice.channel is None:
        return CommandResult.fail("That user is not in a voice channel.")
    try:
        await member.move_to(target, reason=ctx.reason("Moved"))
    except discord.Forbidden:
        return CommandResult.fail("I can't move that user (missing Move Members permission).")
    return CommandResult(f"Moved {member.name} to **{target.name}**.")


async def _move_all_users(ctx, original, params):
    mentioned = mentioned_voice_channels(ctx, original)
    source = mentioned[0] if len(mentioned) >= 2 else None
    target = mentioned[1] if len(mentioned) >= 2 else None
    source = source or voice_channel_from_text(ctx, original, "from", "in")
    target = target or voice_channel_from_text(ctx, original, "to")
    if source is None or target is None:
        return CommandResult.fail(
            "Specify source and target voice channels (e.g. move everyone from General to Music)."
        )
    moved = failed = 0
    for member in list(source.members):
        try:
            await member.move_to(target, reason=ctx.reason("Moved"))
            moved += 1
        except discord.HTTPException as e:
            failed += 1
            _log(f"[admin] moveAllUsers skipped {member.id}: {e}")
    text = f"Moved {moved} user(s) from **{source.name}** to **{target.name}**."
    if failed:
        text += f" ({failed} failed)"
    return CommandResult(text)


async def _disconnect_all_users(ctx, original, params):
    mentioned = mentioned_voice_channels(ctx, original)
    channel = mentioned[0] if mentioned else voice_channel_from_text(ctx, original, "in", "from")
    if channel is None:
        return CommandResult.fail("Specify a voice channel (e.g. disconnect everyone in General).")
    disconnected = 0
    for member in list(channel.members):
        try:
            await member.move_to(None, reason=ctx.reason("Disconnected"))
            disconnected += 1
        except discord.HTTPException as e:
            _log(f"[admin] disconnectAllUsers skipped {member.id}: {e}")
    return CommandResult(f"Disconnected {disconnected} user(s) from **{channel.name}**.")


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

_COMMANDS = [
    AdminCommand(
        CommandId.CLEAR_MESSAGES,
        "Confirm clear messages",
        'User explicitly asks the bot to clear or delete messages in the channel '
        '(e.g. "clear the messages", "delete the chat"). Not when they are only '
        "discussing or mentioning message history.",
        _clear_messages,
    ),
    AdminCommand(
        CommandId.KICK_USER,
        "Confirm kick",
        "User asks to kick someone from the server. They must @mention the user.",
        _kick_user,
    ),
    AdminCommand(
        CommandId.BAN_USER,
        "Confirm ban",
        "User asks to ban someone from the server. They must @mention the user.",
        _ban_user,
    ),
    AdminCommand(
        CommandId.MUTE_USER,
        "Confirm timeout",
        f"User asks to mute or timeout someone. They must @mention the user. "
        f"The timeout lasts {TIMEOUT_MINUTES} minutes.",
        _mute_user,
    ),
    AdminCommand(
        CommandId.CREATE_ROLE,
        "Confirm create role",
        'User asks to create a new role (e.g. "create role called Moderator"). '
        'You must set "roleName" to the exact name they want.',
        _create_role,
    ),
    AdminCommand(
        CommandId.DELETE_ROLE,
        "Confirm delete role",
        'User asks to delete a role. They must mention the role (@Role) or give the '
        'role name. Set "roleName" to the exact role name if they say it.',
        _delete_role,
    ),
    AdminCommand(
        CommandId.RENAME_ROLE,
        "Confirm rename role",
        "User asks to rename a role. They must mention the role or give its current "
        'name, and the new name. Set "roleName" to the current name and '
        '"newRoleName" to the new name.',
        _rename_role,
    ),
    AdminCommand(
        CommandId.ADD_TO_ROLE,
        "Confirm add to role",
        "User asks to add someone to a role (assign role). They must @mention the "
        'user(s) and mention the role (@Role) or give its name. Set "roleName" if '
        "they give the role by name.",
        _add_to_role,
    ),
    AdminCommand(
        CommandId.REMOVE_FROM_ROLE,
        "Confirm remove from role",
        "User asks to remove someone from a role. They must @mention the user(s) and "
        'mention the role (@Role) or give its name. Set "roleName" if they give the '
        "role by name.",
        _remove_from_role,
    ),
    AdminCommand(
        CommandId.DISCONNECT_USER,
        "Confirm disconnect",
        "User asks to disconnect someone from voice. They must @mention the user "
        "(who must be in a voice channel).",
        _disconnect_user,
    ),
    AdminCommand(
        CommandId.MOVE_USER,
        "Confirm move user",
        "User asks to move someone to another voice channel. They must @mention the "
        "user and name or mention the target channel (e.g. move @user to General).",
        _move_user,
    ),
    AdminCommand(
        CommandId.MOVE_ALL_USERS,
        "Confirm move everyone",
        "User asks to move all users from one voice channel to another (e.g. move "
        "everyone from General to Music). They must name or mention both channels.",
        _move_all_users,
    ),
    AdminCommand(
        CommandId.DISCONNECT_ALL_USERS,
        "Confirm disconnect everyone",
        "User asks to disconnect all users from a voice channel (e.g. disconnect "
        "everyone in General). They must name or mention the voice channel.",
        _disconnect_all_users,
    ),
]

REGISTRY: Dict[CommandId, AdminCommand] = {c.id: c for c in _COMMANDS}


def get_admin_command(command_id) -> Optional[AdminCommand]:
    """Look up a command by id (enum member or raw string)."""
    parsed = command_id if isinstance(command_id, CommandId) else CommandId.parse(command_id)
    if parsed is None:
        return None
    return REGISTRY.get(parsed)


def all_command_ids() -> List[str]:
    return [c.value for c in REGISTRY]


def prompt_description() -> str:
    """Bullet list of every command for the model's system prompt."""
    return "\n".join(f'- "{c.id.value}": {c.description}' for c in REGISTRY.values())
