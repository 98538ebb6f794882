"""Confirmation protocol for admin commands.

Admin actions proposed by the model are never run directly. The bot's
reply carries a red button whose custom id encodes the command and its
parameters; nothing is stored server-side, so the pending intent lives
exactly as long as the button does.

States: proposed -> awaiting click -> re-authorized -> executed
                                   \\-> rejected (clicker is not an admin)

Token layout (at most 100 bytes, Discord's custom_id limit)::

    admin_confirm:<commandId>[||<payload>]

``payload`` is the percent-encoded role name, or for renameRole the
current and new names joined by ``\\x01``. The payload is the part that
gets truncated when the budget runs out.
"""

import sys
from typing import Any, List, Optional, Tuple
from urllib.parse import quote, unquote

import discord

from chatwarden.commands.ids import CommandId, ParamShape, param_shape
from chatwarden.commands.registry import ActorContext, get_admin_command
from chatwarden.commands.targets import ordered_unique
from chatwarden.config import BUTTON_LABEL_MAX, CUSTOM_ID_MAX
from chatwarden.domain.models import CommandParams, CommandResult

ADMIN_CONFIRM_PREFIX = "admin_confirm:"
ADMIN_PAYLOAD_SEP = "||"
RENAME_PAYLOAD_SEP = "\x01"

NO_PERMISSION = "You don't have permission to run this."


def _log(msg: str):
    print(msg, file=sys.stderr)


# ---------------------------------------------------------------------------
# Token encoding
# ---------------------------------------------------------------------------

def _encode_within(value: str, budget: int) -> str:
    """Percent-encode the longest prefix of ``value`` that fits ``budget`` bytes."""
    out = []
    used = 0
    for ch in value:
        piece = quote(ch, safe="")
        if used + len(piece) > budget:
            break
        out.append(piece)
        used += len(piece)
    return "".join(out)


def encode_token(
    command_id: CommandId,
    role_name: Optional[str] = None,
    new_role_name: Optional[str] = None,
) -> str:
    head = f"{ADMIN_CONFIRM_PREFIX}{command_id.value}"
    budget = CUSTOM_ID_MAX - len(head.encode("utf-8")) - len(ADMIN_PAYLOAD_SEP)
    shape = param_shape(command_id)

    payload = ""
    if shape == ParamShape.ROLE_NAME and role_name:
        payload = _encode_within(role_name, budget)
    elif shape == ParamShape.RENAME and role_name and new_role_name:
        part_budget = (budget - len(RENAME_PAYLOAD_SEP)) // 2
        payload = (
            _encode_within(role_name, part_budget)
            + RENAME_PAYLOAD_SEP
            + _encode_within(new_role_name, part_budget)
        )

    if not payload:
        return head
    return f"{head}{ADMIN_PAYLOAD_SEP}{payload}"


def _decode_part(part: str) -> Optional[str]:
    if not part:
        return None
    return unquote(part, errors="strict")


def decode_token(custom_id: Optional[str]) -> Optional[Tuple[CommandId, CommandParams]]:
    """Recover ``(command id, params)`` from a button custom id.

    Returns None for ids that are not ours or name an unknown command.
    A payload that fails to decode yields empty params rather than an
    error.
    """
    if not custom_id or not custom_id.startswith(ADMIN_CONFIRM_PREFIX):
        return None
    rest = custom_id[len(ADMIN_CONFIRM_PREFIX):]
    raw_id, _, payload = rest.partition(ADMIN_PAYLOAD_SEP)
    command_id = CommandId.parse(raw_id)
    if command_id is None:
        return None

    params = CommandParams()
    if not payload:
        return command_id, params
    shape = param_shape(command_id)
    try:
        if shape == ParamShape.RENAME and RENAME_PAYLOAD_SEP in payload:
            current, _, new = payload.partition(RENAME_PAYLOAD_SEP)
            params.role_name = _decode_part(current)
            params.new_role_name = _decode_part(new)
        elif shape == ParamShape.ROLE_NAME:
            params.role_name = _decode_part(payload)
    except UnicodeDecodeError:
        _log(f"[approval] ignoring undecodable payload for {command_id.value}")
        return command_id, CommandParams()
    return command_id, params


# ---------------------------------------------------------------------------
# Button rendering
# ---------------------------------------------------------------------------

def _mentioned_names(message: Optional[discord.Message], bot_id: Optional[int]) -> str:
    if message is None:
        return ""
    by_id = {u.id: u for u in message.mentions}
    names: List[str] = []
    for user_id in ordered_unique(message.raw_mentions, exclude=bot_id):
        user = by_id.get(user_id)
        if user is not None:
            names.append(user.name)
    return ", ".join(names[:2])


def _role_display(message: Optional[discord.Message], role_name: Optional[str]) -> Optional[str]:
    if message is not None and message.role_mentions:
        return message.role_mentions[0].name
    return role_name


def specific_label(
    command_id: CommandId,
    message: Optional[discord.Message],
    bot_id: Optional[int] = None,
    role_name: Optional[str] = None,
    new_role_name: Optional[str] = None,
) -> Optional[str]:
    users = _mentioned_names(message, bot_id)
    role = _role_display(message, role_name)

    if command_id == CommandId.CLEAR_MESSAGES:
        return "Clear messages in this channel"
    if command_id == CommandId.KICK_USER:
        return f"Kick {users}" if users else None
    if command_id == CommandId.BAN_USER:
        return f"Ban {users}" if users else None
    if command_id == CommandId.MUTE_USER:
        return f"Timeout {users}" if users else None
    if command_id == CommandId.CREATE_ROLE:
        return f'Create role "{role_name}"' if role_name else None
    if command_id == CommandId.DELETE_ROLE:
        return f'Delete role "{role}"' if role else None
    if command_id == CommandId.RENAME_ROLE:
        return f'Rename to "{new_role_name}"' if new_role_name else None
    if command_id == CommandId.ADD_TO_ROLE:
        if users and role:
            return f"Add {users} to {role}"
        return f"Add to {role}" if role else None
    if command_id == CommandId.REMOVE_FROM_ROLE:
        if users and role:
            return f"Remove {users} from {role}"
        return f"Remove from {role}" if role else None
    if command_id == CommandId.DISCONNECT_USER:
        return f"Disconnect {users}" if users else None
    if command_id == CommandId.MOVE_USER:
        return f"Move {users}" if users else None
    if command_id == CommandId.MOVE_ALL_USERS:
        return "Move everyone"
    if command_id == CommandId.DISCONNECT_ALL_USERS:
        return "Disconnect everyone"
    return None


def confirm_button_label(
    command_id: CommandId,
    message: Optional[discord.Message],
    bot_id: Optional[int] = None,
    role_name: Optional[str] = None,
    new_role_name: Optional[str] = None,
) -> str:
    """Templated label when it fits the 80-char limit, else the generic one."""
    label = specific_label(command_id, message, bot_id, role_name, new_role_name)
    if label and len(label) <= BUTTON_LABEL_MAX:
        return label
    return get_admin_command(command_id).confirm_label[:BUTTON_LABEL_MAX]


def build_confirm_view(token: str, label: str) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(discord.ui.Button(style=discord.ButtonStyle.danger, label=label, custom_id=token))
    return view


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------

def is_admin_member(guild, member) -> bool:
    """Server owner, or holds the Administrator permission."""
    if guild is None or member is None:
        return False
    if guild.owner_id == member.id:
        return True
    permissions = getattr(member, "guild_permissions", None)
    return bool(permissions and permissions.administrator)


async def resolve_member(guild, user_id: int):
    member = guild.get_member(user_id)
    if member is not None:
        return member
    try:
        return await guild.fetch_member(user_id)
    except discord.DiscordException as e:
        _log(f"[approval] could not resolve member {user_id}: {e}")
        return None


async def is_authorized(guild, user) -> bool:
    """Re-check the clicker's privileges at click time."""
    if guild is None or user is None:
        return False
    if guild.owner_id == user.id:
        return True
    if isinstance(user, discord.Member):
        return is_admin_member(guild, user)
    member = await resolve_member(guild, user.id)
    return is_admin_member(guild, member)


# ---------------------------------------------------------------------------
# Activation
# ---------------------------------------------------------------------------

async def send_followup(interaction: discord.Interaction, content: str, ephemeral: bool = False) -> bool:
    """Best-effort follow-up. Failures are logged and reported as False."""
    try:
        await interaction.followup.send(content, ephemeral=ephemeral)
        return True
    except discord.HTTPException as e:
        _log(f"[approval] follow-up failed: {e}")
        return False


async def send_private(interaction: discord.Interaction, content: str) -> bool:
    """Best-effort ephemeral response to a not-yet-acknowledged interaction."""
    try:
        await interaction.response.send_message(content, ephemeral=True)
        return True
    except discord.HTTPException as e:
        _log(f"[approval] ephemeral response failed: {e}")
        return False


async def get_original_message(interaction: discord.Interaction) -> Optional[discord.Message]:
    """The user message the bot's confirmation reply points at."""
    bot_message = interaction.message
    ref = bot_message.reference if bot_message is not None else None
    if ref is None or ref.message_id is None or interaction.channel is None:
        return None
    try:
        return await interaction.channel.fetch_message(ref.message_id)
    except discord.DiscordException as e:
        _log(f"[approval] original message {ref.message_id} unavailable: {e}")
        return None


def _describe_error(error: Exception) -> str:
    if isinstance(error, discord.HTTPException) and error.text:
        return error.text
    return "something went wrong"


async def handle_confirmation(interaction: discord.Interaction) -> bool:
    """Handle a button click. Returns False if the click wasn't ours."""
    data: Any = interaction.data or {}
    decoded = decode_token(data.get("custom_id"))
    if decoded is None:
        return False
    command_id, params = decoded
    command = get_admin_command(command_id)

    if not await is_authorized(interaction.guild, interaction.user):
        await send_private(interaction, NO_PERMISSION)
        return True

    try:
        await interaction.response.defer()
    except discord.HTTPException as e:
        _log(f"[approval] could not acknowledge {command_id.value}: {e}")
        return True

    original = await get_original_message(interaction)
    ctx = ActorContext(actor=interaction.user, guild=interaction.guild, channel=interaction.channel)
    try:
        result = await command.execute(ctx, original, params)
    except Exception as e:
        _log(f"[approval] admin command {command_id.value} error: {e}")
        result = CommandResult.fail(f"Failed: {_describe_error(e)}")

    _log(f"[approval] {command_id.value} by {interaction.user}: {result.message}")
    await send_followup(interaction, result.message, ephemeral=not result.ok)
    return True
