"""Context window builder: recent channel history as role-tagged turns."""

import sys
from typing import Iterable, List, Optional

import discord

from chatwarden.config import RECENT_MESSAGES_LIMIT
from chatwarden.domain.models import ConversationContext, ConversationTurn


def _log(msg: str):
    print(msg, file=sys.stderr)


def format_turn(message: discord.Message, bot_user_id: Optional[int]) -> ConversationTurn:
    author = message.author
    name = getattr(author, "display_name", None) or getattr(author, "name", None) or "Unknown"
    text = (message.content or "").strip() or "(no text)"
    role = "assistant" if bot_user_id is not None and author.id == bot_user_id else "user"
    return ConversationTurn(role=role, content=f"{name}: {text}")


def to_turns(
    messages: Iterable[discord.Message],
    bot_user_id: Optional[int],
    limit: int = RECENT_MESSAGES_LIMIT,
) -> List[ConversationTurn]:
    """Keep the ``limit`` newest messages, oldest first."""
    ordered = sorted(messages, key=lambda m: m.created_at)
    return [format_turn(m, bot_user_id) for m in ordered[-limit:]]


async def is_reply_to_bot(message: discord.Message, bot_user_id: Optional[int]) -> bool:
    """Whether ``message`` replies to one of the bot's messages.

    Lookup failures (deleted message, missing access) count as "no".
    """
    ref = message.reference
    if ref is None or ref.message_id is None or bot_user_id is None:
        return False
    try:
        referenced = await message.channel.fetch_message(ref.message_id)
    except discord.DiscordException as e:
        _log(f"[context] could not fetch referenced message {ref.message_id}: {e}")
        return False
    return referenced.author.id == bot_user_id


async def fetch_recent(channel, newest: discord.Message, limit: int = RECENT_MESSAGES_LIMIT) -> List[discord.Message]:
    try:
        return [m async for m in channel.history(limit=limit)]
    except discord.DiscordException as e:
        _log(f"[context] history fetch failed in {getattr(channel, 'id', '?')}: {e}")
        return [newest]


async def build_conversation_context(
    channel,
    message: discord.Message,
    bot_user_id: Optional[int],
    is_admin: bool = False,
    limit: int = RECENT_MESSAGES_LIMIT,
) -> ConversationContext:
    recent = await fetch_recent(channel, message, limit)
    return ConversationContext(
        turns=to_turns(recent, bot_user_id, limit),
        is_direct_reply_to_bot=await is_reply_to_bot(message, bot_user_id),
        is_admin=is_admin,
    )
