"""Tests for the context window builder."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from chatwarden.context import build_conversation_context, format_turn, is_reply_to_bot, to_turns


BOT_ID = 999
BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _make_message(idx: int, author_id: int = 1, content: str = None, name: str = None) -> MagicMock:
    msg = MagicMock()
    msg.id = 1000 + idx
    msg.content = content if content is not None else f"message {idx}"
    msg.created_at = BASE_TIME + timedelta(seconds=idx)
    msg.author = MagicMock()
    msg.author.id = author_id
    msg.author.display_name = name or f"user{author_id}"
    msg.reference = None
    return msg


def _make_channel(messages) -> MagicMock:
    """Channel whose history() yields newest first and honors ``limit``."""

    def history(limit=100):
        newest_first = sorted(messages, key=lambda m: m.created_at, reverse=True)[:limit]

        async def gen():
            for m in newest_first:
                yield m

        return gen()

    channel = MagicMock()
    channel.id = 42
    channel.history = MagicMock(side_effect=history)
    channel.fetch_message = AsyncMock()
    return channel


def _not_found() -> discord.NotFound:
    return discord.NotFound(MagicMock(status=404, reason="Not Found"), "Unknown Message")


# ---------------------------------------------------------------------------
# Turn formatting
# ---------------------------------------------------------------------------

class TestFormatTurn:
    def test_user_turn(self):
        turn = format_turn(_make_message(1, author_id=5, content="  hello  ", name="alice"), BOT_ID)
        assert turn.role == "user"
        assert turn.content == "alice: hello"

    def test_bot_turn_is_assistant(self):
        turn = format_turn(_make_message(1, author_id=BOT_ID, name="warden"), BOT_ID)
        assert turn.role == "assistant"

    def test_empty_text_placeholder(self):
        turn = format_turn(_make_message(1, content="   ", name="bob"), BOT_ID)
        assert turn.content == "bob: (no text)"

    def test_to_turns_sorts_oldest_first(self):
        msgs = [_make_message(3), _make_message(1), _make_message(2)]
        turns = to_turns(msgs, BOT_ID)
        assert [t.content for t in turns] == [
            "user1: message 1",
            "user1: message 2",
            "user1: message 3",
        ]


# ---------------------------------------------------------------------------
# Reply-to-bot detection
# ---------------------------------------------------------------------------

class TestIsReplyToBot:
    @pytest.mark.asyncio
    async def test_no_reference(self):
        msg = _make_message(1)
        assert await is_reply_to_bot(msg, BOT_ID) is False

    @pytest.mark.asyncio
    async def test_reply_to_bot(self):
        msg = _make_message(2)
        msg.reference = MagicMock(message_id=1001)
        msg.channel = _make_channel([])
        msg.channel.fetch_message.return_value = _make_message(1, author_id=BOT_ID)
        assert await is_reply_to_bot(msg, BOT_ID) is True
        msg.channel.fetch_message.assert_awaited_once_with(1001)

    @pytest.mark.asyncio
    async def test_reply_to_someone_else(self):
        msg = _make_message(2)
        msg.reference = MagicMock(message_id=1001)
        msg.channel = _make_channel([])
        msg.channel.fetch_message.return_value = _make_message(1, author_id=7)
        assert await is_reply_to_bot(msg, BOT_ID) is False

    @pytest.mark.asyncio
    async def test_deleted_reference_is_swallowed(self):
        msg = _make_message(2)
        msg.reference = MagicMock(message_id=1001)
        msg.channel = _make_channel([])
        msg.channel.fetch_message.side_effect = _not_found()
        assert await is_reply_to_bot(msg, BOT_ID) is False


# ---------------------------------------------------------------------------
# build_conversation_context
# ---------------------------------------------------------------------------

class TestBuildConversationContext:
    @pytest.mark.asyncio
    async def test_sixteen_messages_keeps_newest_fifteen(self):
        msgs = [_make_message(i, author_id=BOT_ID if i % 4 == 0 else 1) for i in range(16)]
        channel = _make_channel(msgs)
        newest = msgs[-1]
        newest.channel = channel

        ctx = await build_conversation_context(channel, newest, BOT_ID)

        channel.history.assert_called_once_with(limit=15)
        assert len(ctx.turns) == 15
        assert ctx.turns[0].content.endswith("message 1")
        assert ctx.turns[-1].content.endswith("message 15")
        assert ctx.is_direct_reply_to_bot is False
        for i, turn in zip(range(1, 16), ctx.turns):
            assert turn.role == ("assistant" if i % 4 == 0 else "user")

    @pytest.mark.asyncio
    async def test_carries_admin_flag_and_reply_flag(self):
        bot_msg = _make_message(0, author_id=BOT_ID)
        user_msg = _make_message(1)
        channel = _make_channel([bot_msg, user_msg])
        channel.fetch_message.return_value = bot_msg
        user_msg.channel = channel
        user_msg.reference = MagicMock(message_id=bot_msg.id)

        ctx = await build_conversation_context(channel, user_msg, BOT_ID, is_admin=True)

        assert ctx.is_admin is True
        assert ctx.is_direct_reply_to_bot is True
        assert [t.role for t in ctx.turns] == ["assistant", "user"]

    @pytest.mark.asyncio
    async def test_history_failure_falls_back_to_newest(self):
        newest = _make_message(1, content="help?")
        channel = MagicMock()
        channel.history = MagicMock(side_effect=discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "Missing Access"))
        newest.channel = channel

        ctx = await build_conversation_context(channel, newest, BOT_ID)

        assert [t.content for t in ctx.turns] == ["user1: help?"]
