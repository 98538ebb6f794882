"""Discord adapter — bridges discord.Client events to the decision core.

``on_message`` builds the conversation window, asks the DecisionEngine
what to do and replies (with a confirmation button when the model
proposed an admin command). ``on_interaction`` hands button clicks to
the confirmation protocol.
"""

import sys
from typing import List, Optional

import discord

from chatwarden.approval import (
    build_confirm_view,
    confirm_button_label,
    encode_token,
    handle_confirmation,
    is_admin_member,
)
from chatwarden.commands.registry import get_admin_command
from chatwarden.config import DISCORD_MESSAGE_MAX
from chatwarden.context import build_conversation_context
from chatwarden.decision import DecisionEngine
from chatwarden.domain.models import Decision


def _log(msg: str):
    print(msg, file=sys.stderr)


def split_message(text: str, limit: int = DISCORD_MESSAGE_MAX) -> List[str]:
    """Split text into chunks Discord will accept."""
    chunks = []
    while text:
        chunks.append(text[:limit])
        text = text[limit:]
    return chunks


class DiscordReplySender:
    """Sends a reply to the triggering message, chunked at 2000 chars.

    The optional view goes on the last chunk, which is still a reply so
    the button can find the original message through its reference.
    """

    async def send(self, message: discord.Message, text: str, view: Optional[discord.ui.View] = None) -> None:
        chunks = split_message(text)
        for i, chunk in enumerate(chunks):
            if view is not None and i == len(chunks) - 1:
                await message.reply(chunk, view=view, mention_author=False)
                view.stop()
            else:
                await message.reply(chunk, mention_author=False)


class DiscordBotAdapter(discord.Client):
    """Thin Discord client that delegates decisions to DecisionEngine."""

    def __init__(
        self,
        engine: Optional[DecisionEngine] = None,
        sender: Optional[DiscordReplySender] = None,
        **discord_kwargs,
    ):
        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True
        intents.voice_states = True
        super().__init__(intents=intents, **discord_kwargs)
        self._engine = engine or DecisionEngine()
        self._sender = sender or DiscordReplySender()

    @property
    def bot_name(self) -> str:
        return self.user.name if self.user else "bot"

    async def on_ready(self):
        _log(f"[chatwarden] logged in as {self.user}")

    async def on_message(self, message: discord.Message):
        if message.author.bot:
            return

        bot_id = self.user.id if self.user else None
        is_admin = is_admin_member(message.guild, message.author)
        context = await build_conversation_context(message.channel, message, bot_id, is_admin=is_admin)
        decision = await self._engine.decide(context, self.bot_name)

        if not decision.reply.strip():
            return

        try:
            await self._send_decision(message, decision, bot_id)
        except discord.HTTPException as e:
            _log(f"[chatwarden] failed to send reply: {e}")

    async def _send_decision(self, message: discord.Message, decision: Decision, bot_id: Optional[int]) -> None:
        command = get_admin_command(decision.admin_command) if decision.admin_command else None
        if command is None:
            await self._sender.send(message, decision.reply)
            return

        token = encode_token(command.id, decision.role_name, decision.new_role_name)
        label = confirm_button_label(
            command.id,
            message,
            bot_id,
            role_name=decision.role_name,
            new_role_name=decision.new_role_name,
        )
        _log(f"[chatwarden] proposing {command.id.value} in {message.channel.id}")
        await self._sender.send(message, decision.reply, view=build_confirm_view(token, label))

    async def on_interaction(self, interaction: discord.Interaction):
        if interaction.type != discord.InteractionType.component:
            return
        await handle_confirmation(interaction)
