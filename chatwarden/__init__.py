"""chatwarden: Discord assistant with confirmation-gated admin actions."""

from chatwarden.config import CONFIG
from chatwarden.domain.models import (
    CommandParams,
    CommandResult,
    ConversationContext,
    ConversationTurn,
    Decision,
)
from chatwarden.commands.ids import CommandId
from chatwarden.commands.registry import REGISTRY, AdminCommand, get_admin_command
from chatwarden.context import build_conversation_context
from chatwarden.llm import CompletionClient
from chatwarden.decision import DecisionEngine, parse_decision
from chatwarden.approval import decode_token, encode_token, handle_confirmation
from chatwarden.adapters.discord_adapter import DiscordBotAdapter
from chatwarden.app import app

__all__ = [
    "CONFIG",
    "CommandParams",
    "CommandResult",
    "ConversationContext",
    "ConversationTurn",
    "Decision",
    "CommandId",
    "REGISTRY",
    "AdminCommand",
    "get_admin_command",
    "build_conversation_context",
    "CompletionClient",
    "DecisionEngine",
    "parse_decision",
    "decode_token",
    "encode_token",
    "handle_confirmation",
    "DiscordBotAdapter",
    "app",
]
