"""Intent decision engine.

One completion call per incoming message. The model is asked to answer
with a single JSON object ``{"reply": ..., "adminCommand": ...,
"roleName": ..., "newRoleName": ...}``; everything it sends back is
treated as untrusted text and normalized into a Decision. Any failure
degrades to ``Decision(reply="")`` (stay quiet) instead of raising.
"""

import json
import re
import sys
from typing import Any, Optional

from chatwarden.commands.ids import CommandId, ParamShape, param_shape
from chatwarden.commands.registry import prompt_description
from chatwarden.config import ROLE_NAME_MAX
from chatwarden.domain.models import ConversationContext, Decision
from chatwarden.llm import CompletionClient


def _log(msg: str):
    print(msg, file=sys.stderr)


SYSTEM_PROMPT = """You are a friendly Discord bot named {bot_name}. Be casual, use some emojis when it fits. Keep replies concise.

When to respond:
- When someone talks to you directly (mentions you, says your name or replies to your message).
- When the conversation is clearly directed at you or asks you a question.
- When someone clearly needs help and you can add something useful.
Otherwise reply with an empty string so the bot stays quiet.

Rules:
- Don't make things up. If you don't know, say so.
- Don't repeat what the user said back at them.
- You may use Discord markdown (**bold**, *italic*, `code`, ```code blocks```, > quotes, lists, [links](https://example.com)) when it improves readability.
- Lines in the conversation are formatted as "name: message". Your own earlier messages are the assistant turns.
{reply_note}
{admin_clause}

Reply only with valid JSON in this exact format:
{json_format}

If you have nothing to say, use: {{"reply": ""}}"""

REPLY_NOTE = "- The last message is a direct reply to you; you should respond."

ADMIN_CLAUSE = """The person who wrote the last message is a server admin. If, and only if, they explicitly ask you to perform one of these actions, set "adminCommand" to its id. Your reply should briefly say what will happen; a confirmation button is shown under your reply and nothing happens until an admin clicks it.
{commands}
Use "roleName" / "newRoleName" only where the action says so. Leave "adminCommand" out for anything else."""

NON_ADMIN_CLAUSE = """The person who wrote the last message is NOT a server admin. Never set "adminCommand". If they ask for moderation (kick, ban, mute, roles, clearing messages, moving people in voice), tell them only admins can do that."""

JSON_FORMAT_ADMIN = '{"reply": "your message here", "adminCommand": "optional command id", "roleName": "optional", "newRoleName": "optional"}'
JSON_FORMAT_PLAIN = '{"reply": "your message here"}'

_REPLY_KEY_RE = re.compile(r'"reply"\s*:\s*"')
_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


def build_system_prompt(bot_name: str, is_admin: bool, is_direct_reply_to_bot: bool = False) -> str:
    if is_admin:
        admin_clause = ADMIN_CLAUSE.format(commands=prompt_description())
        json_format = JSON_FORMAT_ADMIN
    else:
        admin_clause = NON_ADMIN_CLAUSE
        json_format = JSON_FORMAT_PLAIN
    return SYSTEM_PROMPT.format(
        bot_name=bot_name,
        reply_note=REPLY_NOTE if is_direct_reply_to_bot else "",
        admin_clause=admin_clause,
        json_format=json_format,
    )


def extract_json_object(raw: str) -> Optional[str]:
    """Return the span from the first ``{`` to the last ``}``, if any.

    Handles prose around the object and ```json fences.
    """
    start = raw.find("{")
    end = raw.rfind("}")
    if start < 0 or end <= start:
        return None
    return raw[start:end + 1]


def escape_control_chars_in_reply(text: str) -> str:
    """Escape literal newlines/tabs inside the ``"reply"`` string value only.

    Models often emit real line breaks inside the reply string, which is
    invalid JSON. Walks the value character by character so an escaped
    quote (``\\"``) is not mistaken for the closing quote.
    """
    match = _REPLY_KEY_RE.search(text)
    if not match:
        return text
    out = [text[:match.end()]]
    escaped = False
    i = match.end()
    while i < len(text):
        ch = text[i]
        if escaped:
            out.append(ch)
            escaped = False
        elif ch == "\\":
            out.append(ch)
            escaped = True
        elif ch == '"':
            break
        else:
            out.append(_ESCAPES.get(ch, ch))
        i += 1
    out.append(text[i:])
    return "".join(out)


def _clean_name(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()[:ROLE_NAME_MAX].strip()
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return None
    return value or None


def parse_decision(raw: Optional[str], is_admin: bool = True) -> Decision:
    """Normalize raw completion text into a Decision. Never raises."""
    if not raw or not raw.strip():
        return Decision()
    candidate = extract_json_object(raw)
    if candidate is None:
        return Decision()
    try:
        data = json.loads(escape_control_chars_in_reply(candidate))
    except ValueError:
        return Decision()
    if not isinstance(data, dict):
        return Decision()

    reply = data.get("reply")
    decision = Decision(reply=reply if isinstance(reply, str) else "")

    command = CommandId.parse(data.get("adminCommand"))
    if command is None:
        return decision
    if not is_admin:
        _log(f"[decision] dropped adminCommand {command.value!r} proposed for a non-admin")
        return decision
    decision.admin_command = command

    shape = param_shape(command)
    if shape in (ParamShape.ROLE_NAME, ParamShape.RENAME):
        decision.role_name = _clean_name(data.get("roleName"))
    if shape == ParamShape.RENAME:
        decision.new_role_name = _clean_name(data.get("newRoleName"))
    return decision


class DecisionEngine:
    """Wraps the completion call with the reply/admin-intent contract."""

    def __init__(self, client: Optional[CompletionClient] = None):
        self.client = client or CompletionClient()

    async def decide(self, context: ConversationContext, bot_name: str) -> Decision:
        if not self.client.is_configured:
            _log("[decision] GROQ_API_KEY is not set; staying quiet")
            return Decision()

        system = build_system_prompt(bot_name, context.is_admin, context.is_direct_reply_to_bot)
        messages = [turn.as_message() for turn in context.turns]
        try:
            raw = await self.client.complete(system, messages)
        except Exception as e:
            _log(f"[decision] completion failed: {e}")
            return Decision()

        if not raw:
            return Decision()
        return parse_decision(raw, is_admin=context.is_admin)
