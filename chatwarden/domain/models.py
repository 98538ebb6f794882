"""Domain data models — pure Python dataclasses."""

from dataclasses import dataclass, field
from typing import List, Optional

from chatwarden.commands.ids import CommandId


@dataclass
class ConversationTurn:
    """One formatted line of chat attributed to a speaker."""

    role: str  # "user" | "assistant"
    content: str

    def as_message(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass
class ConversationContext:
    """Bounded recent history for one incoming message. Never persisted."""

    turns: List[ConversationTurn] = field(default_factory=list)
    is_direct_reply_to_bot: bool = False
    is_admin: bool = False


@dataclass
class Decision:
    """Parsed model output: what to say and, optionally, what to propose."""

    reply: str = ""
    admin_command: Optional[CommandId] = None
    role_name: Optional[str] = None
    new_role_name: Optional[str] = None


@dataclass
class CommandParams:
    """Parameters carried by a confirmation token."""

    role_name: Optional[str] = None
    new_role_name: Optional[str] = None


@dataclass
class CommandResult:
    """Outcome of an admin command. Failures are shown only to the clicker."""

    message: str
    ok: bool = True

    @classmethod
    def fail(cls, message: str) -> "CommandResult":
        return cls(message=message, ok=False)
