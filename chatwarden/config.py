"""Runtime configuration loaded from the environment (.env supported)."""

import os
from typing import Any, Dict

from dotenv import load_dotenv

load_dotenv()

RECENT_MESSAGES_LIMIT = 15
CUSTOM_ID_MAX = 100
BUTTON_LABEL_MAX = 80
ROLE_NAME_MAX = 100
TIMEOUT_MINUTES = 5
DISCORD_MESSAGE_MAX = 2000


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


CONFIG: Dict[str, Any] = {
    "discord_token": os.environ.get("DISCORD_TOKEN", ""),
    "groq_api_key": os.environ.get("GROQ_API_KEY", ""),
    "groq_base_url": os.environ.get("GROQ_BASE_URL", "https://api.groq.com/openai/v1"),
    "groq_model": os.environ.get("GROQ_MODEL", "llama-3.3-70b-versatile"),
    "temperature": _float_env("LLM_TEMPERATURE", 0.5),
    "max_tokens": _int_env("LLM_MAX_TOKENS", 1024),
    "port": _int_env("PORT", 3000),
}
