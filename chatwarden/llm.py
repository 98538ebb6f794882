"""Completion service client: OpenAI-compatible chat completions (Groq by default)."""

from typing import Dict, List, Optional

from openai import AsyncOpenAI

from chatwarden.config import CONFIG


class CompletionClient:
    """Single request/response call returning the raw completion text.

    The client is created lazily so a missing API key only disables replies
    instead of preventing startup.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        self.api_key = api_key if api_key is not None else CONFIG["groq_api_key"]
        self.base_url = base_url or CONFIG["groq_base_url"]
        self.model = model or CONFIG["groq_model"]
        self.temperature = temperature if temperature is not None else CONFIG["temperature"]
        self.max_tokens = max_tokens or CONFIG["max_tokens"]
        self._client: Optional[AsyncOpenAI] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    async def complete(self, system: str, messages: List[Dict[str, str]]) -> str:
        """Return the first choice's text, or "" when there is none.

        Raises whatever the underlying SDK raises; callers decide how to
        degrade.
        """
        if not self.is_configured:
            raise RuntimeError("GROQ_API_KEY is not set")
        response = await self._get_client().chat.completions.create(
            model=self.model,
            messages=[{"role": "system", "content": system}, *messages],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()
