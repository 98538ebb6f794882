"""Pure helpers for resolving command targets from free text.

Nothing here talks to Discord: callers hand in the candidate roles or
channels (anything with a ``.name``) and get back the best match or None.
"""

import re
from typing import Iterable, List, Optional, Sequence, TypeVar

T = TypeVar("T")

_MENTION_RE = re.compile(r"<(?:@[!&]?|#)\d+>")
_KEYWORDS = ("to", "from", "in")
_NAME_RE = re.compile(r"[#\w\s-]+")


def strip_mentions(text: str) -> str:
    """Replace ``<@id>``, ``<@&id>`` and ``<#id>`` markup with spaces."""
    return _MENTION_RE.sub(" ", text or "")


def channel_name_candidates(text: str, keywords: Sequence[str]) -> List[str]:
    """Every channel name written after one of ``keywords``, last first.

    Each name runs until the end of the phrase or the next to/from/in
    keyword, so "from General to Music" yields "General" for ``("from",)``
    and "Music" for ``("to",)``. Later occurrences come first because the
    target usually closes the sentence ("I want you to move @x to Music").
    """
    cleaned = strip_mentions(text)
    alternatives = "|".join(re.escape(k) for k in keywords)
    names: List[str] = []
    for match in re.finditer(rf"\b(?:{alternatives})\s+", cleaned, re.IGNORECASE):
        tail = _NAME_RE.match(cleaned, match.end())
        if not tail:
            continue
        words: List[str] = []
        for word in tail.group(0).split():
            if word.lower() in _KEYWORDS:
                break
            words.append(word)
        name = " ".join(words).lstrip("#").strip()
        if name:
            names.append(name)
    names.reverse()
    return names


def extract_channel_name(text: str, keywords: Sequence[str]) -> Optional[str]:
    """The last channel name written after one of ``keywords``."""
    names = channel_name_candidates(text, keywords)
    return names[0] if names else None


def find_role_by_name(roles: Iterable[T], name: Optional[str]) -> Optional[T]:
    """Case-insensitive exact match first, then substring match."""
    if not name or not name.strip():
        return None
    normalized = name.strip().lower()
    candidates = list(roles)
    for role in candidates:
        if role.name.lower() == normalized:
            return role
    for role in candidates:
        if normalized in role.name.lower():
            return role
    return None


def find_voice_channel_by_name(channels: Iterable[T], name: Optional[str]) -> Optional[T]:
    """Exact match first, then substring match in either direction."""
    if not name or not name.strip():
        return None
    normalized = name.strip().lstrip("#").lower()
    if not normalized:
        return None
    candidates = list(channels)
    for channel in candidates:
        if channel.name.lower() == normalized:
            return channel
    for channel in candidates:
        channel_name = channel.name.lower()
        if normalized in channel_name or (channel_name and channel_name in normalized):
            return channel
    return None


def ordered_unique(ids: Iterable[int], exclude: Optional[int] = None) -> List[int]:
    """Keep first occurrence order, drop duplicates and ``exclude``."""
    seen = set()
    out: List[int] = []
    for i in ids:
        if i == exclude or i in seen:
            continue
        seen.add(i)
        out.append(i)
    return out
