"""Conversion of the canonical reply markup to each platform's dialect.

Canonical markup is the WhatsApp style: *bold*, _italic_, ~strike~ and
```code``` fences. Model output sometimes uses Markdown doubles
(**bold**, __italic__, ~~strike~~), which are folded to the single form first.
Markers only count when they are not glued to word characters, so
snake_case names and arithmetic like 2*3*4 pass through untouched.
"""

import re
from typing import List

_DOUBLE_BOLD = re.compile(r"\*\*(?=\S)([^*\n]+?)(?<=\S)\*\*")
_DOUBLE_ITALIC = re.compile(r"(?<![\w_])__(?=\S)([^_\n]+?)(?<=\S)__(?![\w_])")
_DOUBLE_STRIKE = re.compile(r"~~(?=\S)([^~\n]+?)(?<=\S)~~")

_BOLD = re.compile(r"(?<![\w*])\*(?=\S)([^*\n]+?)(?<=\S)\*(?![\w*])")
_ITALIC = re.compile(r"(?<![\w_])_(?=\S)([^_\n]+?)(?<=\S)_(?![\w_])")
_STRIKE = re.compile(r"(?<![\w~])~(?=\S)([^~\n]+?)(?<=\S)~(?![\w~])")
_CODE_FENCE = re.compile(r"```(?:[a-zA-Z0-9_+-]*\n)?(.+?)\n?```", re.DOTALL)
_INLINE_CODE = re.compile(r"`([^`\n]+)`")


def normalize_markup(text: str) -> str:
    """Fold Markdown double markers into the canonical single markers."""
    if not text:
        return ""
    text = _DOUBLE_BOLD.sub(r"*\1*", text)
    text = _DOUBLE_ITALIC.sub(r"_\1_", text)
    text = _DOUBLE_STRIKE.sub(r"~\1~", text)
    return text


def to_whatsapp(text: str) -> str:
    return normalize_markup(text)


def to_telegram(text: str) -> str:
    """Telegram legacy Markdown: same bold/italic markers, fences collapse to inline code."""
    text = normalize_markup(text)
    text = _CODE_FENCE.sub(lambda m: f"`{m.group(1).strip()}`" if "\n" not in m.group(1).strip() else m.group(0), text)
    return text


def to_plain(text: str) -> str:
    """Messenger and Instagram render no markup: drop the markers, keep the words."""
    text = normalize_markup(text)
    text = _CODE_FENCE.sub(lambda m: m.group(1).strip(), text)
    text = _INLINE_CODE.sub(r"\1", text)
    text = _BOLD.sub(r"\1", text)
    text = _ITALIC.sub(r"\1", text)
    text = _STRIKE.sub(r"\1", text)
    return text


def split_message(text: str, limit: int) -> List[str]:
    """Split text into chunks of at most `limit` characters.

    Prefers paragraph breaks, then line breaks, then spaces; hard-cuts only
    when a single word is longer than the limit.
    """
    text = (text or "").strip()
    if not text:
        return []
    if len(text) <= limit:
        return [text]

    chunks: List[str] = []
    remaining = text
    while len(remaining) > limit:
        window = remaining[:limit]
        cut = -1
        for separator in ("\n\n", "\n", " "):
            cut = window.rfind(separator)
            if cut > 0:
                break
        if cut <= 0:
            cut = limit
        chunk = remaining[:cut].strip()
        if chunk:
            chunks.append(chunk)
        remaining = remaining[cut:].strip()
    if remaining:
        chunks.append(remaining)
    return chunks
