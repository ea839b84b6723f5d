"""
Cleanup for titles and snippets as sources report them: HTML fragments,
entities, control characters and runs of whitespace.
"""

from __future__ import annotations

import html
import re

__all__ = ["strip_html", "collapse_ws", "sanitize_text"]

_TAG_RE = re.compile(r"<[^>]+>")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WS_RE = re.compile(r"\s+")


def strip_html(text: str) -> str:
    """Drop tags (each becomes a space) and decode entities."""
    if not text:
        return ""
    return html.unescape(_TAG_RE.sub(" ", str(text)))


def collapse_ws(text: str) -> str:
    if not text:
        return ""
    return _WS_RE.sub(" ", _CONTROL_RE.sub("", str(text))).strip()


def sanitize_text(text: str, *, max_len: int | None = None) -> str:
    """Plain single-line text, cut to ``max_len`` with a trailing ellipsis."""
    out = collapse_ws(strip_html(text))
    if max_len is not None and len(out) > max_len:
        return out[: max_len - 1].rstrip() + "…"
    return out
