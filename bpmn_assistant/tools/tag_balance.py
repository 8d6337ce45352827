"""Textual tag counting for BPMN documents (no tree is built)."""
from __future__ import annotations

import re
from dataclasses import dataclass


_IGNORED_SECTIONS = re.compile(
    r"<!--[\s\S]*?-->|<!\[CDATA\[[\s\S]*?\]\]>|<\?[\s\S]*?\?>|<!DOCTYPE[^>]*>",
    re.IGNORECASE,
)

_TAG_NAME = r"[A-Za-z_][\w:.-]*"
# Attributes after the tag name; quoted values may hold '>' but never '<'.
ATTRIBUTE_SPAN = r"""(?:\s(?:[^<>"']|"[^"<]*"|'[^'<]*')*)?"""
# Every start tag, self-closing ones included.
_OPEN_TAG_RE = re.compile(rf"<{_TAG_NAME}{ATTRIBUTE_SPAN}/?>")
_SELF_CLOSING_TAG_RE = re.compile(rf"<{_TAG_NAME}{ATTRIBUTE_SPAN}/>")
_CLOSE_TAG_RE = re.compile(rf"</{_TAG_NAME}\s*>")


@dataclass(frozen=True)
class TagCounts:
    open_count: int = 0
    close_count: int = 0
    self_closing_count: int = 0
    valid: bool = False

    @property
    def regular_open_count(self) -> int:
        return self.open_count - self.self_closing_count

    @property
    def balanced(self) -> bool:
        return self.valid and self.regular_open_count == self.close_count

    def describe(self) -> str:
        return (
            f"{self.open_count} opening tags ({self.self_closing_count} self-closing) "
            f"vs {self.close_count} closing tags"
        )

    def as_dict(self) -> dict:
        return {
            "openCount": self.open_count,
            "closeCount": self.close_count,
            "selfClosingCount": self.self_closing_count,
            "balanced": self.balanced,
        }


def analyze_tag_balance(text: object) -> TagCounts:
    """Count opening, closing and self-closing tags in ``text``.

    Comments, CDATA sections, processing instructions and DOCTYPE declarations
    are ignored. Empty or non-string input yields a zeroed, invalid result.
    """
    if not isinstance(text, str) or not text.strip():
        return TagCounts()
    body = _IGNORED_SECTIONS.sub("", text)
    return TagCounts(
        open_count=len(_OPEN_TAG_RE.findall(body)),
        close_count=len(_CLOSE_TAG_RE.findall(body)),
        self_closing_count=len(_SELF_CLOSING_TAG_RE.findall(body)),
        valid=True,
    )
