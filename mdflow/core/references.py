"""Step reference extraction.

A step body names its successors with ``@step_id@`` tokens. Tokens inside fenced
code blocks or inline code spans are examples, not references, and are ignored.
"""

import re
from typing import Iterable, List, Optional

FENCED_CODE_RE = re.compile(r"```.*?```", re.DOTALL)
INLINE_CODE_RE = re.compile(r"`[^`\n]*`")
REFERENCE_RE = re.compile(r"@([A-Za-z0-9_-]+)@")

# Placeholders used in documentation, never real step ids
DEFAULT_IGNORED_REFERENCES = frozenset({"step-id"})


def strip_code(text: str) -> str:
    """Remove fenced code blocks, then inline code spans."""
    text = FENCED_CODE_RE.sub("", text)
    return INLINE_CODE_RE.sub("", text)


def extract_references(
    text: str,
    ignored: Iterable[str] = DEFAULT_IGNORED_REFERENCES,
) -> List[str]:
    """Return referenced step ids in first-occurrence order, without duplicates.

    Examples:
        "Go to @build@ then @test@ or back to @build@" -> ["build", "test"]
        "Use `@example@` syntax" -> []
    """
    ignored = set(ignored)
    references: List[str] = []
    seen = set()

    for match in REFERENCE_RE.finditer(strip_code(text)):
        ref = match.group(1)
        if ref in ignored or ref in seen:
            continue
        seen.add(ref)
        references.append(ref)

    return references


def find_reference_line(text: str, reference: str) -> Optional[int]:
    """Best-effort 1-based line number of the first usable ``@reference@``.

    A line qualifies when the first occurrence of the token on it is preceded
    by an even number of backticks on that line (i.e. not inside inline code).
    """
    token = f"@{reference}@"
    for number, line in enumerate(text.split("\n"), start=1):
        index = line.find(token)
        if index == -1:
            continue
        if line[:index].count("`") % 2 == 0:
            return number
    return None


__all__ = [
    "DEFAULT_IGNORED_REFERENCES",
    "strip_code",
    "extract_references",
    "find_reference_line",
]
