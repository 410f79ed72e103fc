"""Element and attribute name rules shared by the tokenizer and the mapper."""

import re

from .config import RESERVED_PREFIXES

# Looser than the XML Name production: accepts anything that cannot break out
# of tag context, including names starting with the reserved key markers.
NAME_PATTERN = r"[^\s<>/=\"'&;!?\d.\-][^\s<>/=\"'&;]*"
NAME_RE = re.compile(NAME_PATTERN)
_FULL_NAME_RE = re.compile(NAME_PATTERN + r"\Z")

# Characters outside the XML 1.0 Char production, lone surrogates included
INVALID_CHAR_RE = re.compile(
    "[^\u0009\u000a\u000d\u0020-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]"
)


def has_invalid_chars(text: str) -> bool:
    """Check whether ``text`` holds a character XML 1.0 cannot represent."""
    return INVALID_CHAR_RE.search(text) is not None


def is_valid_name(name: str) -> bool:
    """Check whether ``name`` can be written as an element or attribute name."""
    return (
        isinstance(name, str)
        and _FULL_NAME_RE.match(name) is not None
        and not has_invalid_chars(name)
    )


def has_reserved_prefix(name: str) -> bool:
    """Check whether ``name`` starts with one of the reserved key markers."""
    return name.startswith(RESERVED_PREFIXES)
