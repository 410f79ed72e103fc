"""Tokenization engine for XML/dict conversion.

Key Components:
    XMLTokenizer: Strict single-pass tokenizer for XML text
    Token: Individual XML token with its source position
    TokenType: Enumeration of all token types
    TokenPosition: Line/column/offset tracking for error reporting
"""

from .tokenizer import (
    PREDEFINED_ENTITIES,
    Token,
    TokenPosition,
    TokenType,
    XMLTokenizer,
)

__all__ = [
    "PREDEFINED_ENTITIES",
    "Token",
    "TokenPosition",
    "TokenType",
    "XMLTokenizer",
]
