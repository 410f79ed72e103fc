"""Scalar type inference and canonical formatting.

Inference precedence is boolean, integer, float, then string. A literal is
only given a non-string type when formatting that value reproduces the
literal exactly, so every inferred scalar encodes back to the same text.

For floats this means the literal must be the shortest ``repr`` form of
its value. ``"3.14"`` and ``"1e+16"`` become floats, while ``"1e5"``,
``"1.50"`` and ``"-0"`` stay strings because their canonical text differs
(``100000.0``, ``1.5`` and ``-0.0``). Integers follow the same rule, so
leading zeros and a leading ``+`` keep a literal a string.
"""

import math
import re
from typing import Union

from openspeleo_core.shared import UnsupportedScalarError
from openspeleo_core.shared.names import has_invalid_chars

Scalar = Union[bool, int, float, str]

TRUE_LITERAL = "true"
FALSE_LITERAL = "false"

_INTEGER_RE = re.compile(r"(?:0|-?[1-9][0-9]*)\Z")
_FLOAT_RE = re.compile(r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][-+]?[0-9]+)?\Z")


def infer_scalar(text: str) -> Scalar:
    """Convert attribute or leaf text into its typed scalar.

    Examples:
        >>> infer_scalar("true"), infer_scalar("42"), infer_scalar("3.14")
        (True, 42, 3.14)
        >>> infer_scalar("00042")
        '00042'
    """
    if text == TRUE_LITERAL:
        return True
    if text == FALSE_LITERAL:
        return False
    if _INTEGER_RE.match(text):
        try:
            return int(text)
        except ValueError:
            # Longer than the interpreter's integer string conversion limit
            return text
    if _FLOAT_RE.match(text):
        value = float(text)
        if math.isfinite(value) and repr(value) == text:
            return value
    return text


def format_scalar(value: object) -> str:
    """Return the canonical XML text of a scalar.

    Raises:
        UnsupportedScalarError: For non-finite floats and any value that is
            not a bool, int, float or str, and for strings holding characters
            that XML 1.0 cannot represent
    """
    # bool first: it is a subclass of int
    if isinstance(value, bool):
        return TRUE_LITERAL if value else FALSE_LITERAL
    if isinstance(value, int):
        try:
            return str(int(value))
        except ValueError as e:
            raise UnsupportedScalarError(value) from e
    if isinstance(value, float):
        if not math.isfinite(value):
            raise UnsupportedScalarError(value)
        return repr(float(value))
    if isinstance(value, str):
        if has_invalid_chars(value):
            raise UnsupportedScalarError(value)
        return str.__str__(value)
    raise UnsupportedScalarError(value)


def is_scalar(value: object) -> bool:
    """Check whether ``value`` is one of the supported scalar types."""
    return isinstance(value, (bool, int, float, str))
