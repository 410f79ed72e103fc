"""Exception hierarchy for XML/dict conversion.

Every error raised by the conversion engine derives from ``XmlDictError``,
which is itself a ``ValueError`` so callers that only expect the builtin
keep working.
"""

from typing import Optional


class XmlDictError(ValueError):
    """Base exception for all conversion failures."""


class MalformedXmlError(XmlDictError):
    """Raised when the input is not well-formed XML."""

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> None:
        self.line = line
        self.column = column
        self.offset = offset
        if line is not None and column is not None:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message)


class AmbiguousStructureError(XmlDictError):
    """Raised when a mapping cannot be lowered to a single XML tree."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path = path
        if path:
            message = f"{message} at {path}"
        super().__init__(message)


class ReservedNameCollisionError(XmlDictError):
    """Raised when an element or attribute name starts with a reserved marker."""

    def __init__(self, name: str, kind: str = "element") -> None:
        self.name = name
        self.kind = kind
        super().__init__(
            f"{kind} name {name!r} starts with a reserved key marker"
        )


class UnsupportedScalarError(XmlDictError):
    """Raised when a value has no canonical textual form."""

    def __init__(self, value: object) -> None:
        self.value = value
        try:
            shown = repr(value)
        except ValueError:
            # int values past the interpreter's digit limit cannot be shown
            shown = "of excessive size"
        super().__init__(
            f"Cannot convert {type(value).__name__} value {shown} to XML text"
        )
