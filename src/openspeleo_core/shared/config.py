"""Configuration for XML/dict conversion.

The key conventions (attribute prefix, text key) are fixed module constants;
``ConversionConfig`` only controls decode-time text handling and the shape of
the serialized output.
"""

import json
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, List, Optional

# Reserved key markers shared by the decoder and the encoder
ATTR_PREFIX = "@"
TEXT_KEY = "#text"
RESERVED_PREFIXES = (ATTR_PREFIX, "#")

SUPPORTED_ENCODINGS = ["utf-8"]
SUPPORTED_NEWLINES = ["\n", "\r\n"]


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


@dataclass(frozen=True)
class ConversionConfig:
    """Options for decoding XML into mappings and encoding them back.

    Immutable and therefore safe to share between threads and calls.
    """

    # Decode settings
    infer_types: bool = True
    strip_whitespace: bool = True

    # Encode settings
    xml_declaration: bool = True
    short_empty_elements: bool = True
    pretty: bool = False
    indent: str = "  "
    newline: str = "\n"
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        """Validate conversion configuration."""
        if self.encoding.lower() not in SUPPORTED_ENCODINGS:
            raise ConfigValidationError(
                f"encoding must be one of {SUPPORTED_ENCODINGS}",
                field_name="encoding",
            )
        if self.newline not in SUPPORTED_NEWLINES:
            raise ConfigValidationError(
                "newline must be '\\n' or '\\r\\n'",
                field_name="newline",
            )
        if self.indent.strip(" \t"):
            raise ConfigValidationError(
                "indent must contain only spaces and tabs",
                field_name="indent",
                suggestions=["Use '  ' or '\\t'"],
            )

    def override(self, **kwargs: Any) -> "ConversionConfig":
        """Create a new configuration with specific overrides.

        Example:
            >>> config = ConversionConfig().override(pretty=True, indent="\\t")
        """
        known = {f.name for f in fields(self)}
        unknown = sorted(set(kwargs) - known)
        if unknown:
            raise ConfigValidationError(
                f"Unknown configuration fields: {', '.join(unknown)}",
                field_name=unknown[0],
            )
        return replace(self, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversionConfig":
        """Create configuration from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    @classmethod
    def from_json(cls, json_str: str) -> "ConversionConfig":
        """Create configuration from JSON string."""
        data = json.loads(json_str)
        if not isinstance(data, dict):
            raise ConfigValidationError("Configuration JSON must be an object")
        return cls.from_dict(data)

    # Preset factory methods
    @classmethod
    def compact(cls) -> "ConversionConfig":
        """Single-line output with declaration and self-closing empty elements."""
        return cls()

    @classmethod
    def pretty_printed(cls, indent: str = "  ") -> "ConversionConfig":
        """Indented, one element per line output."""
        return cls(pretty=True, indent=indent)

    @classmethod
    def strings_only(cls) -> "ConversionConfig":
        """Decode every attribute value and text as a plain string."""
        return cls(infer_types=False)
