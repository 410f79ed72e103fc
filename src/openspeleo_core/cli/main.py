"""Main CLI entry point for the openspeleo-xml command-line tool.

Converts XML files to JSON and back, and checks that documents survive a
decode/encode/decode round trip.
"""

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from openspeleo_core import __version__
from openspeleo_core.api import decode, encode, encode_bytes
from openspeleo_core.mapping import ordered_equal
from openspeleo_core.shared import (
    ConfigError,
    ConversionConfig,
    XmlDictError,
    configure_logging,
    get_logger,
)

logger = get_logger(__name__, None, "cli")


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="openspeleo-xml",
        description="Convert XML documents to ordered JSON mappings and back"
    )

    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Decode command
    decode_parser = subparsers.add_parser("decode", help="Convert an XML file to JSON")
    decode_parser.add_argument(
        "path",
        type=Path,
        help="XML file to decode"
    )
    decode_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output file (default: stdout)"
    )
    decode_parser.add_argument(
        "--indent",
        type=int,
        default=2,
        help="JSON indentation (default: 2)"
    )
    decode_parser.add_argument(
        "--no-infer",
        action="store_true",
        help="Keep every scalar as a string"
    )

    # Encode command
    encode_parser = subparsers.add_parser("encode", help="Convert a JSON file to XML")
    encode_parser.add_argument(
        "path",
        type=Path,
        help="JSON file holding a single-key object"
    )
    encode_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output file (default: stdout)"
    )
    encode_parser.add_argument(
        "--pretty",
        action="store_true",
        help="Indent nested elements"
    )
    encode_parser.add_argument(
        "--indent-with",
        default="  ",
        help="Indentation unit for --pretty (default: two spaces)"
    )
    encode_parser.add_argument(
        "--no-declaration",
        action="store_true",
        help="Omit the XML declaration"
    )
    encode_parser.add_argument(
        "--expand-empty",
        action="store_true",
        help="Write empty elements as <a></a> instead of <a/>"
    )

    # Check command
    check_parser = subparsers.add_parser(
        "check", help="Verify XML files survive a decode/encode/decode round trip"
    )
    check_parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="XML files to check"
    )
    check_parser.add_argument(
        "--format", "-f",
        choices=["json", "text"],
        default="text",
        help="Output format"
    )

    # Global options
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Quiet output"
    )

    return parser


def write_output(content: str, output: Optional[Path]) -> None:
    """Write command output to a file, or stdout when no file is given."""
    if output:
        output.write_text(content, encoding="utf-8")
        print(f"Output written to {output}", file=sys.stderr)
    else:
        print(content)


def cmd_decode(args: argparse.Namespace) -> int:
    """Handle decode command."""
    config = ConversionConfig(infer_types=not args.no_infer)
    mapping = decode(args.path.read_bytes(), config)
    write_output(json.dumps(mapping, indent=args.indent, ensure_ascii=False), args.output)
    return 0


def cmd_encode(args: argparse.Namespace) -> int:
    """Handle encode command."""
    config = ConversionConfig(
        pretty=args.pretty,
        indent=args.indent_with,
        xml_declaration=not args.no_declaration,
        short_empty_elements=not args.expand_empty,
    )
    mapping = json.loads(args.path.read_text(encoding="utf-8"))

    if args.output:
        args.output.write_bytes(encode_bytes(mapping, config))
        print(f"Output written to {args.output}", file=sys.stderr)
    else:
        print(encode(mapping, config).rstrip("\n"))
    return 0


def check_file(path: Path) -> Dict[str, Any]:
    """Run one file through decode, encode and decode again."""
    start_time = time.time()
    if not path.exists():
        return {"file": str(path), "passed": False, "error": "File not found"}

    try:
        first = decode(path.read_bytes())
        second = decode(encode(first))
    except (XmlDictError, OSError) as e:
        return {
            "file": str(path),
            "passed": False,
            "error": f"{type(e).__name__}: {e}",
        }

    result = {
        "file": str(path),
        "passed": ordered_equal(first, second),
        "processing_time_ms": (time.time() - start_time) * 1000,
    }
    if not result["passed"]:
        result["error"] = "Mapping changed after re-encoding"
    return result


def format_check_results(results: List[Dict[str, Any]], format_type: str) -> str:
    """Format round-trip check results for output."""
    if format_type == "json":
        return json.dumps(results, indent=2)

    passed = sum(1 for r in results if r["passed"])
    lines = [f"Checked {len(results)} files, {passed} passed", "-" * 50]
    for result in results:
        status = "✓" if result["passed"] else "✗"
        lines.append(f"{status} {result['file']}")
        if "error" in result:
            lines.append(f"   Error: {result['error']}")
    return "\n".join(lines)


def cmd_check(args: argparse.Namespace) -> int:
    """Handle check command."""
    results = [check_file(path) for path in args.paths]
    print(format_check_results(results, args.format))

    passed = sum(1 for r in results if r["passed"])
    return 0 if passed == len(results) else 1


COMMANDS = {
    "decode": cmd_decode,
    "encode": cmd_encode,
    "check": cmd_check,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    # Set up logging verbosity
    if args.verbose:
        configure_logging("DEBUG")
    elif args.quiet:
        configure_logging("ERROR")

    try:
        return COMMANDS[args.command](args)

    except (XmlDictError, ConfigError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except json.JSONDecodeError as e:
        print(f"Error: invalid JSON in {args.path}: {e}", file=sys.stderr)
        return 1
    except UnicodeDecodeError as e:
        print(f"Error: {args.path} is not valid UTF-8: {e.reason}", file=sys.stderr)
        return 1
    except OSError as e:
        logger.debug(
            "File operation failed",
            extra={"command": args.command, "error": str(e)}
        )
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT


if __name__ == "__main__":
    sys.exit(main())
