"""
Command-line interface for inspecting sops envelopes.

Every command is read-only. Available commands:
- status
- explain
- rules
- help
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .config import BACKENDS, RULE_FIELDS, TOOL_VERSION, get_log_level
from .errors import SopsMetaError
from .formats import load_file
from .metadata import Metadata


# ---------------------------------------------------------------------------
# Color output helpers
# ---------------------------------------------------------------------------


class Colors:
    """ANSI color codes for terminal output."""
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    RESET = "\033[0m"
    BOLD = "\033[1m"


def colored(text: str, color: str) -> str:
    """Return colored text for terminal output."""
    return f"{color}{text}{Colors.RESET}"


def print_error(msg: str) -> None:
    """Print error message to stderr."""
    print(colored(f"✗ Error: {msg}", Colors.RED), file=sys.stderr)


def print_warning(msg: str) -> None:
    """Print warning message."""
    print(colored(f"⚠ Warning: {msg}", Colors.YELLOW))


# ---------------------------------------------------------------------------
# CLI context
# ---------------------------------------------------------------------------


class CLIContext:
    """Shared context for CLI commands."""

    def __init__(self, path: str, verbose: bool, quiet: bool):
        self.path = Path(path)
        self.verbose = verbose
        self.quiet = quiet

        # Lazy-loaded
        self._document: Optional[Tuple[Dict[str, Any], Optional[Metadata]]] = None

    def load(self) -> Tuple[Dict[str, Any], Metadata]:
        """
        Parse the target file once.

        Raises:
            SopsMetaError: if the file has no sops section
        """
        if self._document is None:
            self._document = load_file(self.path)

        data, metadata = self._document
        if metadata is None:
            raise SopsMetaError(f"No sops metadata found in {self.path}")
        return data, metadata

    def log(self, msg: str) -> None:
        """Log message if not quiet."""
        if not self.quiet:
            print(msg)

    def log_verbose(self, msg: str) -> None:
        """Log message if verbose."""
        if self.verbose:
            print(colored(f"  → {msg}", Colors.BLUE))


def describe_decision(encrypt: bool, rule: Optional[str]) -> str:
    label = colored("ENCRYPT", Colors.GREEN) if encrypt else colored("PLAINTEXT", Colors.YELLOW)
    return f"{label} ({rule or 'default'})"


# ---------------------------------------------------------------------------
# Command implementations
# ---------------------------------------------------------------------------


def cmd_status(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Show the envelope of a file.
    """
    _, metadata = ctx.load()

    if args.json:
        output = {
            "version": metadata.version,
            "lastmodified": metadata.lastmodified,
            "mac": metadata.has_mac,
            "recipients": {
                name: len(metadata.list_key_wrappings(name)) for name in BACKENDS
            },
            "rules": {
                name: getattr(metadata, name)
                for name in RULE_FIELDS
                if getattr(metadata, name) is not None
            },
        }
        print(json.dumps(output, indent=2))
        return 0

    # Human-readable output
    ctx.log(colored(f"Envelope: {ctx.path}", Colors.BOLD))
    ctx.log("")
    ctx.log(f"  Version:       {metadata.version}")
    ctx.log(f"  Last modified: {metadata.lastmodified or 'never'}")
    ctx.log(f"  MAC:           {colored('present', Colors.GREEN) if metadata.has_mac else colored('missing', Colors.YELLOW)}")

    ctx.log("")
    ctx.log(colored("Key wrappings:", Colors.CYAN))
    for name in BACKENDS:
        entries = metadata.list_key_wrappings(name)
        if not entries and not ctx.verbose:
            continue
        ctx.log(f"  {name:<10} {len(entries)}")
        for recipient in metadata.recipients(name):
            ctx.log_verbose(recipient)

    ctx.log("")
    ctx.log(colored("Rules:", Colors.CYAN))
    configured = [name for name in RULE_FIELDS if getattr(metadata, name) is not None]
    if not configured:
        ctx.log("  (none, every key is encrypted)")
    for name in configured:
        ctx.log(f"  {name:<20} {getattr(metadata, name)}")

    if not metadata.has_mac:
        ctx.log("")
        print_warning("envelope has no MAC")

    return 0


def cmd_explain(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Explain whether each given key would be encrypted.
    """
    if not args.keys:
        print_error("No keys provided")
        return 1

    _, metadata = ctx.load()

    for key in args.keys:
        decision = metadata.explain_key(key)
        ctx.log(f"  {key}: {describe_decision(decision.encrypt, decision.rule)}")

    return 0


def cmd_rules(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Apply the envelope rules to every top-level key of the document.
    """
    data, metadata = ctx.load()

    ctx.log(colored(f"Top-level keys in {ctx.path}", Colors.BOLD))
    ctx.log("")

    if not data:
        ctx.log("  (document has no data keys)")
        return 0

    encrypted = 0
    for key in sorted(data, key=str):
        decision = metadata.explain_key(str(key))
        encrypted += decision.encrypt
        ctx.log(f"  {key}: {describe_decision(decision.encrypt, decision.rule)}")

    ctx.log("")
    ctx.log(f"{encrypted} of {len(data)} key(s) encrypted")
    return 0


def cmd_help(ctx: Optional[CLIContext], args: argparse.Namespace) -> int:
    """
    Show help message.
    """
    help_text = f"""
{colored('sopsmeta', Colors.BOLD)}: inspect the metadata of sops-encrypted files

{colored('USAGE:', Colors.CYAN)}
  sopsmeta [options] <command> FILE [keys...]

{colored('COMMANDS:', Colors.CYAN)}
  status      Show version, MAC, recipients and rules of a file
  explain     Show whether the given keys would be encrypted, and why
  rules       Apply the rules to every top-level key of a file
  help        Show this help message

{colored('GLOBAL OPTIONS:', Colors.CYAN)}
  -v, --verbose             Enable verbose output and debug logging
  -q, --quiet               Suppress non-error output
  -h, --help                Show this help message and exit

{colored('ENVIRONMENT:', Colors.CYAN)}
  SOPSMETA_LOG_LEVEL        Logging level (default: WARNING)

{colored('EXAMPLES:', Colors.CYAN)}
  sopsmeta status secrets.yaml
  sopsmeta status secrets.json --json
  sopsmeta explain secrets.yaml api_key password_unencrypted
  sopsmeta rules secrets.yaml

{colored('VERSION:', Colors.CYAN)}
  {TOOL_VERSION}
"""
    print(help_text)
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="sopsmeta",
        description="Inspect the metadata of sops-encrypted files",
        add_help=False,
    )

    # Global options
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )
    parser.add_argument(
        "-h", "--help",
        action="store_true",
        help="Show help message",
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    status_parser = subparsers.add_parser("status", help="Show envelope summary")
    status_parser.add_argument("path", help="Encrypted file")
    status_parser.add_argument("--json", action="store_true", help="Output status as JSON")

    explain_parser = subparsers.add_parser("explain", help="Explain key encryption")
    explain_parser.add_argument("path", help="Encrypted file")
    explain_parser.add_argument("keys", nargs="*", help="Key names to evaluate")

    rules_parser = subparsers.add_parser("rules", help="Evaluate rules for every top-level key")
    rules_parser.add_argument("path", help="Encrypted file")

    subparsers.add_parser("help", help="Show help message")

    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else get_log_level(),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Show help if requested or no command
    if args.help or not args.command or args.command == "help":
        return cmd_help(None, args)

    configure_logging(args.verbose)

    ctx = CLIContext(path=args.path, verbose=args.verbose, quiet=args.quiet)

    commands = {
        "status": cmd_status,
        "explain": cmd_explain,
        "rules": cmd_rules,
    }

    cmd_func = commands.get(args.command)
    if not cmd_func:
        print_error(f"Unknown command: {args.command}")
        return 1

    try:
        return cmd_func(ctx, args)
    except KeyboardInterrupt:
        print_error("Interrupted")
        return 130
    except (SopsMetaError, OSError, ValueError, yaml.YAMLError) as e:
        print_error(str(e))
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
