#!/usr/bin/env python3
"""
slotcodec CLI

Command-line interface for packing credential payloads into claim slots.

Usage:
    slotcodec [--config FILE] [--format FMT] <command> [options]

Commands:
    pack        Pack a payload into index/value slots
    slot-index  Show which claim slot a field lands in
    validate    Validate a payload against its schema
    config      Configuration management
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from enum import Enum
from typing import Any, List, Optional

from slotcodec import __version__
from slotcodec.codec import Strategy, pack, slot_index_of
from slotcodec.config import ConfigError, get_config_manager
from slotcodec.core import read_bytes
from slotcodec.errors import CodecError, PayloadValidationError
from slotcodec.validation import validate_payload

logger = logging.getLogger(__name__)

# Exit code for inputs the codec rejects.
EXIT_CODEC_ERROR = 2


class OutputFormat(Enum):
    """Output format options."""
    JSON = "json"
    YAML = "yaml"
    TEXT = "text"


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


def format_output(data: Any, fmt: OutputFormat = OutputFormat.JSON) -> str:
    """Format data for output."""
    if fmt == OutputFormat.JSON:
        return json.dumps(data, indent=2, default=str)
    elif fmt == OutputFormat.YAML:
        import yaml
        return yaml.dump(data, default_flow_style=False)
    return _format_text(data)


def _format_text(data: Any, indent: str = "") -> str:
    """Format nested dicts as ``key: value`` lines."""
    if isinstance(data, dict):
        lines = []
        for k, v in data.items():
            if isinstance(v, dict):
                lines.append(f"{indent}{k}:")
                lines.append(_format_text(v, indent + "  "))
            elif isinstance(v, list):
                lines.append(f"{indent}{k}:")
                lines.extend(f"{indent}  - {item}" for item in v)
            else:
                lines.append(f"{indent}{k}: {v}")
        return "\n".join(lines)
    return f"{indent}{data}"


def _read(path: str, what: str) -> bytes:
    try:
        return read_bytes(path)
    except OSError as e:
        raise CLIError(f"Cannot read {what} file {path}: {e.strerror or e}") from e


class SlotCodecCLI:
    """Main CLI application."""

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="slotcodec",
            description="Pack credential payloads into zero-knowledge claim slots",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.parser.add_argument(
            "--version", "-V",
            action="version",
            version=f"slotcodec {__version__}",
        )
        self.parser.add_argument(
            "--config", "-c",
            metavar="FILE",
            help="YAML configuration file (default: slotcodec.yaml if present)",
        )
        self.parser.add_argument(
            "--format", "-f",
            choices=[f.value for f in OutputFormat],
            default="json",
            help="Output format (default: json)",
        )
        self.parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress error messages",
        )

        self.subparsers = self.parser.add_subparsers(dest="command", help="Commands")
        self._register_commands()

    def _register_commands(self) -> None:
        """Register all commands."""
        self._register_pack_commands()
        self._register_slot_index_commands()
        self._register_validate_commands()
        self._register_config_commands()

    @staticmethod
    def _add_input_args(parser: argparse.ArgumentParser, payload: bool = True) -> None:
        if payload:
            parser.add_argument("--payload", "-p", required=True, help="Payload JSON file")
        parser.add_argument("--schema", "-s", required=True, help="Schema file")
        parser.add_argument(
            "--type", "-t",
            dest="claim_type",
            default="",
            help="Credential type name or @id (JSON-LD schemas)",
        )

    def _register_pack_commands(self) -> None:
        """Register pack command."""
        pack_cmd = self.subparsers.add_parser("pack", help="Pack a payload into claim slots")
        self._add_input_args(pack_cmd)
        pack_cmd.add_argument(
            "--strategy",
            choices=[s.value for s in Strategy],
            help="Packing strategy (default: chosen by schema dialect)",
        )
        pack_cmd.add_argument(
            "--raw",
            action="store_true",
            help="Also print the 8 x 32-byte claim slot layout",
        )

    def _register_slot_index_commands(self) -> None:
        """Register slot-index command."""
        idx = self.subparsers.add_parser("slot-index", help="Show a field's claim slot position")
        idx.add_argument("field", help="Field name (or path for merklized schemas)")
        self._add_input_args(idx, payload=False)

    def _register_validate_commands(self) -> None:
        """Register validate command."""
        val = self.subparsers.add_parser("validate", help="Validate a payload against its schema")
        self._add_input_args(val)

    def _register_config_commands(self) -> None:
        """Register config subcommands."""
        config = self.subparsers.add_parser("config", help="Configuration management")
        config_sub = config.add_subparsers(dest="subcommand")

        # config get
        get = config_sub.add_parser("get", help="Get configuration value")
        get.add_argument("path", help="Config path (e.g., sequential.cell_width)")

        # config show
        config_sub.add_parser("show", help="Show all configuration")

        # config validate
        config_sub.add_parser("validate", help="Validate configuration")

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 0

        try:
            self._load_config(parsed)
            fmt = OutputFormat(parsed.format)
            result = self._dispatch(parsed)

            if result is not None:
                print(format_output(result, fmt))

            if isinstance(result, dict) and result.get("valid") is False:
                return 1
            return 0

        except CLIError as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return e.exit_code

        except CodecError as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return EXIT_CODEC_ERROR

        except ConfigError as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return 1

    def _load_config(self, args: argparse.Namespace) -> None:
        mgr = get_config_manager()
        if args.config:
            mgr.load_from_file(args.config)
        else:
            mgr.load_defaults()

        level = str(mgr.get("logging.level")).upper()
        logging.basicConfig(
            level=getattr(logging, level, logging.WARNING),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    def _dispatch(self, args: argparse.Namespace) -> Any:
        """Dispatch command to handler."""
        cmd = args.command.replace("-", "_")
        subcmd = getattr(args, "subcommand", None)

        handler_name = f"_handle_{cmd}_{subcmd}" if subcmd else f"_handle_{cmd}"
        handler = getattr(self, handler_name, None)

        if handler is None:
            raise CLIError(f"Unknown command: {args.command} {subcmd or ''}")

        return handler(args)

    # Codec handlers
    def _handle_pack(self, args: argparse.Namespace) -> Any:
        payload = _read(args.payload, "payload")
        schema = _read(args.schema, "schema")
        slots = pack(payload, schema, args.strategy, args.claim_type)

        result = {"slots": slots.to_dict(), "digest": slots.digest()}
        if args.raw:
            result["raw_slots"] = [s.hex() for s in slots.to_raw_slots()]
        return result

    def _handle_slot_index(self, args: argparse.Namespace) -> Any:
        schema = _read(args.schema, "schema")
        return {"field": args.field, "slot_index": slot_index_of(args.field, schema, args.claim_type)}

    def _handle_validate(self, args: argparse.Namespace) -> Any:
        payload = _read(args.payload, "payload")
        schema = _read(args.schema, "schema")
        try:
            validate_payload(payload, schema, args.claim_type)
        except PayloadValidationError as e:
            return {"valid": False, "errors": e.errors}
        return {"valid": True, "errors": []}

    # Config handlers
    def _handle_config_get(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        return {"path": args.path, "value": mgr.get(args.path)}

    def _handle_config_show(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        return mgr.config.to_dict()

    def _handle_config_validate(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        errors = mgr.validate()
        return {"valid": len(errors) == 0, "errors": errors}

    def _handle_config(self, args: argparse.Namespace) -> Any:
        raise CLIError("config requires a subcommand: get, show, validate")


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    cli = SlotCodecCLI()
    return cli.run(argv)


if __name__ == "__main__":
    sys.exit(main())
