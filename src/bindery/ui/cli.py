# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from bindery.app import disable_binding, identifier_for_uuid, init_binding_tables, list_bindings
from bindery.config import configure_logging

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect and maintain identity bindings")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_db = subparsers.add_parser("init-db", help="Create binding tables")
    init_db.add_argument(
        "--class",
        dest="class_names",
        action="append",
        required=True,
        help="Class whose binding table should exist (repeatable)",
    )

    bindings = subparsers.add_parser("bindings", help="List bindings of a class")
    bindings.add_argument("--class", dest="class_name", required=True)
    bindings.add_argument(
        "--all",
        dest="include_disabled",
        action="store_true",
        help="Include disabled bindings",
    )

    identify = subparsers.add_parser("identify", help="Look up the identifier bound to a UUID")
    identify.add_argument("--class", dest="class_name", required=True)
    identify.add_argument("--name", required=True, help="Identifier field id")
    identify.add_argument("--uuid", required=True, help="Canonical UUID")

    disable = subparsers.add_parser("disable", help="Disable the binding of an identifier")
    disable.add_argument("--class", dest="class_name", required=True)
    disable.add_argument("--name", required=True, help="Identifier field id")
    disable.add_argument("--value", required=True, help="Identifier value")

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    uuid: UUID | None = None
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command == "identify":
            uuid = _parse_uuid(parsed_args.uuid)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "init-db":
            init_binding_tables(parsed_args.class_names)
        elif parsed_args.command == "bindings":
            for binding in list_bindings(
                parsed_args.class_name, include_disabled=parsed_args.include_disabled
            ):
                state = "disabled" if binding.disabled else "enabled"
                seen = binding.last_confirmed.isoformat() if binding.last_confirmed else "-"
                print(
                    f"{binding.uuid}\t{binding.identifier_name}={binding.identifier_value}"
                    f"\t{state}\t{seen}"
                )
        elif parsed_args.command == "identify" and uuid is not None:
            value = identifier_for_uuid(parsed_args.class_name, parsed_args.name, uuid)
            if value is None:
                log.warning("%s %s is not bound", parsed_args.class_name, uuid)
                sys.exit(1)
            print(value)
        elif parsed_args.command == "disable":
            disabled = disable_binding(
                parsed_args.class_name, parsed_args.name, parsed_args.value
            )
            log.info("Disabled %d binding(s)", disabled)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error in bindery command")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
