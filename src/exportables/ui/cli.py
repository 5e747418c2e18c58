from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from exportables.app import (
    build_services,
    export_named_record,
    initialise_schema,
    list_records,
    rebuild_defaults,
    revert_named_record,
)
from exportables.config import configure_logging
from exportables.domain.defaults import RebuildOutcome

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from exportables.domain.model import ManagedRecord

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile code-declared defaults")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log at DEBUG level",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init", help="Create tables and add missing provenance columns")

    rebuild = subparsers.add_parser("rebuild", help="Rebuild defaults")
    rebuild.add_argument(
        "--type",
        dest="types",
        action="append",
        metavar="TYPE",
        help="Managed type to rebuild (repeatable; defaults to every exportable type)",
    )

    listing = subparsers.add_parser("list", help="List the records of a managed type")
    listing.add_argument("type", help="Managed type name")

    export = subparsers.add_parser("export", help="Print a record as JSON")
    export.add_argument("type", help="Managed type name")
    export.add_argument("name", help="Record name")

    revert = subparsers.add_parser("revert", help="Restore the code default of a record")
    revert.add_argument("type", help="Managed type name")
    revert.add_argument("name", help="Record name")

    return parser.parse_args(list(argv))


def _format_record(record: ManagedRecord) -> str:
    flags = "|".join(flag.name or "" for flag in record.status) or "-"
    return f"{record.name}\t{flags}\t{record.module or '-'}"


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        services = build_services()
        if parsed_args.command == "init":
            added = initialise_schema(services)
            for type_name, columns in added.items():
                log.info("Added %s to %s", ", ".join(columns), type_name)
        elif parsed_args.command == "rebuild":
            report = rebuild_defaults(parsed_args.types, services=services)
            if not report.ok:
                failed = (
                    *report.names(RebuildOutcome.SCHEMA_ERROR),
                    *report.names(RebuildOutcome.FAILED),
                    *report.names(RebuildOutcome.UNKNOWN_TYPE),
                )
                log.error("Some types were not rebuilt: %s", ", ".join(failed))
                sys.exit(1)
        elif parsed_args.command == "list":
            for record in list_records(parsed_args.type, services=services):
                print(_format_record(record))  # noqa: T201
        elif parsed_args.command == "export":
            document = export_named_record(parsed_args.type, parsed_args.name, services=services)
            print(document)  # noqa: T201
        elif parsed_args.command == "revert":
            restored = revert_named_record(parsed_args.type, parsed_args.name, services=services)
            if restored is None:
                log.warning("Rebuild in progress; the default is restored when it finishes")
            else:
                log.info("Restored %s/%s", parsed_args.type, restored.name)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
