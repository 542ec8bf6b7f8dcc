# ruff: noqa: T201

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from editionledger.app import build_ledger
from editionledger.config import configure_logging
from editionledger.domain.errors import LineItemNotFound, RevokeOnUnassigned, SequencingConflict
from editionledger.domain.model import RemovalReason
from editionledger.domain.revocation import DEACTIVATION_REASONS

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from editionledger.app import EditionLedger

log = logging.getLogger(__name__)

SYNC_COMMANDS = frozenset({"sync", "sync-order"})


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Maintain limited-edition numbering")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("sync", help="Sync orders changed since the last run")

    sync_order = subparsers.add_parser("sync-order", help="Sync a single platform order")
    sync_order.add_argument("order_id", help="Platform order id")

    assign = subparsers.add_parser("assign", help="Resequence edition numbers of a product")
    assign.add_argument("product_id")
    assign.add_argument(
        "--force-sync",
        action="store_true",
        help="Recompute every line item's status from stored order data first",
    )
    assign.add_argument(
        "--no-wait",
        action="store_true",
        help="Fail instead of waiting when the product is being resequenced",
    )

    revoke = subparsers.add_parser("revoke", help="Revoke the edition number of a line item")
    revoke.add_argument("line_item_id")

    deactivate = subparsers.add_parser(
        "deactivate", help="Take a line item out of the numbering"
    )
    deactivate.add_argument("line_item_id")
    deactivate.add_argument(
        "--reason",
        required=True,
        choices=sorted(reason.value for reason in DEACTIVATION_REASONS),
    )
    deactivate.add_argument("--notes", type=str, help="Free-form note stored with the event")

    authenticate = subparsers.add_parser(
        "authenticate", help="Record the first authentication of a certificate"
    )
    authenticate.add_argument("line_item_id")

    transfer = subparsers.add_parser("transfer", help="Transfer ownership of an edition")
    transfer.add_argument("line_item_id")
    transfer.add_argument("--email", required=True)
    transfer.add_argument("--name", type=str)

    for name, help_text in (
        ("verify", "Show the current state of an edition"),
        ("history", "Show the full event history of a line item"),
        ("ownership", "Show the ownership transfers of a line item"),
    ):
        command = subparsers.add_parser(name, help=help_text)
        command.add_argument("line_item_id")

    duplicates = subparsers.add_parser(
        "duplicates", help="Check a product for duplicate edition numbers"
    )
    duplicates.add_argument("product_id")

    editions = subparsers.add_parser("editions", help="List the editions of a product")
    editions.add_argument("product_id")
    editions.add_argument("--history", action="store_true", help="Include per-item history")

    integrity = subparsers.add_parser("integrity", help="Audit stored numbering")
    integrity.add_argument("--product-id", type=str, help="Limit the audit to one product")

    collector = subparsers.add_parser("collector", help="List editions owned by a collector")
    collector.add_argument("email")

    return parser.parse_args(list(argv))


def _jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            item.name: _jsonable(getattr(value, item.name)) for item in dataclasses.fields(value)
        }
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in value]
    return value


def _emit(value: Any) -> None:
    print(json.dumps(_jsonable(value), indent=2, default=str))


def _run_command(ledger: EditionLedger, args: argparse.Namespace) -> int:  # noqa: C901, PLR0911, PLR0912
    """Execute one command and return the process exit code."""

    command = args.command
    if command == "sync":
        result = ledger.trigger_manual_sync()
        _emit(result)
        return 1 if result.aborted or result.errored else 0
    if command == "sync-order":
        result = ledger.sync_single_order(args.order_id)
        _emit(result)
        return 1 if result.aborted or result.errored else 0
    if command == "assign":
        _emit(
            ledger.assign_edition_numbers(
                args.product_id, force_sync=args.force_sync, wait=not args.no_wait
            )
        )
        return 0
    if command == "revoke":
        _emit(ledger.revoke_edition(args.line_item_id))
        return 0
    if command == "deactivate":
        _emit(
            ledger.deactivate_line_item(
                args.line_item_id, RemovalReason(args.reason), notes=args.notes
            )
        )
        return 0
    if command == "authenticate":
        _emit(ledger.record_authentication(args.line_item_id))
        return 0
    if command == "transfer":
        _emit(ledger.transfer_ownership(args.line_item_id, email=args.email, name=args.name))
        return 0
    if command == "verify":
        _emit(ledger.verify_edition(args.line_item_id))
        return 0
    if command == "history":
        _emit(ledger.get_edition_history(args.line_item_id))
        return 0
    if command == "ownership":
        _emit(ledger.get_ownership_history(args.line_item_id))
        return 0
    if command == "duplicates":
        report = ledger.check_duplicates(args.product_id)
        _emit(report)
        return 1 if report.has_duplicates else 0
    if command == "editions":
        _emit(ledger.list_product_editions(args.product_id, include_history=args.history))
        return 0
    if command == "integrity":
        report = ledger.validate_data_integrity(args.product_id)
        _emit(report)
        return 0 if report.ok else 1
    if command == "collector":
        _emit(ledger.get_collector_editions(args.email))
        return 0
    raise ValueError(f"Unsupported command: {command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(verbose=parsed_args.verbose)

    try:
        ledger = build_ledger(with_sources=parsed_args.command in SYNC_COMMANDS)
        exit_code = _run_command(ledger, parsed_args)
    except (LineItemNotFound, RevokeOnUnassigned, ValueError) as exc:
        log.error(f"Rejected: {exc}")  # noqa: TRY400
        sys.exit(2)
    except SequencingConflict as exc:
        log.error(f"Rejected: {exc}, try again once it finishes")  # noqa: TRY400
        sys.exit(1)
    except Exception:
        log.exception(f"Fatal error during {parsed_args.command}")
        sys.exit(1)
    if exit_code:
        sys.exit(exit_code)


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
