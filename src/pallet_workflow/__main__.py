"""Entry point for `python -m pallet_workflow` and the `pallet-workflow` CLI script."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from pallet_workflow.export import read_export
from pallet_workflow.models import DtfSize, ProductionMethod, StitchCountTier
from pallet_workflow.pricing import is_plus_size, price_breakdown
from pallet_workflow.settings import WorkflowSettings
from pallet_workflow.validation import format_report, validate_orders
from pallet_workflow.workflow import GATE_CONDITIONS, ORDER_STAGES, STAGE_NUMBER


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Order workflow tools for the Pallet decoration shop")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Validate an exported order database")
    validate.add_argument("export_file", type=Path, help="Path to an export JSON document")

    price = subparsers.add_parser("price", help="Show the unit price breakdown for one decorated garment")
    price.add_argument("--cost", type=float, required=True, help="Wholesale unit cost")
    price.add_argument(
        "--method",
        default=ProductionMethod.SCREEN_PRINT.value,
        choices=[method.value for method in ProductionMethod],
        help="Decoration method",
    )
    price.add_argument("--placements", type=int, default=1, help="Number of decoration placements")
    price.add_argument("--size", default="M", help="Garment size; 2XL, 3XL and 4XL carry a surcharge")
    price.add_argument("--colors", type=int, default=None, help="Screen print ink colours")
    price.add_argument("--stitches", default=None, choices=[tier.value for tier in StitchCountTier], help="Embroidery stitch tier")
    price.add_argument("--dtf-size", default=None, choices=[size.value for size in DtfSize], help="DTF transfer size")

    subparsers.add_parser("stages", help="List workflow stages and what each needs before advancing")
    return parser.parse_args(argv)


def run_validate(export_file: Path, settings: WorkflowSettings) -> int:
    try:
        payload = read_export(export_file)
    except (OSError, ValueError) as exc:
        logging.error("Unable to read export: %s", exc)
        return 1

    orders = payload.get("orders")
    if not isinstance(orders, list):
        logging.error("Export %s has no orders array", export_file)
        return 1

    report = validate_orders(orders)
    metadata = payload.get("metadata") if isinstance(payload.get("metadata"), dict) else {}
    found = metadata.get("schemaVersion")
    if found != settings.schema_version:
        report.errors.insert(0, f"Unsupported schemaVersion {found!r}; expected {settings.schema_version!r}")
    sys.stdout.write(format_report(report))
    return 0 if report.valid else 1


def run_price(args: argparse.Namespace) -> int:
    try:
        breakdown = price_breakdown(
            args.cost,
            args.method,
            placements=args.placements,
            is_plus_size=is_plus_size(args.size),
            screen_print_colors=args.colors,
            stitch_count_tier=args.stitches,
            dtf_size=args.dtf_size,
        )
    except ValueError as exc:
        logging.error("Unable to price item: %s", exc)
        return 1
    print(f"Base (cost x 2): {breakdown.base:.2f}")
    for fee in breakdown.fees:
        print(f"+ {fee.label}: {fee.amount:.2f}")
    print(f"Unit price: {breakdown.total:.2f}")
    return 0


def run_stages() -> int:
    for stage in ORDER_STAGES:
        print(f"{STAGE_NUMBER[stage]:>2}  {stage.value:<20} {GATE_CONDITIONS[stage]}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = WorkflowSettings.from_env()
    except ValueError as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    if args.command == "validate":
        return run_validate(args.export_file, settings)
    if args.command == "price":
        return run_price(args)
    return run_stages()


if __name__ == "__main__":
    raise SystemExit(main())
