"""CLI entry point for the ABLE account projection calculator."""

from __future__ import annotations

import argparse
from dataclasses import asdict
import json
import logging
from pathlib import Path
import sys

from .overlay import ProjectionResult, compute_projection
from .schema import ProjectionRequest, SchemaError, load_request
from .validate import validate_request


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ABLE account projection calculator")
    parser.add_argument("request", help="Path to projection request JSON file")
    parser.add_argument("-o", "--output", default="projection.json", help="Output JSON path")
    parser.add_argument("--validate", action="store_true", help="Validate JSON only")
    parser.add_argument("--summary", action="store_true", help="Print text summary to stdout")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _print_validation(errors: list[str], warnings: list[str]) -> None:
    for warning in warnings:
        print(f"WARNING: {warning}")
    for error in errors:
        print(f"ERROR: {error}", file=sys.stderr)


def write_projection(path: str | Path, result: ProjectionResult) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(asdict(result), indent=2) + "\n", encoding="utf-8")


def _print_summary(request: ProjectionRequest, result: ProjectionResult) -> None:
    first = result.schedule[0]
    last = result.schedule[-1]
    print(f"Months: {len(result.schedule)} ({first.year}-{first.month:02d} to {last.year}-{last.month:02d})")
    print(f"Total contributions: ${sum(row.contributions for row in result.schedule):,.2f}")
    print(f"Total earnings: ${sum(row.earnings for row in result.schedule):,.2f}")
    print(f"Total withdrawals: ${sum(row.withdrawals for row in result.schedule):,.2f}")
    print(f"Ending balance: ${last.ending_balance:,.2f}")
    federal = sum(row.row_federal_tax for row in result.tax_aware_schedule)
    state = sum(row.row_state_tax for row in result.tax_aware_schedule)
    print(f"Federal tax on earnings: ${federal:,.2f}")
    print(f"State tax on earnings: ${state:,.2f}")
    if result.fsc_eligible_for_credit:
        credit = sum(row.row_federal_savers_credit for row in result.tax_aware_schedule)
        print(f"Savers Credit: ${credit:,.2f} at {result.fsc_credit_rate:.0%}")
    if result.plan_max_stop_row is not None:
        row = result.plan_max_stop_row
        print(f"Plan maximum reached: {row.year}-{row.month:02d}")
    if result.ssi_exceed_row is not None:
        row = result.ssi_exceed_row
        suffix = "" if request.is_ssi_beneficiary else " (not enforced)"
        print(f"SSI resource limit exceeded: {row.year}-{row.month:02d}{suffix}")


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        request = load_request(args.request)
    except (SchemaError, OSError, ValueError) as exc:
        print(f"Failed to load request: {exc}", file=sys.stderr)
        return 2

    validation = validate_request(request)
    _print_validation(validation.errors, validation.warnings)
    if not validation.is_valid:
        return 1

    if args.validate:
        print("Request is valid.")
        return 0

    result = compute_projection(request)
    write_projection(args.output, result)
    if args.summary:
        _print_summary(request, result)
    print(f"Wrote projection to {Path(args.output)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
