#!/usr/bin/env python3
"""
Run the scrub engine from the command line.

Usage:
  # Scrub an estimate file (optionally with the secondary calibration report)
  adas-scrub scrub estimate.txt --secondary revv.txt --vin 5YJ3E1EA7KF317000
  adas-scrub scrub estimate.txt --brand Honda --year 2023 --format compact

  # Show how the estimate lines were classified
  adas-scrub parse estimate.txt

  # Decode a VIN
  adas-scrub decode-vin JHMCV1F31PA000000

  # Scrub many jobs from a JSON list of requests, summary CSV to data/output/
  adas-scrub batch jobs.json --output-dir out/
"""

import argparse
import json
import sys
from pathlib import Path

from adas_scrub.config.settings import OUTPUT_DIR, configure_logging


def _read(path: str | None) -> str | None:
    if not path:
        return None
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def run_scrub(args):
    from adas_scrub.src import formatter
    from adas_scrub.src.pipeline import scrub_estimate

    result = scrub_estimate(
        _read(args.estimate),
        vin=args.vin,
        brand=args.brand,
        year=args.year,
        secondary_report_text=_read(args.secondary),
        vehicle_description=args.vehicle,
    )

    if args.format == "json":
        print(result.model_dump_json(indent=2))
    elif args.format == "compact":
        print(formatter.format_compact_notes(result))
    elif args.format == "preview":
        print(formatter.format_preview_notes(result))
    else:
        print(formatter.format_full_report(result))
    return 0 if result.ok else 1


def run_parse(args):
    from adas_scrub.src.reference import get_reference_tables
    from adas_scrub.src.stages.estimate_parser import EstimateParser

    tables = get_reference_tables()
    parser = EstimateParser(tables)
    text = _read(args.estimate)
    parsed = parser.parse(text)
    info = parser.extract_vehicle_info(text)

    print(f"\n{'='*60}")
    print(f"ESTIMATE: {parsed.total_lines} lines, {len(parsed.operations)} repair operations")
    print(f"Ignored: {parsed.ignored_lines} | Duplicates removed: {parsed.duplicates_removed}")
    if info.make or info.year or info.vin:
        print(f"Vehicle: {info.year or '?'} {info.make or '?'} VIN {info.vin or '-'}")
    print(f"{'='*60}")
    for op in parsed.operations:
        relevant = "*" if tables.triggers_for(op.component.category) else " "
        side = op.location.side.value if op.location.side else "-"
        print(f" {relevant} Line {op.line_number:>3}: {op.operation.value:<10} {op.component.category.value:<22} {side:<5} {op.component.description[:40]}")
    features = parser.extract_mentioned_features(text)
    if features:
        print(f"\nEquipment mentioned: {', '.join(features)}")
    print("\n(* = category has calibration trigger rules)")
    return 0


def run_decode_vin(args):
    from adas_scrub.config.settings import get_engine_settings
    from adas_scrub.src.reference import get_reference_tables
    from adas_scrub.src.stages.vin import VinDecoder

    strict = get_engine_settings().vin_checksum_strict and not args.lenient
    decoded = VinDecoder(get_reference_tables(), checksum_strict=strict).decode(args.vin)
    if decoded is None:
        print(f"Invalid VIN: {args.vin}")
        return 1
    print(f"VIN:      {decoded.vin}")
    print(f"Brand:    {decoded.brand or 'Unknown'}")
    print(f"Year:     {decoded.year or 'Unknown'}")
    print(f"WMI:      {decoded.wmi}")
    if decoded.checksum_valid is not None:
        print(f"Checksum: {'valid' if decoded.checksum_valid else 'INVALID'}")
    return 0


def run_batch(args):
    from adas_scrub.src.models import ScrubRequest
    from adas_scrub.src.pipeline import BATCH_SUMMARY_FILE, run_batch as _run_batch

    with open(args.jobs) as f:
        jobs = json.load(f)
    requests = [ScrubRequest(**job) for job in jobs]

    results = _run_batch(requests, output_dir=Path(args.output_dir) if args.output_dir else None)
    failed = [r for r in results if not r.ok]
    attention = [r for r in results if r.summary.needs_attention]
    print(f"\nScrubbed {len(results)} estimates: {len(attention)} need attention, {len(failed)} errors")
    print(f"Summary: {Path(args.output_dir or OUTPUT_DIR) / BATCH_SUMMARY_FILE}")
    return 1 if failed else 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="ADAS estimate scrub engine")
    parser.add_argument("--log-level", help="Override LOG_LEVEL (DEBUG, INFO, WARNING)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # scrub
    sp = subparsers.add_parser("scrub", help="Scrub one estimate")
    sp.add_argument("estimate", help="Estimate text file ('-' for stdin)")
    sp.add_argument("--secondary", help="Secondary calibration report text file")
    sp.add_argument("--vin", help="Vehicle VIN")
    sp.add_argument("--brand", help="Vehicle brand (e.g. Honda)")
    sp.add_argument("--year", type=int, help="Model year")
    sp.add_argument("--vehicle", help='Vehicle description, e.g. "2022 Mercedes-Benz GLE 350"')
    sp.add_argument("--format", choices=["full", "preview", "compact", "json"], default="full")
    sp.set_defaults(func=run_scrub)

    # parse
    pp = subparsers.add_parser("parse", help="Show how estimate lines are classified")
    pp.add_argument("estimate", help="Estimate text file ('-' for stdin)")
    pp.set_defaults(func=run_parse)

    # decode-vin
    vp = subparsers.add_parser("decode-vin", help="Decode brand and model year from a VIN")
    vp.add_argument("vin")
    vp.add_argument("--lenient", action="store_true", help="Accept VINs whose check digit fails")
    vp.set_defaults(func=run_decode_vin)

    # batch
    bp = subparsers.add_parser("batch", help="Scrub a JSON list of requests and export a CSV summary")
    bp.add_argument("jobs", help="JSON file: list of {estimate_text, vin, brand, year, ...}")
    bp.add_argument("--output-dir", help="Directory for scrub_summary.csv")
    bp.set_defaults(func=run_batch)

    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
