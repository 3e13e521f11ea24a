#!/usr/bin/env python3
"""Run the full schedule diagnostic against a camp YAML file.

Usage: campdiag-verify camp.yaml [--start DATE] [--end DATE]
                                 [--division NAME ...] [-o REPORT] [-v]

Exit code 0 if no errors were found, 1 otherwise.
"""

import argparse
import sys
from pathlib import Path

import yaml

from campdiag.config import load_config
from campdiag.diagnostic import format_diagnostic_report, run_full_diagnostic
from campdiag.normalize import is_date_key


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Check generated camp schedules for capacity, conflict "
                    "and fairness problems",
    )
    parser.add_argument(
        "camp", nargs="?", default="camp.yaml",
        help="Path to camp YAML file (default: camp.yaml)"
    )
    parser.add_argument("--start", help="First date to analyze (YYYY-MM-DD)")
    parser.add_argument("--end", help="Last date to analyze (YYYY-MM-DD)")
    parser.add_argument(
        "--division", action="append", dest="divisions", metavar="NAME",
        help="Only analyze this division (repeatable)"
    )
    parser.add_argument(
        "-o", "--output", metavar="PATH",
        help="Also write the report to this file"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Print progress for each analyzer"
    )
    args = parser.parse_args(argv)

    for label, value in (("--start", args.start), ("--end", args.end)):
        if value and not is_date_key(value):
            print(f"Error: {label} must be YYYY-MM-DD, got {value}")
            sys.exit(1)

    camp_path = args.camp
    if not Path(camp_path).exists():
        print(f"Error: {camp_path} not found")
        sys.exit(1)

    print(f"Loading camp data from {camp_path}...")
    try:
        config = load_config(camp_path)
    except (ValueError, yaml.YAMLError) as e:
        print(f"Error: {e}")
        sys.exit(1)
    data = config["data"]
    print(f"Loaded {len(data.days)} days, {len(data.divisions)} divisions")

    if args.divisions:
        unknown = [d for d in args.divisions if d not in data.divisions]
        if unknown:
            print(f"Warning: unknown division(s): {', '.join(unknown)}")

    date_range = None
    if args.start or args.end:
        date_range = {"start": args.start, "end": args.end}

    report = run_full_diagnostic(
        data,
        date_range=date_range,
        divisions=args.divisions,
        settings=config["settings"],
        verbose=args.verbose,
    )
    text = format_diagnostic_report(report)
    print(text)

    if args.output:
        out = Path(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text + "\n")
        print(f"Written: {out}")

    failed = report["summary"]["errors"] > 0 or "error" in report
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
