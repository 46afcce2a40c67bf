#!/usr/bin/env python3
"""Build the range index (cep.idx) for a CEP data file.

Writes one 8-byte big-endian (cep_initial, byte offset) entry per data row,
sorted by cep_initial.  Optionally cross-checks the result and writes a JSON
build report.

Usage:
    python3 scripts/build_cep_index.py --data data/cep.csv --output data/cep.idx

    # UTF-8 build of the dataset, with verification and a report:
    python3 scripts/build_cep_index.py --data data/cep.csv --encoding utf-8 \
      --verify --report data/cep.idx.report.json
"""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from geo_cep.index_builder import build_index, verify_index
from geo_cep.io_utils import save_json
from geo_cep.record_store import DEFAULT_ENCODING

log = logging.getLogger("build_cep_index")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Build the range index for a CEP data file."
    )
    parser.add_argument("--data", required=True, type=Path, help="Path to cep.csv")
    parser.add_argument(
        "--output", type=Path, default=None,
        help="Index path (default: data path with .idx suffix)",
    )
    parser.add_argument(
        "--encoding", default=DEFAULT_ENCODING,
        help=f"Data file encoding (default: {DEFAULT_ENCODING})",
    )
    parser.add_argument(
        "--report", type=Path, default=None,
        help="Write the build report as JSON to this path",
    )
    parser.add_argument(
        "--verify", action="store_true",
        help="Re-read every entry and check it against the data file",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    if not args.data.exists():
        print(f"Error: data file not found: {args.data}", file=sys.stderr)
        return 1
    output: Path = args.output or args.data.with_suffix(".idx")

    try:
        report = build_index(args.data, output, encoding=args.encoding)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.report is not None:
        save_json(asdict(report), args.report)
        log.info("Wrote build report to %s", args.report)

    if args.verify:
        problems = verify_index(args.data, output, encoding=args.encoding)
        for problem in problems:
            log.error("%s", problem)
        if problems:
            print(f"Verification failed: {len(problems)} problem(s)", file=sys.stderr)
            return 2
        log.info("Verified %d entries", report.entries)

    return 0


if __name__ == "__main__":
    sys.exit(main())
