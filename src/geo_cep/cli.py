"""cep2city: print the city data for one or more CEPs.

Usage:
    cep2city 12420-010 01310-200
    cep2city --json 12420010
    cep2city --list --data /srv/cep/cep.csv
"""
from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from geo_cep.io_utils import dumps_json
from geo_cep.resolver import ResolvedCity, Resolver

log = logging.getLogger("cep2city")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cep2city",
        description="Resolve Brazilian CEPs to city, state, DDD and coordinates.",
    )
    parser.add_argument("ceps", nargs="*", metavar="CEP", help="CEP, e.g. 12420-010")
    parser.add_argument(
        "--data", type=Path, default=None,
        help="Data file (default: $GEO_CEP_DATA or bundled cep.csv)",
    )
    parser.add_argument(
        "--index", type=Path, default=None,
        help="Range index file (default: next to the data file)",
    )
    parser.add_argument(
        "--encoding", default=None,
        help="Data file encoding (default: $GEO_CEP_ENCODING or latin-1)",
    )
    parser.add_argument(
        "--json", action="store_true",
        help="Emit one JSON object keyed by the CEPs as given",
    )
    parser.add_argument(
        "--list", action="store_true",
        help="Dump every city in the dataset as JSON",
    )
    parser.add_argument(
        "--memoize", action="store_true",
        help="Cache lookups (useful for large batches with repeats)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    return parser


def format_city(city: ResolvedCity) -> str:
    """Fields sorted by name, one ``name:<TAB>value`` per line."""
    fields = city.to_dict()
    lines = []
    for name in sorted(fields):
        value = fields[name]
        lines.append(f"{name}:\t{'' if value is None else value}")
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    if not args.ceps and not args.list:
        parser.print_usage(sys.stdout)
        return 0

    try:
        resolver = Resolver(args.data, args.index, encoding=args.encoding, memoize=args.memoize)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    with resolver:
        log.debug("Using %r", resolver)
        if args.list:
            cities = resolver.list()
            payload = {key: city.to_dict() for key, city in sorted(cities.items())}
            sys.stdout.buffer.write(dumps_json(payload) + b"\n")
            return 0

        results: list[tuple[str, ResolvedCity | None]] = []
        for cep in args.ceps:
            city = resolver.find(cep)
            results.append((cep, city))
            if city is None:
                print(f"CEP not found: {cep}", file=sys.stderr)

    if args.json:
        payload_json = {cep: (c.to_dict() if c else None) for cep, c in results}
        sys.stdout.buffer.write(dumps_json(payload_json) + b"\n")
        return 0

    blocks = [format_city(city) for _cep, city in results if city is not None]
    if blocks:
        print("\n\n".join(blocks))
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
