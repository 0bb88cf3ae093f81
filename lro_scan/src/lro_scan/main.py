#!/usr/bin/env python3
"""
LRO discard scanner for generated Azure Go SDK clients
------------------------------------------------------
Reports calls that start a long-running Create/Update/Delete operation and
never wait for it:

- Track 1 (azure-sdk-for-go): ``_, err := client.CreateOrUpdate(...)`` where
  the discarded first result wraps an ``azure.FutureAPI``.
- Pandora (hashicorp/go-azure-sdk): ``client.Delete(...)`` where the client
  also has ``DeleteThenPoll``.

USAGE EXAMPLES
--------------
# Scan every package of the module in the current directory:
lro-scan ./...

# JSON output, four workers, keep going when an SDK package is missing:
lro-scan --json -j 4 --on-inventory-error skip ./internal/...

DEPENDENCIES
------------
    pip install tree-sitter tree-sitter-go
"""

import argparse
import logging
import sys
from pathlib import Path

from lro_scan.src.lro_scan.analysis.engine import Scanner
from lro_scan.src.lro_scan.config import ON_ERROR_RAISE, ON_ERROR_SKIP, PANDORA_PACKAGE_PREFIXES, ScanConfig
from lro_scan.src.lro_scan.errors import LroScanError
from lro_scan.src.lro_scan.inputs.directory_scanning import GoLoader
from lro_scan.src.lro_scan.outputs.output import print_findings, to_json


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lro-scan", description=__doc__.splitlines()[1])
    parser.add_argument("patterns", nargs="*", default=["./..."], help="Go package patterns (default ./...)")
    parser.add_argument("-C", "--dir", type=Path, default=Path.cwd(), help="directory to run from")
    parser.add_argument("-j", "--workers", type=_positive_int, default=1)
    parser.add_argument("--json", action="store_true", help="print findings as JSON")
    parser.add_argument("--on-inventory-error", choices=(ON_ERROR_RAISE, ON_ERROR_SKIP), default=ON_ERROR_RAISE)
    parser.add_argument("--sdk-prefix", action="append", dest="sdk_prefixes",
                        help=f"receiver package prefix for the Pandora rule (default {PANDORA_PACKAGE_PREFIXES[0]})")
    parser.add_argument("--no-heuristic", action="store_true", help="do not downgrade likely false positives")
    parser.add_argument("--bare-calls", action="store_true", help="also check calls whose results are dropped")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def config_from_args(args: argparse.Namespace) -> ScanConfig:
    return ScanConfig(
        pandora_package_prefixes=tuple(args.sdk_prefixes) if args.sdk_prefixes else PANDORA_PACKAGE_PREFIXES,
        on_inventory_error=args.on_inventory_error,
        apply_confidence_heuristic=not args.no_heuristic,
        include_bare_calls=args.bare_calls,
        workers=args.workers,
    )


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    cfg = config_from_args(args)
    try:
        loader = GoLoader.for_directory(args.dir)
        packages = loader.load(args.patterns)
        findings = Scanner.for_loader(loader, cfg).scan(packages)
    except LroScanError as exc:
        print(f"load: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(to_json(findings))
    else:
        print_findings(findings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
