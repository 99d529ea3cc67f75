"""Command-line front end.

    python -m polerecon SPIDA.json KATAPULT.json [--table buckets] [--pole PL123]
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

import pandas as pd

from . import frames
from .config import load_config
from .diagnostics import WarningCollector
from .engine import reconcile
from .errors import DocumentLoadError
from .loader import load_document

TABLES = {
    "buckets": frames.buckets_frame,
    "attachments": frames.attachments_frame,
    "points": frames.points_frame,
    "cross-arms": frames.cross_arms_frame,
    "guys": frames.guys_frame,
    "detail": frames.fuzzy_frame,
    "proposed": frames.proposed_frame,
    "summary": frames.summary_frame,
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="polerecon",
        description="Reconcile a SPIDAcalc export with a Katapult job export, pole by pole.",
    )
    parser.add_argument("spida", help="SPIDAcalc exchange JSON (Source A)")
    parser.add_argument("katapult", help="Katapult Pro job JSON (Source B)")
    parser.add_argument("--config", help="JSON file overriding alias tables and tolerances")
    parser.add_argument("--table", choices=sorted(TABLES), default="buckets",
                        help="which result table to print (default: buckets)")
    parser.add_argument("--pole", help="only show rows for this pole tag")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    documents = {}
    failed = False
    for name in ("spida", "katapult"):
        try:
            documents[name] = load_document(getattr(args, name))
        except DocumentLoadError as e:
            print(f"❌ {e}", file=sys.stderr)
            failed = True
    if failed:
        return 1

    warnings = WarningCollector()
    result = reconcile(documents["spida"], documents["katapult"],
                       warnings=warnings, config=load_config(args.config))

    table = TABLES[args.table](result)
    if args.pole and "Pole" in table.columns:
        table = table[table["Pole"] == args.pole.upper()]

    with pd.option_context("display.max_rows", None, "display.max_columns", None,
                           "display.width", 200):
        print(table.to_string(index=False) if not table.empty else "(no rows)")

    if len(warnings):
        print(f"\n⚠️  {len(warnings)} warnings:", file=sys.stderr)
        for msg in warnings:
            print(f"   - {msg}", file=sys.stderr)
    return 0
