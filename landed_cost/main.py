"""Main entry point for the landed cost estimator."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from landed_cost.core.config import Settings, get_config_dir, get_settings
from landed_cost.core.models import FeePolicy
from landed_cost.core.quote import QuoteEngine
from landed_cost.utils.export import Exporter


def setup_logging(settings: Settings) -> None:
    """Configure application logging (stderr, so stdout stays JSON)."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="landed-cost",
        description="Quote landed cost and retail price for scraped product records.",
    )
    parser.add_argument("products", type=Path, help="JSON file with one product record or a list of them")
    parser.add_argument(
        "--policy",
        choices=[p.value for p in FeePolicy],
        default=FeePolicy.RETAIL.value,
        help="Fee policy to apply (default: retail)",
    )
    parser.add_argument("--csv", type=Path, help="Also write a flat CSV export to this path")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Application entry point."""
    args = build_parser().parse_args(argv)

    settings = get_settings()
    setup_logging(settings)
    logger = logging.getLogger(__name__)
    logger.debug(f"Config dir: {get_config_dir()}")

    try:
        with open(args.products, encoding="utf-8") as f:
            records = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot read products from {args.products}: {e}")
        print(f"Error: cannot read {args.products}: {e}", file=sys.stderr)
        return 1

    if not isinstance(records, list):
        records = [records]

    engine = QuoteEngine(settings)
    quotes = engine.quote_many(records, policy=FeePolicy(args.policy))
    logger.info(f"Quoted {len(quotes)} product(s) with policy {args.policy}")

    print(Exporter.quotes_to_json(quotes))

    if args.csv:
        Exporter.export_to_csv(quotes, args.csv)
        logger.info(f"Wrote CSV export to {args.csv}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
