import argparse
import csv
import logging
import os
import sys
from typing import List, Optional

from csv_io import write_accounts
from payments_engine import PaymentsEngine, ProcessingError

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "TOY_ENGINE_LOG_LEVEL"
SOURCE_TYPES = ("csv",)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="toy-engine",
        description="Replay a CSV of client transactions into final account balances.",
    )
    parser.add_argument("input", help="input CSV file path")
    parser.add_argument("-o", "--output", help="output file path (defaults to stdout)")
    parser.add_argument(
        "-s", "--source-type",
        choices=SOURCE_TYPES,
        default="csv",
        help="input data format (only csv is supported)",
    )
    parser.add_argument("-w", "--workers", type=int, default=4, help="number of consumer threads")
    parser.add_argument(
        "--log-level",
        default=os.environ.get(LOG_LEVEL_ENV, "WARNING"),
        help=f"logging level (default: ${LOG_LEVEL_ENV} or WARNING)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.workers < 1:
        parser.error("--workers must be at least 1")

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    engine = PaymentsEngine(num_consumers=args.workers)
    try:
        accounts = engine.process_file(args.input)
    except OSError as e:
        logger.error(f"Failed to read {args.input}: {e}")
        return 1
    except csv.Error as e:
        logger.error(f"Failed to parse {args.input}: {e}")
        return 1
    except ProcessingError as e:
        logger.error(str(e))
        return 1

    try:
        if args.output:
            with open(args.output, "w", newline="") as f:
                write_accounts(accounts, f)
        else:
            write_accounts(accounts, sys.stdout)
            sys.stdout.flush()
    except OSError as e:
        logger.error(f"Failed to write results: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
