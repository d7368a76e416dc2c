"""
Run one council script and print its bins as JSON.

    python -m services.councils.collect_data WiltshireCouncil [URL] -u UPRN -p POSTCODE [-n HOUSE] [-s]

Exit status 0 with {"bins": [...]} on stdout, or 1 with "ErrorType: message"
on stderr.
"""

import argparse
import json
import logging
import sys

import config
from services.common.logging_utils import setup_logging
from services.councils import get_council_class


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fetch bin collection dates for one council")
    parser.add_argument("council", help="Council id, e.g. WiltshireCouncil")
    parser.add_argument("url", nargs="?", default=None, help="Council page URL")
    parser.add_argument("-p", "--postcode", help="Postcode")
    parser.add_argument("-u", "--uprn", help="UPRN")
    parser.add_argument("-n", "--number", help="House name or number")
    parser.add_argument(
        "-s",
        "--skip_get_url",
        action="store_true",
        help="Do not download the URL before parsing",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    setup_logging(config.COUNCIL_SCRIPT_LOG_LEVEL)
    logger = logging.getLogger(__name__)
    args = build_parser().parse_args(argv)

    try:
        council = get_council_class(args.council)()
        data = council.get_and_parse_data(
            args.url,
            postcode=args.postcode,
            uprn=args.uprn,
            paon=args.number,
            skip_get_url=args.skip_get_url,
        )
    except Exception as e:
        # Reported to the caller through stderr + exit status
        logger.debug("Council script %s failed", args.council, exc_info=True)
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return 1

    print(json.dumps(data, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
