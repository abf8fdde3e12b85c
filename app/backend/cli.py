"""Command line entry point: ``tpir [OPTIONS] [area code] [price]``.

Exits 0 when the current electricity price is at or below the given price,
1 when it is above and 2 on any error.
"""

import argparse
import logging
import sys

from app_service import APP_VERSION, PriceService
from container import build_container
from errors import PriceError
from pricing import AREA_CODES, normalize_area_code, parse_max_price

EXIT_PRICE_IS_RIGHT = 0
EXIT_PRICE_IS_WRONG = 1
EXIT_ERROR = 2

logger = logging.getLogger("tpir")

DESCRIPTION = (
    "The Price Is Right calls www.elprisetjustnu.se to check if the price for electricity "
    "is lower or higher than the given price. If lower the command returns 0, if higher "
    "it returns 1."
)


class ArgumentParser(argparse.ArgumentParser):
    def exit(self, status=0, message=None):
        if message:
            self._print_message(message, sys.stderr)
        sys.exit(EXIT_ERROR if status else status)


def build_parser():
    parser = ArgumentParser(prog="tpir", description=DESCRIPTION)
    parser.add_argument(
        "area_code",
        nargs="?",
        help=f"valid values are {', '.join(AREA_CODES)}",
    )
    parser.add_argument(
        "price",
        nargs="?",
        help="price of electricity in SEK per kWh needs to be lower than this to return 0",
    )
    parser.add_argument("--debug", action="store_true", help="turn on debug output")
    parser.add_argument("--config", metavar="FILE", help="YAML configuration file")
    parser.add_argument("--refresh", action="store_true", help="download a new price list even if the cache is current")
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    return parser


def configure_logging(level):
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run(args, service_factory=None):
    container = build_container(args.config)
    settings = container.settings
    configure_logging(logging.DEBUG if args.debug else settings.log_level)
    logger.debug("Starting up, using cache directory %s", container.cache_dir)

    area_value = args.area_code if args.area_code is not None else settings.area_code
    price_value = args.price if args.price is not None else settings.max_price
    if area_value is None or price_value is None:
        raise PriceError("area code and price are required (as arguments or in the configuration file)", code="USAGE")
    area_code = normalize_area_code(area_value)
    max_price = parse_max_price(price_value)

    service_factory = service_factory or PriceService.from_container
    service = service_factory(container, logger=logger)
    if args.refresh:
        service.refresh(area_code)
    check = service.check_price(area_code, max_price)
    write_error = service.last_write_error(area_code)
    if write_error is not None:
        print(f"warning: {write_error.message}", file=sys.stderr)
    return EXIT_PRICE_IS_RIGHT if check.is_right else EXIT_PRICE_IS_WRONG


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        return run(args)
    except PriceError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
