#!/usr/bin/env python3
"""Exchange Rates Oracle.

Reads exchange rates from on-chain price feed aggregators, normalizes them to
18 decimals, and reports rate validity and cross-rate conversions.

Configure via CLI args or env vars (CLI args take precedence).
"""

import argparse
import logging
import os
import sys
import time

from .src.Authorization import OwnerAuthorization
from .src.ContractUtility import NETWORKS, ContractUtility
from .src.CurrencyKey import CurrencyKey
from .src.ExchangeRates import ExchangeRates
from .src.FixedPoint import from_decimal_string, to_decimal_string
from .src.RateSettings import (
    DEFAULT_RATE_STALE_PERIOD,
    ZERO_ADDRESS,
    RateSettings,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def parse_feeds(feeds_str: str | None) -> dict[str, str]:
    """Parse comma-separated feed assignments into a dictionary.

    Format: key1=address1,key2=address2
    Example: sETH=0x5f4e...,sBTC=0xF403...

    :param feeds_str: Comma-separated feed string.
    :returns: Dict mapping currency symbols to aggregator addresses.
    """
    if not feeds_str:
        return {}

    feeds = {}
    for item in feeds_str.split(","):
        item = item.strip()
        if "=" in item:
            key, address = item.split("=", 1)
            feeds[key.strip()] = address.strip()
    return feeds


def parse_conversion(conversion: str) -> tuple[int, str, str]:
    """Parse a conversion request of the form ``AMOUNT:SRC:DEST``.

    :param conversion: Conversion string, e.g. "1.5:sETH:sBTC".
    :returns: Tuple of (amount in 18-decimal fixed point, source, destination).
    :raises ValueError: If the string is malformed.
    """
    parts = conversion.split(":")
    if len(parts) != 3:
        raise ValueError(
            f"Invalid conversion '{conversion}'. Expected 'AMOUNT:SRC:DEST' (e.g., '1.5:sETH:sUSD')"
        )
    amount = from_decimal_string(parts[0])
    if amount < 0:
        raise ValueError(f"Conversion amount must not be negative: {parts[0]}")
    return amount, parts[1].strip(), parts[2].strip()


def report(rates: ExchangeRates, keys: list[str], last_n: int) -> None:
    """Log rate, round, and validity for each currency."""
    now = int(time.time())
    for key in keys:
        entry = rates.rate_and_updated_time(key)
        round_id = rates.get_current_round_id(key)
        _, invalid = rates.rate_and_invalid(key)
        age = f"{now - entry.updated_at}s" if entry.updated_at else "n/a"
        logger.info(
            f"{key:<8} rate={to_decimal_string(entry.rate):<24} round={round_id:<8} "
            f"age={age:<8} stale={rates.rate_is_stale(key)} "
            f"flagged={rates.rate_is_flagged(key)} invalid={invalid}"
        )
        if last_n > 0:
            history, times = rates.rates_and_updated_time_for_currency_last_n_rounds(key, last_n)
            for rate, updated_at in zip(history, times):
                logger.info(f"    {to_decimal_string(rate):<24} at {updated_at}")

    logger.info(f"Any rate invalid: {rates.any_rate_is_invalid(keys)}")


def main() -> None:
    """Main entry point for the Exchange Rates Oracle CLI."""
    parser = argparse.ArgumentParser(
        description="Exchange Rates Oracle: normalized rates and validity from price feeds",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Networks:
  {', '.join(NETWORKS)} (or any RPC URL)

Examples:
  # Report rates for two feeds
  python -m rate_oracle.main --network sapphire-testnet \\
      --feeds sETH=0x...,sBTC=0x...

  # Convert 1.5 sETH into sBTC
  python -m rate_oracle.main --feeds sETH=0x...,sBTC=0x... --convert 1.5:sETH:sBTC

Environment variables (CLI args take precedence):
  NETWORK, RPC_URL, FEEDS, OWNER_ADDRESS, PRIVATE_KEY, RATE_STALE_PERIOD,
  AGGREGATOR_WARNING_FLAGS, CIRCUIT_BREAKER_ADDRESS, CIRCUIT_BREAKER_FACTOR
""",
    )

    parser.add_argument(
        "--network",
        type=str,
        help="Network to connect to (sapphire, sapphire-testnet, sapphire-localnet or RPC URL)",
        default=os.environ.get("NETWORK") or "sapphire-localnet",
    )

    parser.add_argument(
        "--feeds",
        type=str,
        help="Comma-separated currency feeds (e.g., sETH=0x...,sBTC=0x...)",
        default=os.environ.get("FEEDS"),
    )

    parser.add_argument(
        "--keys",
        type=str,
        help="Comma-separated currency keys to report (default: all feeds plus sUSD)",
        default=os.environ.get("KEYS"),
    )

    parser.add_argument(
        "--owner",
        type=str,
        help="Owner address allowed to change the registry (default: signer account)",
        default=os.environ.get("OWNER_ADDRESS"),
    )

    parser.add_argument(
        "--stale-period",
        dest="stale_period",
        type=int,
        help=f"Seconds after which a rate is stale (default: {DEFAULT_RATE_STALE_PERIOD})",
        default=int(os.environ.get("RATE_STALE_PERIOD") or DEFAULT_RATE_STALE_PERIOD),
    )

    parser.add_argument(
        "--flags-address",
        dest="flags_address",
        type=str,
        help="Address of the aggregator warning Flags contract (optional)",
        default=os.environ.get("AGGREGATOR_WARNING_FLAGS"),
    )

    parser.add_argument(
        "--circuit-breaker-address",
        dest="circuit_breaker_address",
        type=str,
        help="Address of a CircuitBreaker contract (default: in-process breaker)",
        default=os.environ.get("CIRCUIT_BREAKER_ADDRESS"),
    )

    parser.add_argument(
        "--circuit-breaker-factor",
        dest="circuit_breaker_factor",
        type=str,
        help="Deviation factor of the in-process circuit breaker (default: 1.5)",
        default=os.environ.get("CIRCUIT_BREAKER_FACTOR") or "1.5",
    )

    parser.add_argument(
        "--convert",
        type=str,
        action="append",
        help="Conversion AMOUNT:SRC:DEST to evaluate (repeatable)",
        default=[],
    )

    parser.add_argument(
        "--last-n",
        dest="last_n",
        type=int,
        help="Also report the last N rounds of each feed (default: 0)",
        default=0,
    )

    parser.add_argument(
        "--request-timeout",
        dest="request_timeout",
        type=float,
        help="Timeout for individual RPC requests in seconds (default: 10.0)",
        default=float(os.environ.get("REQUEST_TIMEOUT") or "10.0"),
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate arguments
    if args.stale_period < 0:
        parser.error("--stale-period must not be negative")

    if args.last_n < 0:
        parser.error("--last-n must not be negative")

    feeds = parse_feeds(args.feeds)
    if not feeds:
        parser.error("At least one feed must be specified (--feeds or FEEDS)")

    conversions = []
    for conversion in args.convert:
        try:
            conversions.append(parse_conversion(conversion))
        except ValueError as e:
            parser.error(str(e))

    try:
        settings = RateSettings(
            rate_stale_period=args.stale_period,
            aggregator_warning_flags=args.flags_address or None,
            circuit_breaker_factor=from_decimal_string(args.circuit_breaker_factor),
        )
    except ValueError as e:
        parser.error(str(e))

    if args.keys:
        keys = [k.strip() for k in args.keys.split(",") if k.strip()]
    else:
        keys = ["sUSD", *feeds]

    # Log configuration
    logger.info("=" * 60)
    logger.info("Exchange Rates Oracle")
    logger.info("=" * 60)
    logger.info(f"Network:           {args.network}")
    logger.info(f"Feeds:             {', '.join(feeds)}")
    logger.info(f"Stale Period:      {settings.rate_stale_period}s")
    logger.info(f"Warning Flags:     {settings.aggregator_warning_flags or 'disabled'}")
    logger.info(
        f"Circuit Breaker:   {args.circuit_breaker_address}"
        if args.circuit_breaker_address
        else f"Circuit Breaker:   in-process (factor {to_decimal_string(settings.circuit_breaker_factor)})"
    )
    logger.info("=" * 60)

    try:
        contract_utility = ContractUtility(args.network, request_timeout=args.request_timeout)
        owner = args.owner or contract_utility.default_account or ZERO_ADDRESS
        authorization = OwnerAuthorization(owner)

        rates = ExchangeRates.from_network(
            contract_utility,
            authorization,
            settings=settings,
            circuit_breaker_address=args.circuit_breaker_address,
        )
        for key, address in feeds.items():
            rates.add_aggregator_at(owner, CurrencyKey.from_string(key), address, contract_utility)

        report(rates, keys, args.last_n)

        for amount, src, dest in conversions:
            result = rates.effective_value_and_rates(src, amount, dest)
            logger.info(
                f"{to_decimal_string(amount)} {src} = {to_decimal_string(result.value)} {dest} "
                f"(rates {to_decimal_string(result.source_rate)} / "
                f"{to_decimal_string(result.destination_rate)})"
            )
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
