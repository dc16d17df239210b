#!/usr/bin/env python3
"""Offchain Rate Oracle.

Queries a set of on-chain rate oracles through connector assets and prints
the confidence-weighted consensus rate between two assets.

The rate is NOT manipulation resistant; see offchain_oracle.src.RateAggregator.
"""

import argparse
import logging
import os
import sys

from .src.Asset import NATIVE, to_asset, wrapped_native_for
from .src.ContractSources import ContractOracle, ContractResolver, ContractWrapper
from .src.ContractUtility import DEFAULT_RPC_TIMEOUT, NETWORKS, ContractUtility
from .src.errors import OracleError
from .src.FixedPoint import ONE, to_decimal
from .src.OracleRegistry import OracleRegistry, OracleType
from .src.RateAggregator import DEFAULT_THRESHOLD_FILTER, RateAggregator
from .src.WrapperResolver import MultiWrapper, StaticWrapper

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def parse_list(value: str | None) -> list[str]:
    """Split a comma-separated string into stripped, non-empty items."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_oracles(oracle_str: str | None) -> list[tuple[str, OracleType]]:
    """Parse comma-separated oracle specs into (address, kind) tuples.

    Format: address[:kind],address[:kind]
    Kinds: native, wrapped_native, both (default: both)
    Example: 0xabc...:native,0xdef...

    :param oracle_str: Comma-separated oracle specs.
    :returns: List of (checksummed address, OracleType) tuples.
    :raises ValueError: If an address or kind is invalid.
    """
    oracles = []
    for item in parse_list(oracle_str):
        address, _, kind = item.partition(":")
        oracle_type = OracleType.from_string(kind) if kind else OracleType.BOTH
        oracles.append((to_asset(address.strip()), oracle_type))
    return oracles


def main() -> None:
    """Main entry point for the Offchain Rate Oracle CLI."""
    parser = argparse.ArgumentParser(
        description="Offchain Rate Oracle: weighted consensus rates from on-chain oracles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Known networks:
  {', '.join(NETWORKS)}

Examples:
  # DAI -> USDC through two oracles and USDT/WETH connectors
  python -m offchain_oracle.main --network ethereum \\
      --src 0x6B175474E89094C44Da98b954EedeAC495271d0F \\
      --dst 0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48 \\
      --oracles 0xOracleA:both,0xOracleB:wrapped_native \\
      --connectors 0xdAC17F958D2ee523a2206206994597C13D831ec7

  # Rate to the native asset (omit --dst)
  python -m offchain_oracle.main --network ethereum --src 0x... --oracles 0x...

Environment variables (CLI args take precedence):
  SRC, DST, ORACLES, CONNECTORS, WRAPPERS, THRESHOLD_FILTER, NETWORK, RPC_URL,
  RPC_TIMEOUT, MULTI_WRAPPER_ADDRESS, WRAPPED_NATIVE_ADDRESS
""",
    )

    parser.add_argument(
        "--src",
        type=str,
        help="Source asset address",
        default=os.environ.get("SRC"),
    )

    parser.add_argument(
        "--dst",
        type=str,
        help="Destination asset address (omit for the rate to the native asset)",
        default=os.environ.get("DST"),
    )

    parser.add_argument(
        "--oracles",
        type=str,
        help="Comma-separated oracle specs address[:native|wrapped_native|both]",
        default=os.environ.get("ORACLES"),
    )

    parser.add_argument(
        "--connectors",
        type=str,
        help="Comma-separated registered connector addresses",
        default=os.environ.get("CONNECTORS"),
    )

    parser.add_argument(
        "--custom-connectors",
        dest="custom_connectors",
        type=str,
        help="Comma-separated per-request connector addresses",
        default=None,
    )

    parser.add_argument(
        "--wrappers",
        type=str,
        help="Comma-separated single-step wrapper contract addresses",
        default=os.environ.get("WRAPPERS"),
    )

    parser.add_argument(
        "--multi-wrapper",
        dest="multi_wrapper",
        type=str,
        help="Address of a deployed multi-wrapper contract (overrides --wrappers)",
        default=os.environ.get("MULTI_WRAPPER_ADDRESS"),
    )

    parser.add_argument(
        "--wrapped-native",
        dest="wrapped_native",
        type=str,
        help="Wrapped native asset address (default: network's canonical one)",
        default=os.environ.get("WRAPPED_NATIVE_ADDRESS"),
    )

    parser.add_argument(
        "--threshold",
        type=int,
        help=f"Threshold filter percent 0-99 (default: {DEFAULT_THRESHOLD_FILTER})",
        default=os.environ.get("THRESHOLD_FILTER") or str(DEFAULT_THRESHOLD_FILTER),
    )

    parser.add_argument(
        "--no-wrapping",
        dest="use_wrappers",
        action="store_false",
        help="Do not expand assets into their wrapped forms",
    )

    parser.add_argument(
        "--network",
        type=str,
        help=f"Network to connect to ({', '.join(NETWORKS)})",
        default=os.environ.get("NETWORK") or "ethereum",
    )

    parser.add_argument(
        "--rpc-timeout",
        dest="rpc_timeout",
        type=float,
        help=f"Timeout for each oracle call in seconds (default: {DEFAULT_RPC_TIMEOUT})",
        default=os.environ.get("RPC_TIMEOUT") or str(DEFAULT_RPC_TIMEOUT),
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
    if not args.src:
        parser.error("--src must be specified")

    if not 0 <= args.threshold < 100:
        parser.error("--threshold must be between 0 and 99")

    try:
        oracle_specs = parse_oracles(args.oracles)
        connectors = [to_asset(c) for c in parse_list(args.connectors)]
        custom_connectors = [to_asset(c) for c in parse_list(args.custom_connectors)]
        wrapper_addresses = [to_asset(w) for w in parse_list(args.wrappers)]
    except ValueError as e:
        parser.error(str(e))

    if not oracle_specs:
        parser.error("At least one oracle must be specified")

    wrapped_native = args.wrapped_native or wrapped_native_for(args.network)
    if not wrapped_native:
        parser.error(f"No wrapped native asset configured for network {args.network}")

    # Log configuration
    logger.info("=" * 60)
    logger.info("Offchain Rate Oracle")
    logger.info("=" * 60)
    logger.info(f"Network:           {args.network}")
    logger.info(f"Source:            {args.src}")
    logger.info(f"Destination:       {args.dst or 'native'}")
    logger.info(f"Oracles:           {len(oracle_specs)}")
    logger.info(f"Connectors:        {len(connectors)} (+{len(custom_connectors)} custom)")
    logger.info(f"Wrapping:          {'enabled' if args.use_wrappers else 'disabled'}")
    logger.info(f"Threshold Filter:  {args.threshold}%")
    logger.info("=" * 60)

    try:
        w3 = ContractUtility(args.network, timeout=args.rpc_timeout).w3
        wrapped_native = to_asset(wrapped_native)

        if args.multi_wrapper:
            resolver = ContractResolver(w3, args.multi_wrapper)
        else:
            wrappers = [
                StaticWrapper({NATIVE: (wrapped_native, ONE), wrapped_native: (NATIVE, ONE)})
            ]
            wrappers.extend(ContractWrapper(w3, a) for a in wrapper_addresses)
            # Local registry is never mutated after construction
            resolver = MultiWrapper(owner=NATIVE, wrappers=wrappers)

        registry = OracleRegistry(
            owner=NATIVE,
            wrapped_native=wrapped_native,
            resolver=resolver,
            oracles=[(ContractOracle(w3, a), kind) for a, kind in oracle_specs],
            connectors=connectors,
        )
        aggregator = RateAggregator(registry)

        if args.dst:
            result = aggregator.aggregate(
                args.src, args.dst, args.use_wrappers, custom_connectors, args.threshold
            )
        else:
            result = aggregator.aggregate_to_native(
                args.src, args.use_wrappers, custom_connectors, args.threshold
            )

        logger.info(f"Result: {to_decimal(result.rate)} ({result.metadata})")
        print(result.rate)
    except OracleError as e:
        logger.error(f"Request rejected: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
