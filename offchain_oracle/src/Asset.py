"""Asset: Address normalisation and well-known asset identifiers.

Assets are identified by EIP-55 checksummed addresses. The chain's native asset
has no contract of its own and is represented by the zero address, which is
distinct from its wrapped (ERC-20) counterpart.

.. code-block:: python

    >>> to_asset("0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2")
    '0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2'
    >>> same_address(NATIVE, "0x" + "00" * 20)
    True
"""

from __future__ import annotations

from web3 import Web3

NATIVE = "0x0000000000000000000000000000000000000000"

# Connector value meaning "quote src against dst directly, no intermediate hop".
NO_CONNECTOR = "0xFFfFfFffFFfffFFfFFfFFFFFffFFFffffFfFFFfF"

# Canonical wrapped-native token per network.
DEFAULT_WRAPPED_NATIVE: dict[str, str | None] = {
    "ethereum": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
    "bsc": "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c",
    "polygon": "0x0d500B1d8E8eF31E21C99d1Db9A6444d3ADf1270",
    "arbitrum": "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",
    "optimism": "0x4200000000000000000000000000000000000006",
    "base": "0x4200000000000000000000000000000000000006",
    "localnet": None,
}


def to_asset(address: str) -> str:
    """Normalise an address to its checksummed form.

    :param address: Hex address in any letter case.
    :returns: EIP-55 checksummed address.
    :raises ValueError: If address is not a valid 20-byte hex address.
    """
    if not isinstance(address, str) or not Web3.is_address(address):
        raise ValueError(f"Invalid asset address: {address!r}")
    return Web3.to_checksum_address(address)


def to_assets(addresses: list[str] | tuple[str, ...]) -> tuple[str, ...]:
    """Normalise a sequence of addresses, preserving order and duplicates."""
    return tuple(to_asset(a) for a in addresses)


def same_address(a: str, b: str) -> bool:
    """Compare two addresses regardless of letter case.

    Anything that is not a valid address matches nothing.
    """
    try:
        return to_asset(a) == to_asset(b)
    except ValueError:
        return False


def wrapped_native_for(network_name: str) -> str | None:
    """Look up the canonical wrapped-native asset of a network.

    :param network_name: Network name (e.g., "ethereum", "polygon").
    :returns: Checksummed address, or None if the network has no default.
    """
    address = DEFAULT_WRAPPED_NATIVE.get(network_name)
    if address is None:
        return None
    return to_asset(address)
