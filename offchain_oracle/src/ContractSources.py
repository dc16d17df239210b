"""ContractSources: Oracles and wrappers deployed as smart contracts.

Each class wraps one on-chain contract and exposes it through the in-process
interface the engine consumes:
    - :class:`ContractOracle`: ``getRate(src, dst, connector)`` price source
    - :class:`ContractWrapper`: single-step ``wrap(token)`` converter
    - :class:`ContractResolver`: ``getWrappedTokens(token)`` multi-wrapper

Calls are read-only ``eth_call`` requests; nothing is ever signed or sent.

.. code-block:: python

    >>> w3 = ContractUtility("ethereum").w3
    >>> oracle = ContractOracle(w3, "0x...", label="uniswap-v3")
    >>> oracle.get_rate(DAI, USDC, NO_CONNECTOR)
    (999823000000000000, 183204338127)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .Asset import to_asset
from .ContractUtility import ContractUtility
from .OracleAdapter import RateOracle
from .WrapperResolver import WrappedForm, Wrapper, WrapperResolver

if TYPE_CHECKING:
    from web3 import Web3
    from web3.contract import Contract

logger = logging.getLogger(__name__)


class _ContractBacked:
    """Shared identity and naming for contract-backed sources.

    :ivar address: Checksummed contract address.
    :ivar label: Optional human-readable label.
    :ivar contract: web3 contract instance.
    """

    ABI_NAME = ""

    def __init__(self, w3: Web3, address: str, label: str | None = None) -> None:
        self.address = to_asset(address)
        self.label = label
        self.contract: Contract = w3.eth.contract(
            address=self.address, abi=ContractUtility.get_abi(self.ABI_NAME)
        )

    @property
    def name(self) -> str:
        return self.label or self.address

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address!r})"

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.address))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _ContractBacked):
            return NotImplemented
        return type(self) is type(other) and self.address == other.address


class ContractOracle(_ContractBacked, RateOracle):
    """Price source backed by an on-chain oracle contract."""

    ABI_NAME = "IOracle"

    def get_rate(self, src: str, dst: str, connector: str) -> tuple[int, int]:
        rate, weight = self.contract.functions.getRate(src, dst, connector).call()
        return rate, weight


class ContractWrapper(_ContractBacked, Wrapper):
    """Single-step wrapper backed by an on-chain wrapper contract."""

    ABI_NAME = "IWrapper"

    def wrap(self, asset: str) -> tuple[str, int]:
        wrapped, rate = self.contract.functions.wrap(asset).call()
        return to_asset(wrapped), rate


class ContractResolver(_ContractBacked, WrapperResolver):
    """Wrapping resolver backed by an on-chain multi-wrapper contract."""

    ABI_NAME = "MultiWrapper"

    def get_wrapped_tokens(self, asset: str) -> list[WrappedForm]:
        tokens, rates = self.contract.functions.getWrappedTokens(asset).call()
        if len(tokens) != len(rates):
            logger.warning(
                f"[{self.name}] getWrappedTokens({asset}) returned "
                f"{len(tokens)} tokens but {len(rates)} rates"
            )
        forms = [
            WrappedForm(to_asset(token), rates[i] if i < len(rates) else None)
            for i, token in enumerate(tokens)
        ]
        logger.debug(f"[{self.name}] {asset} expands to {len(forms)} forms")
        return forms
