"""OracleAdapter: Fault-isolated queries against individual rate oracles.

Every price source implements :class:`RateOracle`. The engine never calls an
oracle directly; it goes through :meth:`OracleAdapter.query_sample`, which maps
any failure (exception, timeout, malformed reply) to :data:`NULL_SAMPLE` so
that a single misbehaving source cannot abort an aggregation.

.. code-block:: python

    >>> adapter = OracleAdapter()
    >>> adapter.query_sample(broken_oracle, src, dst, connector)
    PriceSample(rate=0, weight=0)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from .FixedPoint import UINT256_MAX

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceSample:
    """A single oracle observation.

    :ivar rate: Destination-per-source rate, 1e18-scaled.
    :ivar weight: Oracle-assigned confidence; only relative values matter.
    """

    rate: int
    weight: int


NULL_SAMPLE = PriceSample(rate=0, weight=0)


class RateOracle(ABC):
    """Abstract base class for price sources.

    Subclasses must implement :meth:`get_rate`. Implementations are free to
    raise; callers are expected to go through :class:`OracleAdapter`.
    """

    @property
    def name(self) -> str:
        """Human-readable identifier used in log output."""
        return type(self).__name__

    @abstractmethod
    def get_rate(self, src: str, dst: str, connector: str) -> tuple[int, int]:
        """Quote ``dst`` per ``src`` through ``connector``.

        :param src: Source asset address.
        :param dst: Destination asset address.
        :param connector: Intermediate asset address, or ``NO_CONNECTOR``
            for a direct quote.
        :returns: Tuple of (rate 1e18-scaled, weight).
        """
        pass


def _is_uint256(value: Any) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and 0 <= value <= UINT256_MAX
    )


class OracleAdapter:
    """Runs a single oracle query and never propagates its failure."""

    def query_sample(
        self, oracle: RateOracle, src: str, dst: str, connector: str
    ) -> PriceSample:
        """Query one oracle for one (src, dst, connector) combination.

        :param oracle: Oracle to query.
        :param src: Source representative asset.
        :param dst: Destination representative asset.
        :param connector: Connector asset.
        :returns: The oracle's sample, or :data:`NULL_SAMPLE` on any failure.
        """
        try:
            result = oracle.get_rate(src, dst, connector)
        except Exception as e:
            logger.warning(
                f"[{oracle.name}] getRate({src}, {dst}, {connector}) failed: {e}"
            )
            return NULL_SAMPLE

        if not isinstance(result, (tuple, list)) or len(result) != 2:
            logger.warning(f"[{oracle.name}] Malformed reply: {result!r}")
            return NULL_SAMPLE

        rate, weight = result
        if not (_is_uint256(rate) and _is_uint256(weight)):
            logger.warning(f"[{oracle.name}] Malformed rate/weight: {result!r}")
            return NULL_SAMPLE

        return PriceSample(rate=rate, weight=weight)
