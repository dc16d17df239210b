"""RateAggregator: Confidence-weighted consensus rate across oracles.

Algorithm:
    1. Validate the request (distinct assets, threshold below 100)
    2. Snapshot the registry
    3. Expand source and destination into wrapped forms
    4. Build the connector pool: registered connectors followed by the
       caller's custom connectors, duplicates kept
    5. For each source form (outer) and destination form (inner):
       - if both forms are the same asset, return their combined wrapping
         rate immediately (first match wins)
       - otherwise query every oracle through every connector that is not
         one of the two forms, keeping samples with non-zero weight
    6. Drop samples whose weight is below ``threshold_filter`` percent of
       the heaviest sample and return the weighted mean of the rest, or 0

The rate to the native asset uses the same search with the destination fixed
to the native sentinel and its wrapped form, each queried only against the
oracles registered for it.

.. warning::

    The result is NOT manipulation resistant. Oracles read spot state (pool
    reserves and the like) that can be moved within a single transaction, so
    the rate must not be used as a security-critical input in any context
    where the caller can manipulate the underlying sources atomically.

.. code-block:: python

    >>> aggregator = RateAggregator(registry)
    >>> aggregator.get_rate(DAI, USDC, use_wrappers=False)
    999823000000000000
    >>> aggregator.get_rate_to_native(USDC, use_src_wrappers=True)
    312540000000000
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TypedDict

from .Asset import NATIVE, to_asset, to_assets
from .errors import InvalidRequest
from .FixedPoint import ONE, add, mul, mul_div, scale_rate
from .OracleAdapter import OracleAdapter, RateOracle
from .OracleRegistry import OracleRegistry, RegistrySnapshot
from .WrapperResolver import WrappedForm, expand

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD_FILTER = 10


class AggregationMetadata(TypedDict, total=False):
    """Details about how a rate was obtained.

    :ivar registry_version: Registry version the search ran against.
    :ivar shortcut: Asset shared by a source and destination form, if the
        equality short-circuit fired.
    :ivar samples: Number of non-zero-weight samples collected.
    :ivar kept: Number of samples that passed the threshold filter.
    :ivar max_weight: Heaviest weight observed.
    """

    registry_version: int
    shortcut: str
    samples: int
    kept: int
    max_weight: int


@dataclass
class AggregationResult:
    """Result of a rate aggregation.

    :ivar rate: Destination-per-source rate, 1e18-scaled; 0 when no usable
        consensus exists.
    :ivar metadata: Additional information about the aggregation.
    """

    rate: int
    metadata: AggregationMetadata

    @property
    def success(self) -> bool:
        """Check if a non-zero rate was obtained."""
        return self.rate > 0


@dataclass(frozen=True)
class AggregationRequest:
    """Parameters of a single aggregation.

    :ivar src: Source asset.
    :ivar dst: Destination asset (the native sentinel for the reference path).
    :ivar use_wrappers: Whether to expand assets through the resolver.
    :ivar connectors: Custom connectors appended to the registered ones.
    :ivar threshold_filter: Minimum weight, as a percentage of the heaviest
        sample, for a sample to count.
    """

    src: str
    dst: str
    use_wrappers: bool = True
    connectors: tuple[str, ...] = ()
    threshold_filter: int = DEFAULT_THRESHOLD_FILTER

    @classmethod
    def build(
        cls,
        src: str,
        dst: str,
        use_wrappers: bool = True,
        connectors: list[str] | tuple[str, ...] = (),
        threshold_filter: int = DEFAULT_THRESHOLD_FILTER,
    ) -> AggregationRequest:
        """Create a request with normalised addresses.

        :raises ValueError: If an address is malformed.
        """
        return cls(
            src=to_asset(src),
            dst=to_asset(dst),
            use_wrappers=use_wrappers,
            connectors=to_assets(connectors),
            threshold_filter=threshold_filter,
        )

    def validate(self, pairwise: bool = True) -> None:
        """Reject malformed requests before any work is done.

        :param pairwise: Whether src and dst must differ.
        :raises InvalidRequest: If the threshold is outside [0, 100) or, for
            the pairwise form, src equals dst.
        """
        if (
            not isinstance(self.threshold_filter, int)
            or isinstance(self.threshold_filter, bool)
            or not 0 <= self.threshold_filter < 100
        ):
            raise InvalidRequest(
                f"threshold_filter must be an integer in [0, 100), got {self.threshold_filter!r}"
            )
        if pairwise and self.src == self.dst:
            raise InvalidRequest(f"Source and destination are the same asset: {self.src}")


class RateAggregator:
    """Computes consensus rates from the oracles of a registry.

    Holds no per-call state: every call snapshots the registry and is a pure
    function of the request, the snapshot and the oracle/resolver replies.

    :ivar registry: Registry providing oracles, connectors and the resolver.
    :ivar adapter: Adapter used to query individual oracles.
    """

    def __init__(
        self,
        registry: OracleRegistry,
        adapter: OracleAdapter | None = None,
    ) -> None:
        """Initialize the aggregator.

        :param registry: Registry to read oracles, connectors and resolver from.
        :param adapter: Optional oracle adapter (default: :class:`OracleAdapter`).
        """
        self.registry = registry
        self.adapter = adapter or OracleAdapter()

    def aggregate(
        self,
        src: str,
        dst: str,
        use_wrappers: bool = True,
        connectors: list[str] | tuple[str, ...] = (),
        threshold_filter: int = DEFAULT_THRESHOLD_FILTER,
        *,
        snapshot: RegistrySnapshot | None = None,
    ) -> AggregationResult:
        """Aggregate the rate of ``dst`` per ``src``.

        :param src: Source asset.
        :param dst: Destination asset.
        :param use_wrappers: Expand both assets through the resolver.
        :param connectors: Custom connectors searched after the registered ones.
        :param threshold_filter: Percentage (0-99) of the heaviest weight a
            sample needs to be included.
        :param snapshot: Optional registry snapshot; taken fresh if None.
        :returns: AggregationResult with the rate and search metadata.
        :raises InvalidRequest: If src equals dst or the threshold is out of range.
        :raises ArithmeticOverflow: If a fixed-point computation overflows.
        """
        request = AggregationRequest.build(
            src, dst, use_wrappers, connectors, threshold_filter
        )
        request.validate(pairwise=True)

        if snapshot is None:
            snapshot = self.registry.snapshot()
        src_forms = expand(request.src, request.use_wrappers, snapshot.resolver)
        dst_forms = expand(request.dst, request.use_wrappers, snapshot.resolver)
        oracles = tuple(o for o, _ in snapshot.oracles())

        return self._search(
            request,
            snapshot,
            src_forms,
            [(d, oracles) for d in dst_forms],
            to_reference=False,
        )

    def aggregate_to_native(
        self,
        src: str,
        use_src_wrappers: bool = True,
        connectors: list[str] | tuple[str, ...] = (),
        threshold_filter: int = DEFAULT_THRESHOLD_FILTER,
        *,
        snapshot: RegistrySnapshot | None = None,
    ) -> AggregationResult:
        """Aggregate the rate of the native asset per ``src``.

        The destination is fixed to the native sentinel, priced with the
        native-quoted oracles, and the wrapped-native asset, priced with the
        wrapped-native-quoted oracles; both at rate 1e18.

        :param src: Source asset.
        :param use_src_wrappers: Expand the source through the resolver.
        :param connectors: Custom connectors searched after the registered ones.
        :param threshold_filter: Percentage (0-99) of the heaviest weight a
            sample needs to be included.
        :param snapshot: Optional registry snapshot; taken fresh if None.
        :returns: AggregationResult with the rate and search metadata.
        :raises InvalidRequest: If the threshold is out of range.
        :raises ArithmeticOverflow: If a fixed-point computation overflows.
        """
        request = AggregationRequest.build(
            src, NATIVE, use_src_wrappers, connectors, threshold_filter
        )
        request.validate(pairwise=False)

        if snapshot is None:
            snapshot = self.registry.snapshot()
        src_forms = expand(request.src, request.use_wrappers, snapshot.resolver)
        dst_side = [
            (WrappedForm(NATIVE, ONE), snapshot.native_oracles),
            (WrappedForm(snapshot.wrapped_native, ONE), snapshot.wrapped_native_oracles),
        ]

        return self._search(request, snapshot, src_forms, dst_side, to_reference=True)

    def get_rate(
        self,
        src: str,
        dst: str,
        use_wrappers: bool = True,
        connectors: list[str] | tuple[str, ...] = (),
        threshold_filter: int = DEFAULT_THRESHOLD_FILTER,
    ) -> int:
        """Return the 1e18-scaled rate of ``dst`` per ``src`` (0 if unknown).

        See :meth:`aggregate` for parameters and errors.
        """
        return self.aggregate(src, dst, use_wrappers, connectors, threshold_filter).rate

    def get_rate_to_native(
        self,
        src: str,
        use_src_wrappers: bool = True,
        connectors: list[str] | tuple[str, ...] = (),
        threshold_filter: int = DEFAULT_THRESHOLD_FILTER,
    ) -> int:
        """Return the 1e18-scaled rate of the native asset per ``src``.

        See :meth:`aggregate_to_native` for parameters and errors.
        """
        return self.aggregate_to_native(
            src, use_src_wrappers, connectors, threshold_filter
        ).rate

    def _search(
        self,
        request: AggregationRequest,
        snapshot: RegistrySnapshot,
        src_forms: list[WrappedForm],
        dst_side: list[tuple[WrappedForm, tuple[RateOracle, ...]]],
        to_reference: bool,
    ) -> AggregationResult:
        # Concatenation, not a set: a connector in both lists is scanned twice
        pool = snapshot.connectors + request.connectors
        samples: list[tuple[int, int]] = []
        max_weight = 0

        for s in src_forms:
            for d, oracles in dst_side:
                if s.asset == d.asset:
                    rate = s.rate if to_reference else mul_div(s.rate, d.rate, ONE)
                    logger.debug(
                        f"{request.src} -> {request.dst}: shared form {s.asset}, rate={rate}"
                    )
                    return AggregationResult(
                        rate=rate,
                        metadata={
                            "registry_version": snapshot.version,
                            "shortcut": s.asset,
                        },
                    )

                for connector in pool:
                    if connector == s.asset or connector == d.asset:
                        continue
                    for oracle in oracles:
                        sample = self.adapter.query_sample(
                            oracle, s.asset, d.asset, connector
                        )
                        if sample.weight == 0:
                            continue
                        if to_reference:
                            rate = mul_div(sample.rate, s.rate, ONE)
                        else:
                            rate = scale_rate(sample.rate, s.rate, d.rate)
                        logger.debug(
                            f"[{oracle.name}] {s.asset} -> {d.asset} via {connector}: "
                            f"rate={rate} weight={sample.weight}"
                        )
                        samples.append((rate, sample.weight))
                        max_weight = max(max_weight, sample.weight)

        rate, kept = self._weighted_mean(
            samples, max_weight, request.threshold_filter, to_reference
        )
        logger.debug(
            f"{request.src} -> {request.dst}: rate={rate} "
            f"(kept {kept}/{len(samples)} samples, max_weight={max_weight})"
        )
        return AggregationResult(
            rate=rate,
            metadata={
                "registry_version": snapshot.version,
                "samples": len(samples),
                "kept": kept,
                "max_weight": max_weight,
            },
        )

    @staticmethod
    def _weighted_mean(
        samples: list[tuple[int, int]],
        max_weight: int,
        threshold_filter: int,
        divide_first: bool,
    ) -> tuple[int, int]:
        """Filter samples by relative weight and average the survivors.

        The pairwise path compares ``weight * 100 >= max_weight * threshold``;
        the reference path compares ``weight >= max_weight * threshold // 100``.
        The two disagree only where the integer division truncates.

        :returns: Tuple of (weighted rate, number of samples kept).
        """
        if divide_first:
            cutoff = mul(max_weight, threshold_filter) // 100
        else:
            cutoff = mul(max_weight, threshold_filter)

        total_rate = 0
        total_weight = 0
        kept = 0
        for rate, weight in samples:
            score = weight if divide_first else mul(weight, 100)
            if score < cutoff:
                continue
            total_rate = add(total_rate, mul(rate, weight))
            total_weight = add(total_weight, weight)
            kept += 1

        if total_weight == 0:
            return 0, 0
        return total_rate // total_weight, kept
