"""OracleRegistry: Owner-gated registry of oracles, connectors and resolver.

Oracles are classified by the asset they quote against: the chain's native
asset, its wrapped counterpart, or both. Membership in the two sets is
independent; ``OracleType.BOTH`` means membership in both at once.

Aggregations never read the live registry. They take an immutable
:class:`RegistrySnapshot`, so a mutation racing with an in-flight aggregation
is simply not seen by it.

.. code-block:: python

    >>> registry = OracleRegistry(owner=OWNER, wrapped_native=WETH)
    >>> registry.add_oracle(OWNER, uniswap_oracle, OracleType.BOTH)
    >>> registry.oracles()
    [(uniswap_oracle, <OracleType.BOTH: 'both'>)]
    >>> registry.add_connector(OWNER, USDC)
    >>> registry.connectors()
    ['0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48']
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .Asset import same_address, to_asset
from .errors import DuplicateEntry, NotAuthorized, UnknownEntry
from .OracleAdapter import RateOracle
from .WrapperResolver import WrapperResolver

logger = logging.getLogger(__name__)


class OracleType(Enum):
    """Which reference asset an oracle quotes against."""

    NATIVE = "native"
    WRAPPED_NATIVE = "wrapped_native"
    BOTH = "both"

    @classmethod
    def from_string(cls, value: str) -> OracleType:
        """Parse a kind name such as ``"native"`` or ``"both"``.

        :raises ValueError: If the name is unknown.
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            names = ", ".join(t.value for t in cls)
            raise ValueError(f"Unknown oracle type '{value}'. Expected one of: {names}")


@dataclass(frozen=True)
class RegistryEvent:
    """Change notification emitted after a successful mutation.

    :ivar name: Event name (e.g., "OracleAdded", "ConnectorRemoved").
    :ivar args: Event arguments.
    :ivar version: Registry version after the mutation.
    """

    name: str
    args: dict[str, Any] = field(default_factory=dict)
    version: int = 0


@dataclass(frozen=True)
class RegistrySnapshot:
    """Immutable view of the registry used by a single aggregation.

    :ivar version: Registry version the snapshot was taken at.
    :ivar native_oracles: Native-quoted oracles, in insertion order.
    :ivar wrapped_native_oracles: Wrapped-native-quoted oracles, in insertion order.
    :ivar connectors: Connector assets, in insertion order.
    :ivar resolver: Wrapping resolver, or None if none is configured.
    :ivar wrapped_native: Canonical wrapped-native asset.
    """

    version: int
    native_oracles: tuple[RateOracle, ...]
    wrapped_native_oracles: tuple[RateOracle, ...]
    connectors: tuple[str, ...]
    resolver: WrapperResolver | None
    wrapped_native: str

    def oracles(self) -> list[tuple[RateOracle, OracleType]]:
        """Union of both oracle sets, each oracle exactly once with its tag.

        Native-quoted oracles come first in insertion order, followed by the
        oracles that are only wrapped-native-quoted.
        """
        wrapped = set(self.wrapped_native_oracles)
        result = [
            (o, OracleType.BOTH if o in wrapped else OracleType.NATIVE)
            for o in self.native_oracles
        ]
        native = set(self.native_oracles)
        result.extend(
            (o, OracleType.WRAPPED_NATIVE)
            for o in self.wrapped_native_oracles
            if o not in native
        )
        return result


class OracleRegistry:
    """Registry of oracles and connectors with owner-gated mutation.

    Sets are kept as insertion-ordered dicts so that iteration order is stable.
    All mutations and snapshots are serialised by a lock.

    :ivar owner: Address allowed to mutate the registry.
    :ivar wrapped_native: Canonical wrapped-native asset of the chain.
    """

    def __init__(
        self,
        owner: str,
        wrapped_native: str,
        resolver: WrapperResolver | None = None,
        oracles: list[tuple[RateOracle, OracleType]] | None = None,
        connectors: list[str] | None = None,
    ) -> None:
        """Initialize the registry.

        :param owner: Address allowed to mutate the registry.
        :param wrapped_native: Canonical wrapped-native asset of the chain.
        :param resolver: Optional wrapping resolver.
        :param oracles: Initial (oracle, kind) entries.
        :param connectors: Initial connector assets.
        :raises DuplicateEntry: If the initial entries contain duplicates.
        """
        self.owner = to_asset(owner)
        self.wrapped_native = to_asset(wrapped_native)
        self._lock = threading.RLock()
        self._listeners: list[Callable[[RegistryEvent], None]] = []
        self._version = 0
        self._native: dict[RateOracle, None] = {}
        self._wrapped_native: dict[RateOracle, None] = {}
        self._connectors: dict[str, None] = {}
        self._resolver = resolver

        for oracle, kind in oracles or []:
            self._insert_oracle(oracle, kind)
        for connector in connectors or []:
            self._insert_connector(to_asset(connector))

    # Listeners

    def subscribe(self, listener: Callable[[RegistryEvent], None]) -> None:
        """Register a callback invoked with every change notification.

        A failing listener is logged and does not affect the mutation or the
        other listeners.
        """
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[RegistryEvent], None]) -> None:
        """Remove a previously registered callback."""
        self._listeners.remove(listener)

    def _emit(self, name: str, **args: Any) -> None:
        event = RegistryEvent(name=name, args=args, version=self._version)
        logger.info(f"{name}: {args}")
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Listener failed on {name}")

    def _require_owner(self, caller: str) -> None:
        if not same_address(caller, self.owner):
            raise NotAuthorized(caller)

    # Oracles

    def _target_sets(self, kind: OracleType) -> list[dict[RateOracle, None]]:
        if kind is OracleType.NATIVE:
            return [self._native]
        if kind is OracleType.WRAPPED_NATIVE:
            return [self._wrapped_native]
        return [self._native, self._wrapped_native]

    def _insert_oracle(self, oracle: RateOracle, kind: OracleType) -> None:
        targets = self._target_sets(kind)
        # Check every target before touching any so BOTH is all-or-nothing
        if any(oracle in t for t in targets):
            raise DuplicateEntry(f"Oracle {oracle.name} already registered as {kind.value}")
        for t in targets:
            t[oracle] = None
        self._version += 1

    def add_oracle(self, caller: str, oracle: RateOracle, kind: OracleType) -> None:
        """Register an oracle under the given classification.

        :param caller: Address performing the call.
        :param oracle: Oracle to add.
        :param kind: Classification; BOTH adds to both sets atomically.
        :raises NotAuthorized: If caller is not the owner.
        :raises DuplicateEntry: If the oracle is already in a target set.
        """
        self._require_owner(caller)
        with self._lock:
            self._insert_oracle(oracle, kind)
            self._emit("OracleAdded", oracle=oracle.name, kind=kind.value)

    def remove_oracle(self, caller: str, oracle: RateOracle, kind: OracleType) -> None:
        """Unregister an oracle from the given classification.

        :param caller: Address performing the call.
        :param oracle: Oracle to remove.
        :param kind: Classification; BOTH removes from both sets atomically.
        :raises NotAuthorized: If caller is not the owner.
        :raises UnknownEntry: If the oracle is missing from a required set.
        """
        self._require_owner(caller)
        with self._lock:
            targets = self._target_sets(kind)
            if not all(oracle in t for t in targets):
                raise UnknownEntry(f"Oracle {oracle.name} is not registered as {kind.value}")
            for t in targets:
                del t[oracle]
            self._version += 1
            self._emit("OracleRemoved", oracle=oracle.name, kind=kind.value)

    def oracles(self) -> list[tuple[RateOracle, OracleType]]:
        """List every registered oracle once, tagged with its classification."""
        return self.snapshot().oracles()

    # Connectors

    def _insert_connector(self, connector: str) -> None:
        if connector in self._connectors:
            raise DuplicateEntry(f"Connector {connector} already registered")
        self._connectors[connector] = None
        self._version += 1

    def add_connector(self, caller: str, connector: str) -> None:
        """Register a connector asset.

        :raises NotAuthorized: If caller is not the owner.
        :raises DuplicateEntry: If the connector is already registered.
        """
        self._require_owner(caller)
        connector = to_asset(connector)
        with self._lock:
            self._insert_connector(connector)
            self._emit("ConnectorAdded", connector=connector)

    def remove_connector(self, caller: str, connector: str) -> None:
        """Unregister a connector asset.

        :raises NotAuthorized: If caller is not the owner.
        :raises UnknownEntry: If the connector is not registered.
        """
        self._require_owner(caller)
        connector = to_asset(connector)
        with self._lock:
            if connector not in self._connectors:
                raise UnknownEntry(f"Connector {connector} is not registered")
            del self._connectors[connector]
            self._version += 1
            self._emit("ConnectorRemoved", connector=connector)

    def connectors(self) -> list[str]:
        """List registered connectors in insertion order."""
        with self._lock:
            return list(self._connectors)

    # Resolver and ownership

    def set_resolver(self, caller: str, resolver: WrapperResolver) -> None:
        """Replace the wrapping resolver.

        :raises NotAuthorized: If caller is not the owner.
        """
        self._require_owner(caller)
        with self._lock:
            self._resolver = resolver
            self._version += 1
            self._emit("ResolverUpdated", resolver=type(resolver).__name__)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """Hand the owner role to another address.

        :raises NotAuthorized: If caller is not the owner.
        """
        self._require_owner(caller)
        new_owner = to_asset(new_owner)
        with self._lock:
            previous, self.owner = self.owner, new_owner
            self._version += 1
            self._emit("OwnershipTransferred", previous=previous, owner=new_owner)

    # Snapshots

    @property
    def version(self) -> int:
        """Number of successful mutations so far."""
        return self._version

    def snapshot(self) -> RegistrySnapshot:
        """Take an immutable snapshot of the current registry state."""
        with self._lock:
            return RegistrySnapshot(
                version=self._version,
                native_oracles=tuple(self._native),
                wrapped_native_oracles=tuple(self._wrapped_native),
                connectors=tuple(self._connectors),
                resolver=self._resolver,
                wrapped_native=self.wrapped_native,
            )
