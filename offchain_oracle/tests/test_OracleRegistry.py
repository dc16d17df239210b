"""Unit tests for OracleRegistry."""

import pytest

from offchain_oracle.src.Asset import to_asset
from offchain_oracle.src.errors import DuplicateEntry, NotAuthorized, UnknownEntry
from offchain_oracle.src.FixedPoint import ONE
from offchain_oracle.src.OracleAdapter import RateOracle
from offchain_oracle.src.OracleRegistry import (
    OracleRegistry,
    OracleType,
    RegistryEvent,
)
from offchain_oracle.src.WrapperResolver import MultiWrapper

OWNER = to_asset("0x00000000000000000000000000000000000000f1")
STRANGER = to_asset("0x00000000000000000000000000000000000000f2")
WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
DAI = "0x6B175474E89094C44Da98b954EedeAC495271d0F"


class StubOracle(RateOracle):
    """Oracle that is never queried in these tests."""

    def __init__(self, label: str) -> None:
        self.label = label

    @property
    def name(self) -> str:
        return self.label

    def get_rate(self, src: str, dst: str, connector: str) -> tuple[int, int]:
        return ONE, 1


@pytest.fixture
def registry() -> OracleRegistry:
    return OracleRegistry(owner=OWNER, wrapped_native=WETH)


class TestRegistryInit:
    """Test OracleRegistry initialization."""

    def test_empty(self, registry: OracleRegistry) -> None:
        """A fresh registry has no oracles, connectors or resolver."""
        assert registry.oracles() == []
        assert registry.connectors() == []
        assert registry.snapshot().resolver is None
        assert registry.owner == OWNER
        assert registry.wrapped_native == WETH

    def test_initial_entries(self) -> None:
        """Constructor entries are normalised and registered in order."""
        a, b = StubOracle("a"), StubOracle("b")
        registry = OracleRegistry(
            owner=OWNER,
            wrapped_native=WETH.lower(),
            oracles=[(a, OracleType.NATIVE), (b, OracleType.BOTH)],
            connectors=[USDC.lower()],
        )
        assert registry.wrapped_native == WETH
        assert registry.oracles() == [(a, OracleType.NATIVE), (b, OracleType.BOTH)]
        assert registry.connectors() == [USDC]

    def test_initial_duplicates_rejected(self) -> None:
        """Duplicate constructor entries raise DuplicateEntry."""
        a = StubOracle("a")
        with pytest.raises(DuplicateEntry):
            OracleRegistry(
                owner=OWNER,
                wrapped_native=WETH,
                oracles=[(a, OracleType.BOTH), (a, OracleType.NATIVE)],
            )


class TestOracleManagement:
    """Test adding and removing oracles."""

    def test_add_native(self, registry: OracleRegistry) -> None:
        """A native oracle joins only the native set."""
        oracle = StubOracle("a")
        registry.add_oracle(OWNER, oracle, OracleType.NATIVE)
        snapshot = registry.snapshot()
        assert snapshot.native_oracles == (oracle,)
        assert snapshot.wrapped_native_oracles == ()

    def test_add_both_adds_to_both_sets(self, registry: OracleRegistry) -> None:
        """A BOTH oracle joins both sets and is listed once."""
        oracle = StubOracle("a")
        registry.add_oracle(OWNER, oracle, OracleType.BOTH)
        snapshot = registry.snapshot()
        assert snapshot.native_oracles == (oracle,)
        assert snapshot.wrapped_native_oracles == (oracle,)
        assert registry.oracles() == [(oracle, OracleType.BOTH)]

    def test_separate_adds_report_both(self, registry: OracleRegistry) -> None:
        """Membership in both sets is reported as BOTH regardless of how it came about."""
        oracle = StubOracle("a")
        registry.add_oracle(OWNER, oracle, OracleType.WRAPPED_NATIVE)
        registry.add_oracle(OWNER, oracle, OracleType.NATIVE)
        assert registry.oracles() == [(oracle, OracleType.BOTH)]

    def test_oracles_order_and_tags(self, registry: OracleRegistry) -> None:
        """Native-quoted oracles come first, then wrapped-native-only ones."""
        w, n, b = StubOracle("w"), StubOracle("n"), StubOracle("b")
        registry.add_oracle(OWNER, w, OracleType.WRAPPED_NATIVE)
        registry.add_oracle(OWNER, n, OracleType.NATIVE)
        registry.add_oracle(OWNER, b, OracleType.BOTH)
        assert registry.oracles() == [
            (n, OracleType.NATIVE),
            (b, OracleType.BOTH),
            (w, OracleType.WRAPPED_NATIVE),
        ]

    def test_double_add(self, registry: OracleRegistry) -> None:
        """Adding the same oracle twice raises DuplicateEntry."""
        oracle = StubOracle("a")
        registry.add_oracle(OWNER, oracle, OracleType.NATIVE)
        with pytest.raises(DuplicateEntry):
            registry.add_oracle(OWNER, oracle, OracleType.NATIVE)

    def test_add_both_is_atomic(self, registry: OracleRegistry) -> None:
        """A BOTH add that collides in one set leaves the other untouched."""
        oracle = StubOracle("a")
        registry.add_oracle(OWNER, oracle, OracleType.NATIVE)
        with pytest.raises(DuplicateEntry):
            registry.add_oracle(OWNER, oracle, OracleType.BOTH)
        assert registry.snapshot().wrapped_native_oracles == ()
        assert registry.oracles() == [(oracle, OracleType.NATIVE)]

    def test_remove_without_add(self, registry: OracleRegistry) -> None:
        """Removing an unregistered oracle raises UnknownEntry."""
        with pytest.raises(UnknownEntry):
            registry.remove_oracle(OWNER, StubOracle("a"), OracleType.NATIVE)

    def test_remove_both_is_atomic(self, registry: OracleRegistry) -> None:
        """A BOTH removal missing from one set leaves the other untouched."""
        oracle = StubOracle("a")
        registry.add_oracle(OWNER, oracle, OracleType.NATIVE)
        with pytest.raises(UnknownEntry):
            registry.remove_oracle(OWNER, oracle, OracleType.BOTH)
        assert registry.oracles() == [(oracle, OracleType.NATIVE)]

    def test_remove_one_side_of_both(self, registry: OracleRegistry) -> None:
        """Removing one side of a BOTH oracle keeps the other side."""
        oracle = StubOracle("a")
        registry.add_oracle(OWNER, oracle, OracleType.BOTH)
        registry.remove_oracle(OWNER, oracle, OracleType.NATIVE)
        assert registry.oracles() == [(oracle, OracleType.WRAPPED_NATIVE)]

    @pytest.mark.parametrize("kind", list(OracleType))
    def test_round_trip(self, registry: OracleRegistry, kind: OracleType) -> None:
        """Add then remove with the same arguments restores the prior state."""
        existing = StubOracle("existing")
        registry.add_oracle(OWNER, existing, OracleType.BOTH)
        before = registry.oracles()

        oracle = StubOracle("a")
        registry.add_oracle(OWNER, oracle, kind)
        registry.remove_oracle(OWNER, oracle, kind)

        assert registry.oracles() == before


class TestConnectorManagement:
    """Test adding and removing connectors."""

    def test_add_and_remove(self, registry: OracleRegistry) -> None:
        """Connectors are listed in insertion order and can be removed."""
        registry.add_connector(OWNER, USDC)
        registry.add_connector(OWNER, DAI)
        assert registry.connectors() == [USDC, DAI]

        registry.remove_connector(OWNER, USDC)
        assert registry.connectors() == [DAI]

    def test_normalises_addresses(self, registry: OracleRegistry) -> None:
        """Connectors differing only in case are the same entry."""
        registry.add_connector(OWNER, USDC.lower())
        assert registry.connectors() == [USDC]
        with pytest.raises(DuplicateEntry):
            registry.add_connector(OWNER, USDC.upper().replace("0X", "0x"))

    def test_remove_unknown(self, registry: OracleRegistry) -> None:
        """Removing an unregistered connector raises UnknownEntry."""
        with pytest.raises(UnknownEntry):
            registry.remove_connector(OWNER, USDC)


class TestAccessControl:
    """Test owner gating of every mutation."""

    def test_mutations_require_owner(self, registry: OracleRegistry) -> None:
        """Every mutation by a non-owner is rejected without side effects."""
        oracle = StubOracle("a")
        registry.add_oracle(OWNER, oracle, OracleType.NATIVE)
        registry.add_connector(OWNER, USDC)
        version = registry.version

        with pytest.raises(NotAuthorized):
            registry.add_oracle(STRANGER, StubOracle("b"), OracleType.NATIVE)
        with pytest.raises(NotAuthorized):
            registry.remove_oracle(STRANGER, oracle, OracleType.NATIVE)
        with pytest.raises(NotAuthorized):
            registry.add_connector(STRANGER, DAI)
        with pytest.raises(NotAuthorized):
            registry.remove_connector(STRANGER, USDC)
        with pytest.raises(NotAuthorized):
            registry.set_resolver(STRANGER, MultiWrapper(STRANGER))
        with pytest.raises(NotAuthorized):
            registry.transfer_ownership(STRANGER, STRANGER)

        assert registry.version == version
        assert registry.oracles() == [(oracle, OracleType.NATIVE)]
        assert registry.connectors() == [USDC]

    def test_owner_case_insensitive(self, registry: OracleRegistry) -> None:
        """The owner is recognised in any letter case."""
        registry.add_connector(OWNER.lower(), USDC)
        assert registry.connectors() == [USDC]

    def test_transfer_ownership(self, registry: OracleRegistry) -> None:
        """The new owner gains and the previous owner loses mutation rights."""
        registry.transfer_ownership(OWNER, STRANGER)
        assert registry.owner == STRANGER
        registry.add_connector(STRANGER, USDC)
        with pytest.raises(NotAuthorized):
            registry.add_connector(OWNER, DAI)

    def test_set_resolver(self, registry: OracleRegistry) -> None:
        """A new resolver is visible in later snapshots."""
        resolver = MultiWrapper(OWNER)
        registry.set_resolver(OWNER, resolver)
        assert registry.snapshot().resolver is resolver

    @pytest.mark.parametrize("caller", ["mallory", "", "0x1234", None])
    def test_non_address_caller_not_authorized(self, registry: OracleRegistry, caller) -> None:
        """Callers that are not addresses are rejected as unauthorized."""
        with pytest.raises(NotAuthorized):
            registry.add_oracle(caller, StubOracle("a"), OracleType.BOTH)
        with pytest.raises(NotAuthorized):
            registry.transfer_ownership(caller, STRANGER)
        assert registry.oracles() == []
        assert registry.owner == OWNER


class TestEvents:
    """Test change notifications."""

    def test_events_emitted(self, registry: OracleRegistry) -> None:
        """Each mutation emits one event carrying the new version."""
        events: list[RegistryEvent] = []
        registry.subscribe(events.append)

        oracle = StubOracle("uniswap")
        registry.add_oracle(OWNER, oracle, OracleType.BOTH)
        registry.remove_oracle(OWNER, oracle, OracleType.BOTH)
        registry.add_connector(OWNER, USDC)
        registry.remove_connector(OWNER, USDC)
        registry.set_resolver(OWNER, MultiWrapper(OWNER))
        registry.transfer_ownership(OWNER, STRANGER)

        assert [e.name for e in events] == [
            "OracleAdded",
            "OracleRemoved",
            "ConnectorAdded",
            "ConnectorRemoved",
            "ResolverUpdated",
            "OwnershipTransferred",
        ]
        assert events[0].args == {"oracle": "uniswap", "kind": "both"}
        assert events[2].args == {"connector": USDC}
        assert [e.version for e in events] == [1, 2, 3, 4, 5, 6]

    def test_failed_mutation_emits_nothing(self, registry: OracleRegistry) -> None:
        """A rejected mutation emits no event."""
        events: list[RegistryEvent] = []
        registry.subscribe(events.append)
        with pytest.raises(UnknownEntry):
            registry.remove_connector(OWNER, USDC)
        assert events == []

    def test_unsubscribe(self, registry: OracleRegistry) -> None:
        """Unsubscribed listeners are no longer called."""
        events: list[RegistryEvent] = []
        registry.subscribe(events.append)
        registry.unsubscribe(events.append)
        registry.add_connector(OWNER, USDC)
        assert events == []

    def test_listener_may_read_registry(self, registry: OracleRegistry) -> None:
        """Listeners run after the mutation and can take a snapshot."""
        seen = []
        registry.subscribe(lambda e: seen.append(registry.snapshot().connectors))
        registry.add_connector(OWNER, USDC)
        assert seen == [(USDC,)]

    def test_failing_listener_does_not_fail_mutation(self, registry: OracleRegistry) -> None:
        """A raising listener is isolated and later listeners still run."""
        events: list[RegistryEvent] = []

        def broken(event: RegistryEvent) -> None:
            raise RuntimeError("listener down")

        registry.subscribe(broken)
        registry.subscribe(events.append)

        oracle = StubOracle("a")
        registry.add_oracle(OWNER, oracle, OracleType.BOTH)

        assert registry.oracles() == [(oracle, OracleType.BOTH)]
        assert [e.name for e in events] == ["OracleAdded"]
        assert registry.version == 1


class TestSnapshots:
    """Test snapshot isolation."""

    def test_snapshot_not_affected_by_later_mutation(self, registry: OracleRegistry) -> None:
        """A snapshot keeps the state it was taken at."""
        oracle = StubOracle("a")
        registry.add_oracle(OWNER, oracle, OracleType.NATIVE)
        snapshot = registry.snapshot()

        registry.add_oracle(OWNER, StubOracle("b"), OracleType.NATIVE)
        registry.add_connector(OWNER, USDC)

        assert snapshot.native_oracles == (oracle,)
        assert snapshot.connectors == ()
        assert snapshot.version < registry.version


class TestOracleType:
    """Test OracleType parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("native", OracleType.NATIVE),
            ("WRAPPED_NATIVE", OracleType.WRAPPED_NATIVE),
            (" both ", OracleType.BOTH),
        ],
    )
    def test_from_string(self, value: str, expected: OracleType) -> None:
        """Kind names parse regardless of case and surrounding whitespace."""
        assert OracleType.from_string(value) is expected

    def test_from_string_invalid(self) -> None:
        """Unknown kind names raise ValueError."""
        with pytest.raises(ValueError, match="Unknown oracle type"):
            OracleType.from_string("weth")
