"""
Offchain Rate Oracle - Consensus Rate Module

This module computes weighted consensus exchange rates from registered oracles:
- OracleRegistry: Owner-gated oracle/connector registry with snapshots
- WrapperResolver: Expansion of assets into wrapped representative forms
- OracleAdapter: Fault-isolated single oracle queries
- RateAggregator: Combinatorial search and weighted averaging
- ContractSources: Oracles and wrappers deployed as smart contracts

The computed rate is not manipulation resistant and must not be used as a
security-critical input where the underlying sources can be moved atomically.
"""

from .Asset import NATIVE, NO_CONNECTOR
from .errors import (
    ArithmeticOverflow,
    DuplicateEntry,
    InvalidRequest,
    NotAuthorized,
    OracleError,
    UnknownEntry,
)
from .OracleAdapter import NULL_SAMPLE, OracleAdapter, PriceSample, RateOracle
from .OracleRegistry import OracleRegistry, OracleType, RegistryEvent, RegistrySnapshot
from .RateAggregator import (
    DEFAULT_THRESHOLD_FILTER,
    AggregationRequest,
    AggregationResult,
    RateAggregator,
)
from .WrapperResolver import MultiWrapper, StaticWrapper, WrappedForm, Wrapper, WrapperResolver

__all__ = [
    "AggregationRequest",
    "AggregationResult",
    "ArithmeticOverflow",
    "DEFAULT_THRESHOLD_FILTER",
    "DuplicateEntry",
    "InvalidRequest",
    "MultiWrapper",
    "NATIVE",
    "NO_CONNECTOR",
    "NULL_SAMPLE",
    "NotAuthorized",
    "OracleAdapter",
    "OracleError",
    "OracleRegistry",
    "OracleType",
    "PriceSample",
    "RateAggregator",
    "RateOracle",
    "RegistryEvent",
    "RegistrySnapshot",
    "StaticWrapper",
    "UnknownEntry",
    "WrappedForm",
    "Wrapper",
    "WrapperResolver",
]
