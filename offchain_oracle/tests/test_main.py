"""Unit tests for the CLI helpers."""

import sys

import pytest

from offchain_oracle.main import main, parse_list, parse_oracles
from offchain_oracle.src.Asset import to_asset
from offchain_oracle.src.OracleRegistry import OracleType

ORACLE_A = to_asset("0x00000000000000000000000000000000000000e1")
ORACLE_B = to_asset("0x00000000000000000000000000000000000000e2")
SRC = to_asset("0x00000000000000000000000000000000000000a1")


class TestParseList:
    """Test comma-separated list parsing."""

    def test_empty(self) -> None:
        """Missing and empty values yield an empty list."""
        assert parse_list(None) == []
        assert parse_list("") == []

    def test_strips_and_skips_blanks(self) -> None:
        """Whitespace is trimmed and blank items are skipped."""
        assert parse_list(" a, b ,,c ") == ["a", "b", "c"]


class TestParseOracles:
    """Test --oracles argument parsing."""

    def test_default_kind_is_both(self) -> None:
        """An address without a kind is registered as both."""
        assert parse_oracles(ORACLE_A.lower()) == [(ORACLE_A, OracleType.BOTH)]

    def test_explicit_kinds(self) -> None:
        """Kinds after a colon are honoured per entry."""
        assert parse_oracles(f"{ORACLE_A}:native, {ORACLE_B}:wrapped_native") == [
            (ORACLE_A, OracleType.NATIVE),
            (ORACLE_B, OracleType.WRAPPED_NATIVE),
        ]

    def test_invalid_kind(self) -> None:
        """Unknown kinds are rejected."""
        with pytest.raises(ValueError, match="Unknown oracle type"):
            parse_oracles(f"{ORACLE_A}:weth")

    def test_invalid_address(self) -> None:
        """Malformed oracle addresses are rejected."""
        with pytest.raises(ValueError, match="Invalid asset address"):
            parse_oracles("0xnothex:both")


class TestEnvironmentDefaults:
    """Test numeric options taken from the environment."""

    @pytest.mark.parametrize(
        "variable, value",
        [("THRESHOLD_FILTER", "ten"), ("RPC_TIMEOUT", "soon")],
    )
    def test_malformed_value_is_usage_error(self, monkeypatch, variable, value) -> None:
        """A malformed environment value exits with a usage error."""
        monkeypatch.setenv(variable, value)
        monkeypatch.setattr(sys, "argv", ["offchain-rate-oracle", "--src", SRC])

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 2
