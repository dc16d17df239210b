"""Unit tests for OracleAdapter."""

import logging

import pytest

from offchain_oracle.src.FixedPoint import ONE, UINT256_MAX
from offchain_oracle.src.OracleAdapter import (
    NULL_SAMPLE,
    OracleAdapter,
    PriceSample,
    RateOracle,
)

SRC = "0x00000000000000000000000000000000000000A1"
DST = "0x00000000000000000000000000000000000000b2"
CONNECTOR = "0x00000000000000000000000000000000000000C3"


class ReplyOracle(RateOracle):
    """Oracle returning a fixed reply."""

    def __init__(self, reply) -> None:
        self.reply = reply

    def get_rate(self, src: str, dst: str, connector: str):
        return self.reply


class RaisingOracle(RateOracle):
    """Oracle raising a fixed exception."""

    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    def get_rate(self, src: str, dst: str, connector: str):
        raise self.exc


class TestQuerySample:
    """Test successful queries."""

    def test_valid_reply(self) -> None:
        """A well-formed reply becomes a PriceSample."""
        sample = OracleAdapter().query_sample(ReplyOracle((2 * ONE, 7)), SRC, DST, CONNECTOR)
        assert sample == PriceSample(rate=2 * ONE, weight=7)

    def test_list_reply(self) -> None:
        """A two-element list is accepted like a tuple."""
        sample = OracleAdapter().query_sample(ReplyOracle([ONE, 1]), SRC, DST, CONNECTOR)
        assert sample == PriceSample(rate=ONE, weight=1)

    def test_zero_weight_is_passed_through(self) -> None:
        """A zero-weight reply is a valid, if useless, sample."""
        sample = OracleAdapter().query_sample(ReplyOracle((ONE, 0)), SRC, DST, CONNECTOR)
        assert sample.weight == 0

    def test_arguments_forwarded(self) -> None:
        """The oracle receives src, dst and connector in order."""
        calls = []

        class RecordingOracle(RateOracle):
            def get_rate(self, src, dst, connector):
                calls.append((src, dst, connector))
                return ONE, 1

        OracleAdapter().query_sample(RecordingOracle(), SRC, DST, CONNECTOR)
        assert calls == [(SRC, DST, CONNECTOR)]


class TestFailureIsolation:
    """Test that failures never propagate."""

    @pytest.mark.parametrize(
        "exc",
        [
            RuntimeError("execution reverted"),
            TimeoutError("read timed out"),
            ValueError("bad abi"),
            ZeroDivisionError(),
        ],
    )
    def test_exception_becomes_null_sample(self, exc: Exception) -> None:
        """Any exception is mapped to the null sample."""
        sample = OracleAdapter().query_sample(RaisingOracle(exc), SRC, DST, CONNECTOR)
        assert sample == NULL_SAMPLE

    @pytest.mark.parametrize(
        "reply",
        [
            None,
            (ONE,),
            (ONE, 1, 2),
            (-1, 1),
            (ONE, -1),
            (1.5, 1),
            (ONE, True),
            ("1", 1),
            (UINT256_MAX + 1, 1),
        ],
    )
    def test_malformed_reply_becomes_null_sample(self, reply) -> None:
        """Replies that are not two uint256 values are rejected."""
        sample = OracleAdapter().query_sample(ReplyOracle(reply), SRC, DST, CONNECTOR)
        assert sample == NULL_SAMPLE

    def test_failure_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Failures are logged at WARNING with the oracle name."""
        with caplog.at_level(logging.WARNING):
            OracleAdapter().query_sample(
                RaisingOracle(RuntimeError("boom")), SRC, DST, CONNECTOR
            )
        assert "RaisingOracle" in caplog.text
        assert "boom" in caplog.text
