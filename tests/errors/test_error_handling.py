"""Tests for the error hierarchy."""

import pytest

from scalper_app.errors import (
    ConfigurationError,
    DataQualityError,
    InsufficientDataError,
    MalformedDataError,
    MissingDataError,
    OrderOutcomeUnknownError,
    PersistenceError,
    RecoverableError,
    StateTransitionError,
    SystemFailureError,
    TemporalDataError,
    TransientFeedError,
)


class TestErrorHierarchy:

    @pytest.mark.parametrize("cls", [
        TemporalDataError, MissingDataError, MalformedDataError, InsufficientDataError
    ])
    def test_data_quality_family(self, cls):
        error = cls("bad")
        assert isinstance(error, DataQualityError)
        assert error.recoverable is True
        assert error.context == {}

    @pytest.mark.parametrize("cls", [TransientFeedError, OrderOutcomeUnknownError])
    def test_recoverable_family(self, cls):
        error = cls("later")
        assert isinstance(error, RecoverableError)
        assert error.retry_count == 0

    @pytest.mark.parametrize("cls", [StateTransitionError, PersistenceError, ConfigurationError])
    def test_system_failure_family(self, cls):
        error = cls("abort")
        assert isinstance(error, SystemFailureError)
        assert error.recoverable is False

    def test_families_are_disjoint(self):
        assert not issubclass(RecoverableError, DataQualityError)
        assert not issubclass(TransientFeedError, SystemFailureError)
        assert not issubclass(PersistenceError, RecoverableError)


class TestErrorContext:

    def test_temporal(self):
        error = TemporalDataError("late", timestamp=5, expected_timestamp=10,
                                  context={"instrument": "B-BTC_USDT"})
        assert error.timestamp == 5
        assert error.expected_timestamp == 10
        assert error.context["instrument"] == "B-BTC_USDT"

    def test_insufficient(self):
        error = InsufficientDataError("warmup", required_count=20, available_count=3)
        assert (error.required_count, error.available_count) == (20, 3)

    def test_order_outcome_unknown(self):
        error = OrderOutcomeUnknownError("timeout", client_order_id="buy-1",
                                         retry_count=1, max_retries=2)
        assert error.client_order_id == "buy-1"
        assert error.retry_count == 1
        assert str(error) == "timeout"

    def test_state_transition(self):
        error = StateTransitionError("no", current_state="FLAT",
                                     attempted_transition="LONG->FLAT")
        assert error.current_state == "FLAT"

    def test_configuration_errors_list(self):
        assert ConfigurationError("bad").errors == []
        assert ConfigurationError("bad", errors=["x"]).errors == ["x"]
