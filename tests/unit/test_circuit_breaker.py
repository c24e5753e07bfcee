"""Unit tests for circuit breaker."""

from unittest.mock import Mock

from parts_finder.fetcher.circuit_breaker import CircuitBreaker, CircuitState
from parts_finder.models.clock import MonotonicClock
from tests.fixtures.fakes import FakeClock


def open_circuit(cb, source="ebay", failures=3):
    for _ in range(failures):
        cb.record_failure(source, retryable=True)


class TestCircuitBreakerBasics:

    def test_initial_state_is_closed(self):
        cb = CircuitBreaker()
        assert cb.state("ebay") == CircuitState.CLOSED

    def test_closed_circuit_allows_requests(self):
        assert CircuitBreaker().allow("ebay") is True

    def test_uses_monotonic_clock_by_default(self):
        assert isinstance(CircuitBreaker().clock, MonotonicClock)

    def test_accepts_custom_clock(self):
        fake_clock = FakeClock()
        assert CircuitBreaker(clock=fake_clock).clock is fake_clock


class TestCircuitBreakerStateTransitions:

    def test_opens_after_threshold_failures(self):
        cb = CircuitBreaker(failure_threshold=3, clock=FakeClock())
        open_circuit(cb)
        assert cb.state("ebay") == CircuitState.OPEN

    def test_stays_closed_below_threshold(self):
        cb = CircuitBreaker(failure_threshold=3, clock=FakeClock())
        open_circuit(cb, failures=2)
        assert cb.state("ebay") == CircuitState.CLOSED

    def test_success_resets_failure_count(self):
        cb = CircuitBreaker(failure_threshold=3, clock=FakeClock())
        open_circuit(cb, failures=2)
        cb.record_success("ebay")
        open_circuit(cb, failures=2)
        assert cb.state("ebay") == CircuitState.CLOSED

    def test_non_retryable_failures_are_ignored(self):
        cb = CircuitBreaker(failure_threshold=1, clock=FakeClock())
        cb.record_failure("ebay", retryable=False)
        assert cb.state("ebay") == CircuitState.CLOSED

    def test_open_circuit_rejects_requests(self):
        cb = CircuitBreaker(failure_threshold=3, cooldown_seconds=30.0, clock=FakeClock())
        open_circuit(cb)
        assert cb.allow("ebay") is False

    def test_transitions_to_half_open_after_cooldown(self):
        fake_clock = FakeClock()
        cb = CircuitBreaker(failure_threshold=3, cooldown_seconds=30.0, clock=fake_clock)
        open_circuit(cb)

        fake_clock.advance(30.0)

        assert cb.allow("ebay") is True
        assert cb.state("ebay") == CircuitState.HALF_OPEN

    def test_half_open_allows_single_probe(self):
        fake_clock = FakeClock()
        cb = CircuitBreaker(failure_threshold=3, cooldown_seconds=30.0, clock=fake_clock)
        open_circuit(cb)
        fake_clock.advance(30.0)

        assert cb.allow("ebay") is True
        assert cb.allow("ebay") is False

    def test_probe_success_closes_circuit(self):
        fake_clock = FakeClock()
        cb = CircuitBreaker(failure_threshold=3, cooldown_seconds=30.0, clock=fake_clock)
        open_circuit(cb)
        fake_clock.advance(30.0)
        cb.allow("ebay")

        cb.record_success("ebay")

        assert cb.state("ebay") == CircuitState.CLOSED
        assert cb.allow("ebay") is True

    def test_probe_failure_reopens_circuit(self):
        fake_clock = FakeClock()
        cb = CircuitBreaker(failure_threshold=3, cooldown_seconds=30.0, clock=fake_clock)
        open_circuit(cb)
        fake_clock.advance(30.0)
        cb.allow("ebay")

        cb.record_failure("ebay", retryable=True)

        assert cb.state("ebay") == CircuitState.OPEN
        assert cb.allow("ebay") is False
        fake_clock.advance(30.0)
        assert cb.allow("ebay") is True

    def test_non_retryable_probe_failure_frees_the_probe(self):
        fake_clock = FakeClock()
        cb = CircuitBreaker(failure_threshold=3, cooldown_seconds=30.0, clock=fake_clock)
        open_circuit(cb)
        fake_clock.advance(30.0)
        cb.allow("ebay")

        cb.record_failure("ebay", retryable=False)

        assert cb.state("ebay") == CircuitState.HALF_OPEN
        assert cb.allow("ebay") is True

    def test_released_probe_lets_next_attempt_through(self):
        fake_clock = FakeClock()
        cb = CircuitBreaker(failure_threshold=3, cooldown_seconds=30.0, clock=fake_clock)
        open_circuit(cb)
        fake_clock.advance(30.0)
        assert cb.allow("ebay") is True
        assert cb.allow("ebay") is False

        cb.release_probe("ebay")

        assert cb.state("ebay") == CircuitState.HALF_OPEN
        assert cb.allow("ebay") is True

    def test_release_probe_on_closed_circuit_is_noop(self):
        cb = CircuitBreaker()
        cb.release_probe("ebay")
        assert cb.state("ebay") == CircuitState.CLOSED


class TestCircuitBreakerIsolation:

    def test_sources_are_independent(self):
        cb = CircuitBreaker(failure_threshold=3, clock=FakeClock())
        open_circuit(cb, source="ebay")

        assert cb.allow("ebay") is False
        assert cb.allow("rockauto") is True

    def test_reset(self):
        cb = CircuitBreaker(failure_threshold=3, clock=FakeClock())
        open_circuit(cb)
        cb.reset("ebay")
        assert cb.state("ebay") == CircuitState.CLOSED


def test_state_changes_are_logged():
    logger = Mock()
    fake_clock = FakeClock()
    cb = CircuitBreaker(failure_threshold=1, cooldown_seconds=5.0, clock=fake_clock, logger=logger)

    cb.record_failure("ebay", retryable=True)
    fake_clock.advance(5.0)
    cb.allow("ebay")
    cb.record_success("ebay")

    states = [call.kwargs["state"] for call in logger.circuit_breaker_state.call_args_list]
    assert states == ["open", "half_open", "closed"]
