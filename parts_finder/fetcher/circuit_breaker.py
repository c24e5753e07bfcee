"""Per-marketplace circuit breaker.

A marketplace that keeps timing out or rate-limiting us is skipped for a
cooldown period; skipped calls count as "zero listings" upstream.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from parts_finder.models.clock import Clock, MonotonicClock


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class _Circuit:
    state: CircuitState = CircuitState.CLOSED
    failure_count: int = 0
    opened_at: float = 0.0
    probe_in_flight: bool = False


class CircuitBreaker:
    """
    Circuit breaker with CLOSED/OPEN/HALF_OPEN states per marketplace source.

    - Opens after ``failure_threshold`` consecutive retryable failures
    - Rejects calls until ``cooldown_seconds`` have passed
    - Then lets a single probe through; success closes, failure reopens
    """

    def __init__(
        self,
        failure_threshold: int = 3,
        cooldown_seconds: float = 30.0,
        clock: Optional[Clock] = None,
        logger=None,
    ):
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self.clock = clock or MonotonicClock()
        self.logger = logger
        self._circuits: Dict[str, _Circuit] = {}

    def _circuit(self, source: str) -> _Circuit:
        return self._circuits.setdefault(source, _Circuit())

    def _transition(self, source: str, circuit: _Circuit, state: CircuitState) -> None:
        if circuit.state is state:
            return
        circuit.state = state
        if self.logger:
            self.logger.circuit_breaker_state(source=source, state=state.value)

    def allow(self, source: str) -> bool:
        """Return True if a request to ``source`` may be attempted now."""
        circuit = self._circuit(source)

        if circuit.state is CircuitState.CLOSED:
            return True

        if circuit.state is CircuitState.OPEN:
            if self.clock.now() - circuit.opened_at < self.cooldown_seconds:
                return False
            self._transition(source, circuit, CircuitState.HALF_OPEN)
            circuit.probe_in_flight = True
            return True

        # HALF_OPEN: one probe at a time
        if circuit.probe_in_flight:
            return False
        circuit.probe_in_flight = True
        return True

    def record_success(self, source: str) -> None:
        circuit = self._circuit(source)
        circuit.failure_count = 0
        circuit.probe_in_flight = False
        self._transition(source, circuit, CircuitState.CLOSED)

    def record_failure(self, source: str, retryable: bool) -> None:
        """
        Record a failed request.

        Only retryable failures (timeouts, 429, 5xx gateway errors) count toward
        opening the circuit; a non-retryable failure still ends a half-open probe.
        """
        circuit = self._circuit(source)

        if circuit.state is CircuitState.HALF_OPEN:
            circuit.probe_in_flight = False
            if retryable:
                circuit.opened_at = self.clock.now()
                self._transition(source, circuit, CircuitState.OPEN)
            return

        if not retryable:
            return

        circuit.failure_count += 1
        if circuit.failure_count >= self.failure_threshold:
            circuit.opened_at = self.clock.now()
            self._transition(source, circuit, CircuitState.OPEN)

    def release_probe(self, source: str) -> None:
        """End a half-open attempt that produced no outcome, e.g. a cancelled call."""
        circuit = self._circuit(source)
        if circuit.state is CircuitState.HALF_OPEN:
            circuit.probe_in_flight = False

    def state(self, source: str) -> CircuitState:
        return self._circuit(source).state

    def reset(self, source: str) -> None:
        """Reset circuit breaker for source (useful for testing)."""
        self._circuits.pop(source, None)
