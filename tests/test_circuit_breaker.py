from clarity.circuit_breaker import CircuitBreaker

from conftest import FakeClock


class TestCircuitBreaker:
    def test_starts_closed(self):
        cb = CircuitBreaker()
        assert not cb.is_open
        assert cb.should_try()

    def test_opens_after_threshold(self):
        cb = CircuitBreaker(failure_threshold=3, clock=FakeClock())
        cb.record_failure()
        cb.record_failure()
        assert cb.should_try()
        cb.record_failure()
        assert cb.is_open
        assert not cb.should_try()

    def test_success_resets_count(self):
        cb = CircuitBreaker(failure_threshold=3, clock=FakeClock())
        cb.record_failure()
        cb.record_failure()
        cb.record_success()
        cb.record_failure()
        assert not cb.is_open

    def test_half_open_after_cooldown(self):
        clock = FakeClock()
        cb = CircuitBreaker(failure_threshold=1, cooldown_seconds=60, clock=clock)
        cb.record_failure()
        clock.advance(59)
        assert not cb.should_try()
        clock.advance(2)
        assert cb.should_try()

    def test_failed_trial_call_restarts_cooldown(self):
        clock = FakeClock()
        cb = CircuitBreaker(failure_threshold=1, cooldown_seconds=60, clock=clock)
        cb.record_failure()
        clock.advance(61)
        cb.record_failure()
        clock.advance(30)
        assert not cb.should_try()

    def test_successful_trial_call_closes(self):
        clock = FakeClock()
        cb = CircuitBreaker(failure_threshold=1, cooldown_seconds=60, clock=clock)
        cb.record_failure()
        clock.advance(61)
        cb.record_success()
        assert not cb.is_open
        assert cb.should_try()
