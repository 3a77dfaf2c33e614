"""Property-based tests for the deferred-job poller.

Constant interval, bounded attempts, and no polling past a terminal status.
"""

import pytest
from hypothesis import given, settings, strategies as st

from src.models.outcome import PollFailed, PollSuccess, PollTimedOut
from src.services.poller import Poller
from src.utils.errors import BackendRejected
from tests.fakes import FakeClock, ScriptedAdapter, failed, running, succeeded


class RejectingAdapter(ScriptedAdapter):
    async def check_status(self, job_handle: str):
        self.status_checks += 1
        raise BackendRejected("Scripted", 503, "upstream unavailable")


class TestPollerOutcomes:
    """Each terminal report maps to exactly one outcome."""

    @pytest.mark.asyncio
    async def test_success_after_five_running_polls(self) -> None:
        clock = FakeClock()
        adapter = ScriptedAdapter(statuses=running(5) + [succeeded("https://cdn.test/x.wav")])

        outcome = await Poller(clock=clock).poll(adapter, "remote-1")

        assert isinstance(outcome, PollSuccess)
        assert outcome.result_url == "https://cdn.test/x.wav"
        assert outcome.attempts == 6
        assert adapter.status_checks == 6
        assert clock.sleeps == [10.0] * 5

    @pytest.mark.asyncio
    async def test_never_finishing_job_times_out(self) -> None:
        clock = FakeClock()
        adapter = ScriptedAdapter(statuses=running(1))

        outcome = await Poller(clock=clock).poll(adapter, "remote-1")

        assert isinstance(outcome, PollTimedOut)
        assert outcome.attempts == 30
        assert adapter.status_checks == 30
        # No sleep after the final check
        assert clock.sleeps == [10.0] * 29
        assert sum(clock.sleeps) <= 300

    @pytest.mark.asyncio
    async def test_error_on_third_poll_stops_polling(self) -> None:
        clock = FakeClock()
        adapter = ScriptedAdapter(
            statuses=running(2) + [failed("voice model unavailable")] + running(10)
        )

        outcome = await Poller(clock=clock).poll(adapter, "remote-1")

        assert isinstance(outcome, PollFailed)
        assert outcome.reason == "voice model unavailable"
        assert outcome.attempts == 3
        assert adapter.status_checks == 3
        assert len(clock.sleeps) == 2

    @pytest.mark.asyncio
    async def test_success_without_url_is_failure(self) -> None:
        adapter = ScriptedAdapter(statuses=[succeeded("")])

        outcome = await Poller(clock=FakeClock()).poll(adapter, "remote-1")

        assert isinstance(outcome, PollFailed)
        assert "output URL" in outcome.reason

    @pytest.mark.asyncio
    async def test_status_check_errors_propagate(self) -> None:
        adapter = RejectingAdapter()

        with pytest.raises(BackendRejected):
            await Poller(clock=FakeClock()).poll(adapter, "remote-1")

        assert adapter.status_checks == 1

    def test_rejects_empty_attempt_budget(self) -> None:
        with pytest.raises(ValueError):
            Poller(clock=FakeClock(), max_attempts=0)


class TestPollerBudget:
    """Attempt count and wait time are bounded for any status sequence."""

    @settings(max_examples=100)
    @given(
        running_polls=st.integers(min_value=0, max_value=40),
        max_attempts=st.integers(min_value=1, max_value=30),
        interval=st.floats(min_value=0.5, max_value=20.0),
    )
    @pytest.mark.asyncio
    async def test_attempts_and_wait_are_bounded(
        self, running_polls: int, max_attempts: int, interval: float
    ) -> None:
        clock = FakeClock()
        adapter = ScriptedAdapter(
            statuses=running(running_polls) + [succeeded("https://cdn.test/x.wav")]
        )
        poller = Poller(clock=clock, interval=interval, max_attempts=max_attempts)

        outcome = await poller.poll(adapter, "remote-1")

        assert adapter.status_checks <= max_attempts
        assert len(clock.sleeps) == adapter.status_checks - 1
        assert all(s == interval for s in clock.sleeps)

        if running_polls < max_attempts:
            assert isinstance(outcome, PollSuccess)
            assert outcome.attempts == running_polls + 1
        else:
            assert isinstance(outcome, PollTimedOut)
            assert outcome.attempts == max_attempts
