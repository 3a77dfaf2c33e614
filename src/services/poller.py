"""Poller driving deferred backend jobs to a terminal outcome."""

import logging
from typing import Optional

from src.models.outcome import PollFailed, PollOutcome, PollSuccess, PollTimedOut
from src.services.backend import BackendAdapter
from src.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0
DEFAULT_MAX_ATTEMPTS = 30


class Poller:
    """Query a deferred job at a constant interval until it settles.

    Worst-case wait is ``interval * (max_attempts - 1)``: there is no sleep
    after the last check. Polling state lives only in this call, so an
    interrupted process leaves its job record in ``processing``.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        interval: float = DEFAULT_POLL_INTERVAL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        """
        Initialize the Poller.

        Args:
            clock: Clock used for the sleep between attempts
            interval: Seconds between status checks
            max_attempts: Status checks before giving up
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.clock = clock or SystemClock()
        self.interval = interval
        self.max_attempts = max_attempts

    async def poll(self, adapter: BackendAdapter, job_handle: str) -> PollOutcome:
        """
        Poll a deferred job until success, failure, or the attempt budget runs out.

        Args:
            adapter: Backend adapter that accepted the job
            job_handle: Handle returned by the adapter's submit

        Returns:
            PollSuccess, PollFailed or PollTimedOut

        Raises:
            BackendError: If a status check itself fails
        """
        for attempt in range(1, self.max_attempts + 1):
            report = await adapter.check_status(job_handle)
            logger.debug(
                f"{adapter.name} job {job_handle} attempt {attempt}/{self.max_attempts}: "
                f"{report.raw_status or report.state}"
            )

            if report.state == "succeeded":
                if not report.result_url:
                    return PollFailed(
                        reason=f"{adapter.name} reported success without an output URL",
                        attempts=attempt,
                    )
                logger.info(f"{adapter.name} job {job_handle} succeeded after {attempt} checks")
                return PollSuccess(result_url=report.result_url, attempts=attempt)

            if report.state == "failed":
                logger.info(f"{adapter.name} job {job_handle} failed: {report.error}")
                return PollFailed(reason=report.error or "Unknown error", attempts=attempt)

            if attempt < self.max_attempts:
                await self.clock.sleep(self.interval)

        logger.warning(
            f"{adapter.name} job {job_handle} still running after {self.max_attempts} checks"
        )
        return PollTimedOut(attempts=self.max_attempts)


def create_poller(clock: Optional[Clock] = None) -> Poller:
    """Create a Poller using application settings."""
    from src.config import get_settings

    settings = get_settings()
    return Poller(
        clock=clock,
        interval=settings.poll_interval_seconds,
        max_attempts=settings.poll_max_attempts,
    )
