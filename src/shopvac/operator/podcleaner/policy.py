"""
Maps the outcome of a reconcile to the delay before the next one.
"""
from dataclasses import dataclass
from typing import Optional

DEFAULT_SUCCESS_DELAY_SECONDS = 300.0
DEFAULT_FAILURE_DELAY_SECONDS = 1.0


@dataclass(frozen=True)
class RequeueDecision:
    delay: float
    failed: bool = False
    reason: Optional[str] = None


class RequeuePolicy:
    """
    Success re-checks after a long delay so drift is corrected without new
    events. Any failure retries after a short constant delay: no backoff and
    no retry cap, whatever the kind of failure or the attempt number.
    """

    def __init__(
        self,
        success_delay: float = DEFAULT_SUCCESS_DELAY_SECONDS,
        failure_delay: float = DEFAULT_FAILURE_DELAY_SECONDS,
    ) -> None:
        if failure_delay <= 0:
            raise ValueError("failure_delay must be positive")
        if failure_delay >= success_delay:
            raise ValueError("failure_delay must be shorter than success_delay")
        self.success_delay = float(success_delay)
        self.failure_delay = float(failure_delay)

    def on_success(self) -> RequeueDecision:
        return RequeueDecision(delay=self.success_delay)

    def on_failure(self, error: BaseException) -> RequeueDecision:
        return RequeueDecision(delay=self.failure_delay, failed=True, reason=str(error))
