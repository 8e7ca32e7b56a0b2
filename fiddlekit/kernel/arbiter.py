"""
The wait arbiter decides when an execution has collected enough data.

It is a plain state machine: the caller feeds it inputs (a new snapshot, the
min/max timers firing, the stream closing, the hard deadline) together with
the elapsed time, and each input answers whether it resolved the execution.
It owns no timers and does no I/O, so it can be driven from tests directly.
"""
from enum import Enum
from typing import Optional

from fiddlekit.internal.logging import get_logger
from fiddlekit.kernel.conditions import CompletionEvaluator
from fiddlekit.kernel.contracts import Snapshot
from fiddlekit.kernel.errors import ResultTimeoutError, StreamClosedError
from fiddlekit.kernel.results import ResultAggregator

logger = get_logger(__name__)


class ArbiterState(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


class WaitArbiter:
    """
    PENDING -> RESOLVED, exactly once.

    Resolves when a snapshot exists, the minimum wait has passed, and either
    the evaluator accepts the snapshot or the maximum wait has passed.
    """

    def __init__(
        self,
        evaluator: CompletionEvaluator,
        min_wait: float,
        max_wait: float,
        aggregator: Optional[ResultAggregator] = None,
    ):
        self.evaluator = evaluator
        self.max_wait = max_wait
        # The ceiling governs when min_wait >= max_wait
        self.min_wait = min(min_wait, max_wait)
        self.aggregator = aggregator if aggregator is not None else ResultAggregator()
        self.state = ArbiterState.PENDING
        self.resolved_at: Optional[float] = None
        self._min_fired = False
        self._max_fired = False
        self._stream_closed = False

    @property
    def resolved(self) -> bool:
        return self.state is ArbiterState.RESOLVED

    @property
    def result(self) -> Optional[Snapshot]:
        """The delivered snapshot once resolved, else None."""
        return self.aggregator.latest if self.resolved else None

    @property
    def stream_closed(self) -> bool:
        return self._stream_closed

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def on_snapshot(self, snapshot: Snapshot, elapsed: float) -> bool:
        if self.resolved:
            return False
        if self.aggregator.update(snapshot):
            logger.debug("First result snapshot received", elapsed=round(elapsed, 3))
        return self._evaluate(elapsed)

    def on_min_timer(self, elapsed: float) -> bool:
        if self.resolved:
            return False
        self._min_fired = True
        return self._evaluate(elapsed)

    def on_max_timer(self, elapsed: float) -> bool:
        if self.resolved:
            return False
        self._max_fired = True
        if not self.aggregator.has_snapshot:
            logger.warning("Maximum wait elapsed before any result arrived", elapsed=round(elapsed, 3))
        return self._evaluate(elapsed)

    def on_stream_closed(self, elapsed: float, error: Optional[BaseException] = None) -> bool:
        """
        The stream ended. Without a snapshot nothing can ever resolve, so this
        raises StreamClosedError; with one, the timers still bound the wait.
        """
        if self.resolved:
            return False
        self._stream_closed = True
        if not self.aggregator.has_snapshot:
            message = "Result stream closed before any result arrived"
            if error is not None:
                raise StreamClosedError(f"{message}: {error}") from error
            raise StreamClosedError(message)
        logger.info("Result stream closed; waiting on timers", elapsed=round(elapsed, 3))
        return self._evaluate(elapsed)

    def on_deadline(self, elapsed: float) -> bool:
        if self.resolved:
            return False
        if not self.aggregator.has_snapshot:
            raise ResultTimeoutError(f"No result arrived within {elapsed:.1f}s")
        return self._evaluate(elapsed)

    # ------------------------------------------------------------------
    # Guard
    # ------------------------------------------------------------------

    def should_resolve(self, elapsed: float) -> bool:
        snapshot = self.aggregator.latest
        if snapshot is None:
            return False
        min_passed = self._min_fired or self._max_fired or elapsed >= self.min_wait
        if not min_passed:
            return False
        max_passed = self._max_fired or elapsed >= self.max_wait
        return max_passed or self.evaluator.is_satisfied(snapshot)

    def _evaluate(self, elapsed: float) -> bool:
        if not self.should_resolve(elapsed):
            return False
        self.state = ArbiterState.RESOLVED
        self.resolved_at = elapsed
        logger.info(
            "Result collection resolved",
            elapsed=round(elapsed, 3),
            updates=self.aggregator.update_count,
        )
        return True
