from dataclasses import dataclass, field
from typing import Any, AsyncContextManager, AsyncIterator, Callable, Mapping, Optional, Protocol, Union

from fiddlekit.internal.constants import (
    DEFAULT_MAX_WAIT,
    DEFAULT_MIN_WAIT,
    DEFAULT_RESULT_TIMEOUT,
)

CacheID = Union[int, str]
Snapshot = Mapping[str, Any]
ResultCondition = Callable[[Snapshot], bool]

# No timeout given; None means no timeout at all
_DEFAULT_TIMEOUT: Any = object()


@dataclass
class ExecuteOptions:
    """
    Tuning for one execute call. Waits are in seconds.

    min_wait: floor before any resolution.
    max_wait: ceiling that forces resolution with the latest snapshot even if
        conditions are unmet.
    result_condition: custom predicate over the snapshot.
    wait_for: tags of built-in predicates to require ('tests').
    cache_id: cache context to execute in; a fresh one is generated if None.
    timeout: give up if no snapshot at all has arrived by then (None waits forever).
        Defaults to DEFAULT_RESULT_TIMEOUT, or max_wait when that is longer.
    """
    min_wait: float = DEFAULT_MIN_WAIT
    max_wait: float = DEFAULT_MAX_WAIT
    result_condition: Optional[ResultCondition] = None
    wait_for: list[str] = field(default_factory=list)
    cache_id: Optional[CacheID] = None
    timeout: Optional[float] = _DEFAULT_TIMEOUT

    def __post_init__(self):
        if isinstance(self.wait_for, str):
            self.wait_for = [self.wait_for]
        if not all(isinstance(tag, str) for tag in self.wait_for):
            raise TypeError("All wait_for tags must be strings")
        if self.min_wait < 0 or self.max_wait < 0:
            raise ValueError("min_wait and max_wait must not be negative")
        if self.timeout is _DEFAULT_TIMEOUT:
            self.timeout = max(DEFAULT_RESULT_TIMEOUT, self.max_wait)
        elif self.timeout is not None and self.timeout < self.max_wait:
            raise ValueError("timeout must not be less than max_wait")
        if self.result_condition is not None and not callable(self.result_condition):
            raise TypeError("result_condition must be callable")


@dataclass
class ExecutionRequest:
    """
    What to run and in which cache context.
    The workload is either a published fiddle ID or an inline fiddle to publish first.
    """
    workload: Union[str, Mapping[str, Any]]
    cache_id: CacheID

    def __post_init__(self):
        if not self.workload:
            raise ValueError("workload cannot be empty")
        if self.cache_id is None or self.cache_id == "":
            raise ValueError("cache_id cannot be empty")

    @property
    def is_inline(self) -> bool:
        return isinstance(self.workload, Mapping)


@dataclass
class ExecutionSession:
    """
    A server-assigned handle for one in-flight execution.
    """
    session_id: str
    fiddle_id: str
    cache_id: CacheID

    def __post_init__(self):
        if not self.session_id:
            raise ValueError("session_id cannot be empty")


class FiddleTransport(Protocol):
    """
    The contract the kernel needs from the fiddle API.
    The kernel interacts with the service ONLY through this interface.
    """

    async def get_fiddle(self, fiddle_id: str) -> dict:
        """
        Fetch the normalised fiddle with this ID.
        """
        ...

    async def publish_fiddle(self, fiddle: Mapping[str, Any]) -> dict:
        """
        Create the fiddle (no 'id') or overwrite it (with 'id').
        Returns the normalised, stored fiddle.
        """
        ...

    async def start_execution(self, fiddle_id: str, cache_id: CacheID) -> str:
        """
        Start executing a fiddle and return the session ID.
        """
        ...

    def stream_results(self, session_id: str) -> AsyncContextManager[AsyncIterator[bytes]]:
        """
        Open the server-sent event stream for a session.
        Leaving the context tears the subscription down.
        """
        ...
