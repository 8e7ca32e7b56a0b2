"""
Drives a WaitArbiter from a live result stream.

The stream reader and the timers are independent producers; everything they
produce goes through one queue, and a single consumer applies the inputs to
the arbiter in arrival order.
"""
import asyncio
import json
from enum import Enum
from typing import Any, AsyncIterable, Optional

from fiddlekit.internal.constants import EVENT_UPDATE_RESULT, EVENT_WAITING_FOR_SYNC
from fiddlekit.internal.logging import get_logger
from fiddlekit.kernel.arbiter import WaitArbiter
from fiddlekit.kernel.conditions import CompletionEvaluator
from fiddlekit.kernel.contracts import Snapshot
from fiddlekit.kernel.events import Event, iter_events

logger = get_logger(__name__)


class CollectorInput(str, Enum):
    SNAPSHOT = "snapshot"
    MIN_TIMER = "min_timer"
    MAX_TIMER = "max_timer"
    DEADLINE = "deadline"
    STREAM_CLOSED = "stream_closed"


def snapshot_from_event(event: Event) -> Optional[Snapshot]:
    """
    The snapshot carried by an updateResult event, or None for any event
    that does not carry a usable one.
    """
    kind = event.get("event")
    if kind == EVENT_WAITING_FOR_SYNC:
        logger.info("Syncing config to edge...")
        return None
    if kind != EVENT_UPDATE_RESULT:
        logger.debug("Ignoring stream event", kind=kind)
        return None

    try:
        snapshot = json.loads(event.get("data", ""))
    except json.JSONDecodeError:
        logger.warning("JSON decode error in result update", data=event.get("data"))
        return None
    if not isinstance(snapshot, dict):
        logger.warning("Result update is not a JSON object", data=event.get("data"))
        return None
    logger.info("Result update...")
    return snapshot


class ResultCollector:
    """
    Collects results from one session's event stream until the arbiter
    resolves, then tears the timers and the subscription down.
    """

    def __init__(
        self,
        evaluator: CompletionEvaluator,
        min_wait: float,
        max_wait: float,
        timeout: Optional[float] = None,
    ):
        self.evaluator = evaluator
        self.min_wait = min_wait
        self.max_wait = max_wait
        self.timeout = timeout
        self.arbiter: Optional[WaitArbiter] = None

    async def collect(self, stream: AsyncIterable[bytes]) -> Snapshot:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        arbiter = WaitArbiter(self.evaluator, self.min_wait, self.max_wait)
        self.arbiter = arbiter

        started = loop.time()
        timers = [
            loop.call_later(self.min_wait, queue.put_nowait, (CollectorInput.MIN_TIMER, None)),
            loop.call_later(self.max_wait, queue.put_nowait, (CollectorInput.MAX_TIMER, None)),
        ]
        if self.timeout is not None:
            timers.append(loop.call_later(self.timeout, queue.put_nowait, (CollectorInput.DEADLINE, None)))
        reader = asyncio.create_task(self._read(stream, queue))

        try:
            while True:
                kind, payload = await queue.get()
                elapsed = loop.time() - started
                if self._apply(arbiter, kind, payload, elapsed):
                    return arbiter.result
        finally:
            for timer in timers:
                timer.cancel()
            reader.cancel()
            await asyncio.gather(reader, return_exceptions=True)
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    @staticmethod
    def _apply(arbiter: WaitArbiter, kind: CollectorInput, payload: Any, elapsed: float) -> bool:
        if kind is CollectorInput.SNAPSHOT:
            return arbiter.on_snapshot(payload, elapsed)
        if kind is CollectorInput.MIN_TIMER:
            return arbiter.on_min_timer(elapsed)
        if kind is CollectorInput.MAX_TIMER:
            return arbiter.on_max_timer(elapsed)
        if kind is CollectorInput.DEADLINE:
            return arbiter.on_deadline(elapsed)
        return arbiter.on_stream_closed(elapsed, error=payload)

    @staticmethod
    async def _read(stream: AsyncIterable[bytes], queue: asyncio.Queue) -> None:
        try:
            async for event in iter_events(stream):
                snapshot = snapshot_from_event(event)
                if snapshot is not None:
                    queue.put_nowait((CollectorInput.SNAPSHOT, snapshot))
        except Exception as e:
            logger.warning("Result stream failed", error=str(e))
            queue.put_nowait((CollectorInput.STREAM_CLOSED, e))
        else:
            logger.debug("Result stream ended")
            queue.put_nowait((CollectorInput.STREAM_CLOSED, None))
