"""
This module defines the execution service of the fiddlekit kernel.
It runs a fiddle on the hosted service and waits, through the result
collector, until enough result data has arrived.
"""
import secrets
from typing import Any, Callable, Mapping, Optional, Union

from fiddlekit.internal.constants import CACHE_ID_UPPER_BOUND
from fiddlekit.internal.logging import get_logger
from fiddlekit.kernel.collector import ResultCollector
from fiddlekit.kernel.conditions import CompletionEvaluator
from fiddlekit.kernel.contracts import (
    CacheID,
    ExecuteOptions,
    ExecutionRequest,
    ExecutionSession,
    FiddleTransport,
    Snapshot,
)
from fiddlekit.kernel.errors import TransportError

logger = get_logger(__name__)


def random_cache_id() -> int:
    return secrets.randbelow(CACHE_ID_UPPER_BOUND + 1)


class FiddleExecutionService:
    """
    Fiddle CRUD plus execution with result collection, on top of a transport.
    """
    def __init__(
        self,
        transport: FiddleTransport,
        cache_id_factory: Callable[[], CacheID] = random_cache_id,
    ):
        self.transport = transport
        self.cache_id_factory = cache_id_factory

    # ------------------------------------------------------------------
    # Fiddle CRUD
    # ------------------------------------------------------------------

    async def get(self, fiddle_id: str) -> dict:
        return await self.transport.get_fiddle(fiddle_id)

    async def publish(self, fiddle: Mapping[str, Any]) -> dict:
        """
        Create a new fiddle when it has no ID, otherwise overwrite the one it names.
        Returns the normalised fiddle (with defaults added).
        """
        return await self.transport.publish_fiddle(fiddle)

    async def clone(self, fiddle_id: str) -> dict:
        fiddle = dict(await self.get(fiddle_id))
        fiddle["id"] = None
        return await self.publish(fiddle)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(
        self,
        fiddle_or_id: Union[str, Mapping[str, Any]],
        options: Optional[ExecuteOptions] = None,
    ) -> Snapshot:
        """
        Execute a fiddle and return the result snapshot.

        Fiddles execute asynchronously and report an unbounded amount of
        data, so this returns once the result conditions in `options` are met
        (but never before min_wait), or at max_wait with whatever arrived.
        Raises an ExecutionError if no usable result arrives at all.
        """
        options = options or ExecuteOptions()
        request = ExecutionRequest(
            workload=fiddle_or_id,
            cache_id=options.cache_id if options.cache_id is not None else self.cache_id_factory(),
        )

        fiddle_id = request.workload
        if request.is_inline:
            fiddle_id = (await self.publish(request.workload)).get("id")
            if not fiddle_id:
                raise TransportError("Published fiddle has no id")
        fiddle = await self.get(fiddle_id)

        evaluator = CompletionEvaluator.for_fiddle(
            fiddle,
            result_condition=options.result_condition,
            wait_for=options.wait_for,
        )

        logger.info("Executing the fiddle", fiddle_id=fiddle_id, cache_id=request.cache_id)
        session = ExecutionSession(
            session_id=await self.transport.start_execution(fiddle_id, request.cache_id),
            fiddle_id=fiddle_id,
            cache_id=request.cache_id,
        )

        logger.info("Subscribing to result stream", session_id=session.session_id)
        collector = ResultCollector(
            evaluator,
            min_wait=options.min_wait,
            max_wait=options.max_wait,
            timeout=options.timeout,
        )
        async with self.transport.stream_results(session.session_id) as chunks:
            result = await collector.collect(chunks)

        logger.info(
            "Execution complete",
            session_id=session.session_id,
            fiddle_id=fiddle_id,
            client_fetches=len(result.get("clientFetches") or {}),
        )
        return result
