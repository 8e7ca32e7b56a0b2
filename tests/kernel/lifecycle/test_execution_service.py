import pytest

from fiddlekit.kernel.contracts import ExecuteOptions
from fiddlekit.kernel.errors import CompletionConditionError, StreamClosedError, TransportError
from fiddlekit.kernel.execution import FiddleExecutionService, random_cache_id
from tests.kernel.mocks import MockFiddleTransport, sse_frame

FAST = dict(min_wait=0.05, max_wait=0.5, timeout=2.0)

# --- Fixtures ---

@pytest.fixture
def transport(fiddle_with_tests, tested_result):
    return MockFiddleTransport(
        fiddle_with_tests,
        chunks=[(0, sse_frame(event="waitingForSync")), (0.02, sse_frame(tested_result))],
    )

@pytest.fixture
def service(transport):
    return FiddleExecutionService(transport, cache_id_factory=lambda: 4242)

# --- CRUD ---

@pytest.mark.asyncio
async def test_get_returns_fiddle(service, transport, fiddle_with_tests):
    assert await service.get("fiddle-1") == fiddle_with_tests
    assert transport.get_calls == ["fiddle-1"]


@pytest.mark.asyncio
async def test_publish_new_fiddle_assigns_id(service, transport):
    published = await service.publish({"type": "vcl", "requests": []})
    assert published["id"] == "new-1"
    assert transport.publish_calls == [{"type": "vcl", "requests": []}]


@pytest.mark.asyncio
async def test_clone_publishes_copy_without_id(service, transport, fiddle_with_tests):
    clone = await service.clone("fiddle-1")

    assert clone["id"] == "new-1"
    assert transport.publish_calls[0]["id"] is None
    assert transport.publish_calls[0]["requests"] == fiddle_with_tests["requests"]
    assert transport.fiddles["fiddle-1"]["id"] == "fiddle-1"

# --- Execution lifecycle ---

@pytest.mark.asyncio
async def test_execute_by_id(service, transport, tested_result):
    result = await service.execute("fiddle-1", ExecuteOptions(wait_for=["tests"], **FAST))

    assert result == tested_result
    assert transport.publish_calls == []
    assert transport.get_calls == ["fiddle-1"]
    assert transport.execute_calls == [("fiddle-1", 4242)]
    assert transport.streams_opened == ["session-1"]
    assert transport.streams_closed == ["session-1"]


@pytest.mark.asyncio
async def test_execute_inline_fiddle_publishes_first(service, transport, fiddle_with_tests, tested_result):
    inline = {**fiddle_with_tests, "requests": [{"path": "/other", "tests": ["clientFetch.status is 404"]}]}

    result = await service.execute(inline, ExecuteOptions(**FAST))

    assert result == tested_result
    assert transport.publish_calls == [inline]
    assert transport.get_calls == ["fiddle-1"]
    assert transport.execute_calls[0][0] == "fiddle-1"


@pytest.mark.asyncio
async def test_explicit_cache_id_is_used(service, transport):
    await service.execute("fiddle-1", ExecuteOptions(cache_id="shared-cache", **FAST))
    assert transport.execute_calls == [("fiddle-1", "shared-cache")]


@pytest.mark.asyncio
async def test_each_execution_draws_a_fresh_cache_id(transport):
    ids = iter([1, 2])
    service = FiddleExecutionService(transport, cache_id_factory=lambda: next(ids))

    await service.execute("fiddle-1", ExecuteOptions(**FAST))
    await service.execute("fiddle-1", ExecuteOptions(**FAST))

    assert [cache_id for _, cache_id in transport.execute_calls] == [1, 2]


def test_random_cache_id_in_range():
    for _ in range(100):
        assert 0 <= random_cache_id() <= 100000


@pytest.mark.asyncio
async def test_unknown_wait_for_tag_fails_before_executing(service, transport):
    with pytest.raises(ValueError):
        await service.execute("fiddle-1", ExecuteOptions(wait_for=["nope"], **FAST))
    assert transport.execute_calls == []

# --- Failure scenarios ---

@pytest.mark.asyncio
async def test_stream_closing_without_results_fails(fiddle_with_tests):
    transport = MockFiddleTransport(fiddle_with_tests, chunks=[(0, sse_frame(event="waitingForSync"))], hold_open=False)
    service = FiddleExecutionService(transport)

    with pytest.raises(StreamClosedError):
        await service.execute("fiddle-1", ExecuteOptions(**FAST))
    assert transport.streams_closed == ["session-1"]


@pytest.mark.asyncio
async def test_broken_result_condition_fails_execution(service, transport):
    def broken(snapshot):
        raise KeyError("missing")

    with pytest.raises(CompletionConditionError):
        await service.execute("fiddle-1", ExecuteOptions(result_condition=broken, **FAST))
    assert transport.streams_closed == ["session-1"]


@pytest.mark.asyncio
async def test_published_fiddle_without_id_fails_execution(service, transport, mocker, fiddle_with_tests):
    mocker.patch.object(transport, "publish_fiddle", return_value={"type": "vcl", "requests": []})

    with pytest.raises(TransportError, match="Published fiddle has no id"):
        await service.execute({**fiddle_with_tests, "id": None}, ExecuteOptions(**FAST))
    assert transport.execute_calls == []
