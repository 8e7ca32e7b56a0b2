import random

import pytest

from fiddlekit.kernel.events import EventStreamParser, iter_events, parse_frame
from tests.kernel.mocks import sse_frame, timed_stream

FRAMES = (
    sse_frame(event="waitingForSync")
    + sse_frame({"clientFetches": {}})
    + b"event: updateResult\ndata: {\"clientFetches\":{\"r1\":{\"tests\":[{\"pass\":true}]}}}\n\n"
    + b": comment only\n\n"
)


def feed_all(chunks):
    parser = EventStreamParser()
    events = []
    for chunk in chunks:
        events.extend(parser.feed(chunk))
    return events


# --- Frame parsing ---

def test_parse_frame_extracts_fields():
    assert parse_frame("event: updateResult\ndata: {\"a\": 1}") == {"event": "updateResult", "data": "{\"a\": 1}"}


def test_parse_frame_trims_values():
    assert parse_frame("event:    waitingForSync   ") == {"event": "waitingForSync"}


def test_parse_frame_duplicate_field_keeps_last():
    assert parse_frame("data: first\ndata: second") == {"data": "second"}


@pytest.mark.parametrize("line", ["no colon here", ": leading colon", "data:", "data:    "])
def test_parse_frame_ignores_non_field_lines(line):
    assert parse_frame(f"event: x\n{line}") == {"event": "x"}


def test_parse_frame_value_may_contain_colons():
    assert parse_frame("data: {\"url\": \"https://a\"}") == {"data": "{\"url\": \"https://a\"}"}


# --- Incremental feeding ---

def test_single_chunk_with_many_frames_emits_all_in_order():
    events = feed_all([FRAMES])
    assert [e.get("event") for e in events] == ["waitingForSync", "updateResult", "updateResult", None]


def test_partial_frame_is_retained_until_terminated():
    parser = EventStreamParser()
    assert parser.feed(b"event: updateResult\nda") == []
    assert parser.pending == b"event: updateResult\nda"
    assert parser.feed(b"ta: {}\n") == []
    assert parser.feed(b"\n") == [{"event": "updateResult", "data": "{}"}]
    assert parser.pending == b""


def test_chunk_without_complete_frame_emits_nothing():
    assert EventStreamParser().feed(b"event: updateResult") == []


def test_frames_are_never_emitted_twice():
    parser = EventStreamParser()
    first = parser.feed(sse_frame({"n": 1}))
    second = parser.feed(sse_frame({"n": 2}))
    assert len(first) == 1 and len(second) == 1
    assert first[0]["data"] == "{\"n\": 1}"
    assert second[0]["data"] == "{\"n\": 2}"


def test_chunking_invariance_for_every_single_split_point():
    expected = feed_all([FRAMES])
    for i in range(len(FRAMES) + 1):
        assert feed_all([FRAMES[:i], FRAMES[i:]]) == expected


def test_chunking_invariance_for_random_splits():
    expected = feed_all([FRAMES])
    rng = random.Random(1234)
    for _ in range(200):
        cuts = sorted(rng.sample(range(1, len(FRAMES)), rng.randint(1, 12)))
        chunks = [FRAMES[a:b] for a, b in zip([0] + cuts, cuts + [len(FRAMES)])]
        assert feed_all(chunks) == expected


def test_byte_at_a_time_feeding():
    expected = feed_all([FRAMES])
    assert feed_all([FRAMES[i:i + 1] for i in range(len(FRAMES))]) == expected


def test_crlf_line_endings_are_normalised_even_when_split():
    data = b"event: updateResult\r\ndata: {}\r\n\r\n"
    expected = [{"event": "updateResult", "data": "{}"}]
    assert feed_all([data]) == expected
    for i in range(len(data) + 1):
        assert feed_all([data[:i], data[i:]]) == expected


def test_multibyte_utf8_split_across_chunks():
    data = sse_frame("{\"detail\": \"café ✓\"}")
    cut = data.index("✓".encode("utf-8")) + 1
    events = feed_all([data[:cut], data[cut:]])
    assert events == [{"event": "updateResult", "data": "{\"detail\": \"café ✓\"}"}]


# --- Async iteration ---

@pytest.mark.asyncio
async def test_iter_events_yields_lazily_in_order():
    stream = timed_stream([(0, FRAMES[:10]), (0, FRAMES[10:40]), (0, FRAMES[40:])], hold_open=False)
    events = [e async for e in iter_events(stream)]
    assert events == feed_all([FRAMES])


@pytest.mark.asyncio
async def test_iter_events_drops_unterminated_tail():
    stream = timed_stream([(0, sse_frame({"n": 1})), (0, b"event: updateResult\ndata: {}")], hold_open=False)
    events = [e async for e in iter_events(stream)]
    assert events == [{"event": "updateResult", "data": "{\"n\": 1}"}]
