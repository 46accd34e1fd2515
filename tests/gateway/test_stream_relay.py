"""Tests for the chunk-level stream relay helpers."""

from llmrelay.gateway.relay_proxy import iter_upstream_chunks, relay_chunks


class FakeContent:
    """Stands in for aiohttp.StreamReader: yields fixed chunks, then optionally fails."""

    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error

    async def iter_any(self):
        for chunk in self.chunks:
            yield chunk
        if self.error:
            raise self.error


class RecordingResponse:
    """Stands in for web.StreamResponse: records every write."""

    def __init__(self, fail_on_write=None):
        self.writes = []
        self.fail_on_write = fail_on_write

    async def write(self, data):
        if self.fail_on_write is not None and len(self.writes) == self.fail_on_write:
            raise ConnectionResetError("Cannot write to closing transport")
        self.writes.append(data)


async def _chunks(items, closed=None):
    try:
        for item in items:
            yield item
    finally:
        if closed is not None:
            closed.append(True)


class TestRelayChunks:
    async def test_chunks_written_in_order_without_coalescing(self):
        chunks = [b'data: {"a":1}\n\n', b'data: {"b":2}\n\n']
        response = RecordingResponse()

        count, size = await relay_chunks(_chunks(chunks), response, "t1")

        assert response.writes == chunks
        assert count == 2
        assert size == sum(len(c) for c in chunks)

    async def test_partial_frames_are_not_reassembled(self):
        """Chunk boundaries need not match SSE frame boundaries."""
        chunks = [b"data: {\"a\"", b":1}\n", b"\ndata: [DONE]\n\n"]
        response = RecordingResponse()

        await relay_chunks(_chunks(chunks), response, "t1")

        assert response.writes == chunks

    async def test_client_disconnect_stops_relay_and_closes_source(self):
        closed = []
        response = RecordingResponse(fail_on_write=1)

        count, size = await relay_chunks(
            _chunks([b"one", b"two", b"three"], closed), response, "t1"
        )

        assert response.writes == [b"one"]
        assert count == 1
        assert size == 3
        assert closed == [True]

    async def test_empty_stream(self):
        response = RecordingResponse()

        assert await relay_chunks(_chunks([]), response, "t1") == (0, 0)
        assert response.writes == []


class TestIterUpstreamChunks:
    async def test_yields_everything_until_end(self):
        content = FakeContent([b"a", b"b"])

        received = [chunk async for chunk in iter_upstream_chunks(content, "t1")]

        assert received == [b"a", b"b"]

    async def test_read_error_ends_stream_without_raising(self):
        content = FakeContent([b"a"], error=ConnectionResetError("upstream went away"))

        received = [chunk async for chunk in iter_upstream_chunks(content, "t1")]

        assert received == [b"a"]

    async def test_relay_after_read_error_forwards_received_chunks(self):
        content = FakeContent([b"first", b"second"], error=OSError("boom"))
        response = RecordingResponse()

        count, _ = await relay_chunks(iter_upstream_chunks(content, "t1"), response, "t1")

        assert response.writes == [b"first", b"second"]
        assert count == 2
