"""Tests for RequestTracer."""

import logging
import re

from llmrelay.gateway.tracing import RequestTracer


class TestRequestTracer:
    def test_trace_id_format(self):
        tracer = RequestTracer()

        trace_id = tracer.generate_trace_id(
            {"messages": [{"role": "user", "content": "a"}, {"role": "assistant", "content": "b"}]},
            provider="openrouter",
        )

        assert re.fullmatch(r"00001_\d{6}_2msgs_openrouter", trace_id)

    def test_counter_increments(self):
        tracer = RequestTracer()

        first = tracer.generate_trace_id({}, "anthropic")
        second = tracer.generate_trace_id({}, "anthropic")

        assert first.startswith("00001_")
        assert second.startswith("00002_")

    def test_trace_id_ignores_message_content(self):
        tracer = RequestTracer()

        trace_id = tracer.generate_trace_id(
            {"messages": [{"role": "user", "content": "my secret question"}]}
        )

        assert "secret" not in trace_id
        assert trace_id.endswith("_1msgs_relay")

    def test_malformed_body_counts_zero_messages(self):
        tracer = RequestTracer()

        assert "_0msgs_" in tracer.generate_trace_id({"messages": "nope"})
        assert "_0msgs_" in tracer.generate_trace_id(None)

    def test_log_response_levels(self, caplog):
        tracer = RequestTracer()

        with caplog.at_level(logging.DEBUG, logger="llmrelay.gateway.tracing"):
            tracer.log_response("t1", 200, 0.5, response_size=42)
            tracer.log_response("t2", 502, 0.1, error="Proxy error: boom")

        complete, failed = caplog.records
        assert complete.levelno == logging.INFO
        assert "request_complete" in complete.getMessage()
        assert failed.levelno == logging.WARNING
        assert "Proxy error: boom" in failed.getMessage()
