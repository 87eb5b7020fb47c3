"""Unit tests for the per-session transport.

Covers the three delivery paths (pending responder, sink, queue), the
correlation policies and closed-sink fallback.
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from mcp_stream_runtime.errors import RequestInFlightError, SessionClosedError
from mcp_stream_runtime.protocol import JsonRpcNotification, JsonRpcResponse
from mcp_stream_runtime.transport import (
    CorrelationPolicy,
    SessionTransport,
    SSESink,
    TransportState,
)


def data_of(chunk: str) -> dict:
    """Decode the JSON payload of one SSE frame."""
    line = next(line for line in chunk.split("\n") if line.startswith("data: "))
    return json.loads(line[len("data: ") :])


async def drain(sink: SSESink) -> list[str]:
    sink.close()
    return [chunk async for chunk in sink.stream()]


# =============================================================================
# Queue and sink
# =============================================================================


class TestQueueing:
    """Messages sent without a sink or responder are queued."""

    @pytest.mark.asyncio
    async def test_send_without_sink_queues(self) -> None:
        transport = SessionTransport("s1")

        await transport.send({"jsonrpc": "2.0", "method": "a"})

        assert transport.queued == [{"jsonrpc": "2.0", "method": "a"}]
        assert transport.state is TransportState.IDLE

    @pytest.mark.asyncio
    async def test_models_are_queued_as_wire_dicts(self) -> None:
        transport = SessionTransport("s1")

        await transport.send(JsonRpcNotification(method="notifications/message"))

        assert transport.queued == [{"jsonrpc": "2.0", "method": "notifications/message"}]

    @pytest.mark.asyncio
    async def test_attach_flushes_queue_in_order_once(self) -> None:
        transport = SessionTransport("s1")
        for i in range(5):
            await transport.send({"jsonrpc": "2.0", "method": "m", "params": {"n": i}})

        sink = SSESink()
        transport.attach_sink(sink)
        chunks = await drain(sink)

        assert [data_of(c)["params"]["n"] for c in chunks] == [0, 1, 2, 3, 4]
        assert transport.queued == []

    @pytest.mark.asyncio
    async def test_queue_follows_chunks_already_in_sink(self) -> None:
        """The priming event written before attach stays first."""
        transport = SessionTransport("s1")
        await transport.send({"jsonrpc": "2.0", "method": "queued"})

        sink = SSESink()
        sink.write("priming")
        transport.attach_sink(sink)
        chunks = await drain(sink)

        assert chunks[0] == "priming"
        assert data_of(chunks[1])["method"] == "queued"

    @pytest.mark.asyncio
    async def test_send_with_sink_streams_directly(self) -> None:
        transport = SessionTransport("s1")
        sink = SSESink()
        transport.attach_sink(sink)

        await transport.send({"jsonrpc": "2.0", "method": "live"})

        assert transport.state is TransportState.STREAM_ATTACHED
        assert transport.queued == []
        chunks = await drain(sink)
        assert data_of(chunks[0]) == {"jsonrpc": "2.0", "method": "live"}

    @pytest.mark.asyncio
    async def test_new_sink_replaces_old_without_closing_it(self) -> None:
        transport = SessionTransport("s1")
        first, second = SSESink(), SSESink()
        transport.attach_sink(first)
        transport.attach_sink(second)

        await transport.send({"jsonrpc": "2.0", "method": "m"})

        assert not first.closed
        assert transport.sink is second
        assert len(await drain(second)) == 1
        assert await drain(first) == []

    @pytest.mark.asyncio
    async def test_closed_sink_falls_back_to_queue(self) -> None:
        transport = SessionTransport("s1")
        sink = SSESink()
        transport.attach_sink(sink)
        sink.close()

        await transport.send({"jsonrpc": "2.0", "method": "after-disconnect"})

        assert transport.sink is None
        assert transport.queued == [{"jsonrpc": "2.0", "method": "after-disconnect"}]
        assert transport.state is TransportState.IDLE

    def test_detach_sink(self) -> None:
        transport = SessionTransport("s1")
        sink = SSESink()
        transport.attach_sink(sink)

        assert transport.detach_sink() is sink
        assert transport.sink is None


# =============================================================================
# Pending responders
# =============================================================================


class TestPendingResponders:
    """Synchronous request correlation."""

    @pytest.mark.asyncio
    async def test_responder_takes_priority_over_sink(self) -> None:
        transport = SessionTransport("s1")
        sink = SSESink()
        transport.attach_sink(sink)
        future = transport.install_pending_responder(7)

        assert transport.state is TransportState.AWAITING_RESPONSE
        await transport.send(JsonRpcResponse(id=7, result={"ok": True}))

        assert future.result() == {"jsonrpc": "2.0", "id": 7, "result": {"ok": True}}
        assert await drain(sink) == []

    @pytest.mark.asyncio
    async def test_responder_is_one_shot(self) -> None:
        transport = SessionTransport("s1")
        transport.install_pending_responder(1)

        await transport.send({"jsonrpc": "2.0", "id": 1, "result": "first"})
        await transport.send({"jsonrpc": "2.0", "id": 1, "result": "second"})

        assert transport.queued == [{"jsonrpc": "2.0", "id": 1, "result": "second"}]

    @pytest.mark.asyncio
    async def test_match_by_id_lets_notifications_through(self) -> None:
        transport = SessionTransport("s1")
        future = transport.install_pending_responder(1)

        await transport.send({"jsonrpc": "2.0", "method": "notifications/progress"})
        assert not future.done()
        assert transport.queued == [{"jsonrpc": "2.0", "method": "notifications/progress"}]

        await transport.send({"jsonrpc": "2.0", "id": 1, "result": {}})
        assert future.done()

    @pytest.mark.asyncio
    async def test_match_by_id_ignores_other_ids(self) -> None:
        transport = SessionTransport("s1", CorrelationPolicy(max_in_flight=None))
        one = transport.install_pending_responder(1)
        two = transport.install_pending_responder(2)

        await transport.send({"jsonrpc": "2.0", "id": 2, "result": "two"})
        await transport.send({"jsonrpc": "2.0", "id": 1, "result": "one"})

        assert one.result()["result"] == "one"
        assert two.result()["result"] == "two"

    @pytest.mark.asyncio
    async def test_ids_of_different_types_do_not_collide(self) -> None:
        transport = SessionTransport("s1", CorrelationPolicy(max_in_flight=None))
        numeric = transport.install_pending_responder(1)
        string = transport.install_pending_responder("1")

        await transport.send({"jsonrpc": "2.0", "id": "1", "result": "string"})

        assert string.done()
        assert not numeric.done()

    @pytest.mark.asyncio
    async def test_first_message_wins_without_id_matching(self) -> None:
        transport = SessionTransport("s1", CorrelationPolicy(match_by_id=False))
        future = transport.install_pending_responder(2)

        await transport.send({"jsonrpc": "2.0", "method": "notifications/progress"})
        await transport.send({"jsonrpc": "2.0", "id": 2, "result": {}})

        assert future.result() == {"jsonrpc": "2.0", "method": "notifications/progress"}
        assert transport.queued == [{"jsonrpc": "2.0", "id": 2, "result": {}}]

    @pytest.mark.asyncio
    async def test_in_flight_limit(self) -> None:
        transport = SessionTransport("s1")
        transport.install_pending_responder(1)

        with pytest.raises(RequestInFlightError):
            transport.install_pending_responder(2)

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self) -> None:
        transport = SessionTransport("s1", CorrelationPolicy(max_in_flight=None))
        transport.install_pending_responder(1)

        with pytest.raises(RequestInFlightError):
            transport.install_pending_responder(1)

    @pytest.mark.asyncio
    async def test_discard_frees_the_slot(self) -> None:
        transport = SessionTransport("s1")
        future = transport.install_pending_responder(1)

        transport.discard_pending_responder(1, future)

        assert future.cancelled()
        transport.install_pending_responder(2)

    @pytest.mark.asyncio
    async def test_discard_keeps_a_newer_responder_for_the_same_id(self) -> None:
        transport = SessionTransport("s1", CorrelationPolicy(max_in_flight=None))
        first = transport.install_pending_responder(1)
        await transport.send({"jsonrpc": "2.0", "id": 1, "result": "first"})
        second = transport.install_pending_responder(1)

        transport.discard_pending_responder(1, first)

        assert first.result() == {"jsonrpc": "2.0", "id": 1, "result": "first"}
        assert not second.done()
        await transport.send({"jsonrpc": "2.0", "id": 1, "result": "second"})
        assert second.result()["result"] == "second"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("request_id", [1.0, True, None, 1.5, [1]])
    async def test_reply_built_from_model_keeps_the_request_id(self, request_id) -> None:
        transport = SessionTransport("s1")
        future = transport.install_pending_responder(request_id)

        await transport.send(JsonRpcResponse(id=request_id, result={}))

        assert future.result() == {"jsonrpc": "2.0", "id": request_id, "result": {}}

    @pytest.mark.asyncio
    async def test_close_fails_waiting_responders(self) -> None:
        transport = SessionTransport("s1")
        on_close = MagicMock()
        transport.on_close(on_close)
        future = transport.install_pending_responder(1)

        await transport.close()
        await transport.close()

        on_close.assert_called_once_with()
        with pytest.raises(SessionClosedError):
            future.result()
        assert transport.is_closed


# =============================================================================
# Inbound
# =============================================================================


class TestDeliverInbound:
    """Inbound forwarding to the engine."""

    @pytest.mark.asyncio
    async def test_forwards_to_handler(self) -> None:
        transport = SessionTransport("s1")
        received = []

        async def handler(message):
            received.append(message)

        transport.on_message(handler)
        await transport.deliver_inbound({"jsonrpc": "2.0", "method": "x"})

        assert received == [{"jsonrpc": "2.0", "method": "x"}]

    @pytest.mark.asyncio
    async def test_handler_errors_are_reported_and_raised(self) -> None:
        transport = SessionTransport("s1")
        on_error = MagicMock()

        async def handler(message):
            raise RuntimeError("boom")

        transport.on_message(handler)
        transport.on_error(on_error)

        with pytest.raises(RuntimeError, match="boom"):
            await transport.deliver_inbound({"jsonrpc": "2.0", "method": "x"})
        on_error.assert_called_once()

    @pytest.mark.asyncio
    async def test_no_handler_drops_message(self) -> None:
        transport = SessionTransport("s1")
        await transport.deliver_inbound({"jsonrpc": "2.0", "method": "x"})
