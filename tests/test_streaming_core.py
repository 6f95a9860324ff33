"""Tests for the Responses stream driver and accumulating handler."""

from __future__ import annotations

import logging

import aiohttp
import pytest
from aioresponses import aioresponses

from content_normalizer.core import logging_system, timing_logger
from content_normalizer.core.errors import NetworkError
from content_normalizer.streaming.responses_events import FunctionCall
from content_normalizer.streaming.streaming_core import (
    ResponseImage,
    ResponsesAccumulator,
    extract_response_image,
    stream_responses,
)

from conftest import FakeStreamResponse, sse_frame


# -----------------------------------------------------------------------------
# stream_responses
# -----------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_text_stream_accumulates_deltas_and_final() -> None:
    response = FakeStreamResponse(
        [
            sse_frame({"type": "response.output_text.delta", "delta": "Hel"}),
            sse_frame({"type": "response.output_text.delta", "delta": "lo"}),
            sse_frame({"type": "response.reasoning_summary_text.delta", "delta": "hmm"}),
            sse_frame({"type": "response.output_text.done", "text": "Hello!"}),
            sse_frame({"type": "response.completed", "response": {"id": "resp_1", "output": []}}),
        ]
    )
    handler = ResponsesAccumulator()
    finished = await stream_responses(response, handler)
    assert finished is True
    assert handler.text == "Hello!"
    assert handler.reasoning == "hmm"
    assert handler.finished is True
    assert handler.response == {"id": "resp_1", "output": []}
    assert handler.response_image is None


@pytest.mark.asyncio
async def test_done_sentinel_finishes_stream() -> None:
    response = FakeStreamResponse(
        [sse_frame({"type": "response.output_text.delta", "delta": "x"}), sse_frame("[DONE]")]
    )
    handler = ResponsesAccumulator()
    assert await stream_responses(response, handler) is True
    assert handler.text == "x"
    assert handler.finished is False


@pytest.mark.asyncio
async def test_frames_after_done_sentinel_are_still_delivered() -> None:
    response = FakeStreamResponse(
        [
            sse_frame({"type": "response.output_text.delta", "delta": "a"}),
            sse_frame("[DONE]"),
            sse_frame({"type": "response.output_text.delta", "delta": "b"}),
        ]
    )
    handler = ResponsesAccumulator()
    assert await stream_responses(response, handler) is True
    assert handler.text == "ab"


@pytest.mark.asyncio
async def test_stream_without_terminal_event_is_not_finished() -> None:
    response = FakeStreamResponse([sse_frame({"type": "response.output_text.delta", "delta": "x"})])
    assert await stream_responses(response, ResponsesAccumulator()) is False


@pytest.mark.asyncio
async def test_non_json_frames_are_dropped(caplog: pytest.LogCaptureFixture) -> None:
    response = FakeStreamResponse(
        [
            sse_frame("not json"),
            sse_frame({"type": "response.output_text.delta", "delta": "ok"}),
        ]
    )
    handler = ResponsesAccumulator()
    with caplog.at_level(logging.DEBUG, logger="content_normalizer.streaming.streaming_core"):
        await stream_responses(response, handler)
    assert handler.text == "ok"
    assert "Dropping non-JSON frame" in caplog.text


@pytest.mark.asyncio
async def test_event_name_used_when_payload_has_no_type() -> None:
    response = FakeStreamResponse([sse_frame({"delta": "via name"}, event="response.output_text.delta")])
    handler = ResponsesAccumulator()
    await stream_responses(response, handler)
    assert handler.text == "via name"


@pytest.mark.asyncio
async def test_error_event_finishes_stream() -> None:
    response = FakeStreamResponse([sse_frame({"type": "error", "error": {"message": "overloaded"}})])
    handler = ResponsesAccumulator()
    assert await stream_responses(response, handler) is True
    assert handler.error_message == "overloaded"
    assert handler.error_raw == {"message": "overloaded"}


@pytest.mark.asyncio
async def test_incomplete_stream() -> None:
    response = FakeStreamResponse(
        [sse_frame({"type": "response.incomplete", "response": {"status": "incomplete"}})]
    )
    handler = ResponsesAccumulator()
    assert await stream_responses(response, handler) is True
    assert handler.incomplete is True
    assert handler.response == {"status": "incomplete"}


@pytest.mark.asyncio
async def test_function_calls_and_images_are_collected() -> None:
    response = FakeStreamResponse(
        [
            sse_frame({"type": "response.image_generation_call.partial_image", "partial_image_b64": "p1"}),
            sse_frame({"type": "response.image_generation_call.done", "result": "final"}),
            sse_frame(
                {
                    "type": "response.output_item.done",
                    "item": {
                        "type": "function_call",
                        "status": "completed",
                        "id": "fc_1",
                        "name": "lookup",
                        "arguments": "{}",
                        "call_id": "call_1",
                    },
                }
            ),
        ]
    )
    handler = ResponsesAccumulator()
    await stream_responses(response, handler)
    assert handler.partial_images == ["p1"]
    assert handler.images == ["final"]
    assert handler.function_calls == [FunctionCall(id="fc_1", name="lookup", arguments="{}", call_id="call_1")]


@pytest.mark.asyncio
async def test_http_error_raises_before_handler_is_called() -> None:
    response = FakeStreamResponse(status=400, reason="Bad Request", json_body={"error": {"message": "bad"}})
    handler = ResponsesAccumulator()
    with pytest.raises(NetworkError):
        await stream_responses(response, handler)
    assert handler.text == ""
    assert handler.finished is False


@pytest.mark.asyncio
async def test_request_id_is_bound_while_handler_runs() -> None:
    seen: list[str | None] = []

    class _Handler(ResponsesAccumulator):
        def on_text_delta(self, text: str) -> None:
            seen.append(logging_system.request_id.get())

    response = FakeStreamResponse([sse_frame({"type": "response.output_text.delta", "delta": "x"})])
    await stream_responses(response, _Handler(), request_id="req-42")
    assert seen == ["req-42"]
    assert logging_system.request_id.get() is None


@pytest.mark.asyncio
async def test_request_id_is_generated_when_omitted() -> None:
    seen: list[str | None] = []

    class _Handler(ResponsesAccumulator):
        def on_text_delta(self, text: str) -> None:
            seen.append(logging_system.request_id.get())

    response = FakeStreamResponse([sse_frame({"type": "response.output_text.delta", "delta": "x"})])
    await stream_responses(response, _Handler())
    assert len(seen) == 1
    assert seen[0] and len(seen[0]) == 12


@pytest.mark.asyncio
async def test_timing_recorded_for_decorated_calls_inside_request() -> None:
    timing_logger.set_timing_enabled(True)
    with logging_system.bind_request_id("req-t"):
        await stream_responses(FakeStreamResponse([sse_frame({"type": "response.completed"})]), ResponsesAccumulator())
    labels = [event["label"] for event in timing_logger.get_timing_events("req-t")]
    assert labels == ["content_normalizer.streaming.streaming_core.stream_responses"]


@pytest.mark.asyncio
async def test_aiohttp_end_to_end() -> None:
    url = "https://api.example.test/v1/responses"
    body = b"".join(
        [
            sse_frame({"type": "response.output_text.delta", "delta": "Hi"}, event="response.output_text.delta"),
            sse_frame(
                {
                    "type": "response.completed",
                    "response": {
                        "output": [
                            {"type": "image_generation_call", "result": "QUJD", "output_format": "webp"},
                        ]
                    },
                }
            ),
        ]
    )
    with aioresponses() as mocked:
        mocked.post(url, status=200, body=body, headers={"Content-Type": "text/event-stream"})
        async with aiohttp.ClientSession() as session:
            async with session.post(url) as response:
                handler = ResponsesAccumulator()
                assert await stream_responses(response, handler, chunk_size=16) is True
    assert handler.text == "Hi"
    assert handler.response_image == ResponseImage("QUJD", "image/webp")
    assert handler.display_text() == "Hi\n\n![image](data:image/webp;base64,QUJD)"


# -----------------------------------------------------------------------------
# extract_response_image
# -----------------------------------------------------------------------------

@pytest.mark.parametrize(
    ("item", "expected"),
    [
        ({"type": "image_generation_call", "result": "AAA"}, ResponseImage("AAA")),
        ({"type": "image_generation_call", "image_b64": "BBB", "format": "JPEG"}, ResponseImage("BBB", "image/jpeg")),
        ({"type": "image_generation_call", "image_base64": ["CCC", "DDD"]}, ResponseImage("CCC")),
        ({"type": "image_generation_call", "b64_json": {"b64_json": "EEE"}}, ResponseImage("EEE")),
        ({"type": "image_generation_call", "result": {"base64": "FFF"}, "output_format": "gif"}, ResponseImage("FFF")),
        (
            {"type": "image_generation_call", "result": "GGG", "revised_prompt": "a cat"},
            ResponseImage("GGG", revised_prompt="a cat"),
        ),
    ],
)
def test_extract_response_image(item: dict, expected: ResponseImage) -> None:
    response = {"output": [{"type": "message", "content": []}, item]}
    assert extract_response_image(response) == expected


@pytest.mark.parametrize(
    "response",
    [
        None,
        "resp",
        {},
        {"output": "nope"},
        {"output": [{"type": "message"}]},
        {"output": [{"type": "image_generation_call", "result": ""}]},
        {"output": [{"type": "image_generation_call", "result": []}]},
        {"output": [{"type": "image_generation_call", "result": 123}]},
    ],
)
def test_extract_response_image_absent(response) -> None:
    assert extract_response_image(response) is None


def test_response_image_rendering() -> None:
    image = ResponseImage("Zm9v", "image/jpeg")
    assert image.data_url == "data:image/jpeg;base64,Zm9v"
    assert image.markdown == "![image](data:image/jpeg;base64,Zm9v)"


# -----------------------------------------------------------------------------
# ResponsesAccumulator
# -----------------------------------------------------------------------------

def test_empty_final_text_keeps_deltas() -> None:
    handler = ResponsesAccumulator()
    handler.on_text_delta("abc")
    handler.on_text_final("")
    assert handler.text == "abc"


def test_display_text_includes_revised_prompt() -> None:
    handler = ResponsesAccumulator()
    handler.on_completed_response(
        {"output": [{"type": "image_generation_call", "result": "QQ", "revised_prompt": "a red fox"}]}
    )
    assert handler.display_text() == (
        "![image](data:image/png;base64,QQ)\n\n_Revised prompt:_\na red fox"
    )


def test_display_text_without_image() -> None:
    handler = ResponsesAccumulator(text="  plain  ")
    assert handler.display_text() == "plain"
