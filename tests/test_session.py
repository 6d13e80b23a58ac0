"""
Unit tests for AI answer sessions.
"""

import httpx
import pytest

from oramacore_client import (
    AiSession,
    AnswerConfig,
    ApiError,
    Chunk,
    End,
    LlmConfig,
    LlmProvider,
    Role,
    SessionError,
    Status,
    StreamError,
)

from conftest import READER_URL, RecordingStream, body_of, make_dispatcher

ANSWER_PATH = "/v1/collections/col-1/ai/answer"
STREAM_PATH = "/v1/collections/col-1/ai/answer/stream"

STREAM_BODY = [
    b'data: {"step":"searching"}\n\n',
    b'data: {"content":"Hel"}\n\n',
    b'data: {"content":"lo"}\n\n',
    b"data: [DONE]\n\n",
]


class Service:
    """Mock answer endpoints backed by a fresh stream per call."""

    def __init__(self, chunks=STREAM_BODY, status=200, answer="42"):
        self.chunks = chunks
        self.status = status
        self.answer = answer
        self.requests: list[httpx.Request] = []
        self.streams: list[RecordingStream] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == STREAM_PATH:
            stream = RecordingStream(self.chunks)
            self.streams.append(stream)
            return httpx.Response(self.status, stream=stream)
        if self.status != 200:
            return httpx.Response(self.status, json={"message": "unavailable"})
        return httpx.Response(
            200, json={"answer": self.answer, "sources": [{"id": "doc-1"}]}
        )


@pytest.fixture
def service():
    return Service()


@pytest.fixture
def session(service, static_key):
    dispatcher = make_dispatcher(service, static_key)
    return AiSession("col-1", dispatcher, stream_timeout=5.0)


class TestAnswer:
    """Non-streaming answers."""

    @pytest.mark.asyncio
    async def test_answer_updates_history(self, session, service):
        """The answer lands in the last assistant message and interaction."""
        answer = await session.answer(AnswerConfig(query="meaning of life"))

        assert answer == "42"
        assert [(m.role, m.content) for m in session.messages] == [
            (Role.USER, "meaning of life"),
            (Role.ASSISTANT, "42"),
        ]
        interaction = session.state[-1]
        assert interaction.response == "42"
        assert interaction.sources == [{"id": "doc-1"}]
        assert not interaction.loading
        assert interaction.current_step == "completed"

    @pytest.mark.asyncio
    async def test_request_is_enriched(self, session, service):
        """Visitor, interaction and session ids are filled in."""
        session.llm_config = LlmConfig(provider=LlmProvider.OPENAI, model="gpt-4o")
        await session.answer(AnswerConfig(query="q"))

        request = service.requests[0]
        assert str(request.url).startswith(f"{READER_URL}{ANSWER_PATH}")
        assert request.url.params["api-key"] == "sk_abc"
        body = body_of(request)
        assert body["query"] == "q"
        assert body["visitor_id"] == "server-user-default"
        assert body["session_id"] == session.session_id
        assert body["interaction_id"] == session.state[-1].id
        assert body["LLMConfig"] == {"provider": "openai", "model": "gpt-4o"}

    @pytest.mark.asyncio
    async def test_failure_marks_interaction(self, static_key):
        service = Service(status=503)
        session = AiSession("col-1", make_dispatcher(service, static_key))

        with pytest.raises(ApiError):
            await session.answer(AnswerConfig(query="q"))

        interaction = session.state[-1]
        assert interaction.error
        assert interaction.error_message == "API error (status 503): unavailable"
        assert not interaction.loading


class TestAnswerStream:
    """Streaming answers."""

    @pytest.mark.asyncio
    async def test_stream_events_and_state(self, session, service):
        """Events are yielded in order and folded into the session state."""
        async with session.answer_stream(AnswerConfig(query="greet")) as events:
            received = [event async for event in events]

        assert received == [Status("searching"), Chunk("Hel"), Chunk("lo"), End()]
        assert session.messages[-1].content == "Hello"
        interaction = session.state[-1]
        assert interaction.response == "Hello"
        assert interaction.current_step == "completed"
        assert not interaction.loading
        assert not interaction.aborted
        assert service.streams[0].closed

    @pytest.mark.asyncio
    async def test_stream_request_headers(self, session, service):
        async with session.answer_stream(AnswerConfig(query="greet")) as events:
            async for _ in events:
                pass

        request = service.requests[0]
        assert request.url.path == STREAM_PATH
        assert request.headers["Authorization"] == "Bearer sk_abc"
        assert request.headers["Accept"] == "text/event-stream"

    @pytest.mark.asyncio
    async def test_early_exit_releases_connection(self, session, service):
        """Leaving the block after one chunk closes the response."""
        async with session.answer_stream(AnswerConfig(query="greet")) as events:
            async for event in events:
                if isinstance(event, Chunk):
                    break

        stream = service.streams[0]
        assert stream.closed
        assert stream.yielded < len(STREAM_BODY)
        interaction = session.state[-1]
        assert interaction.aborted
        assert not interaction.loading
        assert interaction.response == "Hel"

    @pytest.mark.asyncio
    async def test_error_status_before_stream(self, static_key):
        service = Service(status=500)
        session = AiSession("col-1", make_dispatcher(service, static_key))

        with pytest.raises(ApiError):
            async with session.answer_stream(AnswerConfig(query="q")):
                pass

        assert session.state[-1].error
        assert service.streams[0].closed

    @pytest.mark.asyncio
    async def test_truncated_stream_marks_error(self, static_key):
        """A body that ends without a marker leaves the interaction errored."""
        service = Service(chunks=[b'data: {"content":"Hel"}\n\n'])
        session = AiSession("col-1", make_dispatcher(service, static_key))

        async with session.answer_stream(AnswerConfig(query="q")) as events:
            received = [event async for event in events]

        assert received[-1].terminal
        interaction = session.state[-1]
        assert interaction.error
        assert not interaction.aborted

    @pytest.mark.asyncio
    async def test_server_error_frame_marks_error(self, static_key):
        """An error reported by the server fails the interaction."""
        service = Service(
            chunks=[
                b'data: {"content":"Hel"}\n\n',
                b'data: {"error":"llm failed"}\n\n',
                b"data: [DONE]\n\n",
            ]
        )
        session = AiSession("col-1", make_dispatcher(service, static_key))

        async with session.answer_stream(AnswerConfig(query="q")) as events:
            received = [event async for event in events]

        assert received[1] == StreamError("llm failed", source="server")
        assert received[-1] == End()
        interaction = session.state[-1]
        assert interaction.error
        assert interaction.error_message == "llm failed"
        assert interaction.current_step != "completed"
        assert not interaction.loading
        assert not interaction.aborted

    @pytest.mark.asyncio
    async def test_malformed_frame_does_not_fail(self, static_key):
        service = Service(
            chunks=[b"data: {oops\n\n", b'data: {"content":"ok"}\n\n', b"data: [DONE]\n\n"]
        )
        session = AiSession("col-1", make_dispatcher(service, static_key))

        async with session.answer_stream(AnswerConfig(query="q")) as events:
            async for _ in events:
                pass

        interaction = session.state[-1]
        assert not interaction.error
        assert interaction.response == "ok"
        assert interaction.current_step == "completed"

    @pytest.mark.asyncio
    async def test_chunk_step_updates_interaction(self, static_key):
        """Steps carried by content frames are tracked like status frames."""
        service = Service(
            chunks=[
                b'data: {"content":"a","step":"answering","verbose_step":"Writing"}\n\n',
                b'data: {"content":"b"}\n\n',
            ]
        )
        session = AiSession("col-1", make_dispatcher(service, static_key))

        async with session.answer_stream(AnswerConfig(query="q")) as events:
            async for event in events:
                if event == Chunk("b"):
                    break

        interaction = session.state[-1]
        assert interaction.current_step == "answering"
        assert interaction.current_step_verbose == "Writing"
        assert interaction.response == "ab"


class TestSessionHistory:
    """Regeneration and clearing."""

    @pytest.mark.asyncio
    async def test_regenerate_without_history(self, session):
        with pytest.raises(SessionError):
            await session.regenerate_last()

    @pytest.mark.asyncio
    async def test_regenerate_replaces_last_answer(self, session, service):
        await session.answer(AnswerConfig(query="q"))
        service.answer = "43"

        answer = await session.regenerate_last()

        assert answer == "43"
        assert [(m.role, m.content) for m in session.messages] == [
            (Role.USER, "q"),
            (Role.ASSISTANT, "43"),
        ]
        assert len(session.state) == 1
        first, second = (body_of(r) for r in service.requests)
        assert first["interaction_id"] == second["interaction_id"]

    @pytest.mark.asyncio
    async def test_regenerate_streaming(self, session, service):
        await session.answer(AnswerConfig(query="q"))

        answer = await session.regenerate_last(stream=True)

        assert answer == "Hello"
        assert session.messages[-1].content == "Hello"
        assert len(session.messages) == 2

    @pytest.mark.asyncio
    async def test_regenerate_streaming_failure(self, static_key):
        service = Service(chunks=[b'{"chunk":"partial"}\n'])
        session = AiSession("col-1", make_dispatcher(service, static_key))
        await session.answer(AnswerConfig(query="q"))

        with pytest.raises(SessionError):
            await session.regenerate_last(stream=True)

    @pytest.mark.asyncio
    async def test_clear_session(self, session):
        await session.answer(AnswerConfig(query="q"))
        session.clear_session()

        assert session.messages == []
        assert session.state == []

    @pytest.mark.asyncio
    async def test_regenerate_streaming_server_error(self, static_key):
        service = Service()
        session = AiSession("col-1", make_dispatcher(service, static_key))
        await session.answer(AnswerConfig(query="q"))
        service.chunks = [b'data: {"error":"llm failed"}\n\n', b"data: [DONE]\n\n"]

        with pytest.raises(SessionError, match="llm failed"):
            await session.regenerate_last(stream=True)
