"""AI answer sessions."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from .auth import Target
from .client import ApiKeyPosition, Dispatcher, RequestDescriptor
from .errors import OramaError, SessionError
from .log import get_logger
from .stream import Chunk, End, Status, StreamError, StreamEvent, decode
from .types import (
    DEFAULT_SERVER_USER_ID,
    AnswerConfig,
    Interaction,
    LlmConfig,
    Message,
    Role,
)
from .utils import generate_uuid

logger = get_logger(__name__)


class AiSession:
    """A conversation with the collection's answer engine.

    The session keeps the message history and one ``Interaction`` per
    question. Streaming answers update both as events arrive.

    Example:
        >>> session = manager.ai.create_ai_session()
        >>> async with session.answer_stream(AnswerConfig(query="What is Orama?")) as events:
        ...     async for event in events:
        ...         if event.kind == "chunk":
        ...             print(event.text, end="")
    """

    def __init__(
        self,
        collection_id: str,
        dispatcher: Dispatcher,
        *,
        llm_config: LlmConfig | None = None,
        initial_messages: list[Message] | None = None,
        stream_timeout: float | None = None,
    ) -> None:
        self.collection_id = collection_id
        self.session_id = generate_uuid()
        self.llm_config = llm_config
        self.stream_timeout = stream_timeout
        self._dispatcher = dispatcher
        self._messages: list[Message] = list(initial_messages or [])
        self._state: list[Interaction] = []
        self._last_params: AnswerConfig | None = None

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def state(self) -> list[Interaction]:
        return list(self._state)

    def clear_session(self) -> None:
        self._messages.clear()
        self._state.clear()

    # ─────────────────────────────────────────────────────────────────────────
    # Answers
    # ─────────────────────────────────────────────────────────────────────────

    async def answer(self, config: AnswerConfig) -> str:
        """Get a complete answer without streaming."""
        enriched = self._begin(config)
        descriptor = RequestDescriptor.post(
            f"/v1/collections/{self.collection_id}/ai/answer",
            Target.READER,
            enriched,
            api_key_position=ApiKeyPosition.QUERY_PARAMS,
        )
        try:
            response = await self._dispatcher.request(descriptor)
        except OramaError as exc:
            self._mark_error(str(exc))
            raise

        response = response if isinstance(response, dict) else {}
        answer = response.get("answer") or ""
        interaction = self._state[-1]
        interaction.response = answer
        interaction.loading = False
        interaction.current_step = "completed"
        if "sources" in response:
            interaction.sources = response["sources"]
        if isinstance(response.get("related"), str):
            interaction.related = response["related"]
        self._messages[-1] = Message(role=Role.ASSISTANT, content=answer)

        logger.info("answer completed", length=len(answer))
        return answer

    @asynccontextmanager
    async def answer_stream(
        self, config: AnswerConfig
    ) -> AsyncIterator[AsyncIterator[StreamEvent]]:
        """Stream an answer as decoded events.

        The connection is held for the duration of the ``async with`` block
        and released when it exits, however many events were consumed.
        """
        enriched = self._begin(config)
        descriptor = RequestDescriptor.post(
            f"/v1/collections/{self.collection_id}/ai/answer/stream",
            Target.READER,
            enriched,
            headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
            timeout=self.stream_timeout,
        )
        opened = False
        try:
            async with self._dispatcher.stream(descriptor) as response:
                opened = True
                events = self._track(decode(response.aiter_bytes()))
                try:
                    yield events
                finally:
                    await events.aclose()
        except OramaError as exc:
            if not opened:
                self._mark_error(str(exc))
            raise

    async def regenerate_last(self, stream: bool = False) -> str:
        """Drop the last answer and ask the same question again."""
        if not self._state or not self._messages:
            raise SessionError("No messages to regenerate")
        if self._messages[-1].role is not Role.ASSISTANT:
            raise SessionError("Last message is not an assistant message")
        if self._last_params is None:
            raise SessionError("No last interaction parameters available")

        params = self._last_params
        self._messages.pop()
        self._state.pop()
        # The user message is re-added by the new request.
        if self._messages and self._messages[-1].role is Role.USER:
            self._messages.pop()

        if not stream:
            return await self.answer(params)

        parts: list[str] = []
        async with self.answer_stream(params) as events:
            async for event in events:
                if isinstance(event, Chunk):
                    parts.append(event.text)
                elif isinstance(event, StreamError) and _fails_interaction(event):
                    raise SessionError(event.message)
        return "".join(parts)

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _enrich(self, config: AnswerConfig) -> AnswerConfig:
        return config.model_copy(
            update={
                "visitor_id": config.visitor_id or DEFAULT_SERVER_USER_ID,
                "interaction_id": config.interaction_id or generate_uuid(),
                "session_id": config.session_id or self.session_id,
                "llm_config": config.llm_config or self.llm_config,
            }
        )

    def _begin(self, config: AnswerConfig) -> AnswerConfig:
        enriched = self._enrich(config)
        self._last_params = enriched
        self._messages.append(Message(role=Role.USER, content=enriched.query))
        self._messages.append(Message(role=Role.ASSISTANT, content=""))
        self._state.append(
            Interaction(
                id=enriched.interaction_id,
                query=enriched.query,
                selected_llm=enriched.llm_config,
            )
        )
        return enriched

    def _mark_error(self, message: str) -> None:
        if self._state:
            interaction = self._state[-1]
            interaction.error = True
            interaction.error_message = message
            interaction.loading = False

    async def _track(
        self, events: AsyncGenerator[StreamEvent, None]
    ) -> AsyncGenerator[StreamEvent, None]:
        interaction = self._state[-1]
        message_index = len(self._messages) - 1
        try:
            async for event in events:
                if isinstance(event, Chunk):
                    interaction.response += event.text
                    self._messages[message_index] = Message(
                        role=Role.ASSISTANT, content=interaction.response
                    )
                    _apply_step(interaction, event.step, event.verbose)
                elif isinstance(event, Status):
                    _apply_step(interaction, event.step, event.verbose)
                elif isinstance(event, StreamError):
                    logger.warning(
                        "stream error",
                        message=event.message,
                        terminal=event.terminal,
                        source=event.source,
                    )
                    if _fails_interaction(event):
                        self._mark_error(event.message)
                elif isinstance(event, End):
                    interaction.loading = False
                    if not interaction.error:
                        interaction.current_step = "completed"
                yield event
        finally:
            await events.aclose()
            if interaction.loading and not interaction.error:
                interaction.aborted = True
                interaction.loading = False


def _apply_step(interaction: Interaction, step: str | None, verbose: str | None) -> None:
    if step is not None:
        interaction.current_step = step
    if verbose is not None:
        interaction.current_step_verbose = verbose


def _fails_interaction(event: StreamError) -> bool:
    """Server-reported and terminal errors fail the interaction; bad frames do not."""
    return event.terminal or event.source == "server"
