"""Decoding of streamed AI answers into typed events.

The wire format is line oriented. Both newline-delimited JSON and
Server-Sent Events are accepted:

* a line starting with ``data:`` is buffered until the next blank line,
  then the buffered lines are joined with ``\\n`` into one frame;
* comments (``:``) and the ``event:``, ``id:`` and ``retry:`` fields are
  ignored;
* any other non-blank line is a frame on its own, emitted after any
  pending ``data:`` frame.

A frame whose payload is ``END`` or ``[DONE]`` ends the stream. Lines that
are not valid UTF-8 turn their frame into a non-terminal ``StreamError``.
"""

import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, AsyncIterator, Literal, Union

import httpx

from .log import get_logger

END_MARKERS = frozenset({"END", "[DONE]"})
IGNORED_FIELDS = ("event:", "id:", "retry:")

logger = get_logger(__name__)


@dataclass(frozen=True)
class Chunk:
    """A fragment of the answer text, with the pipeline step when sent along."""

    text: str
    step: str | None = None
    verbose: str | None = None
    kind: Literal["chunk"] = field(default="chunk", init=False)


@dataclass(frozen=True)
class Status:
    """A progress update from the answer pipeline."""

    step: str
    verbose: str | None = None
    kind: Literal["status"] = field(default="status", init=False)


@dataclass(frozen=True)
class Raw:
    """A well-formed frame that carries no known payload."""

    data: Any
    kind: Literal["raw"] = field(default="raw", init=False)


@dataclass(frozen=True)
class StreamError:
    """A failure reported in the stream.

    ``source`` is ``"server"`` for an ``error`` frame sent by the service,
    ``"decode"`` for a frame that could not be parsed and ``"transport"`` for
    read failures and premature end. ``terminal`` errors are the last event
    of the sequence; other errors cover a single frame.
    """

    message: str
    terminal: bool = False
    source: Literal["server", "decode", "transport"] = "decode"
    kind: Literal["error"] = field(default="error", init=False)


@dataclass(frozen=True)
class End:
    """The server's explicit end-of-stream marker."""

    kind: Literal["end"] = field(default="end", init=False)


StreamEvent = Union[Chunk, Status, Raw, StreamError, End]


def _text(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    return value if isinstance(value, str) else None


def parse_frame(payload: str) -> StreamEvent:
    """Turn one frame payload into an event."""
    if payload.strip() in END_MARKERS:
        return End()
    try:
        data = json.loads(payload)
    except ValueError as exc:
        return StreamError(f"malformed frame: {exc}")

    if not isinstance(data, dict):
        return Raw(data)
    text = _text(data, "chunk")
    if text is None:
        text = _text(data, "content")
    if text is not None:
        return Chunk(text, _text(data, "step"), _text(data, "verbose_step"))
    step = _text(data, "step")
    if step is not None:
        return Status(step, _text(data, "verbose_step"))
    error = _text(data, "error")
    if error is not None:
        return StreamError(error, source="server")
    return Raw(data)


Frame = Union[str, StreamError]


class _FrameSplitter:
    """Accumulates bytes and yields complete frames.

    A frame is either a payload string or a ``StreamError`` for a line that
    is not valid UTF-8.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._data_lines: list[str] = []
        self._invalid: UnicodeDecodeError | None = None

    def feed(self, chunk: bytes) -> list[Frame]:
        self._buffer.extend(chunk)
        frames: list[Frame] = []
        while True:
            newline = self._buffer.find(b"\n")
            if newline < 0:
                break
            raw = bytes(self._buffer[:newline])
            del self._buffer[: newline + 1]
            frames.extend(self._line(raw))
        return frames

    def flush(self) -> list[Frame]:
        frames: list[Frame] = []
        if self._buffer:
            raw = bytes(self._buffer)
            self._buffer.clear()
            frames.extend(self._line(raw))
        frames.extend(self._pending())
        return frames

    def _line(self, raw: bytes) -> list[Frame]:
        raw = raw.rstrip(b"\r")
        try:
            line = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            if raw.startswith(b"data:"):
                # The whole SSE frame is reported once it is dispatched.
                self._data_lines.append("")
                self._invalid = self._invalid or exc
                return []
            return [*self._pending(), _malformed(exc)]

        if not line.strip():
            return self._pending()
        if line.startswith(":") or line.startswith(IGNORED_FIELDS):
            return []
        if line.startswith("data:"):
            value = line[5:]
            self._data_lines.append(value[1:] if value.startswith(" ") else value)
            return []
        return [*self._pending(), line]

    def _pending(self) -> list[Frame]:
        if not self._data_lines:
            return []
        payload = "\n".join(self._data_lines)
        self._data_lines.clear()
        invalid, self._invalid = self._invalid, None
        if invalid is not None:
            return [_malformed(invalid)]
        return [payload]


def _malformed(exc: UnicodeDecodeError) -> StreamError:
    return StreamError(f"malformed frame: {exc}")


def _event(frame: Frame) -> StreamEvent:
    return frame if isinstance(frame, StreamError) else parse_frame(frame)


async def decode(byte_stream: AsyncIterable[bytes]) -> AsyncIterator[StreamEvent]:
    """Decode a byte stream into an ordered sequence of events.

    The sequence ends after ``End``, after a terminal ``StreamError``, or when
    the consumer stops; in every case the source's ``aclose()`` (if any) is
    awaited.
    """
    splitter = _FrameSplitter()
    source = byte_stream.__aiter__()
    try:
        while True:
            try:
                chunk = await source.__anext__()
            except StopAsyncIteration:
                break
            except httpx.RequestError as exc:
                logger.warning("stream read failure", error=str(exc))
                yield StreamError(_read_failure(exc), terminal=True, source="transport")
                return
            for frame in splitter.feed(chunk):
                event = _event(frame)
                yield event
                if isinstance(event, End):
                    return

        for frame in splitter.flush():
            event = _event(frame)
            yield event
            if isinstance(event, End):
                return
        yield StreamError(
            "stream ended before end-of-stream marker", terminal=True, source="transport"
        )
    finally:
        aclose = getattr(source, "aclose", None)
        if aclose is not None:
            await aclose()


def _read_failure(exc: httpx.RequestError) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return f"stream read timed out: {exc}"
    if isinstance(exc, httpx.DecodingError):
        return f"undecodable stream body: {exc}"
    return f"stream transport failure: {exc}"
