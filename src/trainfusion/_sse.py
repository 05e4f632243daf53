"""Incremental server-sent events decoder."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SseEvent:
    event: str
    data: str
    id: str | None = None


class SseDecoder:
    """Turn a byte stream into :class:`SseEvent` objects.

    Chunks may split lines (including a ``\\r\\n`` pair) at any byte.
    Unlike the browser ``EventSource``, an event that names a type but has
    no ``data`` lines is still dispatched, with empty data, so bare
    heartbeats are not lost.
    """

    def __init__(self) -> None:
        self._buffer = b""
        self._event = ""
        self._data: list[str] = []
        self._has_fields = False
        self._last_id: str | None = None
        self._at_stream_start = True

    def feed(self, chunk: bytes) -> list[SseEvent]:
        self._buffer += chunk
        events: list[SseEvent] = []
        while True:
            line = self._next_line()
            if line is None:
                break
            event = self._process_line(line)
            if event is not None:
                events.append(event)
        return events

    def _next_line(self) -> str | None:
        buffer = self._buffer
        cr = buffer.find(b"\r")
        lf = buffer.find(b"\n")
        if cr == -1 and lf == -1:
            return None
        if cr == -1 or (lf != -1 and lf < cr):
            end, skip = lf, 1
        elif cr == len(buffer) - 1:
            # A trailing CR may be the first half of CRLF; wait for more.
            return None
        else:
            end = cr
            skip = 2 if buffer[cr + 1 : cr + 2] == b"\n" else 1
        self._buffer = buffer[end + skip :]
        line = buffer[:end].decode("utf-8", errors="replace")
        if self._at_stream_start:
            self._at_stream_start = False
            line = line.removeprefix("\ufeff")
        return line

    def _process_line(self, line: str) -> SseEvent | None:
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None

        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if name == "event":
            self._event = value
            self._has_fields = True
        elif name == "data":
            self._data.append(value)
            self._has_fields = True
        elif name == "id":
            if "\0" not in value:
                self._last_id = value
        return None

    def _dispatch(self) -> SseEvent | None:
        if not self._has_fields:
            return None
        event = SseEvent(
            event=self._event or "message",
            data="\n".join(self._data),
            id=self._last_id,
        )
        self._event = ""
        self._data = []
        self._has_fields = False
        return event
