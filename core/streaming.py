# core/streaming.py
import asyncio
import json
from typing import AsyncIterator, Final, Optional
from model.api import StreamEvent
import logging

LINE_SEP: Final[str] = "\n"
logger = logging.getLogger(__name__)


def sse_frame(event: StreamEvent) -> bytes:
    """One Server-Sent-Events frame: `data: <json>` followed by a blank line."""
    body = json.dumps(event.wire(), ensure_ascii=False, separators=(",", ":"))
    return f"data: {body}{LINE_SEP}{LINE_SEP}".encode("utf-8")


class EventChannel:
    """
    Unbounded, in-order hand-off from a job to its HTTP response.

    Flow:
    - the job calls send() (never blocks) and finally close()
    - the response iterates the channel until close()
    - if the client goes away the response calls detach(); later sends are dropped
    """

    def __init__(self) -> None:
        self._queue: "asyncio.Queue[Optional[StreamEvent]]" = asyncio.Queue()
        self._closed = False
        self._detached = False

    def send(self, event: StreamEvent) -> None:
        if self._closed or self._detached:
            return
        self._queue.put_nowait(event)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    def detach(self) -> None:
        self._detached = True

    async def __aiter__(self) -> AsyncIterator[StreamEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event


async def sse_stream(channel: EventChannel) -> AsyncIterator[bytes]:
    async for event in channel:
        yield sse_frame(event)
