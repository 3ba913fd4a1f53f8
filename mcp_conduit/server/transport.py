"""Delivery-mode negotiation and SSE framing.

Every JSON-RPC request is answered either *buffered* (one JSON body) or
*streamed* (a ``text/event-stream`` response).  :class:`TransportNegotiator`
makes that choice per request; :class:`SseChannel` owns one open stream,
its outbound frame queue and its heartbeat task.

A channel's heartbeat and producer task are released exactly once, whether
the stream ends because the terminal frame was written or because the
client went away.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, Optional

from starlette.responses import StreamingResponse

from mcp_conduit.constants import (
    DEFAULT_STREAM_DENYLIST,
    DEFAULT_STREAM_METHODS,
    HEARTBEAT_INTERVAL,
    SESSION_HEADER,
)
from mcp_conduit.runtime.periodic import PeriodicTask

logger = logging.getLogger(__name__)

EVENT_STREAM = "text/event-stream"
HEARTBEAT_FRAME = ":heartbeat\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_event(payload: Any) -> str:
    """Frame *payload* as one SSE ``data:`` event."""
    return f"data: {json.dumps(payload, separators=(',', ':'), default=str)}\n\n"


class DeliveryMode(str, enum.Enum):
    BUFFERED = "buffered"
    STREAMED = "streamed"


class TransportNegotiator:
    """Chooses buffered or streamed delivery for each request.

    Decision order:

    1. a user agent containing any deny-listed substring is buffered;
    2. a method not starting with a streamable prefix is buffered;
    3. a request whose ``Accept`` header lacks ``text/event-stream`` is buffered;
    4. everything else is streamed.

    Notifications are always buffered since their acknowledgment has no body.
    """

    def __init__(
        self,
        stream_methods: Iterable[str] = DEFAULT_STREAM_METHODS,
        stream_denylist: Iterable[str] = DEFAULT_STREAM_DENYLIST,
        heartbeat_interval: float = HEARTBEAT_INTERVAL,
    ) -> None:
        self.stream_methods = tuple(stream_methods)
        self.stream_denylist = tuple(stream_denylist)
        self.heartbeat_interval = heartbeat_interval

    def negotiate(
        self,
        method: str,
        *,
        user_agent: str = "",
        accept: str = "",
        is_notification: bool = False,
    ) -> DeliveryMode:
        if is_notification:
            return DeliveryMode.BUFFERED
        if any(agent in user_agent for agent in self.stream_denylist):
            return DeliveryMode.BUFFERED
        if not any(method.startswith(prefix) for prefix in self.stream_methods):
            return DeliveryMode.BUFFERED
        if EVENT_STREAM not in accept.lower():
            return DeliveryMode.BUFFERED
        return DeliveryMode.STREAMED

    def open_channel(self, on_close: Optional[Callable[[], None]] = None) -> "SseChannel":
        return SseChannel(self.heartbeat_interval, on_close=on_close)

    @staticmethod
    def stream_response(
        frames: AsyncIterator[str],
        session_id: Optional[str] = None,
    ) -> StreamingResponse:
        headers = dict(SSE_HEADERS)
        if session_id:
            headers[SESSION_HEADER] = session_id
        return StreamingResponse(frames, media_type=EVENT_STREAM, headers=headers)


Producer = Callable[["SseChannel"], Awaitable[None]]
FailureFrame = Callable[[Exception], Optional[Dict[str, Any]]]


class SseChannel:
    """One open event stream: a frame queue plus a heartbeat task.

    Usage::

        channel = negotiator.open_channel()
        return negotiator.stream_response(channel.frames(producer))

    *producer* receives the channel, calls :meth:`send` for each frame and
    returns; the stream ends after the producer finishes (or after
    :meth:`finish`).  Without a producer the stream stays open until the
    client disconnects.
    """

    def __init__(
        self,
        heartbeat_interval: float = HEARTBEAT_INTERVAL,
        on_close: Optional[Callable[[], None]] = None,
    ) -> None:
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._heartbeat = PeriodicTask("sse-heartbeat", heartbeat_interval, self._beat)
        self._on_close = on_close
        self._producer_task: Optional[asyncio.Task[None]] = None
        self._finished = False
        self._closed = False
        self.frames_sent = 0

    # ── Producer side ────────────────────────────────────────────

    def send(self, payload: Dict[str, Any]) -> None:
        """Queue one ``data:`` frame (ignored after :meth:`finish`)."""
        if self._finished or self._closed:
            logger.debug("Dropping frame on finished channel.")
            return
        self._queue.put_nowait(format_event(payload))

    def finish(self) -> None:
        """Mark the stream complete; queued frames are still delivered."""
        if not self._finished:
            self._finished = True
            self._queue.put_nowait(None)

    def _beat(self) -> None:
        if not self._finished and not self._closed:
            self._queue.put_nowait(HEARTBEAT_FRAME)

    # ── Consumer side ────────────────────────────────────────────

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def heartbeat(self) -> PeriodicTask:
        return self._heartbeat

    async def frames(
        self,
        producer: Optional[Producer] = None,
        on_failure: Optional[FailureFrame] = None,
    ) -> AsyncIterator[str]:
        """Yield encoded frames until the stream finishes or is abandoned.

        If *producer* raises, *on_failure* maps the exception to a terminal
        frame (``None`` writes nothing) that is sent before the stream ends.
        """
        self._heartbeat.start()
        if producer is not None:
            self._producer_task = asyncio.create_task(
                self._run_producer(producer, on_failure), name="sse-producer"
            )
        try:
            while True:
                frame = await self._queue.get()
                if frame is None:
                    break
                self.frames_sent += 1
                yield frame
        finally:
            self.close()

    async def _run_producer(
        self, producer: Producer, on_failure: Optional[FailureFrame] = None
    ) -> None:
        try:
            await producer(self)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("SSE producer failed.")
            frame = on_failure(exc) if on_failure is not None else None
            if frame is not None:
                self.send(frame)
        finally:
            self.finish()

    def close(self) -> None:
        """Release the heartbeat, the producer and the close callback, once."""
        if self._closed:
            return
        self._closed = True
        self._heartbeat.cancel()
        task = self._producer_task
        if task is not None and not task.done():
            task.cancel()
        if self._on_close is not None:
            try:
                self._on_close()
            except Exception:
                logger.exception("SSE on_close callback failed.")
