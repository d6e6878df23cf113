"""
Outbound side of one client WebSocket
Sends are queued and written by a background task so the router never waits on a socket
"""

import asyncio
import logging
from enum import Enum, auto

import websockets
import websockets.exceptions

import protocol

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 256
EVICTION_CLOSE_CODE = 4000

_CLOSE = object()


class SendResult(Enum):
    QUEUED = auto()
    DROPPED = auto()  # recipient queue full
    CLOSED = auto()   # connection closed or closing

    def __bool__(self):
        return self is SendResult.QUEUED


class Connection:
    def __init__(self, websocket, queue_size=DEFAULT_QUEUE_SIZE):
        self.websocket = websocket
        self.identity = None
        self.role = None
        self.closed = False
        self._close_code = 1000
        self._close_reason = ""
        self._queue = asyncio.Queue(maxsize=queue_size)
        self._writer = None

    def __repr__(self):
        if self.identity is not None:
            return f"<Connection {self.identity} ({self.role})>"
        return f"<Connection {self.websocket.remote_address}>"

    def start(self):
        """Start the writer task; must be called from the event loop"""
        self._writer = asyncio.create_task(self._write_loop())

    def send(self, message):
        """Queue a message for delivery without waiting for the socket"""
        if self.closed:
            logger.debug(f"Not sending {message.get('type')} to {self}: closed")
            return SendResult.CLOSED
        try:
            self._queue.put_nowait(protocol.encode(message))
        except asyncio.QueueFull:
            logger.warning(f"Outbound queue full for {self}, dropping {message.get('type')}")
            return SendResult.DROPPED
        return SendResult.QUEUED

    def close(self, reason="", code=EVICTION_CLOSE_CODE):
        """Close the socket once everything queued before this call is written"""
        if self.closed:
            return
        self.closed = True
        self._close_code = code
        self._close_reason = reason
        try:
            self._queue.put_nowait(_CLOSE)
        except asyncio.QueueFull:
            # The writer notices the close once the queue runs dry
            pass

    async def stop(self):
        """Tear down the writer after the socket has gone away"""
        self.closed = True
        if self._writer is None or self._writer.done():
            return
        self._writer.cancel()
        try:
            await self._writer
        except asyncio.CancelledError:
            pass

    async def _write_loop(self):
        try:
            while True:
                frame = await self._queue.get()
                if frame is _CLOSE:
                    break
                await self.websocket.send(frame)
                if self.closed and self._queue.empty():
                    break
            logger.info(f"Closing {self}: {self._close_reason or 'no reason'}")
            await self.websocket.close(code=self._close_code, reason=self._close_reason)
        except websockets.exceptions.ConnectionClosed:
            logger.debug(f"Send to {self} failed: connection already closed")
            self.closed = True
        except Exception as e:
            logger.error(f"Writer for {self} failed: {e}")
            self.closed = True
            # Closing ends the read loop so the router forgets this identity
            try:
                await self.websocket.close(code=1011, reason="internal error")
            except websockets.exceptions.ConnectionClosed:
                pass
