"""aiohttp WebSocket transport."""

from __future__ import annotations

from aiohttp import WSCloseCode, WSMsgType, web
from loguru import logger

from luachat.channels.base import Transport
from luachat.errors import TransportClosedError

MAX_MESSAGE_BYTES = 16 * 1024 * 1024


class WebSocketTransport(Transport):
    """Each inbound frame is one user message; each send is one outbound frame.

    Replies use the frame type of the most recent inbound frame.
    """

    name = "websocket"

    def __init__(self, ws: web.WebSocketResponse) -> None:
        self._ws = ws
        self._binary = False

    async def receive(self) -> str | None:
        while True:
            message = await self._ws.receive()
            if message.type is WSMsgType.TEXT:
                self._binary = False
                return message.data
            if message.type is WSMsgType.BINARY:
                self._binary = True
                return message.data.decode("utf-8", errors="replace")
            if message.type is WSMsgType.ERROR:
                logger.warning("websocket.receive.error error={}", self._ws.exception())
                return None
            if message.type in (WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED):
                return None

    async def send(self, text: str) -> None:
        if self._ws.closed:
            raise TransportClosedError("websocket is closed")
        try:
            if self._binary:
                await self._ws.send_bytes(text.encode("utf-8"))
            else:
                await self._ws.send_str(text)
        except ConnectionResetError as exc:
            raise TransportClosedError(str(exc) or "connection reset") from exc

    async def close(self, *, code: int | None = None, reason: str = "") -> None:
        if self._ws.closed:
            return
        await self._ws.close(code=code or WSCloseCode.OK, message=reason.encode("utf-8"))
