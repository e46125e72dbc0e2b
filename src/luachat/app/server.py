"""HTTP routes: the browser client page and the chat WebSocket."""

from __future__ import annotations

import weakref
from importlib import resources

from aiohttp import WSCloseCode, web
from loguru import logger

from luachat.channels.websocket import MAX_MESSAGE_BYTES, WebSocketTransport
from luachat.core.relay import RelayContext, RelaySession

RELAY_CONTEXT = web.AppKey("relay_context", RelayContext)
INDEX_HTML = web.AppKey("index_html", str)
OPEN_SOCKETS = web.AppKey("open_sockets", weakref.WeakSet)


def _load_index_html() -> str:
    return resources.files("luachat").joinpath("static/index.html").read_text(encoding="utf-8")


async def index_handler(request: web.Request) -> web.Response:
    return web.Response(text=request.app[INDEX_HTML], content_type="text/html")


async def chat_handler(request: web.Request) -> web.WebSocketResponse:
    ws = web.WebSocketResponse(max_msg_size=MAX_MESSAGE_BYTES)
    await ws.prepare(request)
    sockets = request.app[OPEN_SOCKETS]
    sockets.add(ws)

    session = RelaySession(WebSocketTransport(ws), request.app[RELAY_CONTEXT])
    logger.bind(session=session.session_id).info("websocket.connect remote={}", request.remote)
    try:
        await session.run()
    finally:
        sockets.discard(ws)
        logger.bind(session=session.session_id).info("websocket.closed code={}", ws.close_code)
    return ws


async def _close_open_sockets(app: web.Application) -> None:
    for ws in set(app[OPEN_SOCKETS]):
        await ws.close(code=WSCloseCode.GOING_AWAY, message=b"server shutdown")


async def _close_client(app: web.Application) -> None:
    await app[RELAY_CONTEXT].client.aclose()


def create_app(context: RelayContext) -> web.Application:
    app = web.Application()
    app[RELAY_CONTEXT] = context
    app[INDEX_HTML] = _load_index_html()
    app[OPEN_SOCKETS] = weakref.WeakSet()
    app.router.add_get("/", index_handler)
    app.router.add_get("/chat", chat_handler)
    app.on_shutdown.append(_close_open_sockets)
    app.on_cleanup.append(_close_client)
    return app


def run_server(context: RelayContext, *, host: str, port: int) -> None:
    """Serve until interrupted."""
    logger.info("server.start host={} port={} format={}", host, port, context.codec.name)
    web.run_app(create_app(context), host=host, port=port, print=None)
