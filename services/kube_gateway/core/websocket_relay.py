"""
Where: services/kube_gateway/core/websocket_relay.py
What: Frame relay between an accepted client WebSocket and the upstream.
Why: Exec sessions and log follows are duplex; they bypass header rewriting and hardening.
"""

import asyncio
import logging
from typing import List, Optional

from starlette.responses import Response
from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidStatus

from .headers import websocket_handshake_headers

logger = logging.getLogger("gateway.websocket")

# Close codes that are reported locally but may not be sent on the wire.
_RESERVED_CLOSE_CODES = {1005, 1006, 1015}


def to_websocket_url(target_url: str) -> str:
    if target_url.startswith("https://"):
        return "wss://" + target_url[len("https://"):]
    if target_url.startswith("http://"):
        return "ws://" + target_url[len("http://"):]
    return target_url


def requested_subprotocols(websocket: WebSocket) -> List[str]:
    raw = websocket.headers.get("sec-websocket-protocol", "")
    return [item.strip() for item in raw.split(",") if item.strip()]


def _wire_close_code(code: Optional[int], default: int = 1000) -> int:
    if code is None or code in _RESERVED_CLOSE_CODES:
        return default
    return code


async def _client_to_upstream(websocket: WebSocket, upstream: ClientConnection) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            await upstream.close(code=_wire_close_code(message.get("code")))
            return
        if message.get("bytes") is not None:
            await upstream.send(message["bytes"])
        elif message.get("text") is not None:
            await upstream.send(message["text"])


async def _upstream_to_client(websocket: WebSocket, upstream: ClientConnection) -> None:
    try:
        async for data in upstream:
            if isinstance(data, bytes):
                await websocket.send_bytes(data)
            else:
                await websocket.send_text(data)
    except ConnectionClosed:
        pass
    if websocket.application_state == WebSocketState.CONNECTED:
        await websocket.close(code=_wire_close_code(upstream.close_code), reason=upstream.close_reason or "")


async def _deny(websocket: WebSocket, exc: InvalidStatus) -> None:
    """Return the upstream's handshake rejection to the client when the server allows it."""
    if "websocket.http.response" in websocket.scope.get("extensions", {}):
        upstream = exc.response
        denial = Response(content=upstream.body or b"", status_code=upstream.status_code)
        denial.raw_headers = [
            (key.lower().encode("latin-1"), value.encode("latin-1"))
            for key, value in upstream.headers.raw_items()
        ]
        await websocket.send_denial_response(denial)
    else:
        await websocket.close(code=1011)


async def relay_websocket(websocket: WebSocket, target_url: str) -> None:
    """
    Open the upstream WebSocket, accept the client with the negotiated
    subprotocol and pump frames until either side closes.
    """
    subprotocols = requested_subprotocols(websocket)
    try:
        upstream = await connect(
            to_websocket_url(target_url),
            additional_headers=websocket_handshake_headers(websocket.headers.raw),
            user_agent_header=websocket.headers.get("user-agent"),
            subprotocols=subprotocols or None,
            max_size=None,
            open_timeout=None,
            compression=None,
        )
    except InvalidStatus as exc:
        logger.warning(
            "Upstream rejected WebSocket handshake",
            extra={"status": exc.response.status_code},
        )
        await _deny(websocket, exc)
        return

    async with upstream:
        await websocket.accept(subprotocol=upstream.subprotocol)
        pumps = [
            asyncio.create_task(_client_to_upstream(websocket, upstream)),
            asyncio.create_task(_upstream_to_client(websocket, upstream)),
        ]
        try:
            done, _ = await asyncio.wait(pumps, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                exc = task.exception()
                if exc is not None and not isinstance(exc, (ConnectionClosed, WebSocketDisconnect)):
                    raise exc
        finally:
            for task in pumps:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*pumps, return_exceptions=True)
