import logging
from importlib import resources

import pydantic
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse

from gateway_api.errors import GatewayError
from gateway_api.realtime.broadcaster import Broadcaster
from gateway_api.realtime.transport import ConnectionManager
from gateway_api.schemas import RealtimeFrame, SendMessageRequest

logger = logging.getLogger(__name__)

router = APIRouter()

CONNECTED_EVENT = "connected"
ERROR_EVENT = "error"
SEND_MESSAGE_EVENT = "send-message"


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard() -> HTMLResponse:
    """Serve the live messaging dashboard, which opens the realtime socket."""
    page = resources.files("gateway_api").joinpath("static/dashboard.html").read_text(encoding="utf-8")
    return HTMLResponse(page)


async def handle_client_frame(
    raw: str,
    session_id: str,
    websocket: WebSocket,
    transport: ConnectionManager,
    broadcaster: Broadcaster,
) -> None:
    """Dispatch one text frame received from a client."""
    try:
        frame = RealtimeFrame.model_validate_json(raw)
    except pydantic.ValidationError:
        logger.warning("Ignoring malformed frame from %s", session_id)
        await transport.send(session_id, websocket, ERROR_EVENT, {"error": "Malformed frame"})
        return

    if frame.event != SEND_MESSAGE_EVENT:
        logger.warning("Ignoring unknown event %r from %s", frame.event, session_id)
        await transport.send(session_id, websocket, ERROR_EVENT, {"error": f"Unknown event: {frame.event}"})
        return

    try:
        request = SendMessageRequest.model_validate(frame.data)
        await broadcaster.on_client_send(session_id, request.text, request.topic)
    except pydantic.ValidationError:
        await transport.send(session_id, websocket, ERROR_EVENT, {"error": "Text is required"})
    except GatewayError as e:
        logger.error("Socket send-message error from %s: %s", session_id, e)
        await transport.send(session_id, websocket, ERROR_EVENT, {"error": str(e)})


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket) -> None:
    """
    Realtime channel.

    Server -> client: `connected {sessionId}`, `message <envelope>`, `error {error}`.
    Client -> server: `send-message {text, topic}`.
    """
    transport: ConnectionManager = websocket.app.state.transport
    broadcaster: Broadcaster = websocket.app.state.broadcaster

    session_id = await transport.connect(websocket)
    try:
        await transport.send(session_id, websocket, CONNECTED_EVENT, {"sessionId": session_id})
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            if raw is None:
                logger.warning("Ignoring binary frame from %s", session_id)
                await transport.send(session_id, websocket, ERROR_EVENT, {"error": "Binary frames are not supported"})
                continue
            await handle_client_frame(raw, session_id, websocket, transport, broadcaster)
    except WebSocketDisconnect:
        pass
    finally:
        await transport.disconnect(session_id)
