import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from shortener.services.tokens import TokenError, decode_access_token

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws/admin")
async def admin_socket(websocket: WebSocket, token: str = "") -> None:
    try:
        user = decode_access_token(token)
    except TokenError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    if user.role != "admin":
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    connections = websocket.app.state.connections
    await connections.connect(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_json({"event": "pong"})
    except WebSocketDisconnect:
        LOGGER.debug("Admin socket closed by %s", user.email)
    finally:
        connections.disconnect(websocket)
