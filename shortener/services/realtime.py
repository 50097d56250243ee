import logging

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

LOGGER = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks admin websocket connections for the lifetime of the app.

    One instance is created in the application lifespan and handed to
    routes through ``get_connection_manager``.
    """

    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()

    @property
    def active_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.add(websocket)
        LOGGER.info("Admin socket connected (active=%s)", self.active_count)

    def disconnect(self, websocket: WebSocket) -> None:
        self._connections.discard(websocket)
        LOGGER.info("Admin socket disconnected (active=%s)", self.active_count)

    async def broadcast(self, message: dict) -> int:
        delivered = 0
        for websocket in list(self._connections):
            try:
                await websocket.send_json(message)
                delivered += 1
            except (WebSocketDisconnect, RuntimeError, OSError):
                LOGGER.warning("Dropping admin socket after failed send", exc_info=True)
                self.disconnect(websocket)
        return delivered

    async def close_all(self) -> None:
        targets = list(self._connections)
        self._connections.clear()
        for websocket in targets:
            if websocket.application_state == WebSocketState.CONNECTED:
                try:
                    await websocket.close(code=1001)
                except RuntimeError:
                    LOGGER.debug("Admin socket already closed", exc_info=True)
