"""WebSocket endpoint for live coordination updates."""

from fastapi import APIRouter, WebSocket

from app.core.errors import NotFoundError
from app.db.database import async_session
from app.services.connection_manager import connection_manager
from app.services.partner_service import partner_service

router = APIRouter()


@router.websocket("/ws/sync/{identifier}")
async def sync_websocket(websocket: WebSocket, identifier: str):
    """Push channel for one user.

    Protocol (server -> client only):
    - {"type": "connection_established", ...} once on connect
    - {"type": "<entity>_update", ...} for every change addressed to the user
    - {"type": "heartbeat", ...} when idle
    A newer connection for the same user closes this one with code 4000.
    """
    async with async_session() as db:
        try:
            user = await partner_service.find_by_identifier(db, identifier)
        except NotFoundError:
            await websocket.close(code=4404)
            return

    channel = await connection_manager.connect(user.id, websocket)
    await connection_manager.serve(channel)
