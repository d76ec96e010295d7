from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query, status
from core.dependencies import resolve_user
from core.exceptions import AuthenticationError
from utils.logger import get_logger

logger = get_logger("Notification_Route")
router = APIRouter(tags=["Notifications"])

@router.websocket("/ws/notifications")
async def notifications_socket(websocket: WebSocket, token: str = Query("")):
    """Push channel: the server only sends, anything received is ignored."""
    db = websocket.app.state.mongo
    notifier = websocket.app.state.notifier
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    try:
        user = await resolve_user(db, token)
    except AuthenticationError as e:
        logger.warning(f"Rejected notification socket: {e.detail}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await notifier.manager.connect(user.id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        notifier.manager.disconnect(user.id, websocket)
