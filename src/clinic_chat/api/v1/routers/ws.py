from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from clinic_chat.api.deps import authenticate
from clinic_chat.api.v1.dashboard_connection import DashboardConnection
from clinic_chat.application.dto.session import SessionContext
from clinic_chat.application.exceptions import AuthError
from clinic_chat.config import settings
from clinic_chat.infrastructure.ws.protocol import WsInbound

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


async def _authenticate(ws: WebSocket, token: str) -> SessionContext | None:
    try:
        return await authenticate(ws.app.state.verifier, token)
    except AuthError:
        logger.debug("WS auth failed", exc_info=True)
        return None


@router.websocket("/ws/dashboard")
async def ws_dashboard(
    websocket: WebSocket,
    token: str = Query(...),
) -> None:
    session = await _authenticate(websocket, token)
    if session is None:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    await websocket.accept()
    connection = DashboardConnection(websocket, session, websocket.app.state.store)
    heartbeat_task = asyncio.create_task(
        _heartbeat(connection), name=f"ws-heartbeat-{session.user_id}",
    )
    logger.debug("Dashboard connected: %s (%s)", session.user_id, session.role)
    try:
        await connection.start()
        await _read_loop(websocket, connection)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", session.user_id)
    finally:
        heartbeat_task.cancel()
        await connection.close()
        logger.debug("Dashboard disconnected: %s", session.user_id)


async def _heartbeat(connection: DashboardConnection) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    while True:
        await asyncio.sleep(interval)
        try:
            await connection.send("pong")
        except Exception:  # noqa: BLE001
            logger.debug("Heartbeat send failed", exc_info=True)
            return


async def _read_loop(ws: WebSocket, connection: DashboardConnection) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except PydanticValidationError:
            await connection.send("error", {"code": "invalid_payload"})
            continue

        try:
            await connection.handle(msg)
        except (KeyError, ValueError) as exc:
            await connection.send("error", {"code": "invalid_data", "detail": str(exc)})
