"""Realtime job channel WebSocket endpoint."""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from app.core.config import get_settings
from app.realtime.channel import is_open
from app.realtime.messages import MessageType, decode, encode

router = APIRouter(tags=["Realtime"])
settings = get_settings()
logger = logging.getLogger(__name__)


@router.websocket("/ws")
async def job_channel(
    websocket: WebSocket,
    shop_id: Optional[str] = Query(default=None, alias="shopId"),
    printer_id: Optional[str] = Query(default=None, alias="printerId"),
):
    """
    Printer agents subscribe here to receive NEW_JOB frames for their shop.

    `shopId` is required; `printerId` is informational only.
    """
    if not shop_id:
        logger.warning("WebSocket connection without shopId rejected")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    channel = websocket.app.state.channel
    await websocket.accept()
    channel.register(shop_id, websocket)
    logger.info(f"Agent {printer_id or 'unknown'} joined shop {shop_id}")

    try:
        while True:
            raw = await asyncio.wait_for(
                websocket.receive_text(), timeout=settings.WS_IDLE_TIMEOUT_SECONDS
            )
            message = decode(raw)
            if message is None:
                logger.warning(f"Ignoring malformed frame from shop {shop_id}")
                continue

            kind = message["type"]
            if kind == MessageType.REGISTER.value:
                await websocket.send_text(encode(MessageType.REGISTERED))
            elif kind == MessageType.PING.value:
                await websocket.send_text(encode(MessageType.PONG))
            elif kind == MessageType.DISCONNECT.value:
                break
            else:
                logger.info(f"Unknown message type from shop {shop_id}: {kind}")
    except asyncio.TimeoutError:
        logger.info(f"Closing idle connection for shop {shop_id}")
    except WebSocketDisconnect:
        pass
    finally:
        channel.unregister(shop_id, websocket)
        if is_open(websocket):
            await websocket.close()
