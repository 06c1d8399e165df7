"""Realtime channel wire protocol (JSON text frames keyed by `type`)."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class MessageType(str, Enum):
    # client -> server
    REGISTER = "REGISTER"
    PING = "PING"
    DISCONNECT = "DISCONNECT"
    # server -> client
    REGISTERED = "REGISTERED"
    PONG = "PONG"
    NEW_JOB = "NEW_JOB"


def encode(message_type: MessageType, **fields: Any) -> str:
    return json.dumps({"type": message_type.value, **fields}, default=str)


def decode(raw: str) -> Optional[Dict[str, Any]]:
    """Parse a frame; returns None for anything that is not a typed JSON object."""
    try:
        message = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(message, dict) or not isinstance(message.get("type"), str):
        return None
    return message


def register_message(shop_id: str, printer_id: Optional[str]) -> str:
    return encode(
        MessageType.REGISTER,
        shopId=shop_id,
        printerId=printer_id,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


def new_job_message(job: Dict[str, Any]) -> str:
    return encode(MessageType.NEW_JOB, job=job)
