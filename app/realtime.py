"""Live push channel for dashboard updates."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder

from services.broadcast import Subscription
from services.runtime import PlantRuntime

logger = logging.getLogger(__name__)

DASHBOARD_UPDATE = "dashboard_update"

router = APIRouter()


def _event(name: str, data: Any) -> Dict[str, Any]:
    return {"event": name, "data": jsonable_encoder(data)}


def handle_request(event: str, runtime: PlantRuntime) -> Dict[str, Any]:
    """Build the direct reply for a client request."""
    if event == "ping":
        return _event("pong", {"timestamp": datetime.now(timezone.utc)})
    if event == "status":
        replay = runtime.switch.status()
        return _event(
            "status",
            {
                "data_mode": replay.mode,
                "record_count": replay.record_count,
                "current_index": replay.position,
                "simulation_running": runtime.scheduler.running,
                "connected_clients": runtime.hub.subscriber_count,
                "ticks": runtime.scheduler.tick_count,
            },
        )
    if event == "request_sensor_data":
        return _event("sensor_data", runtime.switch.current_snapshot().recent_sensors)
    if event == "request_process_data":
        return _event("process_data", runtime.switch.current_snapshot().current_parameters)
    return _event("error", {"message": f"Unknown request {event!r}."})


def _event_name(raw: str) -> str:
    try:
        message = json.loads(raw)
    except json.JSONDecodeError:
        return raw.strip()
    if isinstance(message, dict):
        return str(message.get("event", ""))
    if isinstance(message, str):
        return message
    return ""


async def _pump(websocket: WebSocket, subscription: Subscription) -> None:
    while True:
        snapshot = await subscription.next()
        await websocket.send_json(_event(DASHBOARD_UPDATE, snapshot))


@router.websocket("/ws")
async def live_updates(websocket: WebSocket) -> None:
    runtime: PlantRuntime = websocket.app.state.runtime
    await websocket.accept()
    subscription = runtime.hub.subscribe()
    sender = asyncio.create_task(_pump(websocket, subscription))
    try:
        while True:
            raw = await websocket.receive_text()
            await websocket.send_json(handle_request(_event_name(raw), runtime))
    except WebSocketDisconnect:
        pass
    finally:
        subscription.close()
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError, Exception):
            await sender
