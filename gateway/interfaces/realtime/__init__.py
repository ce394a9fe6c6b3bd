"""
FastAPI router for real-time change notifications.

Provides:
- WebSocket endpoint where clients subscribe to collections and receive
  document-created / document-updated / document-deleted events
- Fan-out status endpoint
"""

import json
import logging
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder

from gateway.infrastructure.realtime.fanout import ChangeFanout
from gateway.interfaces.backend.dependencies import get_fanout
from gateway.interfaces.backend.schemas import ApiResponse
from gateway.shared.errors.faults import Fault, FaultKind, FieldError, capture
from gateway.shared.errors.normalizer import normalize
from gateway.shared.security.rate_limiting import enforce_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["realtime"])

SUPPORTED_ACTIONS = ("subscribe-to-collection", "unsubscribe-from-collection", "ping")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_message(fault: Fault, production: bool) -> dict[str, Any]:
    error = normalize(fault, production=production)
    data: dict[str, Any] = {"message": error.message, "code": error.code}
    if error.details:
        data["details"] = jsonable_encoder(error.details)
    return {"event": "error", "data": data, "timestamp": _now()}


def handle_client_message(
    fanout: ChangeFanout,
    websocket: Any,
    raw: str,
    production: bool = False,
) -> None:
    """Process one message from a WebSocket client.

    Supported commands:
        {"action": "subscribe-to-collection", "collection": "users"}
        {"action": "unsubscribe-from-collection", "collection": "users"}
        {"action": "ping"}

    Replies are queued on the connection's mailbox so they stay ordered
    with broadcast events.
    """
    try:
        msg = json.loads(raw)
    except json.JSONDecodeError as exc:
        fanout.send(websocket, _error_message(capture(exc), production))
        return

    action = msg.get("action") if isinstance(msg, dict) else None
    collection = msg.get("collection") if isinstance(msg, dict) else None

    if action in ("subscribe-to-collection", "unsubscribe-from-collection"):
        if not isinstance(collection, str) or not collection:
            fault = Fault(
                kind=FaultKind.VALIDATION,
                message="Validation failed",
                field_errors=(
                    FieldError("collection", "Collection is required", collection),
                ),
            )
            fanout.send(websocket, _error_message(fault, production))
            return
        if action == "subscribe-to-collection":
            fanout.subscribe(websocket, collection)
            event = "subscribed"
        else:
            fanout.unsubscribe(websocket, collection)
            event = "unsubscribed"
        fanout.send(
            websocket,
            {
                "event": event,
                "data": {
                    "topic": collection,
                    "subscriptions": sorted(fanout.subscriptions(websocket)),
                },
                "timestamp": _now(),
            },
        )

    elif action == "ping":
        fanout.send(websocket, {"event": "pong", "data": {}, "timestamp": _now()})

    else:
        fault = Fault(
            kind=FaultKind.GENERIC,
            message=f"Unknown action: {action}",
            source_code="bad-request",
        )
        reply = _error_message(fault, production)
        reply["data"]["supported"] = list(SUPPORTED_ACTIONS)
        fanout.send(websocket, reply)


# ------------------------------------------------------------------
# WebSocket endpoint
# ------------------------------------------------------------------


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    fanout: ChangeFanout = Depends(get_fanout),
) -> None:
    """WebSocket endpoint for collection change notifications.

    Protocol (JSON):
        → {"action": "subscribe-to-collection", "collection": "users"}
        ← {"event": "subscribed", "data": {"topic": "users", ...}}

        → {"action": "ping"}
        ← {"event": "pong", ...}

        ← {"event": "document-created", "data": {"topic": "users", ...}}
    """
    production = websocket.app.state.settings.is_production
    await websocket.accept()
    logger.info("Realtime client connected: %s", websocket.client)

    try:
        while True:
            raw = await websocket.receive_text()
            handle_client_message(fanout, websocket, raw, production)
    except WebSocketDisconnect:
        logger.info("Realtime client disconnected: %s", websocket.client)
    finally:
        fanout.on_connection_closed(websocket)


# ------------------------------------------------------------------
# Fan-out status
# ------------------------------------------------------------------


@router.get(
    "/status",
    response_model=ApiResponse[dict],
    summary="Get fan-out status",
    description="Return connection stats, active topics and recent events.",
    dependencies=[Depends(enforce_rate_limit)],
)
def realtime_status(
    fanout: ChangeFanout = Depends(get_fanout),
    limit: Annotated[int, Query(ge=1, le=500)] = 20,
    topic: str | None = None,
) -> ApiResponse[dict]:
    """Return fan-out stats."""
    return ApiResponse(
        data={
            **fanout.stats,
            "topics": fanout.topics,
            "recentEvents": fanout.get_recent_events(limit=limit, topic=topic),
        }
    )
