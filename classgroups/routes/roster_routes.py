"""
Roster endpoints.

Thin mapping from HTTP to RosterService. Rejections are raised as RosterError
and rendered by the app-level handler. Writes are plain `def` so FastAPI runs
them in its threadpool; the SQLite commit never blocks the event loop.
Live view: GET /events (SSE) and WebSocket /ws both push the full public view
on every change.
"""

import asyncio

from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse

from classgroups.events import SSE_HEADERS, event_stream
from classgroups.schemas.api_schemas import (
    ErrorResponse,
    JoinRequest,
    JoinResponse,
    LeaveRequest,
    LeaveResponse,
    ResetRequest,
    ResetResponse,
)
from classgroups.schemas.roster_schemas import PublicView
from classgroups.services.roster_service import RosterService

roster_routes = APIRouter()

_errors = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


def get_roster_service(request: Request) -> RosterService:
    return request.app.state.roster_service


@roster_routes.get("/state", response_model=PublicView)
async def get_state(service: RosterService = Depends(get_roster_service)) -> PublicView:
    return service.snapshot()


@roster_routes.post("/join", response_model=JoinResponse, responses=_errors)
def join(body: JoinRequest, service: RosterService = Depends(get_roster_service)) -> JoinResponse:
    """
    Join with auto-assign (no groupId) or an explicit group choice.
    status: ok (new), exists (already there), moved (changed group).
    """
    outcome = service.join(body.name, body.group_id, body.device_id)
    return JoinResponse(group_id=outcome.group_id, status=outcome.status)


@roster_routes.post("/leave", response_model=LeaveResponse, responses=_errors)
def leave(body: LeaveRequest, service: RosterService = Depends(get_roster_service)) -> LeaveResponse:
    outcome = service.leave(body.name, body.device_id)
    return LeaveResponse(group_id=outcome.group_id)


@roster_routes.post("/reset", response_model=ResetResponse, responses=_errors)
def reset(body: ResetRequest, service: RosterService = Depends(get_roster_service)) -> ResetResponse:
    service.reset(body.token)
    return ResetResponse()


@roster_routes.get("/events")
async def events(request: Request, service: RosterService = Depends(get_roster_service)) -> StreamingResponse:
    """
    SSE stream: `: connected`, the current view, then one `data:` frame per change.
    """
    sub = service.subscribe()
    heartbeat = request.app.state.settings.sse_heartbeat_seconds
    return StreamingResponse(
        event_stream(service.notifier, sub, heartbeat, request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@roster_routes.websocket("/ws")
async def roster_websocket(websocket: WebSocket):
    """
    WebSocket variant of /events. Sends the current view on connect, then every change.
    Client messages are ignored.
    """
    service: RosterService = websocket.app.state.roster_service
    await websocket.accept()
    sub = service.subscribe()

    async def pump():
        while True:
            view = await sub.get()
            try:
                await websocket.send_json(view.dump())
            except (WebSocketDisconnect, RuntimeError):
                # socket closed under us; the receive loop below does the cleanup
                return

    sender = asyncio.create_task(pump())
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        sender.cancel()
        service.unsubscribe(sub)
