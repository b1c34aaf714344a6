"""
Server-Sent Events framing for notifier subscriptions.
"""

from __future__ import annotations

import asyncio
import json
from typing import AsyncIterator, Awaitable, Callable, Optional

from classgroups.events.notifier import ChangeNotifier, Subscription
from classgroups.schemas.roster_schemas import PublicView

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(view: PublicView) -> str:
    return f"data: {json.dumps(view.dump(), ensure_ascii=False)}\n\n"


async def event_stream(
    notifier: ChangeNotifier,
    sub: Subscription,
    heartbeat: float = 0,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[str]:
    """
    Yield `: connected`, then one data frame per queued view until the client goes away.
    With heartbeat > 0 a `: ping` comment is sent after that many idle seconds.
    """
    try:
        yield ": connected\n\n"
        while True:
            if is_disconnected is not None and await is_disconnected():
                break
            if heartbeat > 0:
                try:
                    view = await asyncio.wait_for(sub.get(), timeout=heartbeat)
                except asyncio.TimeoutError:
                    yield ": ping\n\n"
                    continue
            else:
                view = await sub.get()
            yield format_sse(view)
    finally:
        notifier.unsubscribe(sub)
