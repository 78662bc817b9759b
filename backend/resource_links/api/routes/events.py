"""Event Stream Route — SSE endpoint observers use to receive relation changes.

Invariants:
    - Each connection opens exactly one hub channel and closes it on disconnect
    - First frame is a "connected" event carrying the channel id
    - Keepalive comment frames every KEEPALIVE_SECONDS while idle
    - 503 when pub/sub is disabled
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from resource_links.infrastructure.pubsub import PubSubHub, get_notifier
from resource_links.schemas.events import ChannelEvent

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/events", tags=["events"])

KEEPALIVE_SECONDS = 15.0

# SSE headers prevent proxy/browser buffering of streamed events
_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


@router.get("")
async def stream_events(
    request: Request, hub: PubSubHub | None = Depends(get_notifier),
):
    """Open a channel and stream relation-change events as SSE."""
    if hub is None:
        raise HTTPException(
            status.HTTP_503_SERVICE_UNAVAILABLE, detail="Pub/sub is disabled",
        )
    return StreamingResponse(
        channel_events(hub, request),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )


async def channel_events(hub: PubSubHub, request: Request):
    channel_id = hub.open_channel()
    try:
        yield ChannelEvent.connected(channel_id).to_sse()
        while not await request.is_disconnected():
            try:
                event = await asyncio.wait_for(
                    hub.next_event(channel_id), timeout=KEEPALIVE_SECONDS,
                )
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield event.to_sse()
    finally:
        hub.close_channel(channel_id)
