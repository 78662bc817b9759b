"""Pub/Sub Hub — in-process Notifier: channels, per-record rooms, bounded queues.

Invariants:
    - One bounded asyncio.Queue per open channel (one SSE connection)
    - Rooms keyed by (model, key); a channel joins a room via subscribe()
    - notify_add never delivers to the originating channel unless mirror is set
    - Full or closed queues drop the event with a warning: delivery is fire-and-forget
    - close_channel removes the channel from every room

Design Decisions:
    - Singleton pubsub_hub initialized on startup (like db_manager); None = disabled
    - Single-process only: multi-worker deployments need an external broker
"""

import asyncio
import logging
import uuid
from typing import Any

from resource_links.core.domain_types import ChildRef, ModelIdentity, RequestContext
from resource_links.schemas.events import ChannelEvent

logger = logging.getLogger(__name__)

Room = tuple[str, Any]


class PubSubHub:
    """Routes relation-change events to subscribed channels."""

    def __init__(self, queue_size: int = 100):
        self._queue_size = queue_size
        self._channels: dict[str, asyncio.Queue[ChannelEvent]] = {}
        self._rooms: dict[Room, set[str]] = {}

    # ─── Channels ───────────────────────────────────────────────

    def open_channel(self) -> str:
        channel_id = uuid.uuid4().hex
        self._channels[channel_id] = asyncio.Queue(maxsize=self._queue_size)
        logger.info("Channel opened", extra={"channel_id": channel_id})
        return channel_id

    def close_channel(self, channel_id: str) -> None:
        self._channels.pop(channel_id, None)
        for members in self._rooms.values():
            members.discard(channel_id)
        self._rooms = {room: m for room, m in self._rooms.items() if m}
        logger.info("Channel closed", extra={"channel_id": channel_id})

    def has_channel(self, channel_id: str | None) -> bool:
        return channel_id is not None and channel_id in self._channels

    async def next_event(self, channel_id: str) -> ChannelEvent:
        return await self._channels[channel_id].get()

    def subscribers(self, model: str, key: Any) -> set[str]:
        return set(self._rooms.get((model, key), ()))

    # ─── Notifier Protocol ──────────────────────────────────────

    async def subscribe(
        self, channel_id: str, model: ModelIdentity, key: Any,
    ) -> None:
        if channel_id not in self._channels:
            logger.warning(
                "Subscribe on unknown channel ignored",
                extra={"channel_id": channel_id, "model": model},
            )
            return
        self._rooms.setdefault((model, key), set()).add(channel_id)

    async def notify_add(
        self,
        model: ModelIdentity,
        parent_key: Any,
        relation: str,
        child: ChildRef,
        context: RequestContext,
    ) -> None:
        event = ChannelEvent.added_to(model, parent_key, relation, child.type, child.key)
        for channel_id in self.subscribers(model, parent_key):
            if channel_id == context.channel_id and not context.mirror:
                continue
            self._deliver(channel_id, event)

    def _deliver(self, channel_id: str, event: ChannelEvent) -> None:
        queue = self._channels.get(channel_id)
        if queue is None:
            return
        try:
            queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                "Channel queue full, event dropped",
                extra={"channel_id": channel_id},
            )


# Singleton (initialized on startup)
pubsub_hub: PubSubHub | None = None


def init_pubsub(queue_size: int = 100) -> PubSubHub:
    global pubsub_hub
    pubsub_hub = PubSubHub(queue_size)
    return pubsub_hub


def get_notifier() -> PubSubHub | None:
    """FastAPI dependency: the hub, or None when pub/sub is disabled."""
    return pubsub_hub
