"""Pub/Sub Event Schemas — payloads delivered to observers over the SSE stream.

Invariants:
    - Every event is {"type": ..., "data": {...}}, the same envelope as SSE frames
    - added_to carries only keys (parent, relation, child), never full records
"""

from typing import Any, Literal

from pydantic import BaseModel


class AddedToData(BaseModel):
    """A child was linked into a parent's collection."""
    model: str
    id: Any
    attribute: str
    added_model: str
    added_id: Any


class ConnectedData(BaseModel):
    """First frame of every stream: the id to send back as X-Channel-Id."""
    channel_id: str


class ChannelEvent(BaseModel):
    type: Literal["connected", "added_to"]
    data: AddedToData | ConnectedData

    def to_sse(self) -> str:
        return f"data: {self.model_dump_json()}\n\n"

    @classmethod
    def added_to(
        cls, model: str, parent_key: Any, relation: str,
        added_model: str, added_key: Any,
    ) -> "ChannelEvent":
        return cls(type="added_to", data=AddedToData(
            model=model, id=parent_key, attribute=relation,
            added_model=added_model, added_id=added_key,
        ))

    @classmethod
    def connected(cls, channel_id: str) -> "ChannelEvent":
        return cls(type="connected", data=ConnectedData(channel_id=channel_id))
