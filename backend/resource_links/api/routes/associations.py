"""Association Routes — POST endpoints that link a child into a parent's collection.

Invariants:
    - POST /api/v1/{model}/{parent_id}/{relation}/{child_id}       link by key
    - POST /api/v1/{model}/{parent_id}/{relation}/add/{child_id}   same, explicit alias
    - POST /api/v1/{model}/{parent_id}/{relation}                  link by key ("id") or by values
    - Values = query parameters merged with the JSON object body (body wins)
    - The body is a declared parameter: malformed or non-object JSON is a 400 validation error
    - Fresh link and duplicate link return the same 200 body; X-Link-Status tells them apart
    - Routes never contain linking logic (delegate to LinkOrchestrator)
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from resource_links.config import get_settings
from resource_links.core.child_descriptor import parse_child_descriptor
from resource_links.core.domain_types import (
    LinkRequest, ModelIdentity, ParentRef, RequestContext,
)
from resource_links.infrastructure.database import get_db
from resource_links.infrastructure.entity_store import SqlEntityStore
from resource_links.infrastructure.model_registry import get_model_registry
from resource_links.infrastructure.pubsub import PubSubHub, get_notifier
from resource_links.services.link_orchestrator import LinkOrchestrator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["associations"])

CHANNEL_HEADER = "X-Channel-Id"


def get_link_orchestrator(
    db: AsyncSession = Depends(get_db),
    notifier: PubSubHub | None = Depends(get_notifier),
) -> LinkOrchestrator:
    registry = get_model_registry()
    return LinkOrchestrator(
        SqlEntityStore(db, registry), registry.relations, notifier,
    )


@router.post("/{model}/{parent_id}/{relation}/add/{child_id}")
async def add_to_collection_alias(
    model: str, parent_id: str, relation: str, child_id: str,
    request: Request,
    orchestrator: LinkOrchestrator = Depends(get_link_orchestrator),
):
    """Link an existing (or key-seeded) child record by primary key."""
    return await _link(orchestrator, request, model, parent_id, relation, child_id, None)


@router.post("/{model}/{parent_id}/{relation}/{child_id}")
async def add_to_collection_by_key(
    model: str, parent_id: str, relation: str, child_id: str,
    request: Request,
    orchestrator: LinkOrchestrator = Depends(get_link_orchestrator),
):
    """Link an existing (or key-seeded) child record by primary key."""
    return await _link(orchestrator, request, model, parent_id, relation, child_id, None)


@router.post("/{model}/{parent_id}/{relation}")
async def add_to_collection(
    model: str, parent_id: str, relation: str,
    request: Request,
    body: dict[str, Any] | None = Body(None),
    orchestrator: LinkOrchestrator = Depends(get_link_orchestrator),
):
    """Link a child described by the request values, creating it if no record matches."""
    return await _link(orchestrator, request, model, parent_id, relation, None, body)


async def _link(
    orchestrator: LinkOrchestrator, request: Request,
    model: str, parent_id: str, relation: str, child_id: str | None,
    body: dict[str, Any] | None,
) -> JSONResponse:
    values: dict[str, Any] = {**request.query_params, **(body or {})}
    descriptor = parse_child_descriptor(
        child_id, values, get_settings().link_value_blacklist,
    )
    outcome = await orchestrator.link(LinkRequest(
        parent=ParentRef(ModelIdentity(model), parent_id),
        relation=relation,
        child=descriptor,
        context=_request_context(request, orchestrator),
    ))
    return JSONResponse(
        content=outcome.parent,
        headers={"X-Link-Status": outcome.status.value},
    )


def _request_context(request: Request, orchestrator: LinkOrchestrator) -> RequestContext:
    channel_id = request.headers.get(CHANNEL_HEADER)
    hub = orchestrator.notifier
    return RequestContext(
        channel_id=channel_id,
        subscribable=hub is not None and hub.has_channel(channel_id),
        mirror=get_settings().pubsub_mirror,
    )
