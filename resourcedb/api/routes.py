"""
REST routes for ResourceDB.

Maps the five store operations onto /resources:

    GET    /resources        -> 200 list (sorted by id)
    GET    /resources/{id}   -> 200 entity
    POST   /resources        -> 201 entity
    PUT    /resources/{id}   -> 200 entity (full replacement)
    DELETE /resources/{id}   -> 204

Store errors are raised unchanged and turned into responses by the
handlers registered in http_server.py.
"""

import json
import logging
import time
from typing import Any

from fastapi import APIRouter, Depends, Header, Request, Response, status
from pydantic import BaseModel, Field

from ..deadline import Deadline
from ..errors import InvalidArgumentError
from ..store import ResourceStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Resources"])

TIMEOUT_HEADER = "X-Request-Timeout-Ms"


# --- Response Models ---


class ResourceResponse(BaseModel):
    """Resource as returned by the API."""

    id: int = Field(..., description="Store-assigned resource ID")
    fields: dict[str, Any] = Field(..., description="Resource fields")
    created_at: int = Field(..., description="Creation time (Unix ms)")
    updated_at: int = Field(..., description="Last update time (Unix ms)")


class HealthResponse(BaseModel):
    """Heartbeat response."""

    status: str
    resources: int


class InvalidResourceId(InvalidArgumentError):
    """Path id that is not a non-negative integer."""

    def __init__(self, raw: str) -> None:
        super().__init__("Invalid resource ID", field_name="id", errors=[f"not an id: {raw!r}"])


# --- Dependencies ---


def get_store(request: Request) -> ResourceStore:
    """Dependency: the store attached to the app."""
    return request.app.state.store


def request_deadline(
    request: Request,
    x_request_timeout_ms: str | None = Header(default=None),
) -> Deadline:
    """Dependency: the deadline for this request.

    The configured request timeout applies from the moment the request
    arrived. A caller may shorten it, never extend it, with the
    X-Request-Timeout-Ms header.
    """
    received_at = getattr(request.state, "received_at", time.monotonic())
    timeout_ms = request.app.state.http_config.request_timeout_ms
    deadline = Deadline(at=received_at + timeout_ms / 1000.0)

    if x_request_timeout_ms is not None:
        try:
            requested = int(x_request_timeout_ms)
        except ValueError:
            raise InvalidArgumentError(
                f"{TIMEOUT_HEADER} must be an integer",
                field_name=TIMEOUT_HEADER,
            )
        if requested < 0:
            raise InvalidArgumentError(
                f"{TIMEOUT_HEADER} must not be negative",
                field_name=TIMEOUT_HEADER,
            )
        deadline = deadline.earliest(Deadline(at=received_at + requested / 1000.0))

    return deadline


def parse_resource_id(resource_id: str) -> int:
    """Parse a path id: plain ASCII decimal digits only."""
    if not (resource_id.isascii() and resource_id.isdigit()):
        raise InvalidResourceId(resource_id)
    try:
        return int(resource_id)
    except ValueError:
        # Past the interpreter's int digit limit
        raise InvalidResourceId(resource_id)


async def read_fields(request: Request) -> dict[str, Any]:
    """Decode the request body as a JSON object of fields."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidArgumentError("Invalid JSON body")

    if not isinstance(body, dict):
        raise InvalidArgumentError(
            f"Request body must be a JSON object, got {type(body).__name__}"
        )
    return body


@router.get("/resources")
async def list_resources(
    store: ResourceStore = Depends(get_store),
    deadline: Deadline = Depends(request_deadline),
) -> list[ResourceResponse]:
    """List all resources, ordered by id."""
    entities = await store.list(deadline=deadline)
    return [ResourceResponse(**e.to_dict()) for e in sorted(entities, key=lambda e: e.id)]


@router.get("/resources/{resource_id}")
async def get_resource(
    resource_id: str,
    store: ResourceStore = Depends(get_store),
    deadline: Deadline = Depends(request_deadline),
) -> ResourceResponse:
    """Get one resource."""
    entity = await store.get(parse_resource_id(resource_id), deadline=deadline)
    return ResourceResponse(**entity.to_dict())


@router.post("/resources", status_code=status.HTTP_201_CREATED)
async def create_resource(
    request: Request,
    store: ResourceStore = Depends(get_store),
    deadline: Deadline = Depends(request_deadline),
) -> ResourceResponse:
    """Create a resource from a JSON object of fields."""
    fields = await read_fields(request)
    entity = await store.create(fields, deadline=deadline)
    logger.info("Resource created", extra={"resource_id": entity.id})
    return ResourceResponse(**entity.to_dict())


@router.put("/resources/{resource_id}")
async def update_resource(
    resource_id: str,
    request: Request,
    store: ResourceStore = Depends(get_store),
    deadline: Deadline = Depends(request_deadline),
) -> ResourceResponse:
    """Replace a resource's fields."""
    rid = parse_resource_id(resource_id)
    fields = await read_fields(request)
    entity = await store.update(rid, fields, deadline=deadline)
    return ResourceResponse(**entity.to_dict())


@router.delete("/resources/{resource_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_resource(
    resource_id: str,
    store: ResourceStore = Depends(get_store),
    deadline: Deadline = Depends(request_deadline),
) -> Response:
    """Delete a resource."""
    rid = parse_resource_id(resource_id)
    await store.delete(rid, deadline=deadline)
    logger.info("Resource deleted", extra={"resource_id": rid})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/health")
async def health(store: ResourceStore = Depends(get_store)) -> HealthResponse:
    """Heartbeat with the current resource count."""
    return HealthResponse(status="healthy", resources=await store.count())
