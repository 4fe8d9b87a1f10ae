"""
api/routes/v1/resources.py -- Resource routes for the ResourceMap REST API.

Routes (fixed paths registered before /resources/{resource_id}):
  GET    /resources                    -- list all (public)
  GET    /resources/user               -- resources owned by the caller
  GET    /resources/area               -- resources inside ?topRight=lat,lng&bottomLeft=lat,lng (public)
  POST   /resources                    -- create, owner = caller (multipart form)
  PUT    /resources/admin/{id}         -- admin update, may transfer ownership
  DELETE /resources/admin/{id}         -- admin delete
  GET    /resources/{id}               -- one resource (public)
  PUT    /resources/{id}               -- owner update
  DELETE /resources/{id}               -- owner delete

Handlers stay thin: build the domain input, call ResourceService, pass the
Result through api.errors.unwrap(). A non-owner gets the same 404 as a
missing id; a non-admin on an /admin route gets 403.

File uploads:
  POST /resources accepts an optional image. Size is capped by
  Settings.max_upload_bytes; only image/* content types are accepted. The
  stored filename is random; the client's filename is never used on disk.
"""

import logging
import secrets
from datetime import date
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile

from api.errors import unwrap
from api.limiter import limiter
from api.models import AdminResourceUpdate, ErrorDetail, MessageResponse, ResourceOut, ResourceUpdate
from auth.dependencies import get_current_actor
from core.access import Actor
from core.config import get_settings
from resources.models import ResourceDraft
from resources.service import ResourceService

logger = logging.getLogger("resourcemap.api")

router = APIRouter()


def _service(request: Request) -> ResourceService:
    return request.app.state.resource_service


def _one(service: ResourceService, resource) -> dict:
    return service.to_public([resource])[0]


async def _read_upload(file: UploadFile, max_bytes: int) -> tuple[bytes, str]:
    """Read and check an uploaded image. Returns (content, stored filename)."""
    content_type = (file.content_type or "").lower()
    if not content_type.startswith("image/"):
        raise HTTPException(
            status_code=415,
            detail=ErrorDetail(code="unsupported_format", message="File must be an image.").model_dump(),
        )
    raw = await file.read(max_bytes + 1)
    if len(raw) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=ErrorDetail(code="file_too_large", message="Upload is too large.").model_dump(),
        )
    suffix = Path(file.filename or "").suffix.lower()
    if not suffix[1:].isalnum() or len(suffix) > 6:
        suffix = ""
    return raw, f"{secrets.token_hex(16)}{suffix}"


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@router.get("/resources", response_model=list[ResourceOut])
def list_resources(request: Request) -> list[dict]:
    service = _service(request)
    return service.to_public(unwrap(service.list_resources()))


@router.get("/resources/user", response_model=list[ResourceOut])
def list_my_resources(request: Request, actor: Actor = Depends(get_current_actor)) -> list[dict]:
    service = _service(request)
    return service.to_public(unwrap(service.list_owned(actor)))


@limiter.limit("60/minute")
@router.get("/resources/area", response_model=list[ResourceOut])
def list_resources_in_area(
    request: Request,
    top_right: str = Query(alias="topRight", max_length=64),
    bottom_left: str = Query(alias="bottomLeft", max_length=64),
) -> list[dict]:
    """Resources whose location falls inside the box spanned by the two corners.

    Corners are "lat,lng". They are not reordered, but any two opposite
    corners span the same box, so swapped corners return the same resources.
    """
    service = _service(request)
    return service.to_public(unwrap(service.list_within(top_right, bottom_left)))


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


@limiter.limit("30/minute")
@router.post("/resources", response_model=MessageResponse, status_code=201)
async def create_resource(
    request: Request,
    name: str = Form(min_length=1, max_length=255),
    weight: float = Form(gt=0),
    birthdate: date = Form(),
    lat: float = Form(),
    lng: float = Form(),
    file: Optional[UploadFile] = File(default=None),
    actor: Actor = Depends(get_current_actor),
) -> MessageResponse:
    """Create a resource owned by the caller. Any owner sent by the client is ignored."""
    settings = get_settings()
    content: Optional[bytes] = None
    filename: Optional[str] = None
    if file is not None and file.filename:
        content, filename = await _read_upload(file, settings.max_upload_bytes)

    service = _service(request)
    draft = ResourceDraft(
        name=name.strip(),
        weight=weight,
        birthdate=birthdate.isoformat(),
        latitude=lat,
        longitude=lng,
        filename=filename,
    )
    created = unwrap(service.create(actor, draft))

    if content is not None:
        upload_dir = Path(settings.upload_dir)
        upload_dir.mkdir(parents=True, exist_ok=True)
        (upload_dir / filename).write_bytes(content)
        logger.info("Stored upload %s (%d bytes) for resource %s", filename, len(content), created.id)

    return MessageResponse(message="Resource created", data=_one(service, created))


# ---------------------------------------------------------------------------
# Privileged writes
# ---------------------------------------------------------------------------


@limiter.limit("30/minute")
@router.put("/resources/admin/{resource_id}", response_model=MessageResponse)
def admin_update_resource(
    request: Request,
    resource_id: int,
    body: AdminResourceUpdate,
    actor: Actor = Depends(get_current_actor),
) -> MessageResponse:
    service = _service(request)
    updated = unwrap(service.update_any(actor, resource_id, body.to_changes()))
    return MessageResponse(message="Resource updated", data=_one(service, updated))


@limiter.limit("30/minute")
@router.delete("/resources/admin/{resource_id}", response_model=MessageResponse)
def admin_delete_resource(
    request: Request,
    resource_id: int,
    actor: Actor = Depends(get_current_actor),
) -> MessageResponse:
    service = _service(request)
    deleted = unwrap(service.delete_any(actor, resource_id))
    return MessageResponse(message="Resource deleted", data=_one(service, deleted))


# ---------------------------------------------------------------------------
# Single resource (must follow the fixed paths above)
# ---------------------------------------------------------------------------


@router.get("/resources/{resource_id}", response_model=ResourceOut)
def get_resource(request: Request, resource_id: int) -> dict:
    service = _service(request)
    return _one(service, unwrap(service.get_resource(resource_id)))


@limiter.limit("30/minute")
@router.put("/resources/{resource_id}", response_model=MessageResponse)
def update_resource(
    request: Request,
    resource_id: int,
    body: ResourceUpdate,
    actor: Actor = Depends(get_current_actor),
) -> MessageResponse:
    """Update a resource the caller owns. Owner changes are not accepted here."""
    service = _service(request)
    updated = unwrap(service.update_own(actor, resource_id, body.to_changes()))
    return MessageResponse(message="Resource updated", data=_one(service, updated))


@limiter.limit("30/minute")
@router.delete("/resources/{resource_id}", response_model=MessageResponse)
def delete_resource(
    request: Request,
    resource_id: int,
    actor: Actor = Depends(get_current_actor),
) -> MessageResponse:
    service = _service(request)
    deleted = unwrap(service.delete_own(actor, resource_id))
    return MessageResponse(message="Resource deleted", data=_one(service, deleted))
