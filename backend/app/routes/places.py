"""
PlaceShare Backend — Place Route Handlers
===========================================

What:  /api/places endpoints.
Who:   Called by the frontend place list, detail and editor views.

Request Flow (POST /api/places):
    1. FastAPI parses multipart form fields and the image part
       (title non-empty, description ≥ 5 chars, address non-empty, else 422)
    2. X-User-Id is resolved into the authenticated user id (else 401)
    3. Image bytes are read into memory and handed to PlaceService.create()
    4. 201 Created with {"place": {...}}

Mutating routes never look at a creator sent by the client: the owner is
always the authenticated user.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.routes.dependencies import get_authenticated_user_id, get_place_service
from app.schemas.common import ErrorResponse
from app.schemas.place import (
    PlaceDeleteResponse,
    PlaceEnvelope,
    PlaceListResponse,
    PlaceUpdate,
    UploadedImage,
)
from app.services.place_service import PlaceService

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api/places", tags=["Places"])


@router.get(
    "/user/{uid}",
    response_model=PlaceListResponse,
    responses={404: {"description": "Unknown user or no places", "model": ErrorResponse}},
    summary="List the places of a user",
)
async def get_places_by_user(
    uid: UUID,
    db: AsyncSession = Depends(get_db_session),
    service: PlaceService = Depends(get_place_service),
) -> PlaceListResponse:
    return await service.get_by_user(db, uid)


@router.get(
    "/{pid}",
    response_model=PlaceEnvelope,
    responses={404: {"description": "Place not found", "model": ErrorResponse}},
    summary="Get a single place",
)
async def get_place(
    pid: UUID,
    db: AsyncSession = Depends(get_db_session),
    service: PlaceService = Depends(get_place_service),
) -> PlaceEnvelope:
    place = await service.get_by_id(db, pid)
    return PlaceEnvelope(place=place)


@router.post(
    "",
    status_code=201,
    response_model=PlaceEnvelope,
    responses={
        201: {"description": "Place created", "model": PlaceEnvelope},
        401: {"description": "Missing or invalid X-User-Id", "model": ErrorResponse},
        404: {"description": "Authenticated user does not exist", "model": ErrorResponse},
        413: {"description": "Image larger than the upload limit", "model": ErrorResponse},
        415: {"description": "Image is not png/jpeg/jpg", "model": ErrorResponse},
        422: {"description": "Invalid fields or unresolvable address", "model": ErrorResponse},
        503: {"description": "Geocoder temporarily unavailable", "model": ErrorResponse},
    },
    summary="Create a place",
    description=(
        "Create a place owned by the authenticated user. The address is geocoded "
        "server-side; the image (PNG, JPEG, JPG, max 500 KB) is stored with the place."
    ),
)
async def create_place(
    title: str = Form(..., min_length=1, max_length=200),
    description: str = Form(..., min_length=5),
    address: str = Form(..., min_length=1, max_length=500),
    image: UploadFile = File(..., description="Place image (PNG, JPEG or JPG)"),
    user_id: UUID = Depends(get_authenticated_user_id),
    db: AsyncSession = Depends(get_db_session),
    service: PlaceService = Depends(get_place_service),
) -> PlaceEnvelope:
    try:
        content = await image.read()
        logger.info(
            "Received create request: filename=%s, type=%s, size=%d bytes",
            image.filename or "unknown",
            image.content_type,
            len(content),
        )
        place = await service.create(
            db,
            user_id=user_id,
            title=title,
            description=description,
            address=address,
            image=UploadedImage(
                content=content,
                content_type=image.content_type,
                filename=image.filename,
            ),
        )
    finally:
        await image.close()
    return PlaceEnvelope(place=place)


@router.patch(
    "/{pid}",
    response_model=PlaceEnvelope,
    responses={
        401: {"description": "Not the creator of the place", "model": ErrorResponse},
        404: {"description": "Place not found", "model": ErrorResponse},
    },
    summary="Update title and description of a place",
)
async def update_place(
    pid: UUID,
    body: PlaceUpdate,
    user_id: UUID = Depends(get_authenticated_user_id),
    db: AsyncSession = Depends(get_db_session),
    service: PlaceService = Depends(get_place_service),
) -> PlaceEnvelope:
    place = await service.update(
        db,
        place_id=pid,
        user_id=user_id,
        title=body.title,
        description=body.description,
    )
    return PlaceEnvelope(place=place)


@router.delete(
    "/{pid}",
    response_model=PlaceDeleteResponse,
    responses={
        401: {"description": "Not the creator of the place", "model": ErrorResponse},
        404: {"description": "Place not found", "model": ErrorResponse},
    },
    summary="Delete a place",
)
async def delete_place(
    pid: UUID,
    user_id: UUID = Depends(get_authenticated_user_id),
    db: AsyncSession = Depends(get_db_session),
    service: PlaceService = Depends(get_place_service),
) -> PlaceDeleteResponse:
    return await service.delete(db, place_id=pid, user_id=user_id)
