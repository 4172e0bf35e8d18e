"""
Get Yummy Backend - Image Upload Route Handlers
===============================================

What:  POST /upload and DELETE /upload/{id} (logged-in users), and
       GET /uploads/{filename}, which serves stored files publicly so
       recipe pages can embed them.
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from getyummy.database import get_db_session
from getyummy.dependencies import get_image_service, require_user
from getyummy.schemas.common import ErrorResponse, MessageResponse
from getyummy.schemas.image import ImageResponse, ImageUploadRequest
from getyummy.services.image_service import ImageService
from getyummy.services.token_codec import AccessClaims

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Uploads"])


@router.post(
    "/upload",
    response_model=ImageResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Not a supported image data URI", "model": ErrorResponse}},
    summary="Upload an image as a base64 data URI",
)
async def upload_image(
    payload: ImageUploadRequest,
    user: AccessClaims = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
    images: ImageService = Depends(get_image_service),
) -> ImageResponse:
    image = await images.upload(db, payload.image_base64, user)
    return ImageResponse(
        id=image.id,
        filename=image.filename,
        path=image.path,
        content_type=image.content_type,
        size_bytes=image.size_bytes,
        created_at=image.created_at,
        image_url=images.public_url(image.filename),
    )


@router.delete(
    "/upload/{image_id}",
    response_model=MessageResponse,
    responses={
        403: {"description": "Not the uploader", "model": ErrorResponse},
        404: {"description": "Image not found", "model": ErrorResponse},
    },
    summary="Delete an uploaded image",
)
async def delete_image(
    image_id: int,
    user: AccessClaims = Depends(require_user),
    db: AsyncSession = Depends(get_db_session),
    images: ImageService = Depends(get_image_service),
) -> MessageResponse:
    await images.delete(db, image_id, user)
    return MessageResponse(message="Image deleted")


@router.get(
    "/uploads/{filename}",
    responses={404: {"description": "File not found", "model": ErrorResponse}},
    summary="Serve a stored image",
)
async def serve_image(
    filename: str,
    images: ImageService = Depends(get_image_service),
) -> FileResponse:
    # Long cache: stored files are never overwritten, names are unique
    return FileResponse(
        images.resolve_path(filename),
        headers={"Cache-Control": "public, max-age=31536000, immutable"},
    )
