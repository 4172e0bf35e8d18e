"""
Get Yummy Backend - Image Storage Service
=========================================

What:  Decodes uploaded data-URI images, stores them on disk and records
       their metadata; deletes both again on request.
How:   Validation runs before any I/O: data-URI shape, image/* MIME type,
       base64 payload, size. Files are written with aiofiles into a flat
       upload directory created on first use.
Who:   /upload routes (write/delete) and GET /uploads/{filename} (serve).

Security Model:
    1. MIME allow-list:  only raster image subtypes; SVG is refused because
                         it can carry script and is served from our origin
    2. Size check:       base64 length bounded before decoding, then the
                         decoded byte count against settings.max_upload_size
    3. Server filename:  <unix-millis>-<12 hex chars>.<ext>, no user input
    4. Serving:          resolve_path() refuses anything that escapes upload_root

Lifecycle of an upload:
    data URI ─▶ parse & validate ─▶ write file ─▶ INSERT images row
                                        │              │ fails
                                        │              ▼
                                        └────── remove written file
"""

import base64
import binascii
import logging
import math
import os
import re
import secrets
import time
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
from sqlalchemy.ext.asyncio import AsyncSession

from getyummy.config import Settings
from getyummy.exceptions import FileStorageError, ForbiddenError, NotFoundError, ValidationError
from getyummy.models.image import Image
from getyummy.services.token_codec import AccessClaims
from getyummy.services.user_service import user_service

logger = logging.getLogger(__name__)

# data:<type>/<subtype>[;param=value]*;base64,<payload>
DATA_URI_PATTERN = re.compile(
    r"^data:(?P<mime>[a-zA-Z0-9.+-]+/[a-zA-Z0-9.+-]+)(?:;[a-zA-Z0-9-]+=[^;,]+)*;base64,(?P<data>.*)$",
    re.DOTALL,
)

# MIME subtype → file extension
ALLOWED_IMAGE_SUBTYPES = {
    "png": "png",
    "jpeg": "jpg",
    "jpg": "jpg",
    "gif": "gif",
    "webp": "webp",
    "avif": "avif",
}

PUBLIC_PREFIX = "/uploads"


class ImageService:
    """
    Built by create_app() from Settings.

    Unlike most directories the app touches, upload_root is not created at
    startup by this class; store_file() creates it when the first image
    arrives.
    """

    def __init__(self, settings: Settings):
        self.upload_root = Path(settings.upload_root).resolve()
        self.max_upload_size = settings.max_upload_size
        self.max_encoded_length = 4 * math.ceil(self.max_upload_size / 3)

    # ══════════════════════════════════════════════════════════════════════
    # Validation
    # ══════════════════════════════════════════════════════════════════════

    def parse_data_uri(self, data_uri: str) -> Tuple[str, str, bytes]:
        """
        Split and decode a base64 data URI.

        Returns:
            (mime_type, extension, content)

        Raises:
            ValidationError: not a base64 data URI, not an allowed image type,
                             undecodable payload, empty or oversized image
        """
        match = DATA_URI_PATTERN.match(data_uri.strip())
        if match is None:
            raise ValidationError(
                message="Image must be a base64 data URI (data:image/<type>;base64,...)",
                field="imageBase64",
            )

        mime_type = match.group("mime").lower()
        major, _, subtype = mime_type.partition("/")
        extension = ALLOWED_IMAGE_SUBTYPES.get(subtype) if major == "image" else None
        if extension is None:
            raise ValidationError(
                message=f"Content type '{mime_type}' is not supported. Upload a PNG, JPEG, GIF, WebP or AVIF image.",
                field="imageBase64",
                context={"mime_type": mime_type},
            )

        payload = match.group("data")
        if len(payload) > self.max_encoded_length:
            # Rejected before decoding: any payload this long decodes past the limit
            max_mb = self.max_upload_size / (1024 * 1024)
            raise ValidationError(
                message=f"Image exceeds maximum of {max_mb:.0f}MB.",
                field="imageBase64",
                context={"max_size_bytes": self.max_upload_size, "encoded_length": len(payload)},
            )

        try:
            content = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError(message="Image data is not valid base64", field="imageBase64")

        self.validate_size(len(content))
        return mime_type, extension, content

    def validate_size(self, size: int) -> None:
        if size == 0:
            raise ValidationError(message="Image is empty", field="imageBase64")
        if size > self.max_upload_size:
            max_mb = self.max_upload_size / (1024 * 1024)
            raise ValidationError(
                message=f"Image size ({size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="imageBase64",
                context={"max_size_bytes": self.max_upload_size, "actual_size": size},
            )

    # ══════════════════════════════════════════════════════════════════════
    # Disk
    # ══════════════════════════════════════════════════════════════════════

    @staticmethod
    def generate_filename(extension: str) -> str:
        return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{extension}"

    @staticmethod
    def public_url(filename: str) -> str:
        return f"{PUBLIC_PREFIX}/{filename}"

    async def store_file(self, content: bytes, extension: str) -> Tuple[Path, str]:
        """
        Write bytes under a fresh server-side name.

        Returns:
            (absolute_path, filename)

        Raises:
            FileStorageError: directory creation or write failed
        """
        filename = self.generate_filename(extension)
        absolute_path = self.upload_root / filename
        try:
            self.upload_root.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store image at %s: %s", absolute_path, e)
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("Image stored: %s (%d bytes)", filename, len(content))
        return absolute_path, filename

    async def remove_file(self, path: Path) -> bool:
        """
        Delete a stored file. A file that is already gone is not an error.

        Returns:
            True if a file was removed

        Raises:
            FileStorageError: the file exists but could not be removed
        """
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.warning("Image file already missing: %s", path.name)
            return False
        except OSError as e:
            logger.error("Failed to remove image %s: %s", path, e)
            raise FileStorageError(
                message="Failed to delete image file",
                context={"path": str(path), "os_error": str(e)},
            )
        logger.info("Image file removed: %s", path.name)
        return True

    def resolve_path(self, filename: str) -> Path:
        """
        Map a public filename to its absolute path inside upload_root.

        Raises:
            NotFoundError: the name escapes upload_root or no such file exists
        """
        candidate = (self.upload_root / filename).resolve()
        if candidate.parent != self.upload_root or not candidate.is_file():
            raise NotFoundError(resource="image", resource_id=filename)
        return candidate

    # ══════════════════════════════════════════════════════════════════════
    # Upload / Delete
    # ══════════════════════════════════════════════════════════════════════

    async def upload(self, db: AsyncSession, data_uri: str, uploader: Optional[AccessClaims]) -> Image:
        if uploader is not None:
            await user_service.ensure_account_exists(db, uploader.user_id)
        mime_type, extension, content = self.parse_data_uri(data_uri)
        absolute_path, filename = await self.store_file(content, extension)

        image = Image(
            filename=filename,
            path=filename,
            content_type=mime_type,
            size_bytes=len(content),
            uploaded_by=uploader.user_id if uploader else None,
        )
        db.add(image)
        try:
            await db.flush()
        except Exception:
            # Don't leave an unreferenced file behind
            await self.remove_file(absolute_path)
            raise
        return image

    async def delete(self, db: AsyncSession, image_id: int, actor: AccessClaims) -> None:
        """
        Remove the file and its record; only the uploader or an admin may.

        Raises:
            NotFoundError, ForbiddenError, FileStorageError
        """
        image = await db.get(Image, image_id)
        if image is None:
            raise NotFoundError(resource="image", resource_id=str(image_id))
        if not actor.is_admin and image.uploaded_by != actor.user_id:
            raise ForbiddenError("Only the uploader or an administrator can delete this image")

        await self.remove_file(self.upload_root / image.path)
        await db.delete(image)
        await db.flush()
        logger.info("Image %s deleted by user %s", image_id, actor.user_id)
