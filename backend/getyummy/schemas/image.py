"""
Get Yummy Backend - Image Upload Schemas
========================================

Uploads arrive as a data URI in JSON (`imageBase64`), matching what the
frontend's canvas/file reader produces:

    {"imageBase64": "data:image/png;base64,iVBORw0KGgo..."}
"""

import math
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from getyummy.config import MAX_UPLOAD_SIZE_CEILING

# base64 of the largest configurable upload plus room for the "data:...;base64," header.
# The per-deployment limit is enforced by ImageService before decoding.
MAX_DATA_URI_LENGTH = 4 * math.ceil(MAX_UPLOAD_SIZE_CEILING / 3) + 256


class ImageUploadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_base64: str = Field(alias="imageBase64", min_length=1, max_length=MAX_DATA_URI_LENGTH)


class ImageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: int
    filename: str
    path: str
    content_type: str
    size_bytes: int
    created_at: datetime
    image_url: str = Field(alias="imageUrl", description="URL path serving the stored file")
