from __future__ import annotations

import base64
import io
import logging
from typing import Optional

from PIL import Image, UnidentifiedImageError

from .errors import UploadError
from .jobs import ModelImage

logger = logging.getLogger(__name__)

_FORMAT_MIME_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "BMP": "image/bmp",
}


def decode_upload(
    file_bytes: bytes,
    declared_mime_type: Optional[str] = None,
    *,
    field: str = "image",
) -> ModelImage:
    """Turn raw upload bytes into a base64 ``ModelImage``.

    The declared media type is kept when it names an image; otherwise the type
    Pillow detects is used.
    """
    if not file_bytes:
        raise UploadError(f"Could not read the uploaded {field} file.")
    try:
        with Image.open(io.BytesIO(file_bytes)) as image:
            image.verify()
            detected = _FORMAT_MIME_TYPES.get(image.format or "")
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        logger.warning("Failed to decode uploaded %s: %s", field, exc)
        raise UploadError(f"Could not process the uploaded {field} file.") from exc

    mime_type = declared_mime_type if (declared_mime_type or "").startswith("image/") else None
    mime_type = mime_type or detected or "image/png"
    data = base64.b64encode(file_bytes).decode("ascii")
    return ModelImage(data=data, mime_type=mime_type)
