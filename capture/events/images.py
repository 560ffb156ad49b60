"""JPEG encoding and storage paths for event background images."""
import io
from uuid import uuid4

from PIL import Image, UnidentifiedImageError

from capture.core.config import settings
from capture.events.errors import EncodingFailed

JPEG_CONTENT_TYPE = "image/jpeg"


def encode_jpeg(media: bytes, quality: int | None = None) -> bytes:
    """
    Re-encode an uploaded image as JPEG at a fixed quality.

    Accepts any format Pillow can read. Transparency is flattened since
    JPEG has no alpha channel.

    Raises:
        EncodingFailed: if ``media`` is empty or not a readable image.
    """
    if not media:
        raise EncodingFailed("Could not convert image to data: empty payload")

    quality = quality or settings.image_jpeg_quality
    try:
        with Image.open(io.BytesIO(media)) as image:
            rgb = image.convert("RGB")
            output = io.BytesIO()
            rgb.save(output, format="JPEG", quality=quality)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise EncodingFailed(f"Could not convert image to data: {e}") from e

    return output.getvalue()


def image_path(event_id: str, prefix: str | None = None) -> str:
    """Storage path for a new image of ``event_id``, unique per upload."""
    prefix = prefix or settings.event_images_prefix
    return f"{prefix}/{event_id}_{uuid4()}.jpg"
