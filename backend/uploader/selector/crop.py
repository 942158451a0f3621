"""Crop rasterization.

Draws the chosen region of a source image onto a new surface the size of
the crop rectangle and encodes it as PNG. Parts of the rectangle that fall
outside the source come out transparent.
"""
import logging
from io import BytesIO
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import InvalidCrop
from .state import CropRect

logger = logging.getLogger(__name__)

CROP_MIME_TYPE = "image/png"


def rasterize_crop(data: bytes, rect: CropRect, max_pixels: Optional[int] = None) -> bytes:
    """Render *rect* of the image in *data* into a PNG blob.

    Raises:
        InvalidCrop: If the rectangle is empty or larger than *max_pixels*, or
            the source cannot be decoded (including decompression bombs).
    """
    if rect.width <= 0 or rect.height <= 0:
        raise InvalidCrop(f"Crop area must be non-empty, got {rect.width}x{rect.height}")
    if max_pixels is not None and rect.width * rect.height > max_pixels:
        raise InvalidCrop(
            f"Crop area {rect.width}x{rect.height} exceeds the limit of {max_pixels} pixels"
        )

    try:
        with Image.open(BytesIO(data)) as im:
            source = ImageOps.exif_transpose(im).convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise InvalidCrop(f"Cannot decode source image: {exc}") from exc

    # Image.crop pads out-of-bounds areas with zeros, i.e. transparent in RGBA
    cropped = source.crop(rect.box)

    out = BytesIO()
    cropped.save(out, format="PNG")
    logger.debug(
        "Cropped %dx%d source to %dx%d at (%d, %d)",
        source.width, source.height, rect.width, rect.height, rect.x, rect.y,
    )
    return out.getvalue()
