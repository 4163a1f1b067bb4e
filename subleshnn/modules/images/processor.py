"""
Image variant generation for listing photos.

Each uploaded picture is stored inline on its listing_images row as two
WebP data URIs: a full-size variant (longer side capped at 1200px) and a
thumbnail (longer side capped at 700px). Neither variant is ever upscaled.
"""

import base64
import logging
from dataclasses import dataclass
from io import BytesIO
from typing import List, Optional, Sequence, Tuple, TypeVar

from PIL import Image, ImageOps, UnidentifiedImageError

from subleshnn.config import settings

logger = logging.getLogger(__name__)

OUTPUT_FORMAT = "WEBP"
OUTPUT_MIME = "image/webp"

T = TypeVar("T")


class ImageValidationError(ValueError):
    """File rejected before decoding (wrong type or too large)."""


class ImageDecodeError(ValueError):
    """File passed validation but could not be decoded as an image."""


@dataclass
class ImageVariant:
    data: bytes
    width: int
    height: int
    mime_type: str = OUTPUT_MIME

    def to_data_uri(self) -> str:
        return to_data_uri(self.data, self.mime_type)


@dataclass
class ImageVariants:
    full: ImageVariant
    thumbnail: ImageVariant


def scaled_size(width: int, height: int, max_side: int) -> Tuple[int, int]:
    """Fit (width, height) inside a max_side box, keeping aspect ratio and never upscaling"""
    if width <= max_side and height <= max_side:
        return width, height
    if width > height:
        new_width = max_side
        new_height = max(1, round(height * max_side / width))
    else:
        new_height = max_side
        new_width = max(1, round(width * max_side / height))
    return new_width, new_height


def validate_upload(filename: str, content_type: Optional[str], size: int) -> None:
    if not content_type or not content_type.startswith("image/"):
        raise ImageValidationError(f"{filename} is not an image file")
    if size > settings.max_upload_bytes:
        max_mb = settings.max_upload_bytes // (1024 * 1024)
        raise ImageValidationError(f"{filename} is too large. Maximum size is {max_mb}MB.")


def to_data_uri(data: bytes, mime_type: str = OUTPUT_MIME) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def _decode(data: bytes) -> Image.Image:
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        raise ImageDecodeError(f"Could not decode image: {e}")
    # Phone cameras store rotation in EXIF; bake it into the pixels
    img = ImageOps.exif_transpose(img)
    if img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGBA" if "A" in img.getbands() else "RGB")
    return img


def _render(img: Image.Image, max_side: int, quality: int) -> ImageVariant:
    size = scaled_size(img.width, img.height, max_side)
    variant = img if size == img.size else img.resize(size, Image.Resampling.LANCZOS)
    out = BytesIO()
    variant.save(out, format=OUTPUT_FORMAT, quality=quality, method=6)
    return ImageVariant(data=out.getvalue(), width=variant.width, height=variant.height)


def create_image_versions(data: bytes) -> ImageVariants:
    """Decode raw bytes once and re-encode a full-size and a thumbnail WebP variant"""
    img = _decode(data)
    full = _render(img, settings.image_full_max_side, settings.image_full_quality)
    thumbnail = _render(img, settings.image_thumb_max_side, settings.image_thumb_quality)
    return ImageVariants(full=full, thumbnail=thumbnail)


def move_image(items: Sequence[T], from_index: int, to_index: int) -> List[T]:
    """Return a copy of items with one element moved; index 0 is the cover image"""
    if not 0 <= from_index < len(items) or not 0 <= to_index < len(items):
        raise IndexError("Image index out of range")
    reordered = list(items)
    moved = reordered.pop(from_index)
    reordered.insert(to_index, moved)
    return reordered
