import logging
from dataclasses import dataclass
from typing import List, Optional

from fastapi import HTTPException

from subleshnn.config import settings
from subleshnn.modules.images.processor import (
    ImageDecodeError, ImageValidationError, create_image_versions, validate_upload
)
from subleshnn.modules.images.schemas import ImageBatchResponse, ProcessedImage, SkippedFile

logger = logging.getLogger(__name__)


@dataclass
class UploadedFile:
    filename: str
    content_type: Optional[str]
    data: bytes


def check_image_limit(existing_count: int, incoming_count: int) -> None:
    """Reject the whole batch up front if it would exceed the per-listing image cap"""
    max_images = settings.max_images_per_listing
    if existing_count + incoming_count > max_images:
        raise HTTPException(
            status_code=400,
            detail=f"You can only upload a maximum of {max_images} images. You currently have {existing_count} images."
        )


def process_upload(upload: UploadedFile) -> ProcessedImage:
    """Validate one file and build its full/thumbnail data URIs. Raises ImageValidationError or ImageDecodeError."""
    validate_upload(upload.filename, upload.content_type, len(upload.data))
    variants = create_image_versions(upload.data)
    logger.debug(
        "Converted %s: %d -> %d bytes (thumbnail %d bytes)",
        upload.filename, len(upload.data), len(variants.full.data), len(variants.thumbnail.data)
    )
    return ProcessedImage(
        filename=upload.filename,
        image_url=variants.full.to_data_uri(),
        thumbnail_url=variants.thumbnail.to_data_uri(),
        width=variants.full.width,
        height=variants.full.height,
        thumbnail_width=variants.thumbnail.width,
        thumbnail_height=variants.thumbnail.height,
        original_size=len(upload.data),
        full_size=len(variants.full.data),
        thumbnail_size=len(variants.thumbnail.data),
    )


def process_batch(uploads: List[UploadedFile], existing_count: int = 0) -> ImageBatchResponse:
    """Process files independently, in order. Bad files are skipped with a reason; the rest still go through."""
    check_image_limit(existing_count, len(uploads))
    images: List[ProcessedImage] = []
    skipped: List[SkippedFile] = []
    for upload in uploads:
        try:
            images.append(process_upload(upload))
        except ImageValidationError as e:
            skipped.append(SkippedFile(filename=upload.filename, reason=str(e)))
        except ImageDecodeError as e:
            logger.warning("Skipping undecodable image %s: %s", upload.filename, e)
            skipped.append(SkippedFile(filename=upload.filename, reason=f"{upload.filename} could not be read as an image"))
    return ImageBatchResponse(images=images, skipped=skipped)
