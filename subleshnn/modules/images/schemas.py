from pydantic import BaseModel
from typing import Optional, List


class ProcessedImage(BaseModel):
    filename: str
    image_url: str  # data URI, full-size variant
    thumbnail_url: str  # data URI, thumbnail variant
    width: int
    height: int
    thumbnail_width: int
    thumbnail_height: int
    original_size: int
    full_size: int
    thumbnail_size: int
    caption: Optional[str] = None


class SkippedFile(BaseModel):
    filename: str
    reason: str


class ImageBatchResponse(BaseModel):
    images: List[ProcessedImage]
    skipped: List[SkippedFile]
