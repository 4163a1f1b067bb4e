from fastapi import APIRouter, Depends, File, Form, UploadFile
from subleshnn.config import settings
from subleshnn.core.dependencies import get_current_user_id
from subleshnn.modules.images.schemas import ImageBatchResponse
from subleshnn.modules.images.service import UploadedFile, check_image_limit, process_batch
from starlette.concurrency import run_in_threadpool
from typing import Dict, List

router = APIRouter(prefix="/images", tags=["images"])


@router.post("/variants", response_model=ImageBatchResponse)
async def create_variants(
    files: List[UploadFile] = File(...),
    existing_count: int = Form(0),
    user_data: Dict = Depends(get_current_user_id),
):
    """
    Convert uploaded pictures into full-size and thumbnail WebP data URIs.
    Non-image, oversized and unreadable files are reported under "skipped";
    the resulting images are returned in upload order for use in a listing.
    """
    check_image_limit(existing_count, len(files))
    uploads = []
    for file in files:
        # One byte past the limit is enough for validate_upload to reject it
        uploads.append(UploadedFile(
            filename=file.filename or "upload",
            content_type=file.content_type,
            data=await file.read(settings.max_upload_bytes + 1),
        ))
    return await run_in_threadpool(process_batch, uploads, existing_count)
