from fastapi import APIRouter, Depends
from subleshnn.modules.geocoding.service import GeocodingService
from starlette.concurrency import run_in_threadpool
from typing import List

router = APIRouter(prefix="/geocoding", tags=["geocoding"])


def get_geocoding_service() -> GeocodingService:
    return GeocodingService()


@router.get("/suggest", response_model=List[str])
async def suggest_locations(
    q: str = "",
    service: GeocodingService = Depends(get_geocoding_service)
):
    """Up to five address suggestions for the location field (needs 3+ characters)"""
    return await run_in_threadpool(service.suggest, q)
