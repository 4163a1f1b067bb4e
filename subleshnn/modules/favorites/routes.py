from fastapi import APIRouter, Depends
from subleshnn.database.supabase_client import get_supabase
from subleshnn.modules.favorites.schemas import FavoriteStatusResponse
from subleshnn.modules.favorites.service import FavoriteService
from subleshnn.modules.listings.schemas import ListingSummaryResponse
from subleshnn.core.dependencies import get_current_user_id
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/favorites", tags=["favorites"])


def get_favorite_service(supabase: Client = Depends(get_supabase)) -> FavoriteService:
    return FavoriteService(supabase)


@router.get("", response_model=List[ListingSummaryResponse])
async def list_favorites(
    user_data: Dict = Depends(get_current_user_id),
    service: FavoriteService = Depends(get_favorite_service)
):
    """Listings favorited by the current user"""
    return service.list_favorite_listings(user_data["id"])


@router.get("/{listing_id}", response_model=FavoriteStatusResponse)
async def get_favorite_status(
    listing_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: FavoriteService = Depends(get_favorite_service)
):
    return FavoriteStatusResponse(
        listing_id=listing_id,
        is_favorite=service.is_favorite(user_data["id"], listing_id)
    )


@router.post("/{listing_id}", response_model=FavoriteStatusResponse, status_code=201)
async def add_favorite(
    listing_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: FavoriteService = Depends(get_favorite_service)
):
    return service.add_favorite(user_data["id"], listing_id)


@router.delete("/{listing_id}", response_model=FavoriteStatusResponse)
async def remove_favorite(
    listing_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: FavoriteService = Depends(get_favorite_service)
):
    return service.remove_favorite(user_data["id"], listing_id)


@router.post("/{listing_id}/toggle", response_model=FavoriteStatusResponse)
async def toggle_favorite(
    listing_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: FavoriteService = Depends(get_favorite_service)
):
    """Flip the favorite state of a listing for the current user"""
    return service.toggle_favorite(user_data["id"], listing_id)
