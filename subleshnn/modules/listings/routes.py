from fastapi import APIRouter, Depends
from subleshnn.database.supabase_client import get_supabase, get_service_supabase
from subleshnn.modules.listings.schemas import (
    ListingCreate, ListingUpdate, ListingResponse, ListingSummaryResponse,
    ListingFilters, ListingType, ImageMoveRequest
)
from subleshnn.modules.listings.service import ListingService
from subleshnn.core.dependencies import get_current_user_id, check_listing_owner
from supabase import Client
from typing import List, Optional, Dict

router = APIRouter(prefix="/listings", tags=["listings"])


def get_listing_service(
    supabase: Client = Depends(get_supabase),
    admin_supabase: Client = Depends(get_service_supabase)
) -> ListingService:
    return ListingService(supabase, admin_supabase)


@router.get("", response_model=List[ListingSummaryResponse])
async def list_listings(
    listing_type: ListingType = "subletting",
    city: Optional[str] = None,
    property_type: Optional[str] = None,
    max_budget: Optional[int] = None,
    service: ListingService = Depends(get_listing_service)
):
    """Browse listings (sublets by default, listing_type=looking_for for requests) with optional filters"""
    filters = ListingFilters(
        listing_type=listing_type,
        city=city,
        property_type=property_type,
        max_budget=max_budget
    )
    return service.list_listings(filters)


@router.get("/cities", response_model=List[str])
async def list_cities(service: ListingService = Depends(get_listing_service)):
    """City names for the browse filter"""
    return service.list_cities()


@router.get("/mine", response_model=List[ListingSummaryResponse])
async def list_my_listings(
    user_data: Dict = Depends(get_current_user_id),
    service: ListingService = Depends(get_listing_service)
):
    """Dashboard listings of the current user"""
    return service.list_user_listings(user_data["id"])


@router.post("", response_model=ListingResponse, status_code=201)
async def create_listing(
    listing_data: ListingCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: ListingService = Depends(get_listing_service)
):
    """Create a listing with its images (data URIs from /images/variants)"""
    return service.create_listing(listing_data, user_data["id"])


@router.get("/{listing_id}", response_model=ListingResponse)
async def get_listing(
    listing_id: str,
    service: ListingService = Depends(get_listing_service)
):
    """Get listing by ID"""
    return service.get_listing_by_id(listing_id)


@router.put("/{listing_id}", response_model=ListingResponse)
async def update_listing(
    listing_id: str,
    listing_data: ListingUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: ListingService = Depends(get_listing_service),
    supabase: Client = Depends(get_supabase)
):
    """Update listing (owner only)"""
    check_listing_owner(listing_id, user_data, supabase)
    return service.update_listing(listing_id, listing_data)


@router.post("/{listing_id}/images/move", response_model=ListingResponse)
async def move_listing_image(
    listing_id: str,
    move: ImageMoveRequest,
    user_data: Dict = Depends(get_current_user_id),
    service: ListingService = Depends(get_listing_service),
    supabase: Client = Depends(get_supabase)
):
    """Move an image to a new position (owner only); position 0 is the cover"""
    check_listing_owner(listing_id, user_data, supabase)
    return service.move_listing_image(listing_id, move.from_index, move.to_index)


@router.delete("/{listing_id}", status_code=204)
async def delete_listing(
    listing_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: ListingService = Depends(get_listing_service),
    supabase: Client = Depends(get_supabase)
):
    """Delete listing with its images, favorites and conversations (owner only)"""
    check_listing_owner(listing_id, user_data, supabase)
    service.delete_listing(listing_id)
    return None
