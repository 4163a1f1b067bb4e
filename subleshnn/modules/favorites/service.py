from supabase import Client
from subleshnn.modules.favorites.schemas import FavoriteStatusResponse
from subleshnn.modules.listings.schemas import ListingSummaryResponse
from subleshnn.modules.listings.service import ListingService
from typing import List
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class FavoriteService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def is_favorite(self, user_id: str, listing_id: str) -> bool:
        try:
            result = self.supabase.table("favorites")\
                .select("id")\
                .eq("user_id", user_id)\
                .eq("listing_id", listing_id)\
                .execute()
            return bool(result.data)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def add_favorite(self, user_id: str, listing_id: str) -> FavoriteStatusResponse:
        """Favorite a listing; favoriting twice is a no-op"""
        if self.is_favorite(user_id, listing_id):
            return FavoriteStatusResponse(listing_id=listing_id, is_favorite=True)
        try:
            listing = self.supabase.table("listings")\
                .select("id")\
                .eq("id", listing_id)\
                .maybe_single()\
                .execute()
            if not listing or not listing.data:
                raise HTTPException(status_code=404, detail="Listing not found")
            self.supabase.table("favorites").insert({
                "user_id": user_id,
                "listing_id": listing_id
            }).execute()
            return FavoriteStatusResponse(listing_id=listing_id, is_favorite=True)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error adding favorite: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def remove_favorite(self, user_id: str, listing_id: str) -> FavoriteStatusResponse:
        try:
            self.supabase.table("favorites")\
                .delete()\
                .eq("user_id", user_id)\
                .eq("listing_id", listing_id)\
                .execute()
            return FavoriteStatusResponse(listing_id=listing_id, is_favorite=False)
        except Exception as e:
            logger.error(f"Error removing favorite: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def toggle_favorite(self, user_id: str, listing_id: str) -> FavoriteStatusResponse:
        if self.is_favorite(user_id, listing_id):
            return self.remove_favorite(user_id, listing_id)
        return self.add_favorite(user_id, listing_id)

    def list_favorite_listings(self, user_id: str) -> List[ListingSummaryResponse]:
        """Listings the user favorited, newest listing first"""
        try:
            result = self.supabase.table("favorites")\
                .select("listing_id")\
                .eq("user_id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching favorites: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        listing_ids = [f["listing_id"] for f in result.data or []]
        return ListingService(self.supabase).list_listings_by_ids(listing_ids)
