from pydantic import BaseModel


class FavoriteStatusResponse(BaseModel):
    listing_id: str
    is_favorite: bool
