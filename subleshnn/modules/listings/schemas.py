from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Literal
from datetime import date, datetime
from subleshnn.config import settings

ListingType = Literal["subletting", "looking_for"]
PropertyType = Literal["room", "studio", "apartment"]


class ListingImageInput(BaseModel):
    image_url: str
    thumbnail_url: Optional[str] = None
    caption: Optional[str] = None

    @field_validator("image_url")
    @classmethod
    def require_data_uri(cls, value: str) -> str:
        if not value.startswith("data:image/"):
            raise ValueError("image_url must be an image data URI")
        return value


class ListingBase(BaseModel):
    listing_type: ListingType = "subletting"
    property_type: Optional[PropertyType] = None
    description: Optional[str] = Field(default=None, max_length=settings.description_max_length)
    price: str  # whole currency units as typed, e.g. "1200.50"
    location: str = Field(min_length=1)
    contact_email: EmailStr
    available_from: Optional[date] = None
    available_to: Optional[date] = None
    dog_friendly: bool = False
    cat_friendly: bool = False

    @field_validator("price", mode="before")
    @classmethod
    def price_as_text(cls, value):
        return str(value) if value is not None else value

    @field_validator("location")
    @classmethod
    def strip_location(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Location is required")
        return value

    @model_validator(mode="after")
    def check_window(self):
        if self.available_from and self.available_to and self.available_to < self.available_from:
            raise ValueError("available_to must not be before available_from")
        return self


class ListingCreate(ListingBase):
    images: List[ListingImageInput] = []


class ListingUpdate(ListingBase):
    images: Optional[List[ListingImageInput]] = None  # None keeps the current images


class ImageMoveRequest(BaseModel):
    from_index: int = Field(ge=0)
    to_index: int = Field(ge=0)


class ListingImageResponse(BaseModel):
    id: str
    listing_id: str
    image_url: str
    thumbnail_url: Optional[str] = None
    caption: Optional[str] = None
    is_primary: bool = False
    position: Optional[int] = 0

    class Config:
        from_attributes = True


class ListingResponse(BaseModel):
    id: str
    user_id: str
    title: str
    listing_type: Optional[str] = "subletting"
    property_type: Optional[str] = None
    description: Optional[str] = None
    price: int
    display_price: str
    location: str
    contact_email: str
    available_from: Optional[date] = None
    available_to: Optional[date] = None
    date_range: Optional[str] = None
    dog_friendly: bool = False
    cat_friendly: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None
    images: List[ListingImageResponse] = []

    class Config:
        from_attributes = True


class ListingSummaryResponse(BaseModel):
    """Card shown on browse, dashboard and favorites pages"""
    id: str
    user_id: str
    title: str
    listing_type: Optional[str] = "subletting"
    property_type: Optional[str] = None
    price: int
    display_price: str
    location: str
    available_from: Optional[date] = None
    available_to: Optional[date] = None
    date_range: Optional[str] = None
    dog_friendly: bool = False
    cat_friendly: bool = False
    created_at: datetime
    thumbnail_url: Optional[str] = None

    class Config:
        from_attributes = True


class ListingFilters(BaseModel):
    listing_type: ListingType = "subletting"
    city: Optional[str] = None
    property_type: Optional[str] = None
    max_budget: Optional[int] = None  # whole currency units; 0/None disables the filter
