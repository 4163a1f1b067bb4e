from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase (database + auth)
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for cascade deletes across other users' rows

    # Email (Resend)
    resend_api_key: Optional[str] = None
    resend_api_url: str = "https://api.resend.com/emails"
    from_email: str = "Subleshnn <onboarding@resend.dev>"
    base_url: str = "http://localhost:3000"  # Frontend origin used in invite links

    # Admin allow-list (comma separated emails)
    admin_emails: str = ""

    # Geocoding (Nominatim)
    geocoding_url: str = "https://nominatim.openstreetmap.org/search"
    geocoding_user_agent: str = "subleshnn-backend/1.0"
    geocoding_min_query_length: int = 3
    geocoding_max_results: int = 5
    http_timeout_sec: int = 10

    # Listings
    listings_cache_ttl_sec: int = 300  # Browse views stay fresh for five minutes
    description_max_length: int = 280
    dashboard_listing_limit: int = 20

    # Images
    max_upload_bytes: int = 5 * 1024 * 1024
    max_images_per_listing: int = 10
    image_full_max_side: int = 1200
    image_thumb_max_side: int = 700
    image_full_quality: int = 90
    image_thumb_quality: int = 80

    # App
    app_name: str = "subleshnn-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def email_configured(self) -> bool:
        return bool(self.resend_api_key)

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_admin_emails_list(self) -> List[str]:
        return [e.strip().lower() for e in self.admin_emails.split(",") if e.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
