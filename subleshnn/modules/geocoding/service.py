"""
Address autocomplete backed by the public Nominatim search API.
"""

import logging
from typing import List

import requests

from subleshnn.config import settings

logger = logging.getLogger(__name__)


class GeocodingService:
    def __init__(self, session: requests.Session = None):
        # Module-level requests.get unless a session is supplied
        self.session = session or requests

    def suggest(self, query: str) -> List[str]:
        """Display names for a free-text location; short queries never hit the API"""
        query = (query or "").strip()
        if len(query) < settings.geocoding_min_query_length:
            return []
        params = {
            "format": "json",
            "addressdetails": 1,
            "limit": settings.geocoding_max_results,
            "q": query,
        }
        try:
            response = self.session.get(
                settings.geocoding_url,
                params=params,
                headers={"User-Agent": settings.geocoding_user_agent},
                timeout=settings.http_timeout_sec,
            )
            response.raise_for_status()
            results = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Error fetching location suggestions: %s", e)
            return []
        names = [item["display_name"] for item in results if isinstance(item, dict) and item.get("display_name")]
        return names[:settings.geocoding_max_results]
