#!/usr/bin/env python3
"""
Cuisine Linker
Backfills venue/cuisine links for imported venues from their current Google place types
"""
import logging
from typing import List, Dict, Any, Optional

from config import get_config, Config
from utils.cuisines import link_venue_cuisines
from utils.places_client import GooglePlacesClient, PlacesAPIError

logger = logging.getLogger(__name__)


class CuisineLinker:
    """Cuisine link backfill, one page of venues per invocation"""

    def __init__(self, db, places: Optional[GooglePlacesClient] = None, config: Optional[Config] = None):
        self.config = config or get_config()
        self.db = db
        self.places = places

    def run(self, batch_size: int = 50, offset: int = 0) -> Dict[str, Any]:
        api_key = self.config.require_google_api_key()
        places = self.places or GooglePlacesClient(api_key, self.config.places)

        offset = max(0, int(offset))
        batch_size = max(1, int(batch_size))
        venues, total = self.db.list_venues_with_external_id(offset, batch_size)

        processed = 0
        total_linked = 0
        details: List[str] = []

        for i, venue in enumerate(venues):
            try:
                place_types = places.place_types(venue['google_place_id'])
                linked = link_venue_cuisines(self.db, venue['id'], place_types, self.config.cuisine_map)
                if linked:
                    total_linked += len(linked)
                    details.append(f"{venue['name']}: {', '.join(linked)}")
                processed += 1
            except PlacesAPIError as e:
                logger.warning(f"Could not get types for {venue['name']}: {e.status}")
            except Exception as e:
                logger.error(f"Error processing restaurant {venue['name']}: {e}")

            if i < len(venues) - 1:
                places.pause()

        has_more = offset + batch_size < total
        logger.info(f"🍽️ Linked {total_linked} cuisines across {processed} restaurants")
        return {
            'processed': processed,
            'cuisinesLinked': total_linked,
            'details': details,
            'hasMore': has_more,
            'nextOffset': offset + batch_size if has_more else None,
        }
