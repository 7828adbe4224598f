#!/usr/bin/env python3
"""
Photo Refresher
Re-fetches Google photo references for imported venues and replaces their stored photos.
Processes one page per invocation; callers advance the offset until has_more is false.
"""
import logging
from typing import List, Dict, Any, Optional

from config import get_config, Config
from utils.photo_manager import PhotoRehoster
from utils.places_client import GooglePlacesClient, PlacesAPIError

logger = logging.getLogger(__name__)


def _venue_area(venue: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    area = venue.get('city')
    if isinstance(area, list):
        area = area[0] if area else None
    return area


class PhotoRefresher:
    """Photo Refresher batch job, full replace of each venue's photos"""

    def __init__(self, db, places: Optional[GooglePlacesClient] = None,
                 rehoster: Optional[PhotoRehoster] = None, config: Optional[Config] = None):
        self.config = config or get_config()
        self.db = db
        self.places = places
        self.rehoster = rehoster

    def refresh_venue(self, venue: Dict[str, Any], places: GooglePlacesClient,
                      rehoster: PhotoRehoster) -> int:
        """Replace one venue's photos, returns the number re-hosted"""
        area = _venue_area(venue)
        if not area:
            raise ValueError('no city linked')

        photo_refs = places.photo_references(venue['google_place_id'])
        if not photo_refs:
            logger.info(f"No photos found for {venue['name']}")
            return 0

        logger.info(f"Found {len(photo_refs)} photos for {venue['name']}")
        self.db.delete_venue_photos(venue['id'])

        uploaded = []
        for index, photo_ref in enumerate(photo_refs[:self.config.photos.max_photos]):
            source_url = places.photo_url(photo_ref, self.config.photos.refresh_max_width)
            url = rehoster.rehost_photo(source_url, area['slug'], venue['slug'], index)
            if url:
                uploaded.append((index, url))

        if not uploaded:
            return 0

        photo_rows = [{
            'restaurant_id': venue['id'],
            'url': url,
            'is_primary': index == 0,
            'is_approved': True,
            'caption': f"{venue['name']} - {area['name']}" if index == 0 else None,
        } for index, url in uploaded]
        self.db.insert_venue_photos(photo_rows)

        primary = next((url for index, url in uploaded if index == 0), None)
        if primary:
            self.db.update_venue(venue['id'], {'image_url': primary})

        return len(uploaded)

    def run(self, restaurant_id: Optional[str] = None, batch_size: int = 5,
            offset: int = 0) -> Dict[str, Any]:
        api_key = self.config.require_google_api_key()
        places = self.places or GooglePlacesClient(api_key, self.config.places)
        rehoster = self.rehoster or PhotoRehoster(self.db, self.config.photos)

        offset = max(0, int(offset))
        batch_size = max(1, int(batch_size))

        if restaurant_id:
            venue = self.db.get_venue_with_area(restaurant_id)
            venues = [venue] if venue and venue.get('google_place_id') else []
            total = len(venues)
        else:
            venues, total = self.db.list_venues_with_external_id(offset, batch_size)

        logger.info(f"🖼️ Refreshing photos for {len(venues)} restaurants (offset {offset} of {total})")

        processed = 0
        photos_downloaded = 0
        errors: List[str] = []

        for i, venue in enumerate(venues):
            try:
                count = self.refresh_venue(venue, places, rehoster)
                photos_downloaded += count
                processed += 1
                logger.info(f"Completed: {venue['name']} - {count} photos")
            except PlacesAPIError as e:
                errors.append(f"{venue['name']}: Google API error - {e.status}")
            except Exception as e:
                logger.error(f"Error processing {venue['name']}: {e}")
                errors.append(f"{venue['name']}: {e}")

            if i < len(venues) - 1:
                places.pause()

        if restaurant_id:
            has_more = False
        else:
            has_more = offset + batch_size < total
        return {
            'processed': processed,
            'photosDownloaded': photos_downloaded,
            'errors': errors,
            'hasMore': has_more,
            'nextOffset': offset + batch_size if has_more else None,
            'totalRestaurants': total,
        }
