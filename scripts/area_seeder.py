#!/usr/bin/env python3
"""
Area Seeder
Walks a slice of the fixed seed area list: ensures each area exists, searches nearby
restaurants and imports the top-rated ones. Callers advance start_index between calls.
"""
import logging
from typing import List, Dict, Any, Optional

from config import get_config, Config, SeedArea
from utils.area_resolver import AreaResolver
from utils.photo_manager import PhotoRehoster
from utils.places_client import GooglePlacesClient, PlaceCandidate, PlacesAPIError
from scripts.venue_importer import VenueImporter, ImportCounters

logger = logging.getLogger(__name__)


class AreaSeeder:
    """Area Seeder batch job, one slice of seed areas per invocation"""

    def __init__(self, db, places: Optional[GooglePlacesClient] = None,
                 rehoster: Optional[PhotoRehoster] = None, config: Optional[Config] = None,
                 seed_areas: Optional[List[SeedArea]] = None):
        self.config = config or get_config()
        self.db = db
        self.places = places
        self.rehoster = rehoster
        self.seed_areas = seed_areas if seed_areas is not None else self.config.seed_areas

    def select_top_candidates(self, candidates: List[PlaceCandidate]) -> List[PlaceCandidate]:
        """Drop low-rated and lodging results, keep the top N by rating"""
        seeder_config = self.config.area_seeder
        excluded = set(seeder_config.excluded_types)
        kept = []
        for candidate in candidates:
            if candidate.rating is not None and candidate.rating < seeder_config.min_rating:
                continue
            if excluded & set(candidate.types):
                logger.debug(f"Skipping {candidate.name} - is a hotel/B&B")
                continue
            kept.append(candidate)
        kept.sort(key=lambda c: c.rating or 0, reverse=True)
        return kept[:seeder_config.top_n]

    def run(self, start_index: int = 0, batch_size: int = 5) -> Dict[str, Any]:
        api_key = self.config.require_google_api_key()
        places = self.places or GooglePlacesClient(api_key, self.config.places)
        rehoster = self.rehoster or PhotoRehoster(self.db, self.config.photos)

        start_index = max(0, int(start_index))
        batch_size = max(1, int(batch_size))
        total = len(self.seed_areas)
        areas = self.seed_areas[start_index:start_index + batch_size]

        if not areas:
            logger.info("All seed areas processed")
            return {
                'completed': True,
                'results': [],
                'nextIndex': None,
                'hasMore': False,
                'processed': total,
                'totalCities': total,
                'apiCallsThisBatch': 0,
            }

        resolver = AreaResolver(self.db, self.config.templates)
        importer = VenueImporter(self.db, places, rehoster, resolver, self.config, import_reviews=True)
        requests_before = places.requests_made
        results = []

        for seed in areas:
            logger.info(f"📍 Processing city: {seed.name}")
            try:
                area = resolver.ensure_area(seed.name, seed.region, seed.lat, seed.lng)
            except Exception as e:
                logger.error(f"Error creating city {seed.name}: {e}")
                results.append({'city': seed.name, 'imported': 0, 'error': str(e)})
                continue

            try:
                found = places.nearby_search(seed.lat, seed.lng, self.config.area_seeder.search_radius_m,
                                             self.config.places.included_type)
            except PlacesAPIError as e:
                logger.warning(f"No results for {seed.name}: {e.status}")
                results.append({'city': seed.name, 'imported': 0, 'error': e.status})
                continue

            top = self.select_top_candidates(found)
            counters = importer.run_batch(top, area=area, counters=ImportCounters())
            result = {
                'city': seed.name,
                'imported': len(counters.imported),
                'skipped': len(counters.skipped),
                'reviewsImported': counters.reviews_imported,
            }
            if counters.errors:
                result['errors'] = counters.errors
            results.append(result)
            logger.info(f"✅ {seed.name}: {result['imported']} imported, {result['skipped']} skipped")

        next_index = start_index + batch_size
        has_more = next_index < total
        return {
            'completed': not has_more,
            'results': results,
            'nextIndex': next_index if has_more else None,
            'hasMore': has_more,
            'processed': min(next_index, total),
            'totalCities': total,
            'apiCallsThisBatch': places.requests_made - requests_before,
        }
