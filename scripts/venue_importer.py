#!/usr/bin/env python3
"""
Venue Importer
Imports one Google Places candidate into the directory: dedupe by place id, fetch details,
resolve the area, re-host the primary photo, insert the venue, link cuisines
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional, Iterable

from config import get_config, Config, ConfigurationError
from db import DatabaseError, DuplicateRecordError
from utils.area_resolver import AreaRef, AreaResolver
from utils.cuisines import link_venue_cuisines
from utils.normalization import (
    slugify, resolve_unique_slug, map_price_level, parse_opening_hours,
    extract_area_info, extract_postal_code,
)
from utils.photo_manager import PhotoRehoster
from utils.places_client import GooglePlacesClient, PlaceCandidate, PlaceDetails, PlacesAPIError

logger = logging.getLogger(__name__)

IMPORTED = 'imported'
SKIPPED = 'skipped'
FAILED = 'failed'

ALREADY_IMPORTED = 'already imported'


@dataclass
class ImportOutcome:
    """Result of importing a single candidate"""
    status: str
    name: str
    reason: Optional[str] = None
    venue_id: Optional[str] = None
    slug: Optional[str] = None
    area: Optional[AreaRef] = None
    reviews_imported: int = 0

    def describe(self) -> str:
        return f"{self.name}: {self.reason}" if self.reason else self.name


@dataclass
class ImportCounters:
    """Per-batch tallies, returned to the caller at batch end"""
    imported: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    cities_created: List[str] = field(default_factory=list)
    reviews_imported: int = 0

    def record(self, outcome: ImportOutcome) -> None:
        if outcome.status == IMPORTED:
            self.imported.append(outcome.name)
        elif outcome.status == SKIPPED:
            self.skipped.append(outcome.name)
        else:
            self.errors.append(outcome.describe())
        self.reviews_imported += outcome.reviews_imported

    def to_dict(self) -> Dict[str, Any]:
        return {
            'imported': len(self.imported),
            'skipped': len(self.skipped),
            'errors': len(self.errors),
            'citiesCreated': len(self.cities_created),
            'details': {
                'imported': list(self.imported),
                'skipped': list(self.skipped),
                'errors': list(self.errors),
                'citiesCreated': list(self.cities_created),
            },
        }


class VenueImporter:
    """importVenue(candidate, area) -> Imported | Skipped | Failed, never raises per candidate"""

    def __init__(self, db, places: GooglePlacesClient, rehoster: PhotoRehoster,
                 area_resolver: AreaResolver, config: Optional[Config] = None,
                 import_reviews: bool = False):
        self.db = db
        self.places = places
        self.rehoster = rehoster
        self.area_resolver = area_resolver
        self.config = config or get_config()
        self.import_reviews = import_reviews

    def _details_fields(self) -> List[str]:
        fields = list(self.config.places.details_fields)
        if self.import_reviews and 'reviews' not in fields:
            fields.append('reviews')
        return fields

    def build_venue_row(self, details: PlaceDetails, candidate: PlaceCandidate, area: AreaRef,
                        slug: str, image_url: Optional[str]) -> Dict[str, Any]:
        hours_config = self.config.opening_hours
        templates = self.config.templates
        name = details.name or candidate.name
        price_range = map_price_level(details.price_level)
        rating = details.rating if details.rating is not None else candidate.rating

        values = {
            'name': name,
            'area': area.name,
            'region_suffix': f", {area.region}" if area.region else '',
            'rating': rating if rating is not None else 'N/A',
            'price_suffix': f" · {price_range}" if price_range else '',
        }

        return {
            'google_place_id': candidate.external_id,
            'name': name,
            'slug': slug,
            'address': details.formatted_address or '',
            'postal_code': extract_postal_code(details.address_components, details.formatted_address),
            'city_id': area.id,
            'latitude': details.lat if details.lat is not None else candidate.lat,
            'longitude': details.lng if details.lng is not None else candidate.lng,
            'phone': details.phone or None,
            'website': details.website or None,
            'price_range': price_range,
            'rating': rating,
            'review_count': details.user_ratings_total or candidate.user_ratings_total or 0,
            'image_url': image_url,
            'opening_hours': parse_opening_hours(details.weekday_text, hours_config.day_names,
                                                 hours_config.closed_keywords),
            'is_verified': False,
            'is_claimed': False,
            'features': [],
            'description': templates.venue_description.format(**values),
            'meta_title': templates.venue_meta_title.format(**values),
            'meta_description': templates.venue_meta_description.format(**values),
        }

    def _resolve_area(self, details: PlaceDetails) -> Optional[AreaRef]:
        info = extract_area_info(details.address_components, details.lat, details.lng)
        if info is None:
            return None
        return self.area_resolver.ensure_area(info.name, info.region, info.lat, info.lng)

    def _import_reviews(self, venue_id: str, details: PlaceDetails) -> int:
        imported = 0
        for review in details.reviews[:self.config.area_seeder.max_reviews]:
            text = (review.get('text') or '').strip()
            if not text:
                continue
            created_at = (datetime.fromtimestamp(review['time'], tz=timezone.utc)
                          if review.get('time') else datetime.now(timezone.utc))
            try:
                self.db.insert_review({
                    'restaurant_id': venue_id,
                    'rating': review.get('rating') or 5,
                    'content': review.get('text'),
                    'guest_name': review.get('author_name') or 'Google Reviewer',
                    'is_approved': True,
                    'is_verified': True,
                    'created_at': created_at.isoformat(),
                })
                imported += 1
            except DatabaseError as e:
                logger.error(f"Error inserting review for {details.name}: {e}")
        return imported

    def import_venue(self, candidate: PlaceCandidate, area: Optional[AreaRef] = None) -> ImportOutcome:
        """Import one candidate; area is derived from the address when not given"""
        try:
            return self._import_venue(candidate, area)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Error processing {candidate.name}: {e}")
            return ImportOutcome(FAILED, candidate.name, reason=str(e))

    def _import_venue(self, candidate: PlaceCandidate, area: Optional[AreaRef]) -> ImportOutcome:
        # 1. Dedupe on external id
        if self.db.venue_exists_by_external_id(candidate.external_id):
            logger.debug(f"Restaurant {candidate.name} already exists, skipping")
            return ImportOutcome(SKIPPED, candidate.name, reason=ALREADY_IMPORTED)

        # 2. Details
        try:
            details = self.places.place_details(candidate.external_id, fields=self._details_fields())
        except PlacesAPIError as e:
            logger.warning(f"Could not get details for {candidate.name}: {e.status}")
            return ImportOutcome(FAILED, candidate.name, reason=f"Failed to get details ({e.status})")
        name = details.name or candidate.name

        # 3-4. Area
        if area is None:
            area = self._resolve_area(details)
            if area is None:
                return ImportOutcome(FAILED, name, reason='could not determine city')

        # 5. Slug
        base_slug = slugify(name) or slugify(candidate.external_id)
        slug = resolve_unique_slug(base_slug, self.db.venue_slug_exists)

        lat = details.lat if details.lat is not None else candidate.lat
        lng = details.lng if details.lng is not None else candidate.lng
        if lat is None or lng is None:
            return ImportOutcome(FAILED, name, reason='missing coordinates')

        # 6. Primary photo
        image_url = None
        if details.photo_references:
            source_url = self.places.photo_url(details.photo_references[0], self.config.photos.primary_max_width)
            image_url = self.rehoster.rehost_photo(source_url, area.slug, slug, 0)
            if image_url is None:
                logger.warning(f"Photo re-host failed for {name}, importing without image")

        # 7-8. Normalize and persist
        row = self.build_venue_row(details, candidate, area, slug, image_url)
        try:
            venue = self.db.insert_venue(row)
        except DuplicateRecordError as e:
            logger.info(f"Restaurant {name} was created concurrently, skipping: {e}")
            return ImportOutcome(SKIPPED, name, reason='already exists')
        except DatabaseError as e:
            logger.error(f"Error inserting {name}: {e}")
            return ImportOutcome(FAILED, name, reason=str(e))
        venue_id = venue['id']

        # 9. Primary photo row
        if image_url:
            try:
                self.db.insert_venue_photos([{
                    'restaurant_id': venue_id,
                    'url': image_url,
                    'is_primary': True,
                    'is_approved': True,
                    'caption': f"{name} - {area.name}",
                }])
            except DatabaseError as e:
                logger.error(f"Error inserting primary photo for {name}: {e}")

        # 10. Cuisines, best effort
        try:
            linked = link_venue_cuisines(self.db, venue_id, details.types, self.config.cuisine_map)
            if linked:
                logger.debug(f"  → cuisines for {name}: {', '.join(linked)}")
        except DatabaseError as e:
            logger.warning(f"Cuisine linking failed for {name}: {e}")

        outcome = ImportOutcome(IMPORTED, name, venue_id=venue_id, slug=slug, area=area)
        if self.import_reviews and details.reviews:
            outcome.reviews_imported = self._import_reviews(venue_id, details)
            logger.debug(f"  → {outcome.reviews_imported} reviews imported for {name}")

        logger.info(f"✅ Imported: {name} in {area.name}")
        return outcome

    def run_batch(self, candidates: Iterable[PlaceCandidate], area: Optional[AreaRef] = None,
                  counters: Optional[ImportCounters] = None) -> ImportCounters:
        """Import candidates one at a time, in order, pausing between detail fetches"""
        counters = counters or ImportCounters()
        candidates = list(candidates)
        for i, candidate in enumerate(candidates):
            outcome = self.import_venue(candidate, area)
            counters.record(outcome)

            fetched_details = not (outcome.status == SKIPPED and outcome.reason == ALREADY_IMPORTED)
            if fetched_details and i < len(candidates) - 1:
                self.places.pause()

        for area_name in self.area_resolver.created:
            if area_name not in counters.cities_created:
                counters.cities_created.append(area_name)
        return counters
