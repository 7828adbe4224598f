"""
Shared fixtures: typed config from config.json, an in-memory directory database
with the store's unique constraints, and a scripted Places client
"""
import json
import uuid
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import Mock

import pytest

from config import DEFAULT_CONFIG_PATH, SeedArea, build_config
from db import DuplicateRecordError
from utils.photo_manager import PhotoRehoster
from utils.places_client import PlaceCandidate, PlaceDetails, PlacesAPIError

STORAGE_BASE = "https://storage.test"


class FakeDirectoryDatabase:
    """DirectoryDatabase stand-in; slug and external id are unique like the real tables"""

    def __init__(self, cuisines: Optional[Dict[str, str]] = None):
        self.areas: Dict[str, Dict[str, Any]] = {}
        self.venues: List[Dict[str, Any]] = []
        self.photos: List[Dict[str, Any]] = []
        self.cuisines: Dict[str, str] = dict(cuisines or {})
        self.cuisine_links: set = set()
        self.reviews: List[Dict[str, Any]] = []
        self.objects: Dict[str, bytes] = {}
        self.tokens: Dict[str, str] = {}
        self.roles: Dict[str, set] = {}

    # Areas

    def get_area_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        return self.areas.get(slug)

    def insert_area(self, area_data: Dict[str, Any]) -> Dict[str, Any]:
        if area_data['slug'] in self.areas:
            raise DuplicateRecordError(f"insert area {area_data['slug']}: duplicate key")
        row = dict(area_data, id=str(uuid.uuid4()))
        self.areas[row['slug']] = row
        return row

    # Venues

    def venue_exists_by_external_id(self, external_id: str) -> bool:
        return any(v.get('google_place_id') == external_id for v in self.venues)

    def venue_slug_exists(self, slug: str) -> bool:
        return any(v['slug'] == slug for v in self.venues)

    def insert_venue(self, venue_data: Dict[str, Any]) -> Dict[str, Any]:
        if self.venue_slug_exists(venue_data['slug']) or (
                venue_data.get('google_place_id')
                and self.venue_exists_by_external_id(venue_data['google_place_id'])):
            raise DuplicateRecordError(f"insert venue {venue_data['name']}: duplicate key")
        row = dict(venue_data, id=str(uuid.uuid4()))
        self.venues.append(row)
        return row

    def update_venue(self, venue_id: str, fields: Dict[str, Any]) -> None:
        self.venue_by_id(venue_id).update(fields)

    def venue_by_id(self, venue_id: str) -> Dict[str, Any]:
        return next(v for v in self.venues if v['id'] == venue_id)

    def _with_area(self, venue: Dict[str, Any]) -> Dict[str, Any]:
        area = next((a for a in self.areas.values() if a['id'] == venue.get('city_id')), None)
        return {
            'id': venue['id'],
            'name': venue['name'],
            'slug': venue['slug'],
            'google_place_id': venue.get('google_place_id'),
            'city': {'name': area['name'], 'slug': area['slug']} if area else None,
        }

    def get_venue_with_area(self, venue_id: str) -> Optional[Dict[str, Any]]:
        venue = next((v for v in self.venues if v['id'] == venue_id), None)
        return self._with_area(venue) if venue else None

    def list_venues_with_external_id(self, offset: int, limit: int) -> Tuple[List[Dict[str, Any]], int]:
        rows = sorted((v for v in self.venues if v.get('google_place_id')), key=lambda v: v['name'])
        return [self._with_area(v) for v in rows[offset:offset + limit]], len(rows)

    # Photos and storage

    def insert_venue_photos(self, photo_rows: List[Dict[str, Any]]) -> None:
        for row in photo_rows:
            self.photos.append(dict(row, id=str(uuid.uuid4())))

    def delete_venue_photos(self, venue_id: str) -> None:
        self.photos = [p for p in self.photos if p['restaurant_id'] != venue_id]

    def photos_for(self, venue_id: str) -> List[Dict[str, Any]]:
        return [p for p in self.photos if p['restaurant_id'] == venue_id]

    def upload_object(self, bucket: str, path: str, content: bytes,
                      content_type: str = 'image/jpeg') -> str:
        self.objects[f"{bucket}/{path}"] = content
        return f"{STORAGE_BASE}/{bucket}/{path}"

    # Cuisines and reviews

    def get_cuisine_ids(self, slugs: List[str]) -> Dict[str, str]:
        return {slug: self.cuisines[slug] for slug in slugs if slug in self.cuisines}

    def cuisine_link_exists(self, venue_id: str, cuisine_id: str) -> bool:
        return (venue_id, cuisine_id) in self.cuisine_links

    def insert_cuisine_link(self, venue_id: str, cuisine_id: str) -> None:
        if (venue_id, cuisine_id) in self.cuisine_links:
            raise DuplicateRecordError("cuisine link exists")
        self.cuisine_links.add((venue_id, cuisine_id))

    def insert_review(self, review_data: Dict[str, Any]) -> None:
        self.reviews.append(dict(review_data))

    # Authorization

    def get_user_id_for_token(self, access_token: str) -> Optional[str]:
        return self.tokens.get(access_token)

    def user_has_role(self, user_id: str, role: str) -> bool:
        return role in self.roles.get(user_id, set())


def address_components(locality: Optional[str] = 'Amsterdam', region: Optional[str] = 'Noord-Holland',
                       postal_code: Optional[str] = None) -> List[Dict[str, Any]]:
    components = []
    if postal_code:
        components.append({'long_name': postal_code, 'types': ['postal_code']})
    if locality:
        components.append({'long_name': locality, 'types': ['locality', 'political']})
    if region:
        components.append({'long_name': region, 'types': ['administrative_area_level_1', 'political']})
    return components


def make_details(external_id: str, name: str, locality: Optional[str] = 'Amsterdam',
                 region: Optional[str] = 'Noord-Holland', **overrides) -> PlaceDetails:
    values = dict(
        external_id=external_id,
        name=name,
        formatted_address=f"Damstraat 1, 1012 JM {locality or ''}",
        address_components=address_components(locality, region),
        lat=52.37,
        lng=4.89,
        rating=4.4,
        user_ratings_total=120,
        price_level=2,
        weekday_text=['Monday: 09:00–17:00', 'Tuesday: Closed'],
        photo_references=[f"{external_id}-photo-0"],
        types=['italian_restaurant', 'restaurant', 'food'],
    )
    values.update(overrides)
    return PlaceDetails(**values)


def make_candidate(external_id: str, name: str, rating: Optional[float] = 4.4,
                   types: Optional[List[str]] = None) -> PlaceCandidate:
    return PlaceCandidate(external_id=external_id, name=name, rating=rating,
                          types=types or ['restaurant'], lat=52.37, lng=4.89)


class FakePlacesClient:
    """Scripted GooglePlacesClient; every lookup counts as one API request"""

    def __init__(self):
        self.details: Dict[str, PlaceDetails] = {}
        self.nearby: List[PlaceCandidate] = []
        self.nearby_by_location: Dict[Tuple[float, float], List[PlaceCandidate]] = {}
        self.failing: Dict[str, str] = {}
        self.search_status: Optional[str] = None
        self.requests_made = 0
        self.pause = Mock()

    def add(self, details: PlaceDetails) -> PlaceDetails:
        self.details[details.external_id] = details
        return details

    def nearby_search(self, lat, lng, radius_m, place_type=None) -> List[PlaceCandidate]:
        self.requests_made += 1
        if self.search_status:
            raise PlacesAPIError(self.search_status)
        return list(self.nearby_by_location.get((lat, lng), self.nearby))

    def place_details(self, external_id, fields=None, language=None) -> PlaceDetails:
        self.requests_made += 1
        if external_id in self.failing:
            raise PlacesAPIError(self.failing[external_id])
        return self.details[external_id]

    def photo_references(self, external_id) -> List[str]:
        return self.place_details(external_id).photo_references

    def place_types(self, external_id) -> List[str]:
        return self.place_details(external_id).types

    def photo_url(self, photo_reference, max_width) -> str:
        return f"https://photos.test/{photo_reference}?maxwidth={max_width}"


def image_session(failing_urls=()) -> Mock:
    """requests.Session double that serves a JPEG for every URL not in failing_urls"""
    def get(url, timeout=None):
        if url in failing_urls:
            return Mock(ok=False, status_code=404, headers={}, content=b'')
        return Mock(ok=True, status_code=200, headers={'content-type': 'image/jpeg'},
                    content=b'\xff\xd8jpeg')

    session = Mock()
    session.get.side_effect = get
    return session


@pytest.fixture
def config():
    with open(DEFAULT_CONFIG_PATH, 'r', encoding='utf-8') as f:
        cfg = build_config(json.load(f))
    cfg.google_places_api_key = 'test-key'
    cfg.places.detail_delay_ms = 0
    cfg.seed_areas = [
        SeedArea(name='Amsterdam', lat=52.37, lng=4.89, region='Noord-Holland'),
        SeedArea(name='Utrecht', lat=52.09, lng=5.12, region='Utrecht'),
        SeedArea(name='Den Haag', lat=52.07, lng=4.30, region='Zuid-Holland'),
    ]
    return cfg


@pytest.fixture
def db():
    return FakeDirectoryDatabase(cuisines={'italiaans': 'cuisine-it', 'japans': 'cuisine-jp'})


@pytest.fixture
def places():
    return FakePlacesClient()


@pytest.fixture
def rehoster(db, config):
    return PhotoRehoster(db, config.photos, session=image_session())
