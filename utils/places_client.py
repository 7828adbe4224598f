#!/usr/bin/env python3
"""
Google Places API client
Thin wrapper over Nearby Search, Place Details and Place Photo requests
"""
import time
import logging
import requests
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Tuple

from config import get_config, PlacesConfig

logger = logging.getLogger(__name__)


class PlacesAPIError(Exception):
    """Places API request failed or reported a non-OK status"""

    def __init__(self, status: str, message: Optional[str] = None):
        self.status = status
        self.message = message
        super().__init__(f"Google Places API error: {status}" + (f" ({message})" if message else ""))


@dataclass
class PlaceCandidate:
    """Nearby Search result"""
    external_id: str
    name: str
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
    types: List[str] = field(default_factory=list)
    lat: Optional[float] = None
    lng: Optional[float] = None
    photo_references: List[str] = field(default_factory=list)


@dataclass
class PlaceDetails:
    """Place Details result, normalized"""
    external_id: str
    name: str
    formatted_address: Optional[str] = None
    address_components: List[Dict[str, Any]] = field(default_factory=list)
    lat: Optional[float] = None
    lng: Optional[float] = None
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
    price_level: Optional[int] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    weekday_text: Optional[List[str]] = None
    photo_references: List[str] = field(default_factory=list)
    types: List[str] = field(default_factory=list)
    reviews: List[Dict[str, Any]] = field(default_factory=list)


def _location(result: Dict[str, Any]) -> Tuple[Optional[float], Optional[float]]:
    location = (result.get('geometry') or {}).get('location') or {}
    return location.get('lat'), location.get('lng')


def _photo_references(result: Dict[str, Any]) -> List[str]:
    return [p['photo_reference'] for p in result.get('photos') or [] if p.get('photo_reference')]


class GooglePlacesClient:
    """Google Places (legacy JSON) client, checks the API status field on every call"""

    OK_STATUSES = ('OK',)
    EMPTY_STATUSES = ('ZERO_RESULTS',)

    def __init__(self, api_key: str, places_config: Optional[PlacesConfig] = None,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.config = places_config or get_config().places
        self.session = session or requests.Session()
        self.base_url = self.config.base_url
        self.requests_made = 0

    def _get_json(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/{endpoint}/json"
        params = dict(params, key=self.api_key)
        self.requests_made += 1
        try:
            response = self.session.get(url, params=params, timeout=self.config.request_timeout_s)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise PlacesAPIError('REQUEST_FAILED', str(e)) from e
        except ValueError as e:
            raise PlacesAPIError('INVALID_RESPONSE', str(e)) from e

    def _check_status(self, data: Dict[str, Any], allow_empty: bool = False) -> None:
        status = data.get('status')
        if status in self.OK_STATUSES or (allow_empty and status in self.EMPTY_STATUSES):
            return
        raise PlacesAPIError(status or 'UNKNOWN', data.get('error_message'))

    def nearby_search(self, lat: float, lng: float, radius_m: int,
                      place_type: Optional[str] = None) -> List[PlaceCandidate]:
        """Nearby Search, at most one page (20 candidates)"""
        params = {
            'location': f"{lat},{lng}",
            'radius': int(radius_m),
            'type': place_type or self.config.included_type,
        }
        data = self._get_json('nearbysearch', params)
        self._check_status(data, allow_empty=True)

        candidates = []
        for result in data.get('results') or []:
            if not result.get('place_id'):
                continue
            r_lat, r_lng = _location(result)
            candidates.append(PlaceCandidate(
                external_id=result['place_id'],
                name=result.get('name') or '',
                rating=result.get('rating'),
                user_ratings_total=result.get('user_ratings_total'),
                types=result.get('types') or [],
                lat=r_lat,
                lng=r_lng,
                photo_references=_photo_references(result),
            ))

        logger.debug(f"Nearby search at {lat},{lng} r={radius_m} returned {len(candidates)} results")
        return candidates

    def place_details(self, external_id: str, fields: Optional[List[str]] = None,
                      language: Optional[str] = None) -> PlaceDetails:
        """Place Details for one place, PlacesAPIError on any non-OK status"""
        params = {
            'place_id': external_id,
            'fields': ','.join(fields or self.config.details_fields),
        }
        language = language or self.config.language
        if language:
            params['language'] = language
        data = self._get_json('details', params)
        self._check_status(data)

        result = data.get('result') or {}
        lat, lng = _location(result)
        opening_hours = result.get('opening_hours') or {}
        return PlaceDetails(
            external_id=external_id,
            name=result.get('name') or '',
            formatted_address=result.get('formatted_address'),
            address_components=result.get('address_components') or [],
            lat=lat,
            lng=lng,
            rating=result.get('rating'),
            user_ratings_total=result.get('user_ratings_total'),
            price_level=result.get('price_level'),
            phone=result.get('formatted_phone_number') or result.get('international_phone_number'),
            website=result.get('website'),
            weekday_text=opening_hours.get('weekday_text'),
            photo_references=_photo_references(result),
            types=result.get('types') or [],
            reviews=result.get('reviews') or [],
        )

    def photo_references(self, external_id: str) -> List[str]:
        return self.place_details(external_id, fields=['photos']).photo_references

    def place_types(self, external_id: str) -> List[str]:
        return self.place_details(external_id, fields=['types']).types

    def photo_url(self, photo_reference: str, max_width: int) -> str:
        return (f"{self.base_url}/photo?maxwidth={int(max_width)}"
                f"&photo_reference={photo_reference}&key={self.api_key}")

    def pause(self) -> None:
        """Cooperative delay between detail fetches to stay under quota"""
        delay_ms = self.config.detail_delay_ms
        if delay_ms > 0:
            time.sleep(delay_ms / 1000.0)
