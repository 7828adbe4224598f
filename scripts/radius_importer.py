#!/usr/bin/env python3
"""
Radius Importer
Imports restaurants around an arbitrary coordinate. The area of each venue is derived
from its address, new areas are created on demand.
"""
import logging
from typing import Dict, Any, Optional

from config import get_config, Config
from utils.area_resolver import AreaResolver
from utils.photo_manager import PhotoRehoster
from utils.places_client import GooglePlacesClient
from scripts.venue_importer import VenueImporter

logger = logging.getLogger(__name__)


class RadiusImporter:
    """Radius Importer batch job, one nearby search per invocation"""

    def __init__(self, db, places: Optional[GooglePlacesClient] = None,
                 rehoster: Optional[PhotoRehoster] = None, config: Optional[Config] = None):
        self.config = config or get_config()
        self.db = db
        self.places = places
        self.rehoster = rehoster

    def run(self, latitude: float, longitude: float, radius: Optional[int] = None) -> Dict[str, Any]:
        """
        Search once and import every candidate not already present

        Raises ConfigurationError without an API key and PlacesAPIError when the
        search itself fails; per-candidate failures end up in the result.
        """
        api_key = self.config.require_google_api_key()
        places = self.places or GooglePlacesClient(api_key, self.config.places)
        rehoster = self.rehoster or PhotoRehoster(self.db, self.config.photos)
        radius = int(radius or self.config.places.default_radius_m)

        logger.info(f"🔍 Searching for restaurants near {latitude}, {longitude} within {radius}m")
        candidates = places.nearby_search(latitude, longitude, radius, self.config.places.included_type)
        logger.info(f"Found {len(candidates)} restaurants")

        resolver = AreaResolver(self.db, self.config.templates)
        importer = VenueImporter(self.db, places, rehoster, resolver, self.config)
        counters = importer.run_batch(candidates)

        logger.info(f"🎯 Radius import complete: {len(counters.imported)} imported, "
                    f"{len(counters.skipped)} skipped, {len(counters.errors)} errors, "
                    f"{len(counters.cities_created)} cities created")
        return counters.to_dict()
