#!/usr/bin/env python3
"""
Cuisine linking
Static Google place type -> cuisine slug lookup and idempotent venue/cuisine links
"""
import logging
from typing import Iterable, List, Mapping

from db import DuplicateRecordError

logger = logging.getLogger(__name__)


def map_types_to_cuisines(place_types: Iterable[str], cuisine_map: Mapping[str, str]) -> List[str]:
    """Cuisine slugs for the given place types, first-seen order, no duplicates"""
    slugs = []
    for place_type in place_types or []:
        slug = cuisine_map.get(place_type)
        if slug and slug not in slugs:
            slugs.append(slug)
    return slugs


def link_venue_cuisines(db, venue_id: str, place_types: Iterable[str],
                        cuisine_map: Mapping[str, str]) -> List[str]:
    """
    Link a venue to the cuisines its place types map to

    Pairs that already exist are skipped. Returns the cuisine slugs newly linked.
    """
    slugs = map_types_to_cuisines(place_types, cuisine_map)
    if not slugs:
        return []

    cuisine_ids = db.get_cuisine_ids(slugs)
    linked = []
    for slug in slugs:
        cuisine_id = cuisine_ids.get(slug)
        if not cuisine_id:
            logger.debug(f"Cuisine '{slug}' not in taxonomy, skipping")
            continue
        if db.cuisine_link_exists(venue_id, cuisine_id):
            continue
        try:
            db.insert_cuisine_link(venue_id, cuisine_id)
        except DuplicateRecordError:
            # linked concurrently
            continue
        linked.append(slug)
    return linked
