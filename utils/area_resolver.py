#!/usr/bin/env python3
"""
Area resolution for import batches
Looks up areas by slug and creates missing ones, caching results for one batch
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from config import get_config, TemplateConfig
from db import DuplicateRecordError
from utils.normalization import slugify

logger = logging.getLogger(__name__)


@dataclass
class AreaRef:
    """Resolved area, enough to link venues and build storage paths"""
    id: str
    name: str
    slug: str
    region: Optional[str] = None
    created: bool = False


class AreaResolver:
    """
    ensure_area() for one batch invocation

    An existing area is returned untouched, never updated. The cache is keyed
    by lowercased area name and lives only as long as this resolver.
    """

    def __init__(self, db, templates: Optional[TemplateConfig] = None):
        self.db = db
        self.templates = templates or get_config().templates
        self._cache: Dict[str, AreaRef] = {}
        self.created: List[str] = []

    def build_area_row(self, name: str, slug: str, region: Optional[str],
                       lat: Optional[float], lng: Optional[float]) -> Dict:
        values = {
            'name': name,
            'region': region or '',
            'region_suffix': f", {region}" if region else '',
        }
        return {
            'name': name,
            'slug': slug,
            'province': region,
            'latitude': lat,
            'longitude': lng,
            'description': self.templates.area_description.format(**values),
            'meta_title': self.templates.area_meta_title.format(**values),
            'meta_description': self.templates.area_meta_description.format(**values),
        }

    def ensure_area(self, name: str, region: Optional[str] = None,
                    lat: Optional[float] = None, lng: Optional[float] = None) -> AreaRef:
        cache_key = name.lower()
        if cache_key in self._cache:
            return self._cache[cache_key]

        slug = slugify(name)
        existing = self.db.get_area_by_slug(slug)
        if existing:
            area = AreaRef(id=existing['id'], name=existing.get('name') or name, slug=slug,
                           region=existing.get('province'))
        else:
            row = self.build_area_row(name, slug, region, lat, lng)
            try:
                created = self.db.insert_area(row)
                area = AreaRef(id=created['id'], name=name, slug=slug, region=region, created=True)
                self.created.append(name)
                logger.info(f"🏙️ Created area: {name} ({region or 'no region'})")
            except DuplicateRecordError:
                # Lost a race with a concurrent import, use the winner's row
                existing = self.db.get_area_by_slug(slug)
                if not existing:
                    raise
                area = AreaRef(id=existing['id'], name=existing.get('name') or name, slug=slug,
                               region=existing.get('province'))

        self._cache[cache_key] = area
        return area
