#!/usr/bin/env python3
"""
Venue Photo Re-hosting
Downloads Google Places photos and re-uploads them to the directory's own storage bucket
"""
import logging
import requests
from typing import Optional

from config import get_config, PhotoConfig

logger = logging.getLogger(__name__)


def build_photo_path(area_slug: str, venue_slug: str, index: int, suffix: str) -> str:
    """Deterministic storage path, re-runs overwrite the same object"""
    base_name = f"{venue_slug}-{area_slug}-{suffix}" if suffix else f"{venue_slug}-{area_slug}"
    file_name = f"{base_name}.jpg" if index == 0 else f"{base_name}-{index + 1}.jpg"
    return f"{area_slug}/{venue_slug}/{file_name}"


class PhotoRehoster:
    """Single-attempt download + upload of one photo, None on any failure"""

    def __init__(self, db, photo_config: Optional[PhotoConfig] = None,
                 session: Optional[requests.Session] = None):
        self.db = db
        self.config = photo_config or get_config().photos
        self.session = session or requests.Session()

    def download_photo(self, source_url: str) -> Optional[bytes]:
        try:
            response = self.session.get(source_url, timeout=self.config.download_timeout_s)
        except requests.RequestException as e:
            logger.error(f"Error downloading photo: {e}")
            return None

        if not response.ok:
            logger.warning(f"Failed to fetch photo: HTTP {response.status_code}")
            return None

        content_type = response.headers.get('content-type', '').lower()
        if content_type and not content_type.startswith('image/'):
            logger.warning(f"Invalid content type: {content_type}")
            return None

        return response.content

    def rehost_photo(self, source_url: str, area_slug: str, venue_slug: str,
                     index: int = 0) -> Optional[str]:
        """Download source_url and store it under the venue's path, returning the public URL"""
        image_data = self.download_photo(source_url)
        if not image_data:
            return None

        path = build_photo_path(area_slug, venue_slug, index, self.config.file_suffix)
        try:
            public_url = self.db.upload_object(self.config.bucket, path, image_data)
        except Exception as e:
            logger.error(f"Upload error for {path}: {e}")
            return None

        logger.debug(f"Re-hosted photo {index + 1} for {venue_slug}: {path}")
        return public_url
