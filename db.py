#!/usr/bin/env python3
"""
Directory Database Module
Supabase operations for the restaurant import pipeline: areas, venues, photos,
cuisine links, reviews, admin roles and photo storage
"""
import logging
from typing import List, Dict, Any, Optional, Tuple
from datetime import datetime, timezone
from supabase import create_client, Client
from postgrest.exceptions import APIError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from config import get_config

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = '23505'


class DatabaseError(Exception):
    """Base database error"""
    pass


class QueryError(DatabaseError):
    """Query execution failed"""
    pass


class RetryableError(DatabaseError):
    """Temporary error that can be retried"""
    pass


class DuplicateRecordError(DatabaseError):
    """Unique constraint rejected the write, the record already exists"""
    pass


def _classify_error(e: Exception, action: str) -> DatabaseError:
    """Map a client exception onto the database error taxonomy"""
    if isinstance(e, APIError) and e.code == UNIQUE_VIOLATION:
        return DuplicateRecordError(f"{action}: {e.message}")

    error_str = str(e).lower()
    if 'connection' in error_str or 'network' in error_str or 'timeout' in error_str:
        return RetryableError(f"{action}: database connection issue: {e}")
    if 'rate limit' in error_str or '429' in error_str:
        return RetryableError(f"{action}: database rate limit: {e}")
    return QueryError(f"{action}: {e}")


read_retry = retry(
    retry=retry_if_exception_type(RetryableError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=8),
    reraise=True
)


class DirectoryDatabase:
    """Supabase manager for the restaurant directory tables"""

    AREAS = 'cities'
    VENUES = 'restaurants'
    PHOTOS = 'restaurant_photos'
    CUISINES = 'cuisine_types'
    CUISINE_LINKS = 'restaurant_cuisines'
    REVIEWS = 'reviews'
    ROLES = 'user_roles'

    def __init__(self, client: Optional[Client] = None):
        if client is None:
            config = get_config()
            config.require_supabase()
            client = create_client(config.supabase_url, config.supabase_key)
        self.client: Client = client

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except Exception as e:
            raise _classify_error(e, action) from e

    @staticmethod
    def _first(result) -> Optional[Dict[str, Any]]:
        return result.data[0] if result and result.data else None

    # =============================================================================
    # AREA OPERATIONS
    # =============================================================================

    @read_retry
    def get_area_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        result = self._execute(
            self.client.table(self.AREAS).select('id,name,slug,province').eq('slug', slug).limit(1),
            f"get area {slug}"
        )
        return self._first(result)

    def insert_area(self, area_data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert an area row and return it, DuplicateRecordError if the slug is taken"""
        result = self._execute(
            self.client.table(self.AREAS).insert(area_data),
            f"insert area {area_data.get('slug')}"
        )
        row = self._first(result)
        if not row:
            raise QueryError(f"insert area {area_data.get('slug')}: no row returned")
        logger.debug(f"area_created: {row.get('name')} (id: {row.get('id')})")
        return row

    # =============================================================================
    # VENUE OPERATIONS
    # =============================================================================

    @read_retry
    def venue_exists_by_external_id(self, external_id: str) -> bool:
        result = self._execute(
            self.client.table(self.VENUES).select('id').eq('google_place_id', external_id).limit(1),
            f"lookup venue {external_id}"
        )
        return bool(result.data)

    @read_retry
    def venue_slug_exists(self, slug: str) -> bool:
        result = self._execute(
            self.client.table(self.VENUES).select('id').eq('slug', slug).limit(1),
            f"lookup venue slug {slug}"
        )
        return bool(result.data)

    def insert_venue(self, venue_data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a venue row and return it, DuplicateRecordError on slug or external id conflict"""
        result = self._execute(
            self.client.table(self.VENUES).insert(venue_data),
            f"insert venue {venue_data.get('name')}"
        )
        row = self._first(result)
        if not row:
            raise QueryError(f"insert venue {venue_data.get('name')}: no row returned")
        logger.debug(f"venue_created: {venue_data.get('name')} (id: {row.get('id')})")
        return row

    def update_venue(self, venue_id: str, fields: Dict[str, Any]) -> None:
        """Partial update, only the given fields are written"""
        fields = dict(fields, updated_at=datetime.now(timezone.utc).isoformat())
        self._execute(
            self.client.table(self.VENUES).update(fields).eq('id', venue_id),
            f"update venue {venue_id}"
        )

    @read_retry
    def get_venue_with_area(self, venue_id: str) -> Optional[Dict[str, Any]]:
        result = self._execute(
            self.client.table(self.VENUES)
                .select('id,name,slug,google_place_id,city:cities(name,slug)')
                .eq('id', venue_id)
                .limit(1),
            f"get venue {venue_id}"
        )
        return self._first(result)

    @read_retry
    def list_venues_with_external_id(self, offset: int, limit: int) -> Tuple[List[Dict[str, Any]], int]:
        """One page of venues that carry an external id, ordered by name, plus the total count"""
        result = self._execute(
            self.client.table(self.VENUES)
                .select('id,name,slug,google_place_id,city:cities(name,slug)', count='exact')
                .not_.is_('google_place_id', 'null')
                .order('name')
                .range(offset, offset + limit - 1),
            f"list venues {offset}+{limit}"
        )
        return result.data or [], result.count or 0

    # =============================================================================
    # PHOTO OPERATIONS
    # =============================================================================

    def insert_venue_photos(self, photo_rows: List[Dict[str, Any]]) -> None:
        if not photo_rows:
            return
        self._execute(
            self.client.table(self.PHOTOS).insert(photo_rows),
            f"insert {len(photo_rows)} photos"
        )

    def delete_venue_photos(self, venue_id: str) -> None:
        self._execute(
            self.client.table(self.PHOTOS).delete().eq('restaurant_id', venue_id),
            f"delete photos for {venue_id}"
        )

    def upload_object(self, bucket: str, path: str, content: bytes,
                      content_type: str = 'image/jpeg') -> str:
        """Upload bytes to storage, overwriting any object at path, and return its public URL"""
        storage = self.client.storage.from_(bucket)
        try:
            storage.upload(path=path, file=content,
                           file_options={'content-type': content_type, 'upsert': 'true'})
        except Exception as e:
            raise _classify_error(e, f"upload {bucket}/{path}") from e
        return storage.get_public_url(path)

    # =============================================================================
    # CUISINE AND REVIEW OPERATIONS
    # =============================================================================

    @read_retry
    def get_cuisine_ids(self, slugs: List[str]) -> Dict[str, str]:
        """Map cuisine slugs to ids, unknown slugs are left out"""
        if not slugs:
            return {}
        result = self._execute(
            self.client.table(self.CUISINES).select('id,slug').in_('slug', list(slugs)),
            "lookup cuisines"
        )
        return {row['slug']: row['id'] for row in result.data or []}

    @read_retry
    def cuisine_link_exists(self, venue_id: str, cuisine_id: str) -> bool:
        result = self._execute(
            self.client.table(self.CUISINE_LINKS)
                .select('restaurant_id')
                .eq('restaurant_id', venue_id)
                .eq('cuisine_id', cuisine_id)
                .limit(1),
            f"lookup cuisine link {venue_id}/{cuisine_id}"
        )
        return bool(result.data)

    def insert_cuisine_link(self, venue_id: str, cuisine_id: str) -> None:
        self._execute(
            self.client.table(self.CUISINE_LINKS).insert({'restaurant_id': venue_id, 'cuisine_id': cuisine_id}),
            f"link cuisine {cuisine_id} to {venue_id}"
        )

    def insert_review(self, review_data: Dict[str, Any]) -> None:
        self._execute(
            self.client.table(self.REVIEWS).insert(review_data),
            f"insert review for {review_data.get('restaurant_id')}"
        )

    # =============================================================================
    # AUTHORIZATION
    # =============================================================================

    def get_user_id_for_token(self, access_token: str) -> Optional[str]:
        """Resolve a session access token to a user id, None when the token is not valid"""
        try:
            response = self.client.auth.get_user(access_token)
        except Exception as e:
            logger.warning(f"Token verification failed: {e}")
            return None
        user = getattr(response, 'user', None)
        return getattr(user, 'id', None)

    @read_retry
    def user_has_role(self, user_id: str, role: str) -> bool:
        result = self._execute(
            self.client.table(self.ROLES).select('role').eq('user_id', user_id).eq('role', role).limit(1),
            f"role lookup {user_id}"
        )
        return bool(result.data)
