"""Endpoint tests with the services dependency overridden"""
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from api.dependencies import PipelineServices, get_services
from db import QueryError
from tests.conftest import make_candidate, make_details

ADMIN_TOKEN = 'admin-token'
USER_TOKEN = 'user-token'


class TestImportApi:

    @pytest.fixture(autouse=True)
    def use_fixtures(self, db, places, rehoster, config):
        db.tokens = {ADMIN_TOKEN: 'admin-1', USER_TOKEN: 'user-1'}
        db.roles = {'admin-1': {'admin'}}
        self.db = db
        self.places = places
        self.config = config

        app = create_app()
        services = PipelineServices(config=config, db=db, places=places, rehoster=rehoster)
        app.dependency_overrides[get_services] = lambda: services
        self.client = TestClient(app)

    def _auth(self, token):
        return {'Authorization': f"Bearer {token}"}

    def test_health(self):
        resp = self.client.get('/health')
        assert resp.status_code == 200
        assert resp.json() == {'status': 'ok'}

    # ── Area seeder ─────────────────────────────────────────────────────

    def test_seed_areas(self):
        self.places.nearby_by_location[(52.37, 4.89)] = [make_candidate('p1', 'De Kas')]
        self.places.add(make_details('p1', 'De Kas'))

        resp = self.client.post('/functions/bulk-import-restaurants', json={'startIndex': 0, 'batchSize': 1})

        assert resp.status_code == 200
        body = resp.json()
        assert body['results'] == [{'city': 'Amsterdam', 'imported': 1, 'skipped': 0, 'reviewsImported': 0}]
        assert body['nextIndex'] == 1
        assert body['hasMore'] is True
        assert body['totalCities'] == 3

    def test_seed_areas_without_body_uses_defaults(self):
        resp = self.client.post('/functions/bulk-import-restaurants')
        assert resp.status_code == 200
        assert resp.json()['processed'] == 3

    def test_seed_areas_past_the_end(self):
        resp = self.client.post('/functions/bulk-import-restaurants', json={'startIndex': 10})
        body = resp.json()
        assert body['completed'] is True
        assert body['nextIndex'] is None
        assert body['results'] == []

    def test_seed_areas_rejects_oversized_batch(self):
        resp = self.client.post('/functions/bulk-import-restaurants', json={'batchSize': 500})
        assert resp.status_code == 400
        assert 'batchSize' in resp.json()['error']

    def test_missing_api_key_is_a_server_error(self):
        self.config.google_places_api_key = None
        resp = self.client.post('/functions/bulk-import-restaurants', json={})
        assert resp.status_code == 500
        assert resp.json() == {'error': 'Google Places API key not configured'}

    # ── Radius import ───────────────────────────────────────────────────

    def test_radius_import_requires_header(self):
        resp = self.client.post('/functions/import-google-places', json={'latitude': 52.0, 'longitude': 5.0})
        assert resp.status_code == 401
        assert resp.json() == {'error': 'No authorization header'}

    def test_radius_import_rejects_unknown_token(self):
        resp = self.client.post('/functions/import-google-places', headers=self._auth('bogus'),
                                json={'latitude': 52.0, 'longitude': 5.0})
        assert resp.status_code == 401
        assert resp.json() == {'error': 'Unauthorized'}

    def test_radius_import_requires_admin_role(self):
        resp = self.client.post('/functions/import-google-places', headers=self._auth(USER_TOKEN),
                                json={'latitude': 52.0, 'longitude': 5.0})
        assert resp.status_code == 403
        assert resp.json() == {'error': 'Admin access required'}

    def test_radius_import_as_admin(self):
        self.places.nearby = [make_candidate('p1', 'De Kas')]
        self.places.add(make_details('p1', 'De Kas'))

        resp = self.client.post('/functions/import-google-places', headers=self._auth(ADMIN_TOKEN),
                                json={'latitude': 52.37, 'longitude': 4.89, 'radius': 2000})

        assert resp.status_code == 200
        assert resp.json() == {
            'imported': 1,
            'skipped': 0,
            'errors': 0,
            'citiesCreated': 1,
            'details': {'imported': ['De Kas'], 'skipped': [], 'errors': [], 'citiesCreated': ['Amsterdam']},
        }

    def test_radius_import_missing_coordinates(self):
        resp = self.client.post('/functions/import-google-places', headers=self._auth(ADMIN_TOKEN),
                                json={'latitude': 52.37})
        assert resp.status_code == 400
        assert resp.json() == {'error': 'Invalid or missing parameters: longitude'}

    def test_radius_search_failure(self):
        self.places.search_status = 'OVER_QUERY_LIMIT'
        resp = self.client.post('/functions/import-google-places', headers=self._auth(ADMIN_TOKEN),
                                json={'latitude': 52.37, 'longitude': 4.89})
        assert resp.status_code == 502
        assert 'OVER_QUERY_LIMIT' in resp.json()['error']

    # ── Photo refresh and cuisine backfill ──────────────────────────────

    def test_refresh_photos_anonymous(self):
        resp = self.client.post('/functions/refresh-restaurant-photos', json={'batchSize': 5, 'offset': 0})
        assert resp.status_code == 200
        assert resp.json() == {
            'processed': 0,
            'photosDownloaded': 0,
            'errors': [],
            'hasMore': False,
            'nextOffset': None,
            'totalRestaurants': 0,
        }

    def test_refresh_photos_token_must_be_admin(self):
        resp = self.client.post('/functions/refresh-restaurant-photos', headers=self._auth(USER_TOKEN))
        assert resp.status_code == 403

    def test_link_cuisines(self):
        venue = self.db.insert_venue({'name': 'De Kas', 'slug': 'de-kas', 'google_place_id': 'p1'})
        self.places.add(make_details('p1', 'De Kas'))

        resp = self.client.post('/functions/link-cuisines')

        assert resp.status_code == 200
        assert resp.json()['cuisinesLinked'] == 1
        assert (venue['id'], 'cuisine-it') in self.db.cuisine_links

    def test_store_failure_is_a_json_server_error(self):
        with patch.object(self.db, 'list_venues_with_external_id', side_effect=QueryError('list venues: boom')):
            resp = self.client.post('/functions/refresh-restaurant-photos', json={})

        assert resp.status_code == 500
        assert resp.json() == {'error': 'list venues: boom'}
