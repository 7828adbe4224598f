"""Tests for photo re-hosting"""
from unittest.mock import Mock

import requests

from utils.photo_manager import PhotoRehoster, build_photo_path
from tests.conftest import STORAGE_BASE, image_session


def test_build_photo_path_primary_and_extra():
    assert build_photo_path('utrecht', 'de-kas', 0, 'happio') == 'utrecht/de-kas/de-kas-utrecht-happio.jpg'
    assert build_photo_path('utrecht', 'de-kas', 2, 'happio') == 'utrecht/de-kas/de-kas-utrecht-happio-3.jpg'


def test_build_photo_path_without_suffix():
    assert build_photo_path('utrecht', 'de-kas', 1, '') == 'utrecht/de-kas/de-kas-utrecht-2.jpg'


class TestPhotoRehoster:

    def test_rehost_uploads_and_returns_public_url(self, db, config):
        rehoster = PhotoRehoster(db, config.photos, session=image_session())

        url = rehoster.rehost_photo('https://photos.test/ref', 'utrecht', 'de-kas', 0)

        path = 'restaurant-photos/utrecht/de-kas/de-kas-utrecht-happio.jpg'
        assert url == f"{STORAGE_BASE}/{path}"
        assert db.objects[path] == b'\xff\xd8jpeg'

    def test_rerun_overwrites_same_object(self, db, config):
        rehoster = PhotoRehoster(db, config.photos, session=image_session())
        first = rehoster.rehost_photo('https://photos.test/a', 'utrecht', 'de-kas', 1)
        second = rehoster.rehost_photo('https://photos.test/b', 'utrecht', 'de-kas', 1)
        assert first == second
        assert len(db.objects) == 1

    def test_http_failure_is_soft(self, db, config):
        rehoster = PhotoRehoster(db, config.photos, session=image_session({'https://photos.test/gone'}))
        assert rehoster.rehost_photo('https://photos.test/gone', 'utrecht', 'de-kas') is None
        assert db.objects == {}

    def test_transport_error_is_soft(self, db, config):
        session = Mock()
        session.get.side_effect = requests.Timeout('slow')
        rehoster = PhotoRehoster(db, config.photos, session=session)
        assert rehoster.rehost_photo('https://photos.test/slow', 'utrecht', 'de-kas') is None

    def test_non_image_response_is_rejected(self, db, config):
        session = Mock()
        session.get.return_value = Mock(ok=True, status_code=200,
                                        headers={'content-type': 'text/html'}, content=b'<html>')
        rehoster = PhotoRehoster(db, config.photos, session=session)
        assert rehoster.rehost_photo('https://photos.test/ref', 'utrecht', 'de-kas') is None

    def test_upload_failure_is_soft(self, config):
        db = Mock()
        db.upload_object.side_effect = RuntimeError('bucket missing')
        rehoster = PhotoRehoster(db, config.photos, session=image_session())
        assert rehoster.rehost_photo('https://photos.test/ref', 'utrecht', 'de-kas') is None
