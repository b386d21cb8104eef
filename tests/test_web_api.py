"""Tests for the Flask JSON API."""

import tempfile
import shutil
from pathlib import Path

from image_triage.core.engine import CategorizationEngine
from image_triage.core.folders import FolderSet
from image_triage.web.app import create_app


class TestTriageApi:
    """Drive the engine over HTTP with the Flask test client."""

    def setup_method(self):
        self.temp_dir = Path(tempfile.mkdtemp()).resolve()
        self.input_dir = self.temp_dir / "input"
        self.trash_dir = self.temp_dir / "trash"
        self.cats_dir = self.temp_dir / "cats"
        for directory in (self.input_dir, self.trash_dir, self.cats_dir):
            directory.mkdir()
        (self.input_dir / "a.jpg").write_bytes(b"first image")
        (self.input_dir / "b.jpg").write_bytes(b"second image")

        folders = FolderSet.validate(self.input_dir, self.trash_dir, {"cats": self.cats_dir})
        self.engine = CategorizationEngine.for_folders(folders)
        self.app = create_app(self.engine, {'TESTING': True})
        self.client = self.app.test_client()

    def teardown_method(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def test_state(self):
        response = self.client.get('/api/state')

        assert response.status_code == 200
        data = response.get_json()
        assert data['state'] == 'active'
        assert data['current']['file_name'] == 'a.jpg'
        assert data['remaining'] == 2
        assert data['can_undo'] is False
        assert data['categories'] == ['cats']

    def test_image_bytes(self):
        response = self.client.get('/api/image')

        assert response.status_code == 200
        assert response.data == b"first image"
        response.close()

    def test_assign_discard_undo(self):
        response = self.client.post('/api/assign', json={'category': 'cats'})
        assert response.status_code == 200
        data = response.get_json()
        assert data['operation']['kind'] == 'move'
        assert data['operation']['sequence'] == 1
        assert data['current']['file_name'] == 'b.jpg'
        assert (self.cats_dir / "a.jpg").exists()

        response = self.client.post('/api/discard')
        assert response.status_code == 200
        data = response.get_json()
        assert data['state'] == 'exhausted'
        assert data['current'] is None
        assert (self.trash_dir / "b.jpg").exists()

        history = self.client.get('/api/history').get_json()
        assert [op['kind'] for op in history['operations']] == ['move', 'delete']

        response = self.client.post('/api/undo')
        assert response.status_code == 200
        data = response.get_json()
        assert data['reversed'] is True
        assert data['current']['file_name'] == 'b.jpg'
        assert (self.input_dir / "b.jpg").exists()

    def test_assign_requires_category(self):
        response = self.client.post('/api/assign', json={})

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Validation error'

    def test_assign_rejects_non_object_body(self):
        response = self.client.post('/api/assign', json=['cats'])

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Validation error'
        assert (self.input_dir / "a.jpg").exists()

    def test_unknown_category(self):
        response = self.client.post('/api/assign', json={'category': 'dogs'})

        assert response.status_code == 400
        assert 'dogs' in response.get_json()['message']

    def test_collision_conflict(self):
        (self.cats_dir / "a.jpg").write_bytes(b"taken")

        response = self.client.post('/api/assign', json={'category': 'cats'})

        assert response.status_code == 409
        assert response.get_json()['error'] == 'Collision'
        assert (self.input_dir / "a.jpg").exists()

    def test_nothing_to_undo(self):
        response = self.client.post('/api/undo')

        assert response.status_code == 409
        assert response.get_json()['error'] == 'Nothing to undo'

    def test_exhausted_catalog(self):
        self.client.post('/api/discard')
        self.client.post('/api/discard')

        assert self.client.post('/api/discard').status_code == 409
        assert self.client.get('/api/image').status_code == 409

    def test_vanished_file_and_skip(self):
        (self.input_dir / "a.jpg").unlink()

        assert self.client.get('/api/image').status_code == 404
        assert self.client.post('/api/discard').status_code == 404

        response = self.client.post('/api/skip')
        assert response.status_code == 200
        data = response.get_json()
        assert data['skipped']['file_name'] == 'a.jpg'
        assert data['current']['file_name'] == 'b.jpg'

    def test_skip_existing_file_is_rejected(self):
        assert self.client.post('/api/skip').status_code == 400

    def test_unknown_endpoint(self):
        response = self.client.get('/api/nope')

        assert response.status_code == 404
        assert response.get_json()['error'] == 'API endpoint not found'
