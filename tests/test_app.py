"""
Tests for the Flask JSON API.
"""
import pytest
import sys
import os
from filelock import FileLock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from conftest import make_participants


BASE = '/api/tournaments/cup'


def _create(client, count=4, settings=None, query=''):
    return client.post(f'{BASE}/bracket{query}', json={
        'participants': make_participants(count),
        'settings': settings or {},
    })


class TestBracketRoutes:
    """Tests for creating, reading and deleting brackets."""

    def test_create_and_get(self, client):
        response = _create(client)
        assert response.status_code == 201
        data = response.get_json()
        assert data['success'] is True
        assert data['bracket']['type'] == 'single_elimination'

        response = client.get(f'{BASE}/bracket')
        assert response.status_code == 200
        assert response.get_json()['bracket']['bracket_size'] == 4

    def test_create_twice_conflicts(self, client):
        _create(client)
        response = _create(client, settings={'format': 'round_robin'})
        assert response.status_code == 409
        assert response.get_json()['success'] is False

    def test_replace(self, client):
        _create(client)
        response = _create(client, settings={'format': 'round_robin'}, query='?replace=1')
        assert response.status_code == 201
        assert client.get(f'{BASE}/bracket').get_json()['bracket']['type'] == 'round_robin'

    def test_invalid_roster(self, client):
        response = _create(client, count=1)
        assert response.status_code == 400
        assert 'at least 2' in response.get_json()['error']

    def test_invalid_settings(self, client):
        response = _create(client, settings={'format': 'ladder'})
        assert response.status_code == 400

    def test_missing_bracket(self, client, tmp_path):
        assert client.get(f'{BASE}/bracket').status_code == 404
        assert client.get(f'{BASE}/results').status_code == 404
        assert client.delete(f'{BASE}/bracket').status_code == 404
        assert client.post(f'{BASE}/matches/W1-M1/report', json={'winner_id': 'p1'}).status_code == 404
        assert not (tmp_path / 'tournaments' / 'cup').exists()

    def test_data_dir_shared_with_store(self):
        import app as app_module
        import bracket_store
        assert app_module.DATA_DIR == bracket_store.DEFAULT_DATA_DIR

    def test_invalid_tournament_id(self, client):
        assert client.get('/api/tournaments/Not_Valid/bracket').status_code == 400

    def test_delete(self, client):
        _create(client)
        assert client.delete(f'{BASE}/bracket').status_code == 200
        assert client.get(f'{BASE}/bracket').status_code == 404


class TestReportRoutes:
    """Tests for result reporting."""

    def test_report_match(self, client):
        _create(client)
        response = client.post(f'{BASE}/matches/W1-M1/report', json={'winner_id': 'p1', 'score': '2-0'})
        assert response.status_code == 200
        data = response.get_json()
        assert data['match']['winner'] == 'p1'
        assert data['complete'] is False

        stored = client.get(f'{BASE}/bracket').get_json()['bracket']
        assert stored['matches']['W1-M1']['score'] == '2-0'
        assert stored['matches']['W2-M1']['participant1'] == 'p1'

    def test_error_mapping(self, client):
        _create(client)
        client.post(f'{BASE}/matches/W1-M1/report', json={'winner_id': 'p1'})
        assert client.post(f'{BASE}/matches/W1-M1/report', json={'winner_id': 'p4'}).status_code == 409
        assert client.post(f'{BASE}/matches/W1-M2/report', json={'winner_id': 'p1'}).status_code == 400
        assert client.post(f'{BASE}/matches/W1-M2/report', json={}).status_code == 400
        assert client.post(f'{BASE}/matches/W7-M1/report', json={'winner_id': 'p1'}).status_code == 404

    def test_play_to_results(self, client):
        _create(client)
        response = client.get(f'{BASE}/results')
        assert response.get_json() == {'success': True, 'complete': False, 'results': None}

        client.post(f'{BASE}/matches/W1-M1/report', json={'winner_id': 'p1'})
        client.post(f'{BASE}/matches/W1-M2/report', json={'winner_id': 'p2'})
        active = client.get(f'{BASE}/active').get_json()['matches']
        assert [m['id'] for m in active] == ['W2-M1']
        client.post(f'{BASE}/matches/W2-M1/report', json={'winner_id': 'p2'})

        data = client.get(f'{BASE}/results').get_json()
        assert data['complete'] is True
        assert data['results']['winner']['id'] == 'p2'
        standings = client.get(f'{BASE}/standings').get_json()['standings']
        assert standings[0]['participant']['id'] == 'p2'

    def test_swiss_rounds(self, client):
        _create(client, settings={'format': 'swiss'})
        assert client.post(f'{BASE}/rounds/next').status_code == 409
        client.post(f'{BASE}/matches/S1-M1/report', json={'winner_id': 'p1'})
        client.post(f'{BASE}/matches/S1-M2/report', json={'winner_id': 'p3'})
        bracket = client.get(f'{BASE}/bracket').get_json()['bracket']
        assert bracket['current_round'] == 2

    def test_next_round_rejected_for_elimination(self, client):
        _create(client)
        assert client.post(f'{BASE}/rounds/next').status_code == 409

    def test_battle_royale_games(self, client):
        _create(client, settings={'format': 'battle_royale', 'lobby_size': 4,
                                  'games_per_stage': 1, 'advancing_per_group': 2})
        bracket = client.get(f'{BASE}/bracket').get_json()['bracket']
        teams = bracket['groups'][0]['teams']

        response = client.post(f'{BASE}/groups/A/games/1/report', json={'placements': teams})
        assert response.status_code == 200
        assert response.get_json()['current_stage'] == 'finals'

        response = client.post(f'{BASE}/groups/finals/games/1/report', json={'placements': teams[:2]})
        assert response.get_json()['complete'] is True
        results = client.get(f'{BASE}/results').get_json()['results']
        assert results['winner']['id'] == teams[0]

    def test_battle_royale_bad_placements(self, client):
        _create(client, settings={'format': 'battle_royale'})
        response = client.post(f'{BASE}/groups/A/games/1/report', json={'placements': ['p1']})
        assert response.status_code == 400
        assert client.post(f'{BASE}/groups/Q/games/1/report', json={'placements': []}).status_code == 404

    def test_lock_timeout_is_conflict(self, client, tmp_path, monkeypatch):
        import app as app_module
        monkeypatch.setattr(app_module, 'LOCK_TIMEOUT', 0.1)
        _create(client)
        lock = FileLock(str(tmp_path / 'tournaments' / 'cup.lock'))
        with lock:
            response = client.post(f'{BASE}/matches/W1-M1/report', json={'winner_id': 'p1'})
        assert response.status_code == 409
        assert client.get(f'{BASE}/bracket').get_json()['bracket']['matches']['W1-M1']['winner'] is None
