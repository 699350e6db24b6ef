"""
Shared pytest fixtures for bracket engine tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))


def make_participants(count, seeded=True):
    """Participants p1..pN, seeded 1..N unless seeded is False."""
    return [
        {'id': f'p{i}', 'name': f'Player {i}', 'seed': i if seeded else None}
        for i in range(1, count + 1)
    ]


def play_out(bracket, engine, pick=lambda match: match['participant1'], limit=500):
    """Report active matches until none are left, returning the reported ids."""
    reported = []
    for _ in range(limit):
        active = engine.get_active_matches(bracket)
        if not active:
            break
        match = active[0]
        engine.advance_winner(bracket, match['id'], pick(match))
        reported.append(match['id'])
    return reported


@pytest.fixture
def four_players():
    return make_participants(4)


@pytest.fixture
def five_players():
    return make_participants(5)


@pytest.fixture
def client(tmp_path, monkeypatch):
    """Test client with the data directory pointed at a temp dir."""
    import app as app_module
    monkeypatch.setattr(app_module, 'DATA_DIR', str(tmp_path))
    app_module.app.config['TESTING'] = True
    with app_module.app.test_client() as client:
        yield client
