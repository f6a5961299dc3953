"""
Shared pytest fixtures for cup tournament tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - fast subset, skips the statistical checks
"""
import pytest
import random
import sys
import os
import yaml

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.models import Player, Team


def make_player(id, position='AT', rating=70, captain=False, name=None, age=None):
    """Player whose natural position is rated `rating` and the rest 20."""
    ratings = {'GK': 20, 'DF': 20, 'MD': 20, 'AT': 20}
    ratings[position] = rating
    return Player(id=id, name=name or f"Player {id}", position=position,
                  ratings=ratings, captain=captain, age=age)


def make_squad(prefix, rating=70):
    """23 players: 3 GK, 8 DF, 8 MD, 4 AT, with the first attacker as captain."""
    players = []
    layout = [('GK', 3), ('DF', 8), ('MD', 8), ('AT', 4)]
    n = 1
    for position, count in layout:
        for _ in range(count):
            players.append(make_player(f"{prefix}-{n}", position=position, rating=rating,
                                       name=f"{prefix} {position} {n}"))
            n += 1
    players[19].captain = True
    return players


def make_team(id, rating=50, players=None, name=None):
    return Team(id=id, name=name or f"Team {id}", country=f"Country {id}",
                rating=rating, players=players)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def eight_teams():
    """Eight teams rated 50 with no squads."""
    return [make_team(f"t{i}") for i in range(1, 9)]


@pytest.fixture
def squad_teams():
    """Eight teams with full 23-player squads and mixed ratings."""
    ratings = [82, 79, 77, 74, 73, 72, 71, 65]
    return [make_team(f"t{i}", rating=r, players=make_squad(f"t{i}", rating=r))
            for i, r in enumerate(ratings, start=1)]


@pytest.fixture
def client():
    """Create a test client."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the app at a temporary data directory."""
    import app as app_module

    data_dir = tmp_path / "data"
    data_dir.mkdir()

    monkeypatch.setattr(app_module, 'DATA_DIR', str(data_dir))
    monkeypatch.setattr(app_module, 'TEAMS_FILE', str(data_dir / "teams.yaml"))
    monkeypatch.setattr(app_module, 'SETTINGS_FILE', str(data_dir / "settings.yaml"))
    monkeypatch.setattr(app_module, 'BRACKET_FILE', str(data_dir / "bracket.yaml"))
    monkeypatch.setattr(app_module, 'LOCK_FILE', str(data_dir / ".lock"))

    return data_dir


@pytest.fixture
def registered_teams(temp_data_dir, squad_teams):
    """Write eight teams with squads to the temporary teams.yaml."""
    teams_file = temp_data_dir / "teams.yaml"
    teams_file.write_text(yaml.dump(
        {'teams': [t.to_dict(include_players=True) for t in squad_teams]},
        default_flow_style=False,
    ))
    return squad_teams
