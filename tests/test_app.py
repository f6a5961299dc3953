"""
Unit tests for the Flask web application.
"""
import pytest
import sys
import os
import yaml

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from app import app, load_settings, get_default_settings, load_teams, save_teams, load_bracket, get_eligible_teams
from conftest import make_squad, make_team


def start(client, **payload):
    return client.post('/api/tournament/start', json=payload or None)


class TestSettings:
    """Tests for settings loading."""

    def test_defaults_when_missing(self, temp_data_dir):
        assert load_settings() == get_default_settings()

    def test_file_overrides_defaults(self, temp_data_dir):
        (temp_data_dir / "settings.yaml").write_text(yaml.dump({'match_duration_minutes': 60}))
        settings = load_settings()
        assert settings['match_duration_minutes'] == 60
        assert settings['leaderboard_size'] == 10

    def test_invalid_yaml_falls_back(self, temp_data_dir):
        (temp_data_dir / "settings.yaml").write_text("match_duration_minutes: [unclosed")
        assert load_settings() == get_default_settings()

    def test_settings_route(self, client, temp_data_dir):
        response = client.get('/api/settings')
        assert response.status_code == 200
        assert response.get_json()['match_duration_minutes'] == 90


class TestTeams:
    """Tests for team storage and registration."""

    def test_load_empty(self, temp_data_dir):
        assert load_teams() == []

    def test_save_and_load(self, temp_data_dir, squad_teams):
        save_teams(squad_teams)
        loaded = load_teams()
        assert [t.id for t in loaded] == [t.id for t in squad_teams]
        assert len(loaded[0].players) == 23
        assert loaded[0].rating == squad_teams[0].rating

    def test_list_teams(self, client, registered_teams):
        response = client.get('/api/teams')
        data = response.get_json()
        assert response.status_code == 200
        assert len(data['teams']) == 8
        assert data['teams'][0]['squad_size'] == 23
        assert data['teams'][0]['squad_errors'] == []

    def test_register_team(self, client, temp_data_dir):
        payload = make_team("ng", rating=0, players=make_squad("ng", 80)).to_dict(include_players=True)
        response = client.post('/api/teams', json=payload)
        data = response.get_json()
        assert response.status_code == 200
        assert data['success'] is True
        assert data['team']['rating'] == 80
        assert [t.id for t in load_teams()] == ["ng"]

    def test_register_duplicate(self, client, registered_teams):
        payload = registered_teams[0].to_dict(include_players=True)
        response = client.post('/api/teams', json=payload)
        assert response.status_code == 400
        assert 'already registered' in response.get_json()['error']

    def test_register_requires_id_and_name(self, client, temp_data_dir):
        response = client.post('/api/teams', json={'name': 'Nameless'})
        assert response.status_code == 400

    def test_register_incomplete_squad_when_required(self, client, temp_data_dir):
        (temp_data_dir / "settings.yaml").write_text(yaml.dump({'require_full_squads': True}))
        payload = make_team("ng", players=make_squad("ng")[:10]).to_dict(include_players=True)
        response = client.post('/api/teams', json=payload)
        assert response.status_code == 400
        assert '23 players' in response.get_json()['error']

    def test_register_non_numeric_rating(self, client, temp_data_dir):
        payload = make_team("ng", rating=70, players=make_squad("ng")).to_dict(include_players=True)
        payload['players'][0]['ratings'] = {'GK': 'ninety', 'DF': 10, 'MD': 10, 'AT': 10}
        response = client.post('/api/teams', json=payload)
        assert response.status_code == 400
        assert 'Invalid team' in response.get_json()['error']
        assert load_teams() == []

    def test_register_string_rating_is_stored_as_number(self, client, temp_data_dir):
        payload = make_team("ng", rating=70, players=make_squad("ng")).to_dict(include_players=True)
        payload['players'][0]['ratings'] = {'GK': '90', 'DF': 10, 'MD': 10, 'AT': 10}
        response = client.post('/api/teams', json=payload)
        assert response.status_code == 200
        assert load_teams()[0].players[0].ratings['GK'] == 90

    @pytest.mark.parametrize("rating", [-5, 101])
    def test_register_team_rating_out_of_range(self, client, temp_data_dir, rating):
        payload = make_team("ng", rating=rating, players=make_squad("ng")).to_dict(include_players=True)
        response = client.post('/api/teams', json=payload)
        assert response.status_code == 400
        assert 'outside 0-100' in response.get_json()['error']

    def test_register_string_captain_flag(self, client, temp_data_dir):
        payload = make_team("ng", players=make_squad("ng")).to_dict(include_players=True)
        payload['players'][0]['captain'] = "false"
        response = client.post('/api/teams', json=payload)
        assert response.status_code == 400

    def test_eligible_teams(self, squad_teams):
        teams = squad_teams + [make_team("short", players=make_squad("short")[:5])]
        assert len(get_eligible_teams(teams, {'require_full_squads': False})) == 9
        assert len(get_eligible_teams(teams, {'require_full_squads': True})) == 8


class TestTournamentFlow:
    """Tests for starting and playing a tournament over HTTP."""

    def test_bracket_missing(self, client, temp_data_dir):
        assert client.get('/api/bracket').status_code == 404
        assert client.get('/api/matches/next').status_code == 404
        assert client.post('/api/matches/next/simulate').status_code == 404

    def test_start_requires_eight_teams(self, client, temp_data_dir, squad_teams):
        save_teams(squad_teams[:6])
        response = start(client)
        assert response.status_code == 400
        assert 'exactly 8 teams' in response.get_json()['error']
        assert load_bracket() is None

    def test_start_tournament(self, client, registered_teams):
        response = start(client)
        data = response.get_json()
        assert response.status_code == 200
        assert data['success'] is True
        assert data['progress']['completed_matches'] == 0
        assert data['complete'] is False

        bracket = load_bracket()
        ids = sorted(t.id for m in bracket.quarter_finals for t in (m.home_team, m.away_team))
        assert ids == sorted(t.id for t in registered_teams)

    def test_get_bracket(self, client, registered_teams, temp_data_dir):
        (temp_data_dir / "settings.yaml").write_text(yaml.dump({'tournament_name': 'Test Cup'}))
        start(client)
        data = client.get('/api/bracket').get_json()
        assert data['tournament_name'] == 'Test Cup'
        assert len(data['bracket']['quarter_finals']) == 4
        assert data['bracket']['champion'] is None

    def test_start_with_team_ids(self, client, temp_data_dir, squad_teams):
        extra = make_team("t9", players=make_squad("t9"))
        save_teams(squad_teams + [extra])
        chosen = [t.id for t in squad_teams[1:]] + ["t9"]
        response = start(client, team_ids=chosen)
        assert response.status_code == 200
        bracket = load_bracket()
        ids = {t.id for m in bracket.quarter_finals for t in (m.home_team, m.away_team)}
        assert ids == set(chosen)

    def test_start_with_unknown_team_id(self, client, registered_teams):
        response = start(client, team_ids=["nope"] + [t.id for t in registered_teams[:7]])
        assert response.status_code == 400

    def test_start_twice_conflicts(self, client, registered_teams):
        assert start(client).status_code == 200
        assert start(client).status_code == 409

    def test_next_match(self, client, registered_teams):
        start(client)
        match = client.get('/api/matches/next').get_json()['match']
        assert match['id'] == 'QF1'
        assert match['round_name'] == 'Quarterfinal'

    def test_simulate_full_tournament(self, client, registered_teams):
        start(client)
        played = []
        for _ in range(7):
            response = client.post('/api/matches/next/simulate')
            data = response.get_json()
            assert response.status_code == 200
            result = data['result']
            assert result['home_score'] != result['away_score']
            assert data['match']['completed'] is True
            assert len(data['match']['goal_scorers']) == result['home_score'] + result['away_score']
            assert 'defeats' in data['summary']
            played.append(data['match']['id'])

        assert played == ['QF1', 'QF2', 'QF3', 'QF4', 'SF1', 'SF2', 'F']
        assert data['complete'] is True
        assert data['progress']['current_round'] == 'Complete'

        bracket = load_bracket()
        assert bracket.champion == bracket.final.winner
        assert client.get('/api/matches/next').get_json()['match'] is None

        response = client.post('/api/matches/next/simulate')
        assert response.status_code == 409

    def test_scorers_come_from_registered_squads(self, client, registered_teams):
        start(client)
        data = client.post('/api/matches/next/simulate').get_json()
        names = {p.name for t in registered_teams for p in t.players}
        for scorer in data['match']['goal_scorers']:
            assert scorer['player_name'] in names

    def test_seeded_settings_are_reproducible(self, client, registered_teams, temp_data_dir):
        (temp_data_dir / "settings.yaml").write_text(yaml.dump({'random_seed': 7}))
        start(client)
        first = client.post('/api/matches/next/simulate').get_json()['result']
        client.post('/api/tournament/reset')
        start(client)
        second = client.post('/api/matches/next/simulate').get_json()['result']
        assert first == second


class TestManualResults:
    """Tests for results entered by hand."""

    def test_record_result(self, client, registered_teams):
        start(client)
        response = client.post('/api/matches/QF1/result', json={
            'home_score': 2, 'away_score': 1,
            'goal_scorers': [{'player_name': 'Someone', 'team': 'Team t1', 'minute': 44}],
        })
        data = response.get_json()
        assert response.status_code == 200
        assert data['match']['winner'] == data['match']['home_team']
        assert data['progress']['completed_matches'] == 1
        assert load_bracket().find_match('SF1').home_team is not None

    def test_draw_rejected(self, client, registered_teams):
        start(client)
        response = client.post('/api/matches/QF1/result', json={'home_score': 1, 'away_score': 1})
        assert response.status_code == 400
        assert response.get_json()['success'] is False
        assert not load_bracket().find_match('QF1').completed

    def test_unknown_match(self, client, registered_teams):
        start(client)
        response = client.post('/api/matches/QF7/result', json={'home_score': 1, 'away_score': 0})
        assert response.status_code == 404

    def test_already_completed(self, client, registered_teams):
        start(client)
        client.post('/api/matches/QF1/result', json={'home_score': 1, 'away_score': 0})
        response = client.post('/api/matches/QF1/result', json={'home_score': 0, 'away_score': 1})
        assert response.status_code == 409

    def test_slots_not_ready(self, client, registered_teams):
        start(client)
        response = client.post('/api/matches/SF1/result', json={'home_score': 1, 'away_score': 0})
        assert response.status_code == 409

    def test_missing_scores(self, client, registered_teams):
        start(client)
        response = client.post('/api/matches/QF1/result', json={'home_score': 1})
        assert response.status_code == 400


class TestLeaderboardAndReset:
    def test_leaderboard_without_tournament(self, client, temp_data_dir):
        assert client.get('/api/leaderboard').get_json() == {'scorers': []}

    def test_leaderboard(self, client, registered_teams):
        start(client)
        client.post('/api/matches/QF1/result', json={
            'home_score': 3, 'away_score': 1,
            'goal_scorers': [
                {'player_name': 'Hat', 'team': 'H', 'minute': 1},
                {'player_name': 'Hat', 'team': 'H', 'minute': 2},
                {'player_name': 'Hat', 'team': 'H', 'minute': 3},
                {'player_name': 'Away', 'team': 'A', 'minute': 4},
            ],
        })
        scorers = client.get('/api/leaderboard?limit=1').get_json()['scorers']
        assert scorers == [{'player_name': 'Hat', 'team': 'H', 'goals': 3}]
        assert client.get('/api/leaderboard?limit=-1').get_json() == {'scorers': []}

    def test_reset(self, client, registered_teams, temp_data_dir):
        start(client)
        response = client.post('/api/tournament/reset')
        assert response.status_code == 200
        assert not (temp_data_dir / "bracket.yaml").exists()
        assert client.get('/api/bracket').status_code == 404
        assert start(client).status_code == 200
