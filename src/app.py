"""
Flask web application for the cup tournament.

Owns storage of teams, settings and the bracket as YAML files in the data
directory, and drives the bracket and match engine one fixture at a time.
"""
import os
import random
import yaml
from filelock import FileLock
from flask import Flask, request, jsonify
from core.models import Bracket, GoalScorer, Team
from core.exceptions import (
    BracketError,
    AlreadyCompleted,
    MatchNotFound,
    SlotsNotReady,
)
from core.bracket import (
    NUM_TEAMS,
    start_tournament,
    get_next_match,
    advance_winner,
    is_tournament_complete,
    get_tournament_progress,
    get_top_scorers,
    get_round_name,
    reset_tournament,
)
from core.match_engine import MatchEngine
from core.squad import build_team, validate_squad

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))

TEAMS_FILE = os.path.join(DATA_DIR, 'teams.yaml')
SETTINGS_FILE = os.path.join(DATA_DIR, 'settings.yaml')
BRACKET_FILE = os.path.join(DATA_DIR, 'bracket.yaml')
LOCK_FILE = os.path.join(DATA_DIR, '.lock')
LOCK_TIMEOUT = 10

# HTTP status per bracket error; anything else is a bad request
ERROR_STATUS = {
    MatchNotFound: 404,
    AlreadyCompleted: 409,
    SlotsNotReady: 409,
}


def _data_lock() -> FileLock:
    """Lock serialising every read-modify-write of the bracket."""
    os.makedirs(os.path.dirname(LOCK_FILE), exist_ok=True)
    return FileLock(LOCK_FILE, timeout=LOCK_TIMEOUT)


def _load_yaml(path: str):
    if not os.path.exists(path):
        return None
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        app.logger.warning(f'Failed to parse {path}: {e}')
        return None


def get_default_settings():
    """Return default settings."""
    return {
        'tournament_name': 'Nations Cup',
        'match_duration_minutes': 90,
        'random_seed': None,
        'require_full_squads': False,
        'leaderboard_size': 10,
    }


def load_settings():
    """Load settings from YAML file, merging with defaults."""
    defaults = get_default_settings()
    data = _load_yaml(SETTINGS_FILE)
    if not data:
        return defaults
    return {**defaults, **data}


def load_teams() -> list:
    """Load registered teams from YAML file."""
    data = _load_yaml(TEAMS_FILE) or {}
    return [build_team(entry) for entry in data.get('teams') or []]


def save_teams(teams):
    """Save teams with their squads to YAML file."""
    os.makedirs(DATA_DIR, exist_ok=True)
    with open(TEAMS_FILE, 'w', encoding='utf-8') as f:
        yaml.dump({'teams': [t.to_dict(include_players=True) for t in teams]}, f,
                  default_flow_style=False, sort_keys=False)


def load_bracket():
    """Load the persisted bracket, or None if no tournament is running."""
    data = _load_yaml(BRACKET_FILE)
    if not data:
        return None
    return Bracket.from_dict(data)


def save_bracket(bracket):
    """Save the bracket to YAML file."""
    os.makedirs(DATA_DIR, exist_ok=True)
    with open(BRACKET_FILE, 'w', encoding='utf-8') as f:
        yaml.dump(bracket.to_dict(), f, default_flow_style=False, sort_keys=False)


def delete_bracket():
    if os.path.exists(BRACKET_FILE):
        os.remove(BRACKET_FILE)


def get_eligible_teams(teams, settings):
    """Teams allowed to enter; full squads are required only if configured."""
    if not settings.get('require_full_squads'):
        return list(teams)
    return [t for t in teams if not validate_squad(t.players) and t.rating > 0]


def _make_rng(settings, salt):
    """Fresh generator per call; seeded per salt when random_seed is set."""
    seed = settings.get('random_seed')
    if seed is None:
        return random.Random()
    return random.Random(f'{seed}:{salt}')


def _bracket_payload(bracket):
    return {
        'bracket': bracket.to_dict(),
        'progress': get_tournament_progress(bracket),
        'complete': is_tournament_complete(bracket),
    }


def _match_payload(match):
    if match is None:
        return None
    data = match.to_dict()
    data['round_name'] = get_round_name(match.round)
    return data


@app.errorhandler(BracketError)
def handle_bracket_error(error):
    status = ERROR_STATUS.get(type(error), 400)
    app.logger.warning(f'Rejected bracket operation: {error}')
    return jsonify({'success': False, 'error': str(error)}), status


@app.route('/api/teams', methods=['GET'])
def api_teams():
    """List registered teams with rating and squad status."""
    teams = load_teams()
    return jsonify({
        'teams': [{
            **team.to_dict(),
            'squad_size': len(team.players),
            'squad_errors': validate_squad(team.players),
        } for team in teams]
    })


@app.route('/api/teams', methods=['POST'])
def api_register_team():
    """Register a team with its squad."""
    payload = request.get_json(silent=True) or {}
    if not payload.get('id') or not payload.get('name'):
        return jsonify({'success': False, 'error': 'Team id and name are required.'}), 400
    try:
        team = build_team(payload)
        errors = validate_squad(team.players)
    except (KeyError, TypeError, ValueError) as e:
        return jsonify({'success': False, 'error': f'Invalid team: {e}'}), 400

    if not 0 <= team.rating <= 100:
        return jsonify({'success': False, 'error': f'Team rating {team.rating} is outside 0-100.'}), 400
    if errors and load_settings().get('require_full_squads'):
        return jsonify({'success': False, 'error': '; '.join(errors)}), 400

    with _data_lock():
        teams = load_teams()
        if any(t.id == team.id for t in teams):
            return jsonify({'success': False, 'error': 'This team is already registered.'}), 400
        teams.append(team)
        save_teams(teams)

    app.logger.info(f'Registered team {team.name} (rating {team.rating}, {len(team.players)} players)')
    return jsonify({'success': True, 'team': team.to_dict(), 'squad_errors': errors})


@app.route('/api/settings', methods=['GET'])
def api_settings():
    return jsonify(load_settings())


@app.route('/api/tournament/start', methods=['POST'])
def api_start_tournament():
    """Start a new tournament from eligible teams, or the team_ids given."""
    payload = request.get_json(silent=True) or {}
    settings = load_settings()

    with _data_lock():
        if load_bracket() is not None:
            return jsonify({'success': False,
                            'error': 'A tournament is already running. Reset it first.'}), 409

        teams = get_eligible_teams(load_teams(), settings)
        team_ids = payload.get('team_ids')
        if team_ids:
            by_id = {t.id: t for t in teams}
            unknown = [tid for tid in team_ids if tid not in by_id]
            if unknown:
                return jsonify({'success': False,
                                'error': f'Unknown or ineligible teams: {", ".join(map(str, unknown))}'}), 400
            teams = [by_id[tid] for tid in team_ids]
        else:
            teams = teams[:NUM_TEAMS]

        bracket = start_tournament(teams, rng=_make_rng(settings, 'start'))
        save_bracket(bracket)

    app.logger.info(f'Tournament started with {", ".join(t.name for t in teams)}')
    return jsonify({'success': True, **_bracket_payload(bracket)})


@app.route('/api/bracket', methods=['GET'])
def api_bracket():
    bracket = load_bracket()
    if bracket is None:
        return jsonify({'success': False, 'error': 'No tournament has been started.'}), 404
    return jsonify({
        'success': True,
        'tournament_name': load_settings()['tournament_name'],
        **_bracket_payload(bracket),
    })


@app.route('/api/matches/next', methods=['GET'])
def api_next_match():
    bracket = load_bracket()
    if bracket is None:
        return jsonify({'success': False, 'error': 'No tournament has been started.'}), 404
    return jsonify({'success': True, 'match': _match_payload(get_next_match(bracket))})


@app.route('/api/matches/next/simulate', methods=['POST'])
def api_simulate_next_match():
    """Simulate the next playable match and advance its winner."""
    settings = load_settings()

    with _data_lock():
        bracket = load_bracket()
        if bracket is None:
            return jsonify({'success': False, 'error': 'No tournament has been started.'}), 404

        match = get_next_match(bracket)
        if match is None:
            return jsonify({'success': False, 'error': 'Tournament is already complete.'}), 409

        # Rosters live with the registered teams, not in the bracket snapshots
        rosters = {t.id: t for t in load_teams()}
        home = rosters.get(match.home_team.id, match.home_team)
        away = rosters.get(match.away_team.id, match.away_team)
        home = Team(id=home.id, name=home.name, country=home.country,
                    rating=match.home_team.rating, players=home.players)
        away = Team(id=away.id, name=away.name, country=away.country,
                    rating=match.away_team.rating, players=away.players)

        engine = MatchEngine(home, away,
                             match_duration=settings['match_duration_minutes'],
                             rng=_make_rng(settings, match.id))
        result = engine.simulate_match()

        bracket = advance_winner(
            bracket, match.id, result.home_score, result.away_score,
            result.goal_scorer_records(home.name, away.name),
        )
        save_bracket(bracket)

    match = bracket.find_match(match.id)
    app.logger.info(f'{match.id}: {home.name} {result.home_score}-{result.away_score} {away.name}')
    if is_tournament_complete(bracket):
        app.logger.info(f'Tournament complete, champion {bracket.champion.name}')

    return jsonify({
        'success': True,
        'match': _match_payload(match),
        'result': result.to_dict(),
        'summary': engine.get_match_summary(result),
        **_bracket_payload(bracket),
    })


@app.route('/api/matches/<match_id>/result', methods=['POST'])
def api_record_result(match_id):
    """Record a result entered by hand."""
    payload = request.get_json(silent=True) or {}
    try:
        home_score = int(payload['home_score'])
        away_score = int(payload['away_score'])
        scorers = [GoalScorer.from_dict(g) for g in payload.get('goal_scorers') or []]
    except (KeyError, TypeError, ValueError) as e:
        return jsonify({'success': False, 'error': f'Invalid result: {e}'}), 400

    with _data_lock():
        bracket = load_bracket()
        if bracket is None:
            return jsonify({'success': False, 'error': 'No tournament has been started.'}), 404
        bracket = advance_winner(bracket, match_id, home_score, away_score, scorers)
        save_bracket(bracket)

    app.logger.info(f'{match_id}: result recorded {home_score}-{away_score}')
    return jsonify({
        'success': True,
        'match': _match_payload(bracket.find_match(match_id)),
        **_bracket_payload(bracket),
    })


@app.route('/api/leaderboard', methods=['GET'])
def api_leaderboard():
    """Top goal scorers of the current tournament."""
    settings = load_settings()
    limit = request.args.get('limit', default=settings['leaderboard_size'], type=int)
    bracket = load_bracket()
    return jsonify({'scorers': get_top_scorers(bracket, limit=limit)})


@app.route('/api/tournament/reset', methods=['POST'])
def api_reset_tournament():
    with _data_lock():
        reset_tournament(load_bracket())
        delete_bracket()
    app.logger.info('Tournament reset')
    return jsonify({'success': True})


if __name__ == '__main__':
    app.run(debug=True, port=5000)
