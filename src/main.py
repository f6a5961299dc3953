# Entry point for playing a whole cup tournament from the command line

import argparse
import logging
import os
import random
import yaml
from core.bracket import (
    start_tournament,
    get_next_match,
    advance_winner,
    is_tournament_complete,
    get_top_scorers,
    get_round_name,
)
from core.exceptions import BracketError
from core.match_engine import MatchEngine, DEFAULT_MATCH_DURATION
from core.squad import build_team, build_squad_from_pool, calculate_team_rating, load_player_pool

logger = logging.getLogger(__name__)


def load_teams(file_path):
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or {}
    return [build_team(entry) for entry in data.get('teams') or []]


def fill_squads_from_pool(teams, pool):
    """Give every team without players the best squad of its country from the pool."""
    for team in teams:
        if team.players:
            continue
        squad = build_squad_from_pool(pool, team.country)
        if not squad:
            logger.warning("No players from %s in the pool; %s keeps an empty squad", team.country, team.name)
            continue
        team.players = squad
        team.rating = calculate_team_rating(squad)
    return teams


def play_tournament(teams, rng=None, match_duration=DEFAULT_MATCH_DURATION):
    """Play every match in order. Returns the final bracket and (match, result, summary) per match."""
    rng = rng or random.Random()
    rosters = {team.id: team for team in teams}
    bracket = start_tournament(teams, rng=rng)
    played = []

    while not is_tournament_complete(bracket):
        match = get_next_match(bracket)
        home = rosters[match.home_team.id]
        away = rosters[match.away_team.id]
        engine = MatchEngine(home, away, match_duration=match_duration, rng=rng)
        result = engine.simulate_match()
        bracket = advance_winner(bracket, match.id, result.home_score, result.away_score,
                                 result.goal_scorer_records(home.name, away.name))
        played.append((bracket.find_match(match.id), result, engine.get_match_summary(result)))

    return bracket, played


def print_tournament(bracket, played):
    current_round = None
    for match, result, summary in played:
        if match.round != current_round:
            current_round = match.round
            print(f"\n--- {get_round_name(current_round)} ---")
        print(f"{match.id}: {match.home_team.name} {result.home_score}-{result.away_score} {match.away_team.name}")
        for scorer in match.goal_scorers:
            print(f"    {scorer.minute}' {scorer.player_name} ({scorer.team})")
        print(f"    {summary}")

    print(f"\nChampion: {bracket.champion.name}")

    scorers = get_top_scorers(bracket, limit=5)
    if scorers:
        print("\n--- Top Scorers ---")
        for row in scorers:
            print(f"  {row['goals']}  {row['player_name']} ({row['team']})")


def main(argv=None):
    script_dir = os.path.dirname(__file__)
    base_dir = os.path.dirname(script_dir)

    parser = argparse.ArgumentParser(description='Play an 8-team cup tournament.')
    parser.add_argument('teams_file', nargs='?', default=os.path.join(base_dir, 'data', 'teams.yaml'),
                        help='YAML file with exactly 8 teams')
    parser.add_argument('--seed', type=int, default=None, help='random seed for a reproducible run')
    parser.add_argument('--duration', type=int, default=DEFAULT_MATCH_DURATION,
                        help='match duration in minutes')
    parser.add_argument('--players', default=None,
                        help='CSV player pool used to pick squads for teams listed without players')
    parser.add_argument('--verbose', action='store_true', help='log bracket progression')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    teams = load_teams(args.teams_file)
    if not teams:
        print(f"No teams loaded. Check {args.teams_file}")
        return 1

    rng = random.Random(args.seed) if args.seed is not None else random.Random()
    if args.players:
        fill_squads_from_pool(teams, load_player_pool(args.players, rng=rng))

    try:
        bracket, played = play_tournament(teams, rng=rng, match_duration=args.duration)
    except BracketError as e:
        print(f"Error: {e}")
        return 1

    print_tournament(bracket, played)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
