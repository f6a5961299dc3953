"""
Squad building helpers: position normalisation, team rating, captain and
best-squad selection, and registration checks.
"""
import copy
import csv
import logging
import random
from typing import Dict, List, Optional

from core.models import POSITIONS, Player, Team

logger = logging.getLogger(__name__)

SQUAD_SIZE = 23

# Players per position in a best squad
SQUAD_FORMATION = {
    'GK': 3,
    'DF': 8,
    'MD': 8,
    'AT': 4,
}

IDEAL_CAPTAIN_AGE = 27

# Generated ratings: natural position, then every other position
NATURAL_RATING_RANGE = (50, 100)
OTHER_RATING_RANGE = (0, 50)

POSITION_MAP = {
    'GK': 'GK',

    'DF': 'DF',
    'CB': 'DF',
    'LCB': 'DF',
    'RCB': 'DF',
    'LB': 'DF',
    'RB': 'DF',
    'LWB': 'DF',
    'RWB': 'DF',

    'MD': 'MD',
    'CDM': 'MD',
    'CM': 'MD',
    'LCM': 'MD',
    'RCM': 'MD',
    'LDM': 'MD',
    'RDM': 'MD',
    'CAM': 'MD',
    'LAM': 'MD',
    'RAM': 'MD',
    'LM': 'MD',
    'RM': 'MD',

    'AT': 'AT',
    'LW': 'AT',
    'RW': 'AT',
    'ST': 'AT',
    'CF': 'AT',
    'LS': 'AT',
    'RS': 'AT',
}


def normalize_position(position: str) -> str:
    """Map a detailed position (CB, CAM, ST, ...) to GK, DF, MD or AT."""
    normalized = POSITION_MAP.get((position or '').strip().upper())
    if normalized is None:
        logger.warning("Unknown position: %s, defaulting to MD", position)
        return 'MD'
    return normalized


def calculate_team_rating(players: List[Player]) -> int:
    """Average natural rating of the squad, rounded. 0 for an empty squad."""
    if not players:
        return 0
    total = sum(player.natural_rating for player in players)
    return int(round(total / len(players)))


def select_captain(players: List[Player]) -> Optional[Player]:
    """
    Pick a captain: the best rated outfield player, ties broken by age
    closest to 27. Falls back to the first player when there are only
    goalkeepers.
    """
    candidates = [p for p in players if p.position != 'GK']
    if candidates:
        def age_gap(player):
            if player.age is None:
                return float('inf')
            return abs(player.age - IDEAL_CAPTAIN_AGE)
        return min(candidates, key=lambda p: (-p.natural_rating, age_gap(p)))
    return players[0] if players else None


def select_best_squad(players: List[Player]) -> List[Player]:
    """Best 3 GK, 8 DF, 8 MD and 4 AT by natural rating."""
    squad = []
    for position in POSITIONS:
        at_position = [p for p in players if p.position == position]
        at_position.sort(key=lambda p: p.natural_rating, reverse=True)
        squad.extend(at_position[:SQUAD_FORMATION[position]])
    return squad


def validate_squad(players: List[Player]) -> List[str]:
    """Return the reasons a squad cannot be registered; empty when valid."""
    errors = []
    if len(players) != SQUAD_SIZE:
        errors.append(f"Squad must have exactly {SQUAD_SIZE} players, has {len(players)}")

    captains = sum(1 for p in players if p.captain)
    if captains != 1:
        errors.append(f"Squad must have exactly one captain, has {captains}")

    for player in players:
        if player.position not in POSITIONS:
            errors.append(f"{player.name} has unknown position {player.position}")
        for position, rating in player.ratings.items():
            if not 0 <= rating <= 100:
                errors.append(f"{player.name} has {position} rating {rating} outside 0-100")
    return errors


def build_team(data: dict) -> Team:
    """
    Build a team from its stored form.

    Player positions may be detailed (ST, CB, ...) and are normalised. A team
    without an explicit rating is rated from its players.
    """
    team = Team.from_dict(data)
    for player in team.players:
        player.position = normalize_position(player.position)
    if not data.get('rating'):
        team.rating = calculate_team_rating(team.players)
    return team


def generate_player_ratings(position: str, rng: Optional[random.Random] = None) -> Dict[str, int]:
    """Ratings for all four positions: 50-100 in the natural one, 0-50 elsewhere."""
    rng = rng or random.Random()
    ratings = {}
    for pos in POSITIONS:
        low, high = NATURAL_RATING_RANGE if pos == position else OTHER_RATING_RANGE
        ratings[pos] = rng.randint(low, high)
    return ratings


def load_player_pool(file_path: str, rng: Optional[random.Random] = None) -> List[Player]:
    """
    Load a player pool from CSV.

    Columns (case-insensitive): id, name, age, nationality, position. Rows
    without a name, nationality or position are skipped. Positions are
    normalised and ratings generated for every player.
    """
    rng = rng or random.Random()
    players = []
    with open(file_path, mode='r', encoding='utf-8', newline='') as file:
        reader = csv.DictReader(file)
        for line_number, row in enumerate(reader, start=2):
            row = {key.strip().lower(): (value or '').strip() for key, value in row.items() if key is not None}
            name = row.get('name')
            nationality = row.get('nationality')
            if not name or not nationality or not row.get('position'):
                logger.debug("Skipping incomplete player row %d in %s", line_number, file_path)
                continue

            position = normalize_position(row['position'])
            age = row.get('age')
            players.append(Player(
                id=row.get('id') or f"{nationality}-{line_number}",
                name=name,
                position=position,
                ratings=generate_player_ratings(position, rng),
                age=int(age) if age and age.isdigit() else None,
                nationality=nationality,
            ))
    logger.info("Loaded %d players from %s", len(players), file_path)
    return players


def get_players_by_country(players: List[Player], country: str) -> List[Player]:
    return [p for p in players if p.nationality == country]


def build_squad_from_pool(players: List[Player], country: str) -> List[Player]:
    """Best squad of a country's players from a pool, with its captain set."""
    squad = [copy.copy(p) for p in select_best_squad(get_players_by_country(players, country))]
    for player in squad:
        player.captain = False
    captain = select_captain(squad)
    if captain is not None:
        captain.captain = True
    return squad
