"""
Single elimination bracket for an 8-team cup.

Brackets are threaded through these functions as values: every operation
that changes a bracket works on a copy and returns it, so the caller owns
persistence between calls.
"""
import copy
import logging
import random
from collections import Counter
from typing import Dict, List, Optional, Tuple

from core.exceptions import (
    AlreadyCompleted,
    DrawNotAllowed,
    DuplicateEntrant,
    InvalidEntrantCount,
    InvalidScore,
    MatchNotFound,
    SlotsNotReady,
)
from core.models import Bracket, BracketMatch, GoalScorer, Team

logger = logging.getLogger(__name__)

NUM_TEAMS = 8
TOTAL_MATCHES = 7

ROUND_NAMES = {
    'QF': 'Quarterfinal',
    'SF': 'Semifinal',
    'F': 'Final',
}

# Match id -> (successor match id, slot the winner takes)
SUCCESSOR_MAP: Dict[str, Tuple[str, str]] = {
    'QF1': ('SF1', 'home'),
    'QF2': ('SF1', 'away'),
    'QF3': ('SF2', 'home'),
    'QF4': ('SF2', 'away'),
    'SF1': ('F', 'home'),
    'SF2': ('F', 'away'),
}

UNSCHEDULED = 'unscheduled'
SCHEDULED = 'scheduled'
COMPLETED = 'completed'


def get_round_name(round_tag: str) -> str:
    """Get the display name of a round tag."""
    return ROUND_NAMES.get(round_tag, round_tag)


def _next_match_id(match_id: str) -> Optional[str]:
    successor = SUCCESSOR_MAP.get(match_id)
    return successor[0] if successor else None


def shuffle_teams(teams: List[Team], rng: Optional[random.Random] = None) -> List[Team]:
    """Shuffle teams using Fisher-Yates."""
    rng = rng or random.Random()
    shuffled = list(teams)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def start_tournament(teams: List[Team], rng: Optional[random.Random] = None) -> Bracket:
    """
    Create a new bracket from exactly eight teams.

    Teams are shuffled into quarter-final slots: QF1 gets shuffled teams 0
    and 1, QF2 gets 2 and 3, and so on. Semi-final and final slots stay
    empty until winners are advanced into them.
    """
    if len(teams) != NUM_TEAMS:
        raise InvalidEntrantCount(len(teams), NUM_TEAMS)

    counts = Counter(team.id for team in teams)
    duplicates = [team_id for team_id, count in counts.items() if count > 1]
    if duplicates:
        raise DuplicateEntrant(duplicates)

    shuffled = [team.snapshot() for team in shuffle_teams(teams, rng)]

    quarter_finals = []
    for i in range(4):
        match_id = f'QF{i + 1}'
        quarter_finals.append(BracketMatch(
            id=match_id,
            round='QF',
            match_number=i + 1,
            home_team=shuffled[i * 2],
            away_team=shuffled[i * 2 + 1],
            next_match_id=_next_match_id(match_id),
        ))

    semi_finals = [
        BracketMatch(id=f'SF{i + 1}', round='SF', match_number=i + 1,
                     next_match_id=_next_match_id(f'SF{i + 1}'))
        for i in range(2)
    ]
    final = BracketMatch(id='F', round='F', match_number=1)

    logger.debug("Started tournament: %s", ", ".join(
        f"{m.id} {m.home_team.name} vs {m.away_team.name}" for m in quarter_finals))
    return Bracket(quarter_finals=quarter_finals, semi_finals=semi_finals, final=final)


def get_match_state(match: BracketMatch) -> str:
    """Return unscheduled, scheduled or completed."""
    if match.completed:
        return COMPLETED
    if match.has_both_teams:
        return SCHEDULED
    return UNSCHEDULED


def get_next_match(bracket: Optional[Bracket]) -> Optional[BracketMatch]:
    """
    Get the next match to be played.

    That is the earliest match, in QF1..QF4, SF1, SF2, F order, which is not
    completed and has both teams assigned. Returns None once the final is
    played.
    """
    if bracket is None:
        return None
    for match in bracket.all_matches:
        if get_match_state(match) == SCHEDULED:
            return match
    return None


def advance_winner(
    bracket: Bracket,
    match_id: str,
    home_score: int,
    away_score: int,
    goal_scorers: Optional[List[GoalScorer]] = None
) -> Bracket:
    """
    Record a match result and move the winner into its successor slot.

    Returns the updated bracket. Completing the final crowns the champion.
    Elimination matches cannot end level; a draw is rejected rather than
    resolved here.
    """
    match = bracket.find_match(match_id)
    if match is None:
        raise MatchNotFound(match_id)
    if match.completed:
        raise AlreadyCompleted(match_id)
    if not match.has_both_teams:
        raise SlotsNotReady(match_id)
    if home_score is None or away_score is None or home_score < 0 or away_score < 0:
        raise InvalidScore(match_id, home_score, away_score)
    if home_score == away_score:
        raise DrawNotAllowed(match_id, home_score)

    updated = copy.deepcopy(bracket)
    match = updated.find_match(match_id)

    match.home_score = home_score
    match.away_score = away_score
    match.winner = match.home_team if home_score > away_score else match.away_team
    match.goal_scorers = list(goal_scorers) if goal_scorers else []
    match.completed = True

    successor = SUCCESSOR_MAP.get(match_id)
    if successor:
        next_id, slot = successor
        next_match = updated.find_match(next_id)
        if slot == 'home':
            next_match.home_team = match.winner
        else:
            next_match.away_team = match.winner
        logger.debug("%s winner %s advances to %s (%s)", match_id, match.winner.name, next_id, slot)

    if match.round == 'F':
        updated.champion = match.winner
        logger.debug("Champion: %s", match.winner.name)

    return updated


def is_tournament_complete(bracket: Optional[Bracket]) -> bool:
    return bracket is not None and bracket.final.completed


def get_champion(bracket: Optional[Bracket]) -> Optional[Team]:
    return bracket.champion if bracket is not None else None


def get_completed_matches(bracket: Optional[Bracket]) -> List[BracketMatch]:
    if bracket is None:
        return []
    return [m for m in bracket.all_matches if m.completed]


def get_matches_by_round(bracket: Optional[Bracket], round_tag: str) -> List[BracketMatch]:
    if bracket is None:
        return []
    if round_tag == 'QF':
        return bracket.quarter_finals
    if round_tag == 'SF':
        return bracket.semi_finals
    if round_tag == 'F':
        return [bracket.final]
    return []


def get_tournament_progress(bracket: Optional[Bracket]) -> Dict:
    """
    Summarise how far the tournament has got.

    current_round is the round still being played: QF, SF, F, or Complete
    once the final is done.
    """
    if bracket is None:
        return {
            'total_matches': TOTAL_MATCHES,
            'completed_matches': 0,
            'remaining_matches': TOTAL_MATCHES,
            'current_round': 'QF',
        }

    completed = len(get_completed_matches(bracket))

    if bracket.final.completed:
        current_round = 'Complete'
    elif all(m.completed for m in bracket.semi_finals):
        current_round = 'F'
    elif all(m.completed for m in bracket.quarter_finals):
        current_round = 'SF'
    else:
        current_round = 'QF'

    return {
        'total_matches': TOTAL_MATCHES,
        'completed_matches': completed,
        'remaining_matches': TOTAL_MATCHES - completed,
        'current_round': current_round,
    }


def reset_tournament(bracket: Optional[Bracket]) -> None:
    """Discard a bracket. The caller drops its stored copy."""
    if bracket is not None:
        logger.debug("Tournament reset after %d matches", len(get_completed_matches(bracket)))
    return None


def get_top_scorers(bracket: Optional[Bracket], limit: int = 10) -> List[Dict]:
    """
    Aggregate goal scorers over all completed matches.

    Returns rows of {player_name, team, goals} sorted by goals (descending)
    then player name.
    """
    tally = Counter()
    for match in get_completed_matches(bracket):
        for scorer in match.goal_scorers or []:
            tally[(scorer.player_name, scorer.team)] += 1

    rows = [
        {'player_name': name, 'team': team, 'goals': goals}
        for (name, team), goals in tally.items()
    ]
    rows.sort(key=lambda r: (-r['goals'], r['player_name']))
    return rows[:max(limit, 0)]
