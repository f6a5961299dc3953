"""
Match simulation: score, goal scorers, statistics and timeline for one
fixture, driven by the two team ratings and rosters.
"""
import logging
import random
from typing import List, Optional

from core.models import GoalScorer, MatchEvent, MatchResult, MatchStats, Team

logger = logging.getLogger(__name__)

DEFAULT_MATCH_DURATION = 90

MIN_EXPECTED_GOALS = 0.5
MAX_EXPECTED_GOALS = 3.5
HOME_ADVANTAGE = 1.1
DEFENSE_WEIGHT = 0.3

# Scoring likelihood multipliers per position
POSITION_WEIGHTS = {
    'AT': 4.0,
    'MD': 2.0,
    'DF': 0.5,
    'GK': 0.01,
}
CAPTAIN_BONUS = 1.2

LATE_WINNER_MINUTES = (85, 90)

MIN_POSSESSION = 35
MAX_POSSESSION = 65
RED_CARD_PROBABILITY = 0.1


class MatchEngine:
    """
    Simulates a single fixture between a home and an away team.

    Results never end level: a tied scoreline gets a late winner for a side
    picked at random, because the bracket has no extra time or penalties.
    Pass a seeded ``random.Random`` as ``rng`` for reproducible results.
    """

    def __init__(self, home_team: Team, away_team: Team,
                 match_duration: int = DEFAULT_MATCH_DURATION,
                 rng: Optional[random.Random] = None):
        self.home_team = home_team
        self.away_team = away_team
        self.match_duration = match_duration
        self.rng = rng or random.Random()

    def simulate_match(self) -> MatchResult:
        home_expected = self.calculate_expected_goals(
            self.home_team.rating, self.away_team.rating, is_home=True)
        away_expected = self.calculate_expected_goals(
            self.away_team.rating, self.home_team.rating, is_home=False)

        home_score = self.generate_goals(home_expected)
        away_score = self.generate_goals(away_expected)

        home_goal_scorers = self.generate_goal_scorers(self.home_team, home_score)
        away_goal_scorers = self.generate_goal_scorers(self.away_team, away_score)

        if home_score == away_score:
            if self.rng.random() < 0.5:
                home_score += 1
                home_goal_scorers.append(self._late_winner(self.home_team))
            else:
                away_score += 1
                away_goal_scorers.append(self._late_winner(self.away_team))

        home_goal_scorers.sort(key=lambda g: g.minute)
        away_goal_scorers.sort(key=lambda g: g.minute)

        stats = self.generate_match_stats(home_score, away_score)
        events = self.generate_match_events(home_goal_scorers, away_goal_scorers, stats)

        return MatchResult(
            home_score=home_score,
            away_score=away_score,
            home_goal_scorers=home_goal_scorers,
            away_goal_scorers=away_goal_scorers,
            stats=stats,
            winner='home' if home_score > away_score else 'away',
            match_events=events,
        )

    @staticmethod
    def calculate_expected_goals(attack_rating: int, defense_rating: int, is_home: bool) -> float:
        """Expected goals for one side, clamped to [0.5, 3.5]."""
        expected = attack_rating / 100
        expected *= 1 - (defense_rating / 100) * DEFENSE_WEIGHT
        if is_home:
            expected *= HOME_ADVANTAGE
        return max(MIN_EXPECTED_GOALS, min(MAX_EXPECTED_GOALS, expected * 3))

    def generate_goals(self, expected_goals: float) -> int:
        # Chain of Bernoulli trials approximating a Poisson draw
        goals = 0
        remaining = expected_goals
        while remaining > 0:
            if self.rng.random() < remaining:
                goals += 1
                remaining -= 1
            else:
                break
        return goals

    def _random_minute(self) -> int:
        return self.rng.randint(1, self.match_duration)

    def _late_winner(self, team: Team) -> GoalScorer:
        scorer = self._pick_scorer(team)
        # Never after the final whistle of a shortened match
        latest = min(LATE_WINNER_MINUTES[1], self.match_duration)
        earliest = min(LATE_WINNER_MINUTES[0], latest)
        scorer.minute = self.rng.randint(earliest, latest)
        return scorer

    def generate_goal_scorers(self, team: Team, goal_count: int) -> List[GoalScorer]:
        return [self._pick_scorer(team) for _ in range(goal_count)]

    def _pick_scorer(self, team: Team) -> GoalScorer:
        """Weighted pick by position and rating, with a random fallback."""
        minute = self._random_minute()
        players = team.players

        if not players:
            logger.warning("Team %s has no players; crediting goal to a placeholder", team.name)
            return GoalScorer(player_name=f"{team.name} player", minute=minute)

        weights = [
            (player.natural_rating / 100)
            * POSITION_WEIGHTS.get(player.position, 0)
            * (CAPTAIN_BONUS if player.captain else 1.0)
            for player in players
        ]
        total_weight = sum(weights)

        if total_weight <= 0:
            logger.warning("Total scoring weight is zero for team %s; using random selection", team.name)
            player = self.rng.choice(players)
            return GoalScorer(player_name=player.name, minute=minute, player_id=player.id)

        pick = self.rng.random() * total_weight
        selected = players[-1]
        for player, weight in zip(players, weights):
            if pick < weight:
                selected = player
                break
            pick -= weight

        return GoalScorer(player_name=selected.name, minute=minute, player_id=selected.id)

    def generate_match_stats(self, home_score: int, away_score: int) -> MatchStats:
        rng = self.rng

        rating_diff = self.home_team.rating - self.away_team.rating
        base_possession = 50 + rating_diff * 0.3
        home_possession = max(MIN_POSSESSION,
                              min(MAX_POSSESSION, base_possession + (rng.random() - 0.5) * 10))
        home_possession = round(home_possession)

        def shots_for(goals):
            return max(goals + 3, int(8 + rng.random() * 12 + goals * 2))

        home_shots = shots_for(home_score)
        away_shots = shots_for(away_score)

        def on_target(shots, goals):
            return max(goals, int(shots * (0.3 + rng.random() * 0.2)))

        return MatchStats(
            possession={'home': home_possession, 'away': 100 - home_possession},
            shots={'home': home_shots, 'away': away_shots},
            shots_on_target={'home': on_target(home_shots, home_score),
                             'away': on_target(away_shots, away_score)},
            corners={'home': rng.randint(3, 12), 'away': rng.randint(3, 12)},
            fouls={'home': rng.randint(8, 17), 'away': rng.randint(8, 17)},
            offsides={'home': rng.randint(0, 5), 'away': rng.randint(0, 5)},
            yellow_cards={'home': rng.randint(0, 3), 'away': rng.randint(0, 3)},
            red_cards={'home': 1 if rng.random() < RED_CARD_PROBABILITY else 0,
                       'away': 1 if rng.random() < RED_CARD_PROBABILITY else 0},
        )

    def generate_match_events(self, home_goal_scorers: List[GoalScorer],
                              away_goal_scorers: List[GoalScorer],
                              stats: MatchStats) -> List[MatchEvent]:
        events = []

        for side, scorers in (('home', home_goal_scorers), ('away', away_goal_scorers)):
            for scorer in scorers:
                events.append(MatchEvent(
                    minute=scorer.minute,
                    type='goal',
                    team=side,
                    player=scorer.player_name,
                    description=f"Goal scored by {scorer.player_name}",
                ))

        for side, team in (('home', self.home_team), ('away', self.away_team)):
            for _ in range(stats.yellow_cards[side]):
                if team.players:
                    name = self.rng.choice(team.players).name
                else:
                    name = f"{team.name} player"
                events.append(MatchEvent(
                    minute=self._random_minute(),
                    type='yellow_card',
                    team=side,
                    player=name,
                    description=f"Yellow card for {name}",
                ))

        events.sort(key=lambda e: e.minute)
        return events

    def get_match_summary(self, result: MatchResult) -> str:
        """One-line summary, used when no commentary is available."""
        if result.winner == 'home':
            winner, loser = self.home_team.name, self.away_team.name
        else:
            winner, loser = self.away_team.name, self.home_team.name

        if len(result.home_goal_scorers) > len(result.away_goal_scorers):
            opener = result.home_goal_scorers[0].player_name
        else:
            opener = result.away_goal_scorers[0].player_name

        possession = result.stats.possession
        return (f"{winner} defeats {loser} {result.home_score}-{result.away_score}. "
                f"{opener} opens the scoring. "
                f"Final possession: {possession['home']}% - {possession['away']}%.")
