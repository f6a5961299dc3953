"""
Errors raised by the bracket state machine.

All of them are caller-input problems scoped to a single call; the bracket
passed in is never modified when one is raised.
"""


class BracketError(Exception):
    """Base class for bracket errors."""


class InvalidEntrantCount(BracketError):
    """Tournament started with a number of teams other than eight."""

    def __init__(self, count: int, required: int = 8):
        self.count = count
        self.required = required
        super().__init__(f"Tournament requires exactly {required} teams, got {count}")


class DuplicateEntrant(BracketError):
    """The same team id was entered more than once."""

    def __init__(self, team_ids):
        self.team_ids = sorted(team_ids)
        super().__init__(f"Duplicate team ids: {', '.join(map(str, self.team_ids))}")


class MatchNotFound(BracketError):
    def __init__(self, match_id):
        self.match_id = match_id
        super().__init__(f"Match {match_id} not found")


class AlreadyCompleted(BracketError):
    def __init__(self, match_id):
        self.match_id = match_id
        super().__init__(f"Match {match_id} is already completed")


class SlotsNotReady(BracketError):
    def __init__(self, match_id):
        self.match_id = match_id
        super().__init__(f"Match {match_id} does not have both teams assigned")


class DrawNotAllowed(BracketError):
    def __init__(self, match_id, score):
        self.match_id = match_id
        self.score = score
        super().__init__(f"Match {match_id} ended {score}-{score}; elimination matches cannot be drawn")


class InvalidScore(BracketError):
    def __init__(self, match_id, home_score, away_score):
        self.match_id = match_id
        super().__init__(f"Invalid score for match {match_id}: {home_score}-{away_score}")
