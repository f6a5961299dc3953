POSITIONS = ('GK', 'DF', 'MD', 'AT')


class Player:
    def __init__(self, id, name, position, ratings=None, captain=False, age=None, nationality=None):
        self.id = id
        self.name = name
        self.position = position  # Natural position: GK, DF, MD or AT
        self.ratings = dict(ratings) if ratings else {pos: 0 for pos in POSITIONS}
        self.captain = captain
        self.age = age
        self.nationality = nationality

    @property
    def natural_rating(self):
        return self.ratings.get(self.position, 0)

    def to_dict(self):
        data = {
            'id': self.id,
            'name': self.name,
            'position': self.position,
            'ratings': dict(self.ratings),
            'captain': self.captain,
        }
        if self.age is not None:
            data['age'] = self.age
        if self.nationality is not None:
            data['nationality'] = self.nationality
        return data

    @classmethod
    def from_dict(cls, data):
        captain = data.get('captain')
        if captain is None:
            captain = False
        elif not isinstance(captain, bool):
            raise ValueError(f"captain must be true or false, got {captain!r}")
        ratings = data.get('ratings')
        if ratings:
            ratings = {pos: int(value) for pos, value in ratings.items()}
        return cls(
            id=data.get('id'),
            name=data['name'],
            position=data['position'],
            ratings=ratings,
            captain=captain,
            age=data.get('age'),
            nationality=data.get('nationality'),
        )

    def __repr__(self):
        return f"Player(name={self.name}, position={self.position}, rating={self.natural_rating})"


class Team:
    def __init__(self, id, name, country=None, rating=0, players=None):
        self.id = id
        self.name = name
        self.country = country if country is not None else name
        self.rating = rating
        self.players = players if players else []

    def snapshot(self):
        """Copy of the team without its roster, as stored in a bracket."""
        return Team(id=self.id, name=self.name, country=self.country, rating=self.rating)

    def to_dict(self, include_players=False):
        data = {
            'id': self.id,
            'name': self.name,
            'country': self.country,
            'rating': self.rating,
        }
        if include_players:
            data['players'] = [p.to_dict() for p in self.players]
        return data

    @classmethod
    def from_dict(cls, data):
        if data is None:
            return None
        return cls(
            id=data['id'],
            name=data['name'],
            country=data.get('country'),
            rating=int(data.get('rating', 0) or 0),
            players=[Player.from_dict(p) for p in data.get('players') or []],
        )

    def __eq__(self, other):
        if not isinstance(other, Team):
            return NotImplemented
        return (self.id, self.name, self.country, self.rating) == \
            (other.id, other.name, other.country, other.rating)

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"Team(id={self.id}, name={self.name}, rating={self.rating})"


class GoalScorer:
    def __init__(self, player_name, minute, player_id=None, team=None):
        self.player_name = player_name
        self.minute = minute
        self.player_id = player_id
        self.team = team  # Team name; set on bracket records

    def to_dict(self):
        data = {'player_name': self.player_name, 'minute': self.minute}
        if self.player_id is not None:
            data['player_id'] = self.player_id
        if self.team is not None:
            data['team'] = self.team
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(
            player_name=data['player_name'],
            minute=int(data['minute']),
            player_id=data.get('player_id'),
            team=data.get('team'),
        )

    def __eq__(self, other):
        if not isinstance(other, GoalScorer):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"GoalScorer(player_name={self.player_name}, team={self.team}, minute={self.minute})"


class BracketMatch:
    def __init__(self, id, round, match_number, home_team=None, away_team=None,
                 next_match_id=None):
        self.id = id
        self.round = round  # QF, SF or F
        self.match_number = match_number
        self.home_team = home_team
        self.away_team = away_team
        self.home_score = None
        self.away_score = None
        self.winner = None
        self.completed = False
        self.next_match_id = next_match_id
        self.goal_scorers = None

    @property
    def has_both_teams(self):
        return self.home_team is not None and self.away_team is not None

    def to_dict(self):
        return {
            'id': self.id,
            'round': self.round,
            'match_number': self.match_number,
            'home_team': self.home_team.to_dict() if self.home_team else None,
            'away_team': self.away_team.to_dict() if self.away_team else None,
            'home_score': self.home_score,
            'away_score': self.away_score,
            'winner': self.winner.to_dict() if self.winner else None,
            'completed': self.completed,
            'next_match_id': self.next_match_id,
            'goal_scorers': [g.to_dict() for g in self.goal_scorers]
            if self.goal_scorers is not None else None,
        }

    @classmethod
    def from_dict(cls, data):
        match = cls(
            id=data['id'],
            round=data['round'],
            match_number=data['match_number'],
            home_team=Team.from_dict(data.get('home_team')),
            away_team=Team.from_dict(data.get('away_team')),
            next_match_id=data.get('next_match_id'),
        )
        match.home_score = data.get('home_score')
        match.away_score = data.get('away_score')
        match.winner = Team.from_dict(data.get('winner'))
        match.completed = bool(data.get('completed', False))
        scorers = data.get('goal_scorers')
        match.goal_scorers = [GoalScorer.from_dict(g) for g in scorers] if scorers is not None else None
        return match

    def __repr__(self):
        home = self.home_team.name if self.home_team else 'TBD'
        away = self.away_team.name if self.away_team else 'TBD'
        return f"BracketMatch(id={self.id}, {home} vs {away}, completed={self.completed})"


class Bracket:
    def __init__(self, quarter_finals, semi_finals, final, champion=None):
        self.quarter_finals = quarter_finals
        self.semi_finals = semi_finals
        self.final = final
        self.champion = champion

    @property
    def all_matches(self):
        """All matches in play order: QF1..QF4, SF1, SF2, F."""
        return [*self.quarter_finals, *self.semi_finals, self.final]

    def find_match(self, match_id):
        for match in self.all_matches:
            if match.id == match_id:
                return match
        return None

    def to_dict(self):
        return {
            'quarter_finals': [m.to_dict() for m in self.quarter_finals],
            'semi_finals': [m.to_dict() for m in self.semi_finals],
            'final': self.final.to_dict(),
            'champion': self.champion.to_dict() if self.champion else None,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            quarter_finals=[BracketMatch.from_dict(m) for m in data['quarter_finals']],
            semi_finals=[BracketMatch.from_dict(m) for m in data['semi_finals']],
            final=BracketMatch.from_dict(data['final']),
            champion=Team.from_dict(data.get('champion')),
        )

    def __repr__(self):
        champion = self.champion.name if self.champion else None
        return f"Bracket(matches={len(self.all_matches)}, champion={champion})"


class MatchStats:
    FIELDS = ('possession', 'shots', 'shots_on_target', 'corners', 'fouls',
              'offsides', 'yellow_cards', 'red_cards')

    def __init__(self, **pairs):
        # Each field is a {'home': int, 'away': int} pair
        for name in self.FIELDS:
            setattr(self, name, pairs.get(name, {'home': 0, 'away': 0}))

    def to_dict(self):
        return {name: dict(getattr(self, name)) for name in self.FIELDS}

    @classmethod
    def from_dict(cls, data):
        return cls(**{name: dict(data[name]) for name in cls.FIELDS if name in data})

    def __repr__(self):
        return f"MatchStats(possession={self.possession}, shots={self.shots})"


class MatchEvent:
    def __init__(self, minute, type, team, player, description):
        self.minute = minute
        self.type = type  # goal or yellow_card
        self.team = team  # home or away
        self.player = player
        self.description = description

    def to_dict(self):
        return {
            'minute': self.minute,
            'type': self.type,
            'team': self.team,
            'player': self.player,
            'description': self.description,
        }

    def __repr__(self):
        return f"MatchEvent(minute={self.minute}, type={self.type}, team={self.team}, player={self.player})"


class MatchResult:
    def __init__(self, home_score, away_score, home_goal_scorers, away_goal_scorers,
                 stats, winner, match_events):
        self.home_score = home_score
        self.away_score = away_score
        self.home_goal_scorers = home_goal_scorers
        self.away_goal_scorers = away_goal_scorers
        self.stats = stats
        self.winner = winner  # home or away
        self.match_events = match_events

    def goal_scorer_records(self, home_name, away_name):
        """Flatten both scorer lists into bracket records tagged with team names."""
        records = [GoalScorer(g.player_name, g.minute, player_id=g.player_id, team=home_name)
                   for g in self.home_goal_scorers]
        records.extend(GoalScorer(g.player_name, g.minute, player_id=g.player_id, team=away_name)
                       for g in self.away_goal_scorers)
        records.sort(key=lambda g: g.minute)
        return records

    def to_dict(self):
        return {
            'home_score': self.home_score,
            'away_score': self.away_score,
            'home_goal_scorers': [g.to_dict() for g in self.home_goal_scorers],
            'away_goal_scorers': [g.to_dict() for g in self.away_goal_scorers],
            'stats': self.stats.to_dict(),
            'winner': self.winner,
            'match_events': [e.to_dict() for e in self.match_events],
        }

    def __repr__(self):
        return f"MatchResult(home_score={self.home_score}, away_score={self.away_score}, winner={self.winner})"
