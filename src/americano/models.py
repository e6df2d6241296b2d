import random
import uuid
from dataclasses import dataclass, field, asdict, replace
from typing import Dict, List, Literal, Optional

from americano.exceptions import InvalidMatchRecord

MATCH_RECORD_KEYS = ("id", "round", "court", "team1", "team2", "score1", "score2", "completed")
STATUSES = ("active", "finished")


def generate_id(rng: Optional[random.Random] = None) -> str:
    if rng is None:
        return str(uuid.uuid4())[:8]
    return str(uuid.UUID(int=rng.getrandbits(128), version=4))[:8]


def pair_key(p1: str, p2: str) -> frozenset:
    return frozenset((p1, p2))


@dataclass(frozen=True)
class Player:
    id: str
    name: str


@dataclass
class Match:
    id: str
    round: int
    court: int
    team1: List[str]  # player ids
    team2: List[str]  # player ids
    score1: Optional[int] = None
    score2: Optional[int] = None
    completed: bool = False

    @property
    def players(self) -> List[str]:
        return [*self.team1, *self.team2]

    def team_score(self, player_id: str) -> int:
        if player_id in self.team1:
            return self.score1 or 0
        return self.score2 or 0

    def conceded_score(self, player_id: str) -> int:
        if player_id in self.team1:
            return self.score2 or 0
        return self.score1 or 0

    def partner_of(self, player_id: str) -> str:
        team = self.team1 if player_id in self.team1 else self.team2
        return team[1] if team[0] == player_id else team[0]

    def opponents_of(self, player_id: str) -> List[str]:
        return list(self.team2 if player_id in self.team1 else self.team1)

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "round": self.round,
            "court": self.court,
            "team1": list(self.team1),
            "team2": list(self.team2),
            "score1": self.score1,
            "score2": self.score2,
            "completed": self.completed,
        }

    @classmethod
    def from_record(cls, record: dict, points_per_match: Optional[int] = None) -> "Match":
        """Rebuild a match from its record, enforcing the scored-match invariants.

        With ``points_per_match`` given, a completed match must split exactly
        that many points between the teams.
        """
        missing = [key for key in MATCH_RECORD_KEYS if key not in record]
        if missing:
            raise InvalidMatchRecord(f"match record is missing {', '.join(missing)}")
        mid = str(record["id"])
        team1, team2 = list(record["team1"]), list(record["team2"])
        if len(team1) != 2 or len(team2) != 2 or len(set(team1) | set(team2)) != 4:
            raise InvalidMatchRecord(f"match {mid} needs two disjoint teams of two")

        round_number = _whole_number(record["round"], mid, "round")
        court = _whole_number(record["court"], mid, "court")
        if round_number < 1 or court < 1:
            raise InvalidMatchRecord(f"match {mid} needs a positive round and court")
        score1 = _whole_number(record["score1"], mid, "score1")
        score2 = _whole_number(record["score2"], mid, "score2")
        if (score1 is not None and score1 < 0) or (score2 is not None and score2 < 0):
            raise InvalidMatchRecord(f"match {mid} has a negative score")

        completed = record["completed"]
        if not isinstance(completed, bool):
            raise InvalidMatchRecord(f"match {mid}: completed must be true or false")
        if completed:
            if score1 is None or score2 is None:
                raise InvalidMatchRecord(f"completed match {mid} has no score")
            if points_per_match is not None and score1 + score2 != points_per_match:
                raise InvalidMatchRecord(
                    f"match {mid} scores add up to {score1 + score2}, not {points_per_match}"
                )
        return cls(
            id=mid,
            round=round_number,
            court=court,
            team1=[str(pid) for pid in team1],
            team2=[str(pid) for pid in team2],
            score1=score1,
            score2=score2,
            completed=completed,
        )


def _whole_number(value, match_id: str, key: str) -> Optional[int]:
    if value is None and key.startswith("score"):
        return None
    if isinstance(value, bool):
        raise InvalidMatchRecord(f"match {match_id}: {key} must be a whole number")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidMatchRecord(f"match {match_id}: {key} must be a whole number")
    if number != value and str(number) != str(value).strip():
        raise InvalidMatchRecord(f"match {match_id}: {key} must be a whole number")
    return number


@dataclass
class Schedule:
    matches: List[Match] = field(default_factory=list)
    byes_by_round: Dict[int, List[str]] = field(default_factory=dict)
    total_rounds: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.matches

    def round_matches(self, round_number: int) -> List[Match]:
        return [m for m in self.matches if m.round == round_number]


@dataclass
class ScheduleEstimate:
    rounds: int
    matches_per_player: int
    perfect_schedule: bool


@dataclass
class ScheduleStats:
    matches_per_player: Dict[str, int]
    partnerships_count: Dict[str, int]
    partnership_matrix: Dict[str, Dict[str, int]]
    min_matches: int
    max_matches: int
    all_partnered: bool


@dataclass(frozen=True)
class Standing:
    player_id: str
    player_name: str
    points: int
    matches_played: int
    matches_total: int
    byes: int
    average: float
    kind: Literal["standing"] = "standing"


@dataclass(frozen=True)
class Contributor:
    """A player whose average fed into a projection."""
    player_id: str
    name: str
    average: float


@dataclass(frozen=True)
class CalculationDetails:
    missing_matches: int
    per_match_estimate: float
    estimated_additional_points: float
    contributors: List[Contributor] = field(default_factory=list)
    used_fallback: bool = False


@dataclass(frozen=True)
class AdjustedStanding:
    player_id: str
    player_name: str
    points: int
    matches_played: int
    matches_total: int
    byes: int
    average: float
    adjusted_points: float
    adjusted_average: float
    model: str
    details: Optional[CalculationDetails] = None
    kind: Literal["adjusted"] = "adjusted"

    @classmethod
    def from_standing(cls, standing: Standing, adjusted_points: float, adjusted_average: float,
                      model: str, details: Optional[CalculationDetails] = None) -> "AdjustedStanding":
        fields = asdict(standing)
        fields.pop("kind")
        return cls(
            **fields,
            adjusted_points=adjusted_points,
            adjusted_average=adjusted_average,
            model=model,
            details=details,
        )


@dataclass
class FairnessStats:
    match_variance: float
    is_balanced: bool
    min_matches: int
    max_matches: int
    avg_matches: float
    players_with_fewer_matches: List[str] = field(default_factory=list)


@dataclass
class Tournament:
    id: str
    name: str
    courts: int
    points_per_match: int
    players: dict = field(default_factory=dict)  # id -> Player
    schedule: Schedule = field(default_factory=Schedule)
    current_round: int = 1
    status: str = "active"  # active, finished
    seed: Optional[int] = None

    @property
    def roster(self) -> List[Player]:
        return list(self.players.values())

    @property
    def total_rounds(self) -> int:
        return self.schedule.total_rounds

    @property
    def current_matches(self) -> List[Match]:
        return self.schedule.round_matches(self.current_round)

    @property
    def current_byes(self) -> List[str]:
        return self.schedule.byes_by_round.get(self.current_round, [])

    @property
    def is_round_complete(self) -> bool:
        current = self.current_matches
        return bool(current) and all(m.completed for m in current)

    @property
    def is_tournament_complete(self) -> bool:
        matches = self.schedule.matches
        return bool(matches) and all(m.completed for m in matches)

    def find_match(self, match_id: str) -> Optional[Match]:
        return next((m for m in self.schedule.matches if m.id == match_id), None)

    def replace_match(self, updated: Match) -> "Tournament":
        matches = [updated if m.id == updated.id else m for m in self.schedule.matches]
        return replace(self, schedule=replace(self.schedule, matches=matches))

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "courts": self.courts,
            "points_per_match": self.points_per_match,
            "players": [{"id": p.id, "name": p.name} for p in self.players.values()],
            "matches": [m.to_record() for m in self.schedule.matches],
            "byes_by_round": {str(r): list(ids) for r, ids in self.schedule.byes_by_round.items()},
            "current_round": self.current_round,
            "status": self.status,
            "seed": self.seed,
        }

    @classmethod
    def from_record(cls, record: dict) -> "Tournament":
        for key in ("id", "name", "players", "matches", "courts", "points_per_match"):
            if key not in record:
                raise InvalidMatchRecord(f"tournament record is missing {key}")
        points_per_match = int(record["points_per_match"])
        if points_per_match < 1:
            raise InvalidMatchRecord("points per match must be positive")
        players = {str(p["id"]): Player(id=str(p["id"]), name=p["name"]) for p in record["players"]}
        matches = [Match.from_record(m, points_per_match) for m in record["matches"]]

        seen_ids, seen_slots = set(), set()
        for m in matches:
            if m.id in seen_ids:
                raise InvalidMatchRecord(f"duplicate match id {m.id}")
            if (m.round, m.court) in seen_slots:
                raise InvalidMatchRecord(f"two matches on court {m.court} in round {m.round}")
            seen_ids.add(m.id)
            seen_slots.add((m.round, m.court))

        status = record.get("status", "active")
        if status not in STATUSES:
            raise InvalidMatchRecord(f"unknown tournament status {status!r}")
        unknown = {pid for m in matches for pid in m.players} - set(players)
        if unknown:
            raise InvalidMatchRecord(f"matches reference unknown players: {', '.join(sorted(unknown))}")
        byes = {int(r): list(ids) for r, ids in record.get("byes_by_round", {}).items()}
        return cls(
            id=str(record["id"]),
            name=record["name"],
            courts=int(record["courts"]),
            points_per_match=points_per_match,
            players=players,
            schedule=Schedule(
                matches=matches,
                byes_by_round=byes,
                total_rounds=max((m.round for m in matches), default=0),
            ),
            current_round=int(record.get("current_round", 1)),
            status=status,
            seed=record.get("seed"),
        )
