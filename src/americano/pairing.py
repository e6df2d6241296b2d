import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from americano.models import Match, generate_id, pair_key

logger = logging.getLogger(__name__)

MIN_PLAYERS = 4

Pair = Tuple[str, str]


class PairingUniverse:
    """Every potential partnership of a roster, and which ones are spent.

    Player order is shuffled once with the given random source, so the
    enumeration (and everything built from it) is reproducible for a seed.
    Fewer than four players leaves the universe empty.
    """

    def __init__(self, player_ids: List[str], rng: random.Random):
        ids = list(player_ids)
        rng.shuffle(ids)
        self.player_ids = ids
        self.pairs: List[Pair] = []
        if len(ids) >= MIN_PLAYERS:
            self.pairs = [
                (ids[i], ids[j])
                for i in range(len(ids))
                for j in range(i + 1, len(ids))
            ]
        self._used: Set[frozenset] = set()

    def __len__(self) -> int:
        return len(self.pairs)

    @property
    def insufficient(self) -> bool:
        return not self.pairs

    @property
    def used_count(self) -> int:
        return len(self._used)

    @property
    def exhausted(self) -> bool:
        return len(self._used) >= len(self.pairs)

    def is_used(self, pair: Pair) -> bool:
        return pair_key(*pair) in self._used

    def mark_used(self, pair: Pair) -> None:
        self._used.add(pair_key(*pair))

    def unused(self) -> List[Pair]:
        return [p for p in self.pairs if not self.is_used(p)]

    @staticmethod
    def overlaps(pair1: Pair, pair2: Pair) -> bool:
        return bool(set(pair1) & set(pair2))


@dataclass
class RoundResult:
    matches: List[Match] = field(default_factory=list)
    byes: List[str] = field(default_factory=list)

    @property
    def stalled(self) -> bool:
        return not self.matches


class RoundBuilder:
    """Greedy single pass that fills one round's courts from unused partnerships."""

    def __init__(self, universe: PairingUniverse, courts: int, rng: random.Random):
        self.universe = universe
        self.courts = courts
        self.rng = rng

    def build(self, round_number: int, match_counts: Dict[str, int]) -> RoundResult:
        universe = self.universe

        def load(pair: Pair) -> int:
            return match_counts.get(pair[0], 0) + match_counts.get(pair[1], 0)

        # stable sort: equal loads keep enumeration order
        available = sorted(universe.unused(), key=load)
        assigned: Set[str] = set()
        matches: List[Match] = []
        court = 1

        for team1 in available:
            if court > self.courts:
                break
            if team1[0] in assigned or team1[1] in assigned or universe.is_used(team1):
                continue

            team2 = self._best_opponents(team1, available, assigned, load)
            if team2 is None:
                continue

            matches.append(Match(
                id=generate_id(self.rng),
                round=round_number,
                court=court,
                team1=list(team1),
                team2=list(team2),
            ))
            universe.mark_used(team1)
            universe.mark_used(team2)
            assigned.update(team1)
            assigned.update(team2)
            court += 1

        byes = [pid for pid in universe.player_ids if pid not in assigned]
        return RoundResult(matches=matches, byes=byes)

    def _best_opponents(self, team1: Pair, available: List[Pair], assigned: Set[str], load) -> Optional[Pair]:
        best, best_load = None, None
        for candidate in available:
            if PairingUniverse.overlaps(team1, candidate):
                continue
            if candidate[0] in assigned or candidate[1] in assigned:
                continue
            if self.universe.is_used(candidate):
                continue
            candidate_load = load(candidate)
            if best_load is None or candidate_load < best_load:
                best, best_load = candidate, candidate_load
        return best
