import logging
import math
import random
from dataclasses import replace
from typing import Dict, List, Optional

from americano.exceptions import InvalidScore, MatchAlreadyCompleted
from americano.models import Match, Player, Schedule, ScheduleEstimate, ScheduleStats, Standing
from americano.pairing import MIN_PLAYERS, PairingUniverse, RoundBuilder

logger = logging.getLogger(__name__)


def generate_schedule(
    players: List[Player],
    courts: int,
    points_per_match: int,
    rng: Optional[random.Random] = None,
) -> Schedule:
    """Generate an Americano schedule where every pair partners at most once.

    Rounds are built greedily until every partnership is spent, a round can
    not seat a single match, or the round index passes twice the roster size.
    Fewer than four players (or no courts) gives an empty schedule.
    """
    if rng is None:
        rng = random.Random()
    n = len(players)
    universe = PairingUniverse([p.id for p in players], rng)
    if universe.insufficient or courts < 1:
        logger.info("not scheduling %d players on %d courts", n, courts)
        return Schedule()

    builder = RoundBuilder(universe, courts, rng)
    match_counts: Dict[str, int] = {pid: 0 for pid in universe.player_ids}
    matches: List[Match] = []
    byes_by_round: Dict[int, List[str]] = {}
    round_number = 1

    while not universe.exhausted:
        result = builder.build(round_number, match_counts)
        if result.stalled:
            logger.info(
                "round %d stalled with %d of %d partnerships used",
                round_number, universe.used_count, len(universe),
            )
            break

        for match in result.matches:
            for pid in match.players:
                match_counts[pid] += 1
        matches.extend(result.matches)
        byes_by_round[round_number] = result.byes
        round_number += 1

        if round_number > n * 2:
            if not universe.exhausted:
                logger.warning("schedule for %d players hit the %d round cap", n, n * 2)
            break

    total_rounds = round_number - 1
    logger.info(
        "scheduled %d matches over %d rounds for %d players (%d points per match)",
        len(matches), total_rounds, n, points_per_match,
    )
    return Schedule(matches=matches, byes_by_round=byes_by_round, total_rounds=total_rounds)


def estimate_schedule(num_players: int, courts: int) -> ScheduleEstimate:
    if num_players < MIN_PLAYERS or courts < 1:
        return ScheduleEstimate(rounds=0, matches_per_player=0, perfect_schedule=False)

    n = num_players
    total_matches = n * (n - 1) / 4
    matches_per_round = min(courts, n // 4)
    return ScheduleEstimate(
        rounds=math.ceil(total_matches / matches_per_round),
        matches_per_player=n - 1,
        perfect_schedule=(n * (n - 1)) % 4 == 0,
    )


def get_schedule_stats(matches: List[Match], players: List[Player]) -> ScheduleStats:
    """Partner coverage and match counts for a generated schedule."""
    ids = [p.id for p in players]
    matches_per_player = {pid: 0 for pid in ids}
    matrix = {pid: {other: 0 for other in ids if other != pid} for pid in ids}

    for match in matches:
        for pid in match.players:
            matches_per_player[pid] = matches_per_player.get(pid, 0) + 1
        for a, b in (match.team1, match.team2):
            if a in matrix:
                matrix[a][b] = matrix[a].get(b, 0) + 1
            if b in matrix:
                matrix[b][a] = matrix[b].get(a, 0) + 1

    partnerships_count = {
        pid: sum(1 for count in matrix[pid].values() if count > 0) for pid in ids
    }
    all_partnered = all(
        matrix[pid].get(other, 0) > 0 for pid in ids for other in ids if other != pid
    )
    counts = list(matches_per_player.values())
    return ScheduleStats(
        matches_per_player=matches_per_player,
        partnerships_count=partnerships_count,
        partnership_matrix=matrix,
        min_matches=min(counts, default=0),
        max_matches=max(counts, default=0),
        all_partnered=all_partnered,
    )


def calculate_standings(
    players: List[Player],
    matches: List[Match],
    byes_by_round: Dict[int, List[str]],
) -> List[Standing]:
    stats = {p.id: {"points": 0, "played": 0, "total": 0} for p in players}
    for match in matches:
        for pid in match.players:
            row = stats.get(pid)
            if row is None:
                continue
            row["total"] += 1
            if match.completed:
                row["played"] += 1
                row["points"] += match.team_score(pid)

    byes = {p.id: 0 for p in players}
    for bye_ids in byes_by_round.values():
        for pid in bye_ids:
            if pid in byes:
                byes[pid] += 1

    standings = []
    for player in players:
        row = stats[player.id]
        standings.append(Standing(
            player_id=player.id,
            player_name=player.name,
            points=row["points"],
            matches_played=row["played"],
            matches_total=row["total"],
            byes=byes[player.id],
            average=row["points"] / row["played"] if row["played"] else 0,
        ))
    standings.sort(key=lambda s: (-s.points, -s.matches_played, -s.average))
    return standings


def record_score(match: Match, score1: int, score2: int, points_per_match: int) -> Match:
    """Return a completed copy of ``match``; scores can only be entered once."""
    if match.completed:
        raise MatchAlreadyCompleted(match.id)
    if score1 < 0 or score2 < 0:
        raise InvalidScore("scores can not be negative")
    if score1 + score2 != points_per_match:
        raise InvalidScore(f"scores must add up to {points_per_match}, got {score1 + score2}")
    return replace(match, score1=score1, score2=score2, completed=True)
