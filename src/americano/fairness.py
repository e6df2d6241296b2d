"""Projected standings for tournaments where not everyone played as often.

Every model projects a short-played player up to the highest matches-played
count in the field: ``adjusted = points + missing * per_match_estimate``.
The models differ only in the per-match estimate. Adjusted figures are
estimates shown next to the actual ones, not predicted results.
"""
import enum
import logging
import math
from typing import Callable, Dict, List, Optional, Set, Tuple

from americano.models import (
    AdjustedStanding,
    CalculationDetails,
    Contributor,
    FairnessStats,
    Match,
    Standing,
)

logger = logging.getLogger(__name__)


class AdjustmentModel(str, enum.Enum):
    AVERAGE = "average"
    OPPONENT_BASED = "opponent-based"
    PARTNER_BASED = "partner-based"
    COMBINED = "combined"


# (standing, missing matches) -> (per match estimate, details or None)
Estimator = Callable[[Standing, int], Tuple[float, Optional[CalculationDetails]]]


def round1(value: float) -> float:
    """Round half up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


def _max_matches(standings: List[Standing]) -> int:
    return max((s.matches_played for s in standings), default=0)


def _adjust(standings: List[Standing], model: AdjustmentModel, estimate: Estimator) -> List[AdjustedStanding]:
    if not standings:
        return []

    max_matches = _max_matches(standings)
    if max_matches == 0:
        return [AdjustedStanding.from_standing(s, 0, 0, model.value) for s in standings]

    if all(s.matches_played == max_matches for s in standings):
        return [
            AdjustedStanding.from_standing(s, s.points, s.average, model.value)
            for s in standings
        ]

    adjusted = []
    for standing in standings:
        if standing.matches_played == 0:
            adjusted.append(AdjustedStanding.from_standing(standing, 0, 0, model.value))
            continue
        if standing.matches_played >= max_matches:
            adjusted.append(AdjustedStanding.from_standing(
                standing, standing.points, standing.average, model.value,
            ))
            continue

        missing = max_matches - standing.matches_played
        per_match, details = estimate(standing, missing)
        additional = missing * per_match
        adjusted_points = standing.points + additional
        adjusted.append(AdjustedStanding.from_standing(
            standing,
            round1(adjusted_points),
            round1(adjusted_points / max_matches),
            model.value,
            details,
        ))
    return adjusted


class _MatchHistory:
    """Per-player aggregates over the completed matches."""

    def __init__(self, standings: List[Standing], matches: List[Match], points_per_match: int):
        self.names = {s.player_id: s.player_name for s in standings}
        self.default_average = points_per_match / 2
        self.conceded: Dict[str, List[int]] = {pid: [] for pid in self.names}
        self.won: Dict[str, List[int]] = {pid: [] for pid in self.names}
        self.faced: Dict[str, Set[str]] = {pid: set() for pid in self.names}
        self.partnered: Dict[str, Set[str]] = {pid: set() for pid in self.names}

        for match in matches:
            if not match.completed:
                continue
            for pid in match.players:
                if pid not in self.names:
                    continue
                self.conceded[pid].append(match.conceded_score(pid))
                self.won[pid].append(match.team_score(pid))
                self.faced[pid].update(match.opponents_of(pid))
                self.partnered[pid].add(match.partner_of(pid))

    def _average(self, totals: Dict[str, List[int]], pid: str) -> float:
        values = totals[pid]
        return sum(values) / len(values) if values else self.default_average

    def avg_conceded(self, pid: str) -> float:
        return self._average(self.conceded, pid)

    def avg_won(self, pid: str) -> float:
        return self._average(self.won, pid)

    def estimate_from(self, pid: str, met: Set[str], average: Callable[[str], float]):
        """Mean of ``average`` over players ``pid`` has not met yet.

        Falls back to every other player once ``pid`` has met them all.
        """
        others = [other for other in self.names if other != pid]
        unmet = [other for other in others if other not in met]
        pool = unmet or others
        contributors = [
            Contributor(player_id=other, name=self.names[other], average=round1(average(other)))
            for other in pool
        ]
        if not pool:
            return self.default_average, contributors, True
        value = sum(average(other) for other in pool) / len(pool)
        return value, contributors, not unmet


def calculate_adjusted_standings(
    standings: List[Standing],
    matches: List[Match],
    points_per_match: int,
) -> List[AdjustedStanding]:
    """Extrapolate each short player's own average to the maximum match count."""

    def estimate(standing: Standing, missing: int):
        return standing.average, CalculationDetails(
            missing_matches=missing,
            per_match_estimate=round1(standing.average),
            estimated_additional_points=round1(missing * standing.average),
        )

    return _adjust(standings, AdjustmentModel.AVERAGE, estimate)


def calculate_opponent_based_adjustment(
    standings: List[Standing],
    matches: List[Match],
    points_per_match: int,
) -> List[AdjustedStanding]:
    """Fill missing matches with what the unfaced opponents usually concede."""
    history = _MatchHistory(standings, matches, points_per_match)

    def estimate(standing: Standing, missing: int):
        pid = standing.player_id
        value, contributors, fallback = history.estimate_from(pid, history.faced[pid], history.avg_conceded)
        return value, CalculationDetails(
            missing_matches=missing,
            per_match_estimate=round1(value),
            estimated_additional_points=round1(missing * value),
            contributors=contributors,
            used_fallback=fallback,
        )

    return _adjust(standings, AdjustmentModel.OPPONENT_BASED, estimate)


def calculate_partner_based_adjustment(
    standings: List[Standing],
    matches: List[Match],
    points_per_match: int,
) -> List[AdjustedStanding]:
    """Fill missing matches with what the not-yet-partnered players usually win."""
    history = _MatchHistory(standings, matches, points_per_match)

    def estimate(standing: Standing, missing: int):
        pid = standing.player_id
        value, contributors, fallback = history.estimate_from(pid, history.partnered[pid], history.avg_won)
        return value, CalculationDetails(
            missing_matches=missing,
            per_match_estimate=round1(value),
            estimated_additional_points=round1(missing * value),
            contributors=contributors,
            used_fallback=fallback,
        )

    return _adjust(standings, AdjustmentModel.PARTNER_BASED, estimate)


def calculate_combined_adjustment(
    standings: List[Standing],
    matches: List[Match],
    points_per_match: int,
) -> List[AdjustedStanding]:
    """Mean of the own-average and partner-based estimates."""
    history = _MatchHistory(standings, matches, points_per_match)

    def estimate(standing: Standing, missing: int):
        pid = standing.player_id
        partner_value, contributors, fallback = history.estimate_from(
            pid, history.partnered[pid], history.avg_won,
        )
        value = (standing.average + partner_value) / 2
        return value, CalculationDetails(
            missing_matches=missing,
            per_match_estimate=round1(value),
            estimated_additional_points=round1(missing * value),
            contributors=contributors,
            used_fallback=fallback,
        )

    return _adjust(standings, AdjustmentModel.COMBINED, estimate)


ADJUSTMENTS = {
    AdjustmentModel.AVERAGE: calculate_adjusted_standings,
    AdjustmentModel.OPPONENT_BASED: calculate_opponent_based_adjustment,
    AdjustmentModel.PARTNER_BASED: calculate_partner_based_adjustment,
    AdjustmentModel.COMBINED: calculate_combined_adjustment,
}


def adjust_standings(
    standings: List[Standing],
    matches: List[Match],
    points_per_match: int,
    model: AdjustmentModel = AdjustmentModel.AVERAGE,
) -> List[AdjustedStanding]:
    model = AdjustmentModel(model)
    logger.debug("adjusting %d standings with the %s model", len(standings), model.value)
    return ADJUSTMENTS[model](standings, matches, points_per_match)


def sort_by_adjusted(standings: List[AdjustedStanding]) -> List[AdjustedStanding]:
    return sorted(
        standings,
        key=lambda s: (-s.adjusted_points, -s.matches_played, -s.adjusted_average),
    )


def calculate_fairness_stats(standings: List[Standing]) -> FairnessStats:
    if not standings:
        return FairnessStats(
            match_variance=0,
            is_balanced=True,
            min_matches=0,
            max_matches=0,
            avg_matches=0,
        )

    counts = [s.matches_played for s in standings]
    min_matches, max_matches = min(counts), max(counts)
    avg_matches = sum(counts) / len(counts)
    variance = sum((c - avg_matches) ** 2 for c in counts) / len(counts)
    return FairnessStats(
        match_variance=math.sqrt(variance),
        is_balanced=max_matches - min_matches == 0,
        min_matches=min_matches,
        max_matches=max_matches,
        avg_matches=avg_matches,
        players_with_fewer_matches=[s.player_name for s in standings if s.matches_played < max_matches],
    )


def get_players_with_fewer_matches(standings: List[Standing]) -> List[dict]:
    max_matches = _max_matches(standings)
    short = [
        {
            "name": s.player_name,
            "matches_played": s.matches_played,
            "max_matches": max_matches,
            "difference": max_matches - s.matches_played,
        }
        for s in standings
        if s.matches_played < max_matches
    ]
    short.sort(key=lambda row: row["matches_played"])
    return short


def has_fewer_matches(standing: Standing, standings: List[Standing]) -> bool:
    if not standings:
        return False
    return standing.matches_played < _max_matches(standings)
