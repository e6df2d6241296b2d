import logging
import random
from dataclasses import asdict, replace
from typing import Optional

from fastapi import APIRouter, Body, Depends, Form, HTTPException, Query, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

import settings
from americano.exceptions import InvalidMatchRecord, InvalidScore, MatchAlreadyCompleted
from americano.fairness import (
    AdjustmentModel,
    adjust_standings,
    calculate_fairness_stats,
    get_players_with_fewer_matches,
    sort_by_adjusted,
)
from americano.functions import (
    calculate_standings,
    estimate_schedule,
    generate_schedule,
    get_schedule_stats,
    record_score,
)
from americano.models import Player, Tournament, generate_id
from americano.repository import SqlTournamentRepository, TournamentRepository
from database import get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/americano', tags=['Americano'])


async def get_repository(session: AsyncSession = Depends(get_session)) -> TournamentRepository:
    return SqlTournamentRepository(session)


async def _get_tournament(tid: str, repo: TournamentRepository) -> Tournament:
    tournament = await repo.get(tid)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


def _new_seed() -> int:
    return random.SystemRandom().randrange(2 ** 31)


def _standings(t: Tournament):
    return calculate_standings(t.roster, t.schedule.matches, t.schedule.byes_by_round)


# Routes

@router.get("/estimate")
async def estimate(players: int = Query(..., ge=0), courts: int = Query(settings.DEFAULT_COURTS, ge=1)):
    return asdict(estimate_schedule(players, courts))


@router.post("/tournament/create")
async def create_tournament(
    name: str = Form(...),
    courts: int = Form(settings.DEFAULT_COURTS),
    points_per_match: int = Form(settings.DEFAULT_POINTS_PER_MATCH),
    player_names: str = Form(...),
    seed: Optional[int] = Form(None),
    repo: TournamentRepository = Depends(get_repository),
):
    names = [n.strip() for n in player_names.split("\n") if n.strip()]

    if len(names) < 4:
        raise HTTPException(status_code=400, detail="At least 4 players are required")
    if len({n.casefold() for n in names}) != len(names):
        raise HTTPException(status_code=400, detail="Player names must be unique")
    if courts < 1:
        raise HTTPException(status_code=400, detail="At least one court is required")
    if points_per_match not in settings.ALLOWED_POINTS_PER_MATCH:
        raise HTTPException(
            status_code=400,
            detail=f"Points per match must be one of {settings.ALLOWED_POINTS_PER_MATCH}",
        )

    if seed is None:
        seed = _new_seed()
    players = {}
    for player_name in names:
        pid = generate_id()
        players[pid] = Player(id=pid, name=player_name)

    schedule = generate_schedule(list(players.values()), courts, points_per_match, random.Random(seed))
    if schedule.is_empty:
        raise HTTPException(status_code=400, detail="Could not build a schedule for this roster")

    tournament = Tournament(
        id=generate_id(), name=name, courts=courts,
        points_per_match=points_per_match,
        players=players, schedule=schedule,
        status="active", seed=seed,
    )
    await repo.add(tournament)
    logger.info("created tournament %s: %d players, %d rounds", tournament.id, len(players), schedule.total_rounds)

    return RedirectResponse(f"/americano/tournament/{tournament.id}", status_code=303)


@router.head("/tournament/{tid}")
async def tournament_exists(tid: str, repo: TournamentRepository = Depends(get_repository)):
    await _get_tournament(tid, repo)
    return Response(status_code=200)


@router.get("/tournament/{tid}")
async def tournament_view(tid: str, repo: TournamentRepository = Depends(get_repository)):
    t = await _get_tournament(tid, repo)
    return {
        "tournament": t.to_record(),
        "total_rounds": t.total_rounds,
        "current_matches": [m.to_record() for m in t.current_matches],
        "current_byes": t.current_byes,
        "is_round_complete": t.is_round_complete,
        "is_tournament_complete": t.is_tournament_complete,
        "standings": [asdict(s) for s in _standings(t)],
    }


@router.post("/tournament/{tid}/score")
async def submit_score(
    tid: str,
    match_id: str = Form(...),
    score1: int = Form(...),
    score2: int = Form(...),
    repo: TournamentRepository = Depends(get_repository),
):
    t = await _get_tournament(tid, repo)
    match = t.find_match(match_id)
    if not match:
        raise HTTPException(status_code=404, detail="Match not found")

    try:
        scored = record_score(match, score1, score2, t.points_per_match)
    except MatchAlreadyCompleted as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidScore as e:
        raise HTTPException(status_code=400, detail=str(e))

    await repo.save(t.replace_match(scored))
    logger.info("tournament %s: match %s scored %d:%d", tid, match_id, score1, score2)

    return RedirectResponse(f"/americano/tournament/{tid}", status_code=303)


@router.post("/tournament/{tid}/next-round")
async def next_round(tid: str, repo: TournamentRepository = Depends(get_repository)):
    t = await _get_tournament(tid, repo)
    # Check all matches in current round completed
    if t.is_round_complete:
        if t.current_round < t.total_rounds:
            await repo.save(replace(t, current_round=t.current_round + 1))
        else:
            await repo.save(replace(t, status="finished"))

    return RedirectResponse(f"/americano/tournament/{tid}", status_code=303)


@router.post("/tournament/{tid}/finish")
async def finish_tournament(tid: str, repo: TournamentRepository = Depends(get_repository)):
    t = await _get_tournament(tid, repo)
    if t.is_round_complete:
        await repo.save(replace(t, status="finished"))

    return RedirectResponse(f"/americano/tournament/{tid}", status_code=303)


@router.post("/tournament/{tid}/restart")
async def restart_tournament(
    tid: str,
    seed: Optional[int] = Form(None),
    repo: TournamentRepository = Depends(get_repository),
):
    """Same roster and settings, fresh pairings."""
    t = await _get_tournament(tid, repo)
    if seed is None:
        seed = _new_seed()
    schedule = generate_schedule(t.roster, t.courts, t.points_per_match, random.Random(seed))
    await repo.save(replace(t, schedule=schedule, current_round=1, status="active", seed=seed))
    logger.info("restarted tournament %s with seed %d", tid, seed)

    return RedirectResponse(f"/americano/tournament/{tid}", status_code=303)


@router.post("/tournament/{tid}/delete")
async def delete_tournament(tid: str, repo: TournamentRepository = Depends(get_repository)):
    await repo.delete(tid)
    return RedirectResponse("/", status_code=303)


@router.get("/tournament/{tid}/leaderboard")
async def leaderboard(
    tid: str,
    model: AdjustmentModel = AdjustmentModel.AVERAGE,
    adjusted: bool = False,
    repo: TournamentRepository = Depends(get_repository),
):
    t = await _get_tournament(tid, repo)
    standings = _standings(t)
    fairness = calculate_fairness_stats(standings)
    response = {
        "standings": [asdict(s) for s in standings],
        "fairness": asdict(fairness),
        "players_with_fewer_matches": get_players_with_fewer_matches(standings),
    }
    if adjusted:
        rows = adjust_standings(standings, t.schedule.matches, t.points_per_match, model)
        response["adjusted"] = [asdict(s) for s in sort_by_adjusted(rows)]
    return response


@router.get("/tournament/{tid}/stats")
async def schedule_stats(tid: str, repo: TournamentRepository = Depends(get_repository)):
    t = await _get_tournament(tid, repo)
    return asdict(get_schedule_stats(t.schedule.matches, t.roster))


@router.get("/tournament/{tid}/export")
async def export_tournament(tid: str, repo: TournamentRepository = Depends(get_repository)):
    t = await _get_tournament(tid, repo)
    return t.to_record()


@router.post("/import")
async def import_tournament(record: dict = Body(...), repo: TournamentRepository = Depends(get_repository)):
    try:
        t = Tournament.from_record(record)
    except (InvalidMatchRecord, KeyError, TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid tournament data: {e}")
    if await repo.get(t.id):
        raise HTTPException(status_code=409, detail="Tournament already exists")

    await repo.add(t)
    return RedirectResponse(f"/americano/tournament/{t.id}", status_code=303)
