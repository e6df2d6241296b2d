import logging
from typing import Dict, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from americano.models import Match, Player, Schedule, Tournament
from database import MatchORM, PlayerORM, TournamentORM

logger = logging.getLogger(__name__)


class TournamentRepository(Protocol):
    """Where tournaments live between requests. The core never sees this."""

    async def get(self, tid: str) -> Optional[Tournament]: ...

    async def add(self, tournament: Tournament) -> None: ...

    async def save(self, tournament: Tournament) -> None: ...

    async def delete(self, tid: str) -> None: ...


class InMemoryTournamentRepository:
    def __init__(self):
        self.tournaments_db: Dict[str, Tournament] = {}

    async def get(self, tid: str) -> Optional[Tournament]:
        return self.tournaments_db.get(tid)

    async def add(self, tournament: Tournament) -> None:
        self.tournaments_db[tournament.id] = tournament

    async def save(self, tournament: Tournament) -> None:
        self.tournaments_db[tournament.id] = tournament

    async def delete(self, tid: str) -> None:
        self.tournaments_db.pop(tid, None)


def _match_to_orm(tid: str, m: Match) -> MatchORM:
    return MatchORM(
        id=m.id, tournament_id=tid,
        round=m.round, court=m.court,
        team1=list(m.team1), team2=list(m.team2),
        score1=m.score1, score2=m.score2,
        completed=m.completed,
    )


def _orm_to_tournament(t_row: TournamentORM) -> Tournament:
    """Convert SQLAlchemy ORM rows into the Tournament dataclass."""
    players = {p.id: Player(id=p.id, name=p.name) for p in t_row.players}
    matches = [
        Match(
            id=m.id, round=m.round, court=m.court,
            team1=list(m.team1), team2=list(m.team2),
            score1=m.score1, score2=m.score2,
            completed=m.completed,
        )
        for m in t_row.matches
    ]
    byes = {int(r): list(ids) for r, ids in (t_row.byes_by_round or {}).items()}
    return Tournament(
        id=t_row.id, name=t_row.name, courts=t_row.courts,
        points_per_match=t_row.points_per_match,
        players=players,
        schedule=Schedule(matches=matches, byes_by_round=byes, total_rounds=t_row.total_rounds),
        current_round=t_row.current_round,
        status=t_row.status,
        seed=t_row.seed,
    )


class SqlTournamentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, tid: str) -> Optional[Tournament]:
        row = await self.session.get(TournamentORM, tid)
        return _orm_to_tournament(row) if row else None

    async def add(self, tournament: Tournament) -> None:
        tid = tournament.id
        self.session.add(TournamentORM(
            id=tid, name=tournament.name, courts=tournament.courts,
            points_per_match=tournament.points_per_match,
            status=tournament.status, current_round=tournament.current_round,
            total_rounds=tournament.total_rounds, seed=tournament.seed,
            byes_by_round=_byes_json(tournament.schedule),
        ))
        self.session.add_all(
            PlayerORM(id=p.id, tournament_id=tid, name=p.name, position=i)
            for i, p in enumerate(tournament.roster)
        )
        self.session.add_all(_match_to_orm(tid, m) for m in tournament.schedule.matches)
        await self.session.commit()
        logger.info("stored tournament %s with %d matches", tid, len(tournament.schedule.matches))

    async def save(self, tournament: Tournament) -> None:
        t_orm = await self.session.get(TournamentORM, tournament.id)
        if t_orm is None:
            await self.add(tournament)
            return

        t_orm.status = tournament.status
        t_orm.current_round = tournament.current_round
        t_orm.total_rounds = tournament.total_rounds
        t_orm.seed = tournament.seed
        t_orm.byes_by_round = _byes_json(tournament.schedule)

        existing = {m.id: m for m in t_orm.matches}
        wanted = set()
        for m in tournament.schedule.matches:
            wanted.add(m.id)
            row = existing.get(m.id)
            if row is None:
                t_orm.matches.append(_match_to_orm(tournament.id, m))
            else:
                row.score1 = m.score1
                row.score2 = m.score2
                row.completed = m.completed
        for mid, row in existing.items():
            if mid not in wanted:
                t_orm.matches.remove(row)

        await self.session.commit()

    async def delete(self, tid: str) -> None:
        t_orm = await self.session.get(TournamentORM, tid)
        if t_orm:
            await self.session.delete(t_orm)
            await self.session.commit()


def _byes_json(schedule: Schedule) -> dict:
    return {str(r): list(ids) for r, ids in schedule.byes_by_round.items()}
