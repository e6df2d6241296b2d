import os
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from dotenv import load_dotenv
from asyncpg import Connection
from uuid import uuid4
from sqlalchemy import (
    Boolean, Column, ForeignKey, Integer, String,
    func, DateTime,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, relationship

load_dotenv()

POSTGRES_USER = os.getenv("POSTGRES_USER", "postgres")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
POSTGRES_DB = os.getenv("POSTGRES_DB_URL", "localhost/americano")

class Base(DeclarativeBase): pass

postgres_file_name = f"{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_DB}"

DATABASE_URL = os.getenv("DATABASE_URL", f"postgresql+asyncpg://{postgres_file_name}")

class FixedConnection(Connection):
    def _get_unique_id(self, prefix: str) -> str:
        return f'__asyncpg_{prefix}_{uuid4()}__'


engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    future=True,
    connect_args={
        "statement_cache_size": 0,
        "prepared_statement_cache_size": 0,
        "connection_class": FixedConnection,
    }
)

# Session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


async def get_session():
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def create_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

#ORM

class TournamentORM(Base):
    __tablename__ = "tournaments"

    id               = Column(String, primary_key=True)
    name             = Column(String, nullable=False)
    courts           = Column(Integer, nullable=False)
    points_per_match = Column(Integer, nullable=False, default=24)
    status           = Column(String, nullable=False, default="active")
    current_round    = Column(Integer, nullable=False, default=1)
    total_rounds     = Column(Integer, nullable=False, default=0)
    seed             = Column(Integer, nullable=True)
    byes_by_round    = Column(JSONB, nullable=False, default=dict)  # {"round": [player ids]}
    created_at       = Column(DateTime(timezone=True), server_default=func.now())

    players = relationship(
        "PlayerORM",
        back_populates="tournament",
        cascade="all, delete-orphan",
        order_by="PlayerORM.position",
        lazy="selectin",
    )
    matches = relationship(
        "MatchORM",
        back_populates="tournament",
        cascade="all, delete-orphan",
        order_by="MatchORM.round, MatchORM.court",
        lazy="selectin",
    )


class PlayerORM(Base):
    __tablename__ = "players"

    id            = Column(String, primary_key=True)
    tournament_id = Column(String, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False)
    name          = Column(String, nullable=False)
    position      = Column(Integer, nullable=False, default=0)  # roster order

    tournament = relationship("TournamentORM", back_populates="players")


class MatchORM(Base):
    __tablename__ = "matches"

    id            = Column(String, primary_key=True)
    tournament_id = Column(String, ForeignKey("tournaments.id", ondelete="CASCADE"), primary_key=True)
    round         = Column(Integer, nullable=False)
    court         = Column(Integer, nullable=False)
    team1         = Column(JSONB, nullable=False)   # list[str] -- player ids
    team2         = Column(JSONB, nullable=False)
    score1        = Column(Integer, nullable=True)
    score2        = Column(Integer, nullable=True)
    completed     = Column(Boolean, nullable=False, default=False)

    tournament = relationship("TournamentORM", back_populates="matches")
