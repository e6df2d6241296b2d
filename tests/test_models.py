import random

import pytest

from americano.exceptions import InvalidMatchRecord, InvalidScore, MatchAlreadyCompleted
from americano.functions import generate_schedule, record_score
from americano.models import Match, Tournament, generate_id
from conftest import make_players


@pytest.fixture
def match():
    return Match(id="m1", round=1, court=1, team1=["a", "b"], team2=["c", "d"])


def test_match_record_shape(match):
    assert match.to_record() == {
        "id": "m1",
        "round": 1,
        "court": 1,
        "team1": ["a", "b"],
        "team2": ["c", "d"],
        "score1": None,
        "score2": None,
        "completed": False,
    }


def test_scored_match_survives_a_record_trip(match):
    scored = record_score(match, 15, 9, 24)

    assert Match.from_record(scored.to_record()) == scored


@pytest.mark.parametrize("change", [
    {"team1": ["a"]},
    {"team2": ["a", "c"]},
    {"completed": True},
    {"completed": "yes"},
    {"score1": -4, "score2": 28, "completed": True},
    {"score1": 12.5, "score2": 11.5, "completed": True},
    {"score1": "twelve", "score2": 12, "completed": True},
    {"round": 0},
])
def test_malformed_records_are_rejected(match, change):
    record = {**match.to_record(), **change}

    with pytest.raises(InvalidMatchRecord):
        Match.from_record(record)


def test_record_scores_are_coerced_to_int(match):
    record = {**match.to_record(), "score1": "15", "score2": "9", "completed": True}

    restored = Match.from_record(record, points_per_match=24)

    assert (restored.score1, restored.score2) == (15, 9)


def test_completed_record_must_split_points_per_match(match):
    record = {**match.to_record(), "score1": 100, "score2": 4, "completed": True}

    assert Match.from_record(record).score1 == 100
    with pytest.raises(InvalidMatchRecord, match="104"):
        Match.from_record(record, points_per_match=24)


def test_record_missing_keys(match):
    record = match.to_record()
    del record["court"]

    with pytest.raises(InvalidMatchRecord, match="court"):
        Match.from_record(record)


def test_match_perspective_helpers():
    match = Match(id="m", round=1, court=1, team1=["a", "b"], team2=["c", "d"],
                  score1=10, score2=14, completed=True)

    assert match.team_score("a") == 10
    assert match.conceded_score("a") == 14
    assert match.team_score("d") == 14
    assert match.partner_of("b") == "a"
    assert match.opponents_of("c") == ["a", "b"]


class TestRecordScore:
    def test_completes_a_copy(self, match):
        scored = record_score(match, 13, 11, 24)

        assert (scored.score1, scored.score2, scored.completed) == (13, 11, True)
        assert not match.completed
        assert match.score1 is None

    def test_sum_must_match_points_per_match(self, match):
        with pytest.raises(InvalidScore):
            record_score(match, 13, 12, 24)

    def test_negative_scores(self, match):
        with pytest.raises(InvalidScore):
            record_score(match, -1, 25, 24)

    def test_only_once(self, match):
        scored = record_score(match, 12, 12, 24)

        with pytest.raises(MatchAlreadyCompleted):
            record_score(scored, 16, 8, 24)


def test_generate_id_from_seed_is_stable():
    assert generate_id(random.Random(5)) == generate_id(random.Random(5))
    assert len(generate_id()) == 8


class TestTournament:
    @pytest.fixture
    def tournament(self):
        players = make_players(5)
        schedule = generate_schedule(players, courts=1, points_per_match=24, rng=random.Random(11))
        return Tournament(
            id="t1", name="Summer", courts=1, points_per_match=24,
            players={p.id: p for p in players}, schedule=schedule,
            status="active", seed=11,
        )

    def test_current_round(self, tournament):
        assert len(tournament.current_matches) == 1
        assert len(tournament.current_byes) == 1
        assert not tournament.is_round_complete
        assert not tournament.is_tournament_complete

    def test_replace_match_returns_new_tournament(self, tournament):
        match = tournament.current_matches[0]

        updated = tournament.replace_match(record_score(match, 20, 4, 24))

        assert updated.is_round_complete
        assert not tournament.is_round_complete
        assert updated.find_match(match.id).completed

    def test_record_trip(self, tournament):
        restored = Tournament.from_record(tournament.to_record())

        assert restored == tournament

    def test_record_with_unknown_player(self, tournament):
        record = tournament.to_record()
        record["players"] = record["players"][1:]

        with pytest.raises(InvalidMatchRecord):
            Tournament.from_record(record)

    def test_record_with_wrong_score_sum(self, tournament):
        record = tournament.to_record()
        record["matches"][0].update(score1=100, score2=-5, completed=True)

        with pytest.raises(InvalidMatchRecord):
            Tournament.from_record(record)

    def test_record_with_duplicate_match_ids(self, tournament):
        record = tournament.to_record()
        record["matches"][1]["id"] = record["matches"][0]["id"]

        with pytest.raises(InvalidMatchRecord, match="duplicate match id"):
            Tournament.from_record(record)

    def test_record_with_two_matches_on_one_court(self, tournament):
        record = tournament.to_record()
        record["matches"][1]["round"] = record["matches"][0]["round"]

        with pytest.raises(InvalidMatchRecord, match="court 1"):
            Tournament.from_record(record)

    def test_record_with_unknown_status(self, tournament):
        record = {**tournament.to_record(), "status": "setup"}

        with pytest.raises(InvalidMatchRecord, match="status"):
            Tournament.from_record(record)


def test_new_tournaments_start_active():
    assert Tournament(id="t", name="Open", courts=1, points_per_match=24).status == "active"
