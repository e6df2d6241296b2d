import random
from collections import Counter

import pytest

from americano.functions import estimate_schedule, generate_schedule, get_schedule_stats
from conftest import make_players


def _assert_rounds_partition_roster(schedule, players):
    roster = {p.id for p in players}
    for round_number in range(1, schedule.total_rounds + 1):
        seated = [pid for m in schedule.round_matches(round_number) for pid in m.players]
        byes = set(schedule.byes_by_round[round_number])
        assert len(seated) == len(set(seated)), f"double booking in round {round_number}"
        assert set(seated).isdisjoint(byes)
        assert set(seated) | byes == roster


def test_four_players_two_courts():
    players = make_players(4)

    schedule = generate_schedule(players, courts=2, points_per_match=24, rng=random.Random(1))
    stats = get_schedule_stats(schedule.matches, players)

    assert schedule.total_rounds == 3
    assert len(schedule.matches) == 3
    assert set(stats.matches_per_player.values()) == {3}
    assert all(byes == [] for byes in schedule.byes_by_round.values())
    assert stats.all_partnered


def test_five_players_one_court():
    players = make_players(5)

    schedule = generate_schedule(players, courts=1, points_per_match=24, rng=random.Random(2))
    stats = get_schedule_stats(schedule.matches, players)

    assert schedule.total_rounds == 5
    assert len(schedule.matches) == 5
    assert set(stats.matches_per_player.values()) == {4}
    assert [len(b) for b in schedule.byes_by_round.values()] == [1] * 5
    assert Counter(pid for b in schedule.byes_by_round.values() for pid in b) == {p.id: 1 for p in players}
    assert stats.all_partnered


def test_six_players_cannot_be_perfect():
    players = make_players(6)

    assert estimate_schedule(6, 1).perfect_schedule is False

    schedule = generate_schedule(players, courts=1, points_per_match=24, rng=random.Random(3))
    stats = get_schedule_stats(schedule.matches, players)

    assert stats.max_matches - stats.min_matches >= 1
    assert any(count < stats.max_matches for count in stats.matches_per_player.values())
    assert not stats.all_partnered


@pytest.mark.parametrize("n", [4, 5, 8, 9, 12, 13])
@pytest.mark.parametrize("seed", [0, 1, 2, 42])
def test_perfect_schedule_when_achievable(n, seed):
    players = make_players(n)

    schedule = generate_schedule(players, courts=n // 4, points_per_match=24, rng=random.Random(seed))
    stats = get_schedule_stats(schedule.matches, players)

    assert estimate_schedule(n, n // 4).perfect_schedule
    assert set(stats.matches_per_player.values()) == {n - 1}
    assert stats.all_partnered
    assert all(
        count == 1
        for pid, row in stats.partnership_matrix.items()
        for count in row.values()
    )


@pytest.mark.parametrize("n", [6, 7, 10, 11])
def test_imperfect_rosters_show_uneven_match_counts(n):
    players = make_players(n)

    schedule = generate_schedule(players, courts=2, points_per_match=24, rng=random.Random(n))
    stats = get_schedule_stats(schedule.matches, players)

    assert not estimate_schedule(n, 2).perfect_schedule
    assert stats.max_matches - stats.min_matches >= 1


@pytest.mark.parametrize("n", range(4, 18))
@pytest.mark.parametrize("courts", [1, 2, 4])
def test_no_double_booking(n, courts):
    players = make_players(n)

    schedule = generate_schedule(players, courts=courts, points_per_match=16, rng=random.Random(n * courts))

    _assert_rounds_partition_roster(schedule, players)
    assert 0 < schedule.total_rounds <= 2 * n
    assert max(m.court for m in schedule.matches) <= courts
    assert schedule.total_rounds == max(m.round for m in schedule.matches)


def test_no_partnership_repeats():
    players = make_players(10)

    schedule = generate_schedule(players, courts=2, points_per_match=24, rng=random.Random(5))
    teams = [frozenset(team) for m in schedule.matches for team in (m.team1, m.team2)]

    assert len(teams) == len(set(teams))


def test_same_seed_same_schedule():
    players = make_players(9)

    first = generate_schedule(players, courts=2, points_per_match=24, rng=random.Random(77))
    second = generate_schedule(players, courts=2, points_per_match=24, rng=random.Random(77))

    assert [m.to_record() for m in first.matches] == [m.to_record() for m in second.matches]
    assert first.byes_by_round == second.byes_by_round


def test_match_ids_are_unique():
    schedule = generate_schedule(make_players(13), courts=3, points_per_match=24, rng=random.Random(8))

    assert len({m.id for m in schedule.matches}) == len(schedule.matches)


def test_generation_does_not_touch_roster():
    players = make_players(7)
    before = list(players)

    generate_schedule(players, courts=1, points_per_match=24, rng=random.Random(0))

    assert players == before


@pytest.mark.parametrize("n", [0, 1, 3])
def test_too_few_players_gives_empty_schedule(n):
    schedule = generate_schedule(make_players(n), courts=2, points_per_match=24, rng=random.Random(0))

    assert schedule.is_empty
    assert schedule.byes_by_round == {}
    assert schedule.total_rounds == 0


def test_no_courts_gives_empty_schedule():
    schedule = generate_schedule(make_players(8), courts=0, points_per_match=24)

    assert schedule.is_empty


def test_default_random_source_still_schedules():
    schedule = generate_schedule(make_players(8), courts=2, points_per_match=24)

    assert len(schedule.matches) == 14


class TestEstimateSchedule:
    def test_perfect_rosters(self):
        assert estimate_schedule(4, 1).perfect_schedule
        assert estimate_schedule(5, 1).perfect_schedule
        assert estimate_schedule(8, 2).perfect_schedule
        assert estimate_schedule(9, 2).perfect_schedule

    def test_imperfect_rosters(self):
        for n in (6, 7, 10, 11):
            assert not estimate_schedule(n, 2).perfect_schedule

    def test_rounds_and_matches(self):
        estimate = estimate_schedule(8, 2)
        assert estimate.rounds == 7
        assert estimate.matches_per_player == 7

        # 5 matches needed, one court usable
        assert estimate_schedule(5, 3).rounds == 5

    def test_courts_limited_by_players(self):
        # 6 * 5 / 4 = 7.5 matches, only one match fits per round
        assert estimate_schedule(6, 4).rounds == 8

    def test_too_few_players(self):
        estimate = estimate_schedule(3, 2)
        assert (estimate.rounds, estimate.matches_per_player, estimate.perfect_schedule) == (0, 0, False)


class TestScheduleStats:
    def test_counts_partners_and_matches(self):
        players = make_players(4)
        schedule = generate_schedule(players, courts=1, points_per_match=24, rng=random.Random(4))

        stats = get_schedule_stats(schedule.matches, players)

        assert stats.partnerships_count == {p.id: 3 for p in players}
        assert stats.min_matches == stats.max_matches == 3
        assert set(stats.partnership_matrix["p00"]) == {"p01", "p02", "p03"}

    def test_without_matches(self):
        players = make_players(4)

        stats = get_schedule_stats([], players)

        assert stats.min_matches == stats.max_matches == 0
        assert not stats.all_partnered
        assert stats.partnerships_count == {p.id: 0 for p in players}

    def test_empty_roster(self):
        stats = get_schedule_stats([], [])

        assert stats.min_matches == stats.max_matches == 0
        assert stats.all_partnered
