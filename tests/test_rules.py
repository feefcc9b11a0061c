import pytest

from gp_playoffs.domain import QualifyingResult, Race, RaceResult, SprintResult
from gp_playoffs.rules import (
    FINAL_ROUND_NUMBER,
    PLAYOFF_QUALIFIERS,
    PLAYOFF_RACES,
    PLAYOFF_ROUNDS,
    official_weekend_points,
    points_for_race_position,
    points_for_sprint_position,
    total_points,
    weekend_points,
)


def _race(round_number, results, qualifying=(), sprint=None):
    return Race(season=2024, round=round_number, results=tuple(results), qualifying=tuple(qualifying), sprint=sprint)


def test_race_points_table():
    assert [points_for_race_position(p) for p in range(1, 11)] == [25, 18, 15, 12, 10, 8, 6, 4, 2, 1]
    assert points_for_race_position(11) == 0
    assert points_for_race_position(None) == 0
    assert points_for_race_position(0) == 0
    assert points_for_race_position(-1) == 0


def test_sprint_points_table():
    assert [points_for_sprint_position(p) for p in range(1, 9)] == [8, 7, 6, 5, 4, 3, 2, 1]
    assert points_for_sprint_position(9) == 0
    assert points_for_sprint_position(None) == 0
    assert points_for_sprint_position(0) == 0


def test_weekend_points_adds_every_bonus():
    race = _race(
        1,
        [RaceResult("ver", 1, fastest_lap=True), RaceResult("nor", 2)],
        qualifying=[QualifyingResult("ver", 1), QualifyingResult("nor", 2)],
        sprint=(SprintResult("ver", 1), SprintResult("nor", 2)),
    )
    assert weekend_points("ver", race) == 25 + 1 + 8 + 1
    assert weekend_points("nor", race) == 18 + 7


def test_pole_counts_even_without_race_points():
    race = _race(1, [RaceResult("lec", None, status="Engine")], qualifying=[QualifyingResult("lec", 1)])
    assert weekend_points("lec", race) == 1


def test_absent_driver_scores_nothing():
    race = _race(1, [RaceResult("ver", 1)])
    assert weekend_points("ham", race) == 0
    assert official_weekend_points("ham", race) == 0


def test_no_sprint_weekend_has_no_sprint_points():
    race = _race(1, [RaceResult("pia", 3)])
    assert race.sprint is None
    assert weekend_points("pia", race) == 15


def test_total_points_sums_weekends():
    races = [_race(1, [RaceResult("ver", 1)]), _race(2, [RaceResult("ver", 3)]), _race(3, [RaceResult("ver", None)])]
    assert total_points("ver", races) == 40
    assert total_points("ver", []) == 0


def test_official_points_ignore_bonuses():
    race = _race(
        1,
        [RaceResult("ver", 1, points=26.0, fastest_lap=True)],
        qualifying=[QualifyingResult("ver", 1)],
        sprint=(SprintResult("ver", 1, points=8.0),),
    )
    assert official_weekend_points("ver", race) == pytest.approx(34.0)


def test_playoff_format_constants():
    assert PLAYOFF_RACES == sum(d.races for d in PLAYOFF_ROUNDS)
    assert PLAYOFF_QUALIFIERS == PLAYOFF_ROUNDS[0].start_drivers
    assert [(d.start_drivers, d.end_drivers) for d in PLAYOFF_ROUNDS] == [(10, 8), (8, 6), (6, 4), (4, 1)]
    assert FINAL_ROUND_NUMBER == 4
