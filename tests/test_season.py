from datetime import date, datetime, timedelta

import pytest

from gp_playoffs.domain import CalendarEntry, Race, SeasonPhase
from gp_playoffs.rules import PlayoffConfigurationError
from gp_playoffs.season import (
    playoff_round_races,
    playoff_start_race,
    regular_season_race_count,
    regular_season_races,
    round_definition,
    round_race_numbers,
    season_phase,
)

OPENER = date(2024, 3, 2)


def _calendar(total, first_date=OPENER):
    return [
        CalendarEntry(
            season=2024,
            round=i,
            date=first_date + timedelta(weeks=i - 1) if first_date else None,
        )
        for i in range(1, total + 1)
    ]


def test_regular_season_window():
    assert regular_season_race_count(24) == 17
    assert playoff_start_race(24) == 18
    assert regular_season_race_count(22) == 15


def test_round_race_numbers_for_24_race_calendar():
    assert round_race_numbers(24, 1) == (18, 19)
    assert round_race_numbers(24, 2) == (20, 21)
    assert round_race_numbers(24, 3) == (22, 23)
    assert round_race_numbers(24, 4) == (24,)


def test_rounds_cover_the_playoff_window_without_gaps():
    numbers = [n for r in range(1, 5) for n in round_race_numbers(23, r)]
    assert numbers == list(range(playoff_start_race(23), 24))


@pytest.mark.parametrize("playoff_round", [0, 5, -1])
def test_unknown_round_is_a_configuration_error(playoff_round):
    with pytest.raises(PlayoffConfigurationError):
        round_definition(playoff_round)
    with pytest.raises(PlayoffConfigurationError):
        round_race_numbers(24, playoff_round)


def test_partition_races():
    races = [Race(season=2024, round=i) for i in range(1, 21)]
    assert [r.round for r in regular_season_races(races, 24)] == list(range(1, 18))
    assert [r.round for r in playoff_round_races(races, 24, 1)] == [18, 19]
    assert [r.round for r in playoff_round_races(races, 24, 2)] == [20]
    assert playoff_round_races(races, 24, 3) == []


def test_phase_with_empty_calendar():
    assert season_phase([], 0, OPENER) == SeasonPhase.PRE_SEASON


def test_phase_before_first_race():
    assert season_phase(_calendar(24), 0, OPENER - timedelta(days=1)) == SeasonPhase.PRE_SEASON


def test_phase_after_first_race_date_without_results():
    # Nothing loaded yet, but the opener has been run.
    assert season_phase(_calendar(24), 0, OPENER + timedelta(days=1)) == SeasonPhase.REGULAR_SEASON
    assert season_phase(_calendar(24), 0, OPENER) == SeasonPhase.REGULAR_SEASON


def test_phase_accepts_datetime():
    now = datetime(2024, 1, 15, 12, 0)
    assert season_phase(_calendar(24), 0, now) == SeasonPhase.PRE_SEASON


def test_phase_without_calendar_dates():
    assert season_phase(_calendar(24, first_date=None), 0, OPENER) == SeasonPhase.REGULAR_SEASON


def test_phase_follows_completed_races():
    calendar = _calendar(24)
    early = OPENER - timedelta(days=30)
    # Completed races decide the phase regardless of the date.
    assert season_phase(calendar, 1, early) == SeasonPhase.REGULAR_SEASON
    assert season_phase(calendar, 17, early) == SeasonPhase.REGULAR_SEASON
    assert season_phase(calendar, 18, early) == SeasonPhase.PLAYOFFS
    assert season_phase(calendar, 23, early) == SeasonPhase.PLAYOFFS
    assert season_phase(calendar, 24, early) == SeasonPhase.COMPLETED
