from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Sequence, Tuple, Union

from gp_playoffs.rules import (
    PLAYOFF_RACES,
    PLAYOFF_ROUNDS,
    PlayoffConfigurationError,
    PlayoffRoundDefinition,
)
from gp_playoffs.domain import CalendarEntry, Race, SeasonPhase


def regular_season_race_count(total_races: int) -> int:
    return total_races - PLAYOFF_RACES


def playoff_start_race(total_races: int) -> int:
    return regular_season_race_count(total_races) + 1


def round_definition(playoff_round: int) -> PlayoffRoundDefinition:
    if playoff_round < 1 or playoff_round > len(PLAYOFF_ROUNDS):
        raise PlayoffConfigurationError(f"Invalid playoff round: {playoff_round}")
    return PLAYOFF_ROUNDS[playoff_round - 1]


def round_race_numbers(total_races: int, playoff_round: int) -> Tuple[int, ...]:
    """
    Calendar round numbers that make up one playoff round (1-based).
    """
    definition = round_definition(playoff_round)
    offset = sum(d.races for d in PLAYOFF_ROUNDS[: playoff_round - 1])
    start = playoff_start_race(total_races) + offset
    return tuple(range(start, start + definition.races))


def regular_season_races(races: Sequence[Race], total_races: int) -> List[Race]:
    last_round = regular_season_race_count(total_races)
    return [race for race in races if race.round <= last_round]


def playoff_round_races(races: Sequence[Race], total_races: int, playoff_round: int) -> List[Race]:
    numbers = set(round_race_numbers(total_races, playoff_round))
    return [race for race in races if race.round in numbers]


def season_phase(
    calendar: Sequence[CalendarEntry],
    completed_races: int,
    now: Optional[Union[date, datetime]] = None,
) -> SeasonPhase:
    if not calendar:
        return SeasonPhase.PRE_SEASON

    total_races = len(calendar)
    if completed_races > 0:
        if completed_races >= total_races:
            return SeasonPhase.COMPLETED
        if completed_races >= playoff_start_race(total_races):
            return SeasonPhase.PLAYOFFS
        return SeasonPhase.REGULAR_SEASON

    # No results yet: the calendar date alone decides. Once the first race date
    # has passed the season reads as regular-season even with nothing loaded.
    if now is None:
        now = date.today()
    if isinstance(now, datetime):
        now = now.date()
    first_race_date = calendar[0].date
    if first_race_date is not None and now < first_race_date:
        return SeasonPhase.PRE_SEASON
    return SeasonPhase.REGULAR_SEASON
