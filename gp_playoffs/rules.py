from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from gp_playoffs.domain import Race


# Scoring tables (positions 1..N)
RACE_POINTS: Tuple[int, ...] = (25, 18, 15, 12, 10, 8, 6, 4, 2, 1)
SPRINT_POINTS: Tuple[int, ...] = (8, 7, 6, 5, 4, 3, 2, 1)
RACE_POINTS_POSITIONS = len(RACE_POINTS)
SPRINT_POINTS_POSITIONS = len(SPRINT_POINTS)

POLE_POSITION_POINTS = 1
FASTEST_LAP_POINTS = 1
# Fastest lap only counts for a finisher inside this position.
FASTEST_LAP_ELIGIBILITY_POSITION = 10
PODIUM_POSITIONS = 3


class PlayoffConfigurationError(RuntimeError):
    """Raised when a playoff round is requested that the format does not define."""


@dataclass(frozen=True)
class PlayoffRoundDefinition:
    round: int
    start_drivers: int
    end_drivers: int
    races: int


PLAYOFF_RACES = 7
PLAYOFF_QUALIFIERS = 10
PLAYOFF_ROUNDS: Tuple[PlayoffRoundDefinition, ...] = (
    PlayoffRoundDefinition(round=1, start_drivers=10, end_drivers=8, races=2),
    PlayoffRoundDefinition(round=2, start_drivers=8, end_drivers=6, races=2),
    PlayoffRoundDefinition(round=3, start_drivers=6, end_drivers=4, races=2),
    # Championship final: winner takes all whatever end_drivers says.
    PlayoffRoundDefinition(round=4, start_drivers=4, end_drivers=1, races=1),
)
FINAL_ROUND_NUMBER = PLAYOFF_ROUNDS[-1].round


def _points_from_table(table: Tuple[int, ...], position: Optional[int]) -> int:
    if position is None or position < 1 or position > len(table):
        return 0
    return table[position - 1]


def points_for_race_position(position: Optional[int]) -> int:
    return _points_from_table(RACE_POINTS, position)


def points_for_sprint_position(position: Optional[int]) -> int:
    return _points_from_table(SPRINT_POINTS, position)


def weekend_points(driver_id: str, race: Race) -> int:
    """
    Playoff scoring for one weekend:
    race points + fastest lap bonus + sprint points + pole bonus.
    """
    points = 0

    result = race.result_for(driver_id)
    if result is not None:
        points += points_for_race_position(result.position)
        # Eligibility is settled when the result is normalised.
        if result.fastest_lap:
            points += FASTEST_LAP_POINTS

    sprint_result = race.sprint_result_for(driver_id)
    if sprint_result is not None:
        points += points_for_sprint_position(sprint_result.position)

    if race.pole_sitter() == driver_id:
        points += POLE_POSITION_POINTS

    return points


def total_points(driver_id: str, races: Iterable[Race]) -> int:
    return sum(weekend_points(driver_id, race) for race in races)


def official_weekend_points(driver_id: str, race: Race) -> float:
    """
    Real-world championship points as awarded by the series, bonuses excluded.
    """
    total = 0.0
    result = race.result_for(driver_id)
    if result is not None:
        total += result.points
    sprint_result = race.sprint_result_for(driver_id)
    if sprint_result is not None:
        total += sprint_result.points
    return total
