from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from gp_playoffs.rules import (
    PODIUM_POSITIONS,
    RACE_POINTS_POSITIONS,
    official_weekend_points,
    total_points,
)
from gp_playoffs.domain import Driver, DriverStanding, Race


def extract_roster(races: Sequence[Race]) -> List[Driver]:
    """
    Unique drivers that appear in any race result, in order of first appearance.
    A later result carrying real driver details replaces an earlier placeholder.
    """
    roster: Dict[str, Driver] = {}
    for race in races:
        for result in race.results:
            existing = roster.get(result.driver_id)
            info = result.driver
            if existing is None:
                roster[result.driver_id] = info if info is not None else Driver.placeholder(result.driver_id)
            elif info is not None and info.first_name:
                roster[result.driver_id] = info
    return list(roster.values())


def position_history(driver_id: str, races: Sequence[Race]) -> Tuple[int, ...]:
    history = [0] * RACE_POINTS_POSITIONS
    for race in races:
        result = race.result_for(driver_id)
        if result is not None and result.position and result.position <= RACE_POINTS_POSITIONS:
            history[result.position - 1] += 1
    return tuple(history)


def _count_finishes_within(driver_id: str, races: Sequence[Race], cutoff: int) -> int:
    count = 0
    for race in races:
        result = race.result_for(driver_id)
        if result is not None and result.position and result.position <= cutoff:
            count += 1
    return count


def standing_sort_key(standing: DriverStanding) -> tuple:
    # Points, then most 1sts, most 2nds, ... Python's sort is stable, so full
    # ties keep their incoming order.
    return (-standing.points, tuple(-count for count in standing.position_history))


def compare_standings(a: DriverStanding, b: DriverStanding) -> int:
    """
    Negative if a ranks ahead of b, positive if b ranks ahead, 0 if truly tied.
    """
    key_a = standing_sort_key(a)
    key_b = standing_sort_key(b)
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


def rank_standings(standings: Sequence[DriverStanding]) -> List[DriverStanding]:
    ranked = sorted(standings, key=standing_sort_key)
    return [replace(s, position=idx) for idx, s in enumerate(ranked, start=1)]


def build_standings(
    roster: Sequence[Driver],
    points_races: Sequence[Race],
    history_races: Optional[Sequence[Race]] = None,
    official_races: Optional[Sequence[Race]] = None,
) -> List[DriverStanding]:
    races_for_history = points_races if history_races is None else history_races
    races_for_official = points_races if official_races is None else official_races

    standings = []
    for driver in roster:
        driver_id = driver.driver_id
        standings.append(
            DriverStanding(
                driver=driver,
                points=total_points(driver_id, points_races),
                wins=_count_finishes_within(driver_id, races_for_history, 1),
                podiums=_count_finishes_within(driver_id, races_for_history, PODIUM_POSITIONS),
                position_history=position_history(driver_id, races_for_history),
                official_points=sum(
                    official_weekend_points(driver_id, race) for race in races_for_official
                ),
            )
        )
    return rank_standings(standings)
