from __future__ import annotations

from typing import List, Optional

from gp_playoffs.rules import FINAL_ROUND_NUMBER
from gp_playoffs.domain import (
    ClassificationEntry,
    DriverStanding,
    PlayoffRound,
    PlayoffState,
    PlayoffStatus,
)


def find_round(state: PlayoffState, round_number: int) -> Optional[PlayoffRound]:
    return next((r for r in state.rounds if r.round == round_number), None)


def elimination_round(driver_id: str, state: PlayoffState) -> int:
    """
    -1 = did not qualify, 0 = never eliminated (finalist, still alive or champion),
    otherwise the playoff round the driver went out in.
    """
    if driver_id not in state.qualified_drivers:
        return -1
    for playoff_round in state.rounds:
        if driver_id in playoff_round.eliminated:
            return playoff_round.round
    return 0


def round_points(playoff_round: Optional[PlayoffRound], driver_id: str) -> Optional[float]:
    if playoff_round is None:
        return None
    standing = playoff_round.standing_for(driver_id)
    return standing.points if standing is not None else None


def bracket_points(driver_id: str, start_round: int, state: PlayoffState) -> float:
    total = 0
    for playoff_round in state.rounds:
        if playoff_round.round >= start_round:
            total += round_points(playoff_round, driver_id) or 0
    return total


def was_eliminated_in_round(playoff_round: Optional[PlayoffRound], driver_id: str) -> bool:
    if playoff_round is None:
        return False
    return driver_id in playoff_round.eliminated


def advanced_via_tiebreak(playoff_round: Optional[PlayoffRound], driver_id: str) -> bool:
    """
    True when the driver survived the round level on points with someone who went out.
    Drivers knocked out in an earlier round still appear in the standings but never
    advance, so they are never tiebreak survivors.
    """
    if playoff_round is None:
        return False
    standing = playoff_round.standing_for(driver_id)
    if standing is None or driver_id not in playoff_round.advancing:
        return False
    return any(
        s.points == standing.points
        for s in playoff_round.standings
        if s.driver_id in playoff_round.eliminated
    )


def playoff_status(driver_id: str, state: PlayoffState) -> PlayoffStatus:
    if driver_id not in state.qualified_drivers:
        return PlayoffStatus.NOT_QUALIFIED
    if state.champion == driver_id:
        return PlayoffStatus.CHAMPION
    # Provisional cuts in an unfinished round do not count yet.
    if any(r.complete and driver_id in r.eliminated for r in state.rounds):
        return PlayoffStatus.ELIMINATED
    if state.rounds:
        return PlayoffStatus.ADVANCING
    return PlayoffStatus.QUALIFIED


def _progression_key(standing: DriverStanding, state: PlayoffState) -> tuple:
    driver_id = standing.driver_id
    if state.champion == driver_id:
        return (0, 0, 0)
    elim_round = elimination_round(driver_id, state)
    if elim_round == 0:
        points = round_points(find_round(state, FINAL_ROUND_NUMBER), driver_id) or 0
        return (1, 0, -points)
    # Later elimination ranks higher.
    points = round_points(find_round(state, elim_round), driver_id) or 0
    return (2, -elim_round, -points)


def playoff_classification(state: PlayoffState) -> List[ClassificationEntry]:
    """
    Full-season table: qualifiers in playoff progression order (champion, finalists,
    then by how late they were knocked out and that round's points), followed by
    non-qualifiers in regular season order.
    """
    qualifiers = [s for s in state.regular_season_standings if s.driver_id in state.qualified_drivers]
    others = [s for s in state.regular_season_standings if s.driver_id not in state.qualified_drivers]
    ordered = sorted(qualifiers, key=lambda s: _progression_key(s, state)) + others

    entries: List[ClassificationEntry] = []
    for idx, standing in enumerate(ordered, start=1):
        driver_id = standing.driver_id
        entries.append(
            ClassificationEntry(
                position=idx,
                standing=standing,
                qualified=driver_id in state.qualified_drivers,
                elimination_round=elimination_round(driver_id, state),
                status=playoff_status(driver_id, state),
                round_points=tuple(round_points(r, driver_id) for r in state.rounds),
            )
        )
    return entries
