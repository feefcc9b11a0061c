from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional, Sequence, Set, Union

from gp_playoffs.rules import PLAYOFF_QUALIFIERS, PLAYOFF_ROUNDS
from gp_playoffs.season import (
    playoff_round_races,
    playoff_start_race,
    regular_season_race_count,
    regular_season_races,
    round_definition,
    round_race_numbers,
    season_phase,
)
from gp_playoffs.standings import build_standings, extract_roster
from gp_playoffs.domain import (
    CalendarEntry,
    Driver,
    PlayoffRound,
    PlayoffStage,
    PlayoffState,
    Race,
)

logger = logging.getLogger(__name__)


def calculate_playoff_round(
    playoff_round: int,
    qualified_drivers: Sequence[Driver],
    active_driver_ids: Set[str],
    round_races: Sequence[Race],
    total_races: int,
) -> PlayoffRound:
    """
    Round standings cover every qualified driver (points reset for the round).
    Only drivers still alive take part in the cut.
    """
    definition = round_definition(playoff_round)
    standings = build_standings(qualified_drivers, round_races)
    contenders = [s.driver_id for s in standings if s.driver_id in active_driver_ids]

    if playoff_round == len(PLAYOFF_ROUNDS):
        # Championship final: winner takes all.
        advancing = contenders[:1]
        eliminated = contenders[1:]
    else:
        advancing = contenders[: definition.end_drivers]
        eliminated = contenders[definition.end_drivers :]

    return PlayoffRound(
        round=playoff_round,
        race_numbers=round_race_numbers(total_races, playoff_round),
        standings=tuple(standings),
        eliminated=tuple(eliminated),
        advancing=tuple(advancing),
        complete=len(round_races) >= definition.races,
    )


def playoff_stage(rounds: Sequence[PlayoffRound], champion: Optional[str]) -> PlayoffStage:
    if champion is not None:
        return PlayoffStage.COMPLETED
    if not rounds:
        return PlayoffStage.NOT_STARTED

    latest = rounds[-1]
    current = latest.round + 1 if latest.complete else latest.round
    if current >= len(PLAYOFF_ROUNDS):
        return PlayoffStage.FINAL
    return PlayoffStage(f"round-{current}")


def calculate_playoff_state(
    races: Sequence[Race],
    calendar: Sequence[CalendarEntry],
    now: Optional[Union[date, datetime]] = None,
) -> PlayoffState:
    total_races = len(calendar)
    completed_races = len(races)

    all_drivers = extract_roster(races)
    regular_standings = build_standings(
        all_drivers,
        regular_season_races(races, total_races),
        official_races=races,
    )
    qualified_ids = [s.driver_id for s in regular_standings[:PLAYOFF_QUALIFIERS]]
    qualified_drivers = [s.driver for s in regular_standings[:PLAYOFF_QUALIFIERS]]

    status = season_phase(calendar, completed_races, now)

    rounds: List[PlayoffRound] = []
    active_ids = set(qualified_ids)
    champion: Optional[str] = None

    # Without a calendar there is no playoff window to fill.
    if total_races > 0:
        for definition in PLAYOFF_ROUNDS:
            round_races = playoff_round_races(races, total_races, definition.round)
            if not round_races:
                break

            playoff_round = calculate_playoff_round(
                definition.round, qualified_drivers, active_ids, round_races, total_races
            )
            rounds.append(playoff_round)
            logger.debug(
                "Playoff round %s: %s/%s races, advancing=%s eliminated=%s",
                definition.round,
                len(round_races),
                definition.races,
                list(playoff_round.advancing),
                list(playoff_round.eliminated),
            )

            if not playoff_round.complete:
                continue
            active_ids = set(playoff_round.advancing)
            if definition.round == len(PLAYOFF_ROUNDS) and playoff_round.advancing:
                champion = playoff_round.advancing[0]

    season = races[0].season if races else (calendar[0].season if calendar else 0)
    if champion is not None:
        logger.info("Season %s champion decided: %s", season, champion)

    return PlayoffState(
        season=season,
        total_races=total_races,
        regular_season_races=max(regular_season_race_count(total_races), 0),
        playoff_start_race=max(playoff_start_race(total_races), 0),
        regular_season_standings=tuple(regular_standings),
        qualified_drivers=tuple(qualified_ids),
        rounds=tuple(rounds),
        champion=champion,
        status=status,
        stage=playoff_stage(rounds, champion),
        completed_races=completed_races,
    )
