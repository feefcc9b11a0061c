from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date
from typing import Any, Iterable, Optional, Sequence

from fastapi import HTTPException
from fastapi.encoders import jsonable_encoder
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from gp_playoffs import domain
from gp_playoffs.bracket import (
    advanced_via_tiebreak,
    bracket_points,
    elimination_round,
    playoff_classification,
    playoff_status,
    round_points,
    was_eliminated_in_round,
)
from gp_playoffs.logging_config import log_service_call
from gp_playoffs.models import (
    CalendarRace,
    Driver,
    QualifyingResultRow,
    RaceResultRow,
    Season,
    SprintResultRow,
)
from gp_playoffs.playoffs import calculate_playoff_state
from gp_playoffs.rules import FASTEST_LAP_ELIGIBILITY_POSITION

logger = logging.getLogger(__name__)


def get_season_or_404(db: Session, year: int) -> Season:
    season = db.scalar(select(Season).where(Season.year == year))
    if not season:
        raise HTTPException(status_code=404, detail="Season not found")
    return season


def upsert_season(db: Session, year: int) -> Season:
    existing = db.scalar(select(Season).where(Season.year == year))
    if existing:
        return existing
    created = Season(year=year)
    db.add(created)
    db.flush()
    return created


def list_seasons(db: Session) -> list[dict[str, Any]]:
    seasons = db.scalars(select(Season).order_by(Season.year.asc())).all()
    items: list[dict[str, Any]] = []
    for season in seasons:
        completed = sum(1 for row in season.calendar if row.results_loaded)
        items.append(
            {
                "year": season.year,
                "total_races": len(season.calendar),
                "completed_races": completed,
            }
        )
    return items


@log_service_call
def replace_calendar(db: Session, year: int, entries: Sequence[domain.CalendarEntry]) -> Season:
    season = upsert_season(db, year)

    rounds = sorted(entry.round for entry in entries)
    if rounds != list(range(1, len(rounds) + 1)):
        raise HTTPException(status_code=400, detail="Calendar rounds must be numbered 1..N without gaps")
    if any(entry.season != year for entry in entries):
        raise HTTPException(status_code=400, detail="Calendar entries belong to a different season")

    existing = {row.round: row for row in season.calendar}
    if any(row.results_loaded and row.round > len(rounds) for row in existing.values()):
        raise HTTPException(
            status_code=400,
            detail="Calendar would drop rounds that already have results",
        )

    for entry in entries:
        row = existing.get(entry.round)
        if row is None:
            row = CalendarRace(season_id=season.id, round=entry.round)
            season.calendar.append(row)
        row.race_name = entry.race_name
        row.circuit_id = entry.circuit_id
        row.circuit_name = entry.circuit_name
        row.country = entry.country
        row.race_date = entry.date
        # Stored sprint results keep the flag set.
        row.has_sprint = entry.has_sprint or bool(row.sprint)

    for round_number, row in existing.items():
        if round_number > len(rounds):
            season.calendar.remove(row)

    db.flush()
    logger.info("Season %s calendar set to %s races", year, len(rounds))
    return season


def _upsert_driver(db: Session, info: domain.Driver) -> Driver:
    existing = db.get(Driver, info.driver_id)
    if existing is None:
        created = Driver(
            driver_id=info.driver_id,
            code=info.code,
            first_name=info.first_name,
            last_name=info.last_name,
            nationality=info.nationality,
            constructor_id=info.constructor_id,
            constructor_name=info.constructor_name,
        )
        db.add(created)
        return created

    # Display details follow the latest complete record; the id never changes.
    if info.first_name:
        existing.code = info.code
        existing.first_name = info.first_name
        existing.last_name = info.last_name
        existing.nationality = info.nationality
        existing.constructor_id = info.constructor_id
        existing.constructor_name = info.constructor_name
    return existing


def _check_weekend(race: domain.Race) -> None:
    sessions = [("results", race.results), ("qualifying", race.qualifying)]
    if race.sprint is not None:
        sessions.append(("sprint", race.sprint))
    for name, entries in sessions:
        ids = [entry.driver_id for entry in entries]
        duplicates = sorted({driver_id for driver_id in ids if ids.count(driver_id) > 1})
        if duplicates:
            raise HTTPException(
                status_code=400,
                detail=f"Drivers listed more than once in {name}: {', '.join(duplicates)}",
            )

    for result in race.results:
        if result.fastest_lap and (
            result.position is None or result.position > FASTEST_LAP_ELIGIBILITY_POSITION
        ):
            raise HTTPException(
                status_code=400,
                detail=(
                    f"Fastest lap for {result.driver_id} only counts for a finish in the "
                    f"top {FASTEST_LAP_ELIGIBILITY_POSITION}"
                ),
            )


def _ensure_drivers(db: Session, race: domain.Race) -> None:
    seen: set[str] = set()
    for result in race.results:
        if result.driver_id in seen:
            continue
        _upsert_driver(db, result.driver or domain.Driver.placeholder(result.driver_id))
        seen.add(result.driver_id)

    other_ids: Iterable[str] = [q.driver_id for q in race.qualifying]
    if race.sprint is not None:
        other_ids = [*other_ids, *(s.driver_id for s in race.sprint)]
    for driver_id in other_ids:
        if driver_id not in seen and db.get(Driver, driver_id) is None:
            db.add(Driver(driver_id=driver_id, code=driver_id[:3].upper(), last_name=driver_id))
        seen.add(driver_id)
    db.flush()


@log_service_call
def upsert_race_weekend(db: Session, year: int, race: domain.Race) -> CalendarRace:
    season = get_season_or_404(db, year)
    if race.season != year:
        raise HTTPException(status_code=400, detail="Race belongs to a different season")
    _check_weekend(race)

    row = db.scalar(
        select(CalendarRace).where(
            CalendarRace.season_id == season.id,
            CalendarRace.round == race.round,
        )
    )
    if not row:
        raise HTTPException(status_code=400, detail=f"Round {race.round} is not in the {year} calendar")

    loaded = (
        db.scalar(
            select(func.count(CalendarRace.id)).where(
                CalendarRace.season_id == season.id,
                CalendarRace.results_loaded.is_(True),
            )
        )
        or 0
    )
    if not row.results_loaded and race.round != loaded + 1:
        raise HTTPException(
            status_code=400,
            detail=f"Race results must be added in round order. Next expected round is {loaded + 1}",
        )

    _ensure_drivers(db, race)

    row.results.clear()
    row.qualifying.clear()
    row.sprint.clear()
    db.flush()

    for idx, result in enumerate(race.results, start=1):
        info = result.driver or domain.Driver.placeholder(result.driver_id)
        row.results.append(
            RaceResultRow(
                driver_id=result.driver_id,
                order_index=idx,
                position=result.position,
                points=result.points,
                grid=result.grid,
                status=result.status,
                fastest_lap=result.fastest_lap,
                fastest_lap_rank=result.fastest_lap_rank,
                code=info.code,
                first_name=info.first_name,
                last_name=info.last_name,
                nationality=info.nationality,
                constructor_id=info.constructor_id,
                constructor_name=info.constructor_name,
            )
        )
    for q in race.qualifying:
        row.qualifying.append(QualifyingResultRow(driver_id=q.driver_id, position=q.position))
    if race.sprint is not None:
        for idx, s in enumerate(race.sprint, start=1):
            row.sprint.append(
                SprintResultRow(driver_id=s.driver_id, order_index=idx, position=s.position, points=s.points)
            )
        row.has_sprint = True

    row.results_loaded = True
    db.flush()
    logger.info("Stored %s results for %s round %s", len(race.results), year, race.round)
    return row


def _driver_from_row(row: RaceResultRow) -> domain.Driver:
    return domain.Driver(
        driver_id=row.driver_id,
        code=row.code,
        first_name=row.first_name,
        last_name=row.last_name,
        nationality=row.nationality,
        constructor_id=row.constructor_id,
        constructor_name=row.constructor_name,
    )


def _calendar_entry(year: int, row: CalendarRace) -> domain.CalendarEntry:
    return domain.CalendarEntry(
        season=year,
        round=row.round,
        race_name=row.race_name,
        circuit_id=row.circuit_id,
        circuit_name=row.circuit_name,
        country=row.country,
        date=row.race_date,
        has_sprint=row.has_sprint,
    )


def _race_from_row(year: int, row: CalendarRace) -> domain.Race:
    results = sorted(row.results, key=lambda r: r.order_index)
    sprint_rows = sorted(row.sprint, key=lambda s: s.order_index)
    return domain.Race(
        season=year,
        round=row.round,
        race_name=row.race_name,
        circuit_id=row.circuit_id,
        circuit_name=row.circuit_name,
        country=row.country,
        date=row.race_date,
        results=tuple(
            domain.RaceResult(
                driver_id=r.driver_id,
                position=r.position,
                points=r.points,
                grid=r.grid,
                status=r.status,
                fastest_lap=r.fastest_lap,
                fastest_lap_rank=r.fastest_lap_rank,
                driver=_driver_from_row(r),
            )
            for r in results
        ),
        qualifying=tuple(
            domain.QualifyingResult(driver_id=q.driver_id, position=q.position)
            for q in sorted(row.qualifying, key=lambda q: q.position)
        ),
        sprint=tuple(
            domain.SprintResult(driver_id=s.driver_id, position=s.position, points=s.points)
            for s in sprint_rows
        )
        or None,
    )


def load_season(db: Session, year: int) -> tuple[list[domain.CalendarEntry], list[domain.Race]]:
    season = get_season_or_404(db, year)
    rows = sorted(season.calendar, key=lambda r: r.round)
    calendar = [_calendar_entry(year, row) for row in rows]

    races = [_race_from_row(year, row) for row in rows if row.results_loaded]
    return calendar, races


@log_service_call
def season_playoff_state(db: Session, year: int, today: Optional[date] = None) -> domain.PlayoffState:
    calendar, races = load_season(db, year)
    return calculate_playoff_state(races, calendar, now=today)


def playoff_state_payload(state: domain.PlayoffState) -> dict[str, Any]:
    return jsonable_encoder(asdict(state))


def classification_payload(state: domain.PlayoffState) -> list[dict[str, Any]]:
    return jsonable_encoder([asdict(entry) for entry in playoff_classification(state)])


def driver_bracket_summary(state: domain.PlayoffState, driver_id: str) -> dict[str, Any]:
    standing = next((s for s in state.regular_season_standings if s.driver_id == driver_id), None)
    if standing is None:
        raise HTTPException(status_code=404, detail="Driver not found in this season")

    rounds = [
        {
            "round": playoff_round.round,
            "race_numbers": list(playoff_round.race_numbers),
            "complete": playoff_round.complete,
            "points": round_points(playoff_round, driver_id),
            "eliminated": was_eliminated_in_round(playoff_round, driver_id),
            "advanced_via_tiebreak": advanced_via_tiebreak(playoff_round, driver_id),
            "bracket_points": bracket_points(driver_id, playoff_round.round, state),
        }
        for playoff_round in state.rounds
    ]
    return jsonable_encoder(
        {
            "season": state.season,
            "driver": asdict(standing.driver),
            "regular_season_position": standing.position,
            "regular_season_points": standing.points,
            "official_points": standing.official_points,
            "qualified": driver_id in state.qualified_drivers,
            "status": playoff_status(driver_id, state),
            "elimination_round": elimination_round(driver_id, state),
            "rounds": rounds,
        }
    )
