from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from gp_playoffs.rules import FASTEST_LAP_ELIGIBILITY_POSITION
from gp_playoffs.domain import (
    CalendarEntry,
    Driver,
    QualifyingResult,
    Race,
    RaceResult,
    SprintResult,
)


class _FeedModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class FeedDriver(_FeedModel):
    driver_id: str = Field(alias="driverId")
    code: Optional[str] = None
    given_name: str = Field(default="", alias="givenName")
    family_name: str = Field(default="", alias="familyName")
    nationality: str = ""


class FeedConstructor(_FeedModel):
    constructor_id: str = Field(default="", alias="constructorId")
    name: str = ""


class FeedFastestLap(_FeedModel):
    rank: Optional[str] = None
    lap: Optional[str] = None


class FeedResult(_FeedModel):
    position: str
    points: float = 0.0
    grid: int = 0
    status: str = ""
    driver: FeedDriver = Field(alias="Driver")
    constructor: Optional[FeedConstructor] = Field(default=None, alias="Constructor")
    fastest_lap: Optional[FeedFastestLap] = Field(default=None, alias="FastestLap")


class FeedQualifyingResult(_FeedModel):
    position: int
    driver: FeedDriver = Field(alias="Driver")


class FeedLocation(_FeedModel):
    country: str = ""


class FeedCircuit(_FeedModel):
    circuit_id: str = Field(default="", alias="circuitId")
    circuit_name: str = Field(default="", alias="circuitName")
    location: FeedLocation = Field(default_factory=FeedLocation, alias="Location")


class FeedRace(_FeedModel):
    season: int
    round: int
    race_name: str = Field(default="", alias="raceName")
    circuit: FeedCircuit = Field(default_factory=FeedCircuit, alias="Circuit")
    race_date: Optional[date] = Field(default=None, alias="date")
    sprint_session: Optional[Dict[str, Any]] = Field(default=None, alias="Sprint")
    results: Optional[List[FeedResult]] = Field(default=None, alias="Results")
    qualifying_results: Optional[List[FeedQualifyingResult]] = Field(default=None, alias="QualifyingResults")
    sprint_results: Optional[List[FeedResult]] = Field(default=None, alias="SprintResults")


class FeedRaceTable(_FeedModel):
    races: List[FeedRace] = Field(default_factory=list, alias="Races")


class FeedMRData(_FeedModel):
    race_table: FeedRaceTable = Field(default_factory=FeedRaceTable, alias="RaceTable")


class FeedResponse(_FeedModel):
    mr_data: FeedMRData = Field(alias="MRData")


def parse_position(status: str, position: str) -> Optional[int]:
    """
    Classified finishers only: "Finished" or lapped ("+1 Lap", "Lapped").
    Everything else (retired, DSQ, DNS) has no finishing position.
    """
    if status == "Finished" or "Lap" in status:
        return int(position)
    return None


def _driver_info(result: FeedResult) -> Driver:
    feed_driver = result.driver
    constructor = result.constructor or FeedConstructor()
    return Driver(
        driver_id=feed_driver.driver_id,
        code=feed_driver.code or feed_driver.driver_id[:3].upper(),
        first_name=feed_driver.given_name,
        last_name=feed_driver.family_name or feed_driver.driver_id,
        nationality=feed_driver.nationality,
        constructor_id=constructor.constructor_id,
        constructor_name=constructor.name,
    )


def _race_result(result: FeedResult) -> RaceResult:
    position = parse_position(result.status, result.position)
    fastest_lap_rank = None
    if result.fastest_lap is not None and result.fastest_lap.rank:
        fastest_lap_rank = int(result.fastest_lap.rank)
    eligible = position is not None and position <= FASTEST_LAP_ELIGIBILITY_POSITION
    return RaceResult(
        driver_id=result.driver.driver_id,
        position=position,
        points=result.points,
        grid=result.grid,
        status=result.status,
        fastest_lap=fastest_lap_rank == 1 and eligible,
        fastest_lap_rank=fastest_lap_rank,
        driver=_driver_info(result),
    )


def _sprint_result(result: FeedResult) -> SprintResult:
    return SprintResult(
        driver_id=result.driver.driver_id,
        position=parse_position(result.status, result.position),
        points=result.points,
    )


def _first_race(payload: Optional[Mapping[str, Any]]) -> Optional[FeedRace]:
    if not payload:
        return None
    races = FeedResponse.model_validate(payload).mr_data.race_table.races
    return races[0] if races else None


def parse_calendar(payload: Mapping[str, Any]) -> List[CalendarEntry]:
    races = FeedResponse.model_validate(payload).mr_data.race_table.races
    return [
        CalendarEntry(
            season=race.season,
            round=race.round,
            race_name=race.race_name,
            circuit_id=race.circuit.circuit_id,
            circuit_name=race.circuit.circuit_name,
            country=race.circuit.location.country,
            date=race.race_date,
            has_sprint=race.sprint_session is not None,
        )
        for race in races
    ]


def parse_race_weekend(
    results_payload: Mapping[str, Any],
    qualifying_payload: Optional[Mapping[str, Any]] = None,
    sprint_payload: Optional[Mapping[str, Any]] = None,
) -> Optional[Race]:
    """
    Build one race weekend from the results, qualifying and sprint responses.
    Returns None while the race has not been run (no Results in the payload).
    """
    race_info = _first_race(results_payload)
    if race_info is None or not race_info.results:
        return None

    qualifying_info = _first_race(qualifying_payload)
    sprint_info = _first_race(sprint_payload)

    qualifying = ()
    if qualifying_info is not None and qualifying_info.qualifying_results:
        qualifying = tuple(
            QualifyingResult(driver_id=q.driver.driver_id, position=q.position)
            for q in qualifying_info.qualifying_results
        )

    sprint = None
    if sprint_info is not None and sprint_info.sprint_results:
        sprint = tuple(_sprint_result(s) for s in sprint_info.sprint_results)

    return Race(
        season=race_info.season,
        round=race_info.round,
        race_name=race_info.race_name,
        circuit_id=race_info.circuit.circuit_id,
        circuit_name=race_info.circuit.circuit_name,
        country=race_info.circuit.location.country,
        date=race_info.race_date,
        results=tuple(_race_result(r) for r in race_info.results),
        qualifying=qualifying,
        sprint=sprint,
    )
