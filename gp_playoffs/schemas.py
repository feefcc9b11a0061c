from __future__ import annotations

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, Field

from gp_playoffs.domain import (
    CalendarEntry,
    Driver,
    QualifyingResult,
    Race,
    RaceResult,
    SprintResult,
)


class SeasonCreate(BaseModel):
    year: int = Field(ge=1950, le=2100)


class CalendarRaceIn(BaseModel):
    round: int = Field(ge=1)
    race_name: str = Field(default="", max_length=128)
    circuit_id: str = Field(default="", max_length=64)
    circuit_name: str = Field(default="", max_length=128)
    country: str = Field(default="", max_length=64)
    race_date: Optional[date] = None
    has_sprint: bool = False

    def to_entry(self, season: int) -> CalendarEntry:
        return CalendarEntry(
            season=season,
            round=self.round,
            race_name=self.race_name,
            circuit_id=self.circuit_id,
            circuit_name=self.circuit_name,
            country=self.country,
            date=self.race_date,
            has_sprint=self.has_sprint,
        )


class CalendarReplace(BaseModel):
    races: list[CalendarRaceIn]


class DriverIn(BaseModel):
    code: Optional[str] = Field(default=None, max_length=8)
    first_name: str = Field(default="", max_length=128)
    last_name: str = Field(default="", max_length=128)
    nationality: str = Field(default="", max_length=64)
    constructor_id: str = Field(default="", max_length=64)
    constructor_name: str = Field(default="", max_length=128)


class RaceResultIn(BaseModel):
    driver_id: str = Field(min_length=1, max_length=64)
    position: Optional[int] = Field(default=None, ge=1)
    points: float = Field(default=0.0, ge=0)
    grid: int = Field(default=0, ge=0)
    status: str = Field(default="Finished", max_length=64)
    fastest_lap: bool = False
    fastest_lap_rank: Optional[int] = Field(default=None, ge=1)
    driver: Optional[DriverIn] = None

    def to_result(self) -> RaceResult:
        info = None
        if self.driver is not None:
            info = Driver(
                driver_id=self.driver_id,
                code=self.driver.code or self.driver_id[:3].upper(),
                first_name=self.driver.first_name,
                last_name=self.driver.last_name or self.driver_id,
                nationality=self.driver.nationality,
                constructor_id=self.driver.constructor_id,
                constructor_name=self.driver.constructor_name,
            )
        return RaceResult(
            driver_id=self.driver_id,
            position=self.position,
            points=self.points,
            grid=self.grid,
            status=self.status,
            fastest_lap=self.fastest_lap,
            fastest_lap_rank=self.fastest_lap_rank,
            driver=info,
        )


class QualifyingResultIn(BaseModel):
    driver_id: str = Field(min_length=1, max_length=64)
    position: int = Field(ge=1)


class SprintResultIn(BaseModel):
    driver_id: str = Field(min_length=1, max_length=64)
    position: Optional[int] = Field(default=None, ge=1)
    points: float = Field(default=0.0, ge=0)


class RaceWeekendUpsert(BaseModel):
    round: int = Field(ge=1)
    results: list[RaceResultIn] = Field(min_length=1)
    qualifying: list[QualifyingResultIn] = Field(default_factory=list)
    sprint: Optional[list[SprintResultIn]] = None

    def to_race(self, season: int) -> Race:
        sprint = None
        if self.sprint is not None:
            sprint = tuple(
                SprintResult(driver_id=s.driver_id, position=s.position, points=s.points)
                for s in self.sprint
            )
        return Race(
            season=season,
            round=self.round,
            results=tuple(r.to_result() for r in self.results),
            qualifying=tuple(
                QualifyingResult(driver_id=q.driver_id, position=q.position) for q in self.qualifying
            ),
            sprint=sprint,
        )


class FeedCalendarUpload(BaseModel):
    payload: dict[str, Any]


class FeedRaceUpload(BaseModel):
    results: dict[str, Any]
    qualifying: Optional[dict[str, Any]] = None
    sprint: Optional[dict[str, Any]] = None
