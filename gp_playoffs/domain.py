from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Tuple


class SeasonPhase(str, Enum):
    PRE_SEASON = "pre-season"
    REGULAR_SEASON = "regular-season"
    PLAYOFFS = "playoffs"
    COMPLETED = "completed"


class PlayoffStage(str, Enum):
    NOT_STARTED = "not-started"
    ROUND_1 = "round-1"
    ROUND_2 = "round-2"
    ROUND_3 = "round-3"
    FINAL = "final"
    COMPLETED = "completed"


class PlayoffStatus(str, Enum):
    NOT_QUALIFIED = "not-qualified"
    QUALIFIED = "qualified"
    ADVANCING = "advancing"
    ELIMINATED = "eliminated"
    CHAMPION = "champion"


@dataclass(frozen=True)
class Driver:
    driver_id: str
    code: str
    first_name: str = ""
    last_name: str = ""
    nationality: str = ""
    constructor_id: str = ""
    constructor_name: str = ""

    @classmethod
    def placeholder(cls, driver_id: str) -> "Driver":
        return cls(driver_id=driver_id, code=driver_id[:3].upper(), last_name=driver_id)


@dataclass(frozen=True)
class RaceResult:
    driver_id: str
    position: Optional[int]  # None = DNF / DNS / DSQ
    points: float = 0.0
    grid: int = 0
    status: str = "Finished"
    fastest_lap: bool = False
    fastest_lap_rank: Optional[int] = None
    driver: Optional[Driver] = None


@dataclass(frozen=True)
class QualifyingResult:
    driver_id: str
    position: int


@dataclass(frozen=True)
class SprintResult:
    driver_id: str
    position: Optional[int]
    points: float = 0.0


@dataclass(frozen=True)
class Race:
    season: int
    round: int
    race_name: str = ""
    circuit_id: str = ""
    circuit_name: str = ""
    country: str = ""
    date: Optional[date] = None
    results: Tuple[RaceResult, ...] = ()
    qualifying: Tuple[QualifyingResult, ...] = ()
    sprint: Optional[Tuple[SprintResult, ...]] = None  # None = no sprint that weekend

    def result_for(self, driver_id: str) -> Optional[RaceResult]:
        return next((r for r in self.results if r.driver_id == driver_id), None)

    def sprint_result_for(self, driver_id: str) -> Optional[SprintResult]:
        if self.sprint is None:
            return None
        return next((s for s in self.sprint if s.driver_id == driver_id), None)

    def pole_sitter(self) -> Optional[str]:
        pole = next((q for q in self.qualifying if q.position == 1), None)
        return pole.driver_id if pole else None


@dataclass(frozen=True)
class CalendarEntry:
    season: int
    round: int
    race_name: str = ""
    circuit_id: str = ""
    circuit_name: str = ""
    country: str = ""
    date: Optional[date] = None
    has_sprint: bool = False


@dataclass(frozen=True)
class DriverStanding:
    driver: Driver
    points: float
    wins: int
    podiums: int
    position_history: Tuple[int, ...]  # count of 1sts, 2nds, ... up to the points cutoff
    official_points: float
    position: int = 0

    @property
    def driver_id(self) -> str:
        return self.driver.driver_id


@dataclass(frozen=True)
class PlayoffRound:
    round: int
    race_numbers: Tuple[int, ...]
    standings: Tuple[DriverStanding, ...]
    eliminated: Tuple[str, ...]
    advancing: Tuple[str, ...]
    complete: bool = False

    def standing_for(self, driver_id: str) -> Optional[DriverStanding]:
        return next((s for s in self.standings if s.driver_id == driver_id), None)


@dataclass(frozen=True)
class PlayoffState:
    season: int
    total_races: int
    regular_season_races: int
    playoff_start_race: int
    regular_season_standings: Tuple[DriverStanding, ...]
    qualified_drivers: Tuple[str, ...]
    rounds: Tuple[PlayoffRound, ...]
    champion: Optional[str]
    status: SeasonPhase
    stage: PlayoffStage = PlayoffStage.NOT_STARTED
    completed_races: int = 0


@dataclass(frozen=True)
class ClassificationEntry:
    position: int
    standing: DriverStanding
    qualified: bool
    elimination_round: int
    status: PlayoffStatus
    round_points: Tuple[Optional[float], ...] = ()
