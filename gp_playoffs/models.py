from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gp_playoffs.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Season(Base):
    __tablename__ = "seasons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    year: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    calendar: Mapped[list["CalendarRace"]] = relationship(
        "CalendarRace",
        back_populates="season",
        cascade="all, delete-orphan",
        order_by="CalendarRace.round",
    )


class Driver(Base):
    __tablename__ = "drivers"

    # Feed identifier, e.g. "max_verstappen". Never changes once results exist.
    # Details here are the latest seen in any season; snapshots read the result rows.
    driver_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    code: Mapped[str] = mapped_column(String(8), nullable=False)
    first_name: Mapped[str] = mapped_column(String(128), default="", nullable=False)
    last_name: Mapped[str] = mapped_column(String(128), default="", nullable=False)
    nationality: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    constructor_id: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    constructor_name: Mapped[str] = mapped_column(String(128), default="", nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class CalendarRace(Base):
    __tablename__ = "calendar_races"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False, index=True)
    round: Mapped[int] = mapped_column(Integer, nullable=False)
    race_name: Mapped[str] = mapped_column(String(128), default="", nullable=False)
    circuit_id: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    circuit_name: Mapped[str] = mapped_column(String(128), default="", nullable=False)
    country: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    race_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    has_sprint: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Set once results for the weekend have been stored.
    results_loaded: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    season: Mapped[Season] = relationship("Season", back_populates="calendar")
    results: Mapped[list["RaceResultRow"]] = relationship(
        "RaceResultRow", back_populates="calendar_race", cascade="all, delete-orphan"
    )
    qualifying: Mapped[list["QualifyingResultRow"]] = relationship(
        "QualifyingResultRow", back_populates="calendar_race", cascade="all, delete-orphan"
    )
    sprint: Mapped[list["SprintResultRow"]] = relationship(
        "SprintResultRow", back_populates="calendar_race", cascade="all, delete-orphan"
    )

    __table_args__ = (UniqueConstraint("season_id", "round", name="uq_calendar_round_per_season"),)


class RaceResultRow(Base):
    __tablename__ = "race_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    calendar_race_id: Mapped[int] = mapped_column(ForeignKey("calendar_races.id"), nullable=False, index=True)
    driver_id: Mapped[str] = mapped_column(ForeignKey("drivers.driver_id"), nullable=False, index=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int | None] = mapped_column(Integer, nullable=True)  # null = DNF/DNS/DSQ
    points: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    grid: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    fastest_lap: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    fastest_lap_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Driver details as entered for this weekend; seasons never share them.
    code: Mapped[str] = mapped_column(String(8), default="", nullable=False)
    first_name: Mapped[str] = mapped_column(String(128), default="", nullable=False)
    last_name: Mapped[str] = mapped_column(String(128), default="", nullable=False)
    nationality: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    constructor_id: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    constructor_name: Mapped[str] = mapped_column(String(128), default="", nullable=False)

    calendar_race: Mapped[CalendarRace] = relationship("CalendarRace", back_populates="results")

    __table_args__ = (UniqueConstraint("calendar_race_id", "driver_id", name="uq_race_result_driver"),)


class QualifyingResultRow(Base):
    __tablename__ = "qualifying_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    calendar_race_id: Mapped[int] = mapped_column(ForeignKey("calendar_races.id"), nullable=False, index=True)
    driver_id: Mapped[str] = mapped_column(ForeignKey("drivers.driver_id"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    calendar_race: Mapped[CalendarRace] = relationship("CalendarRace", back_populates="qualifying")

    __table_args__ = (UniqueConstraint("calendar_race_id", "driver_id", name="uq_qualifying_driver"),)


class SprintResultRow(Base):
    __tablename__ = "sprint_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    calendar_race_id: Mapped[int] = mapped_column(ForeignKey("calendar_races.id"), nullable=False, index=True)
    driver_id: Mapped[str] = mapped_column(ForeignKey("drivers.driver_id"), nullable=False, index=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    points: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    calendar_race: Mapped[CalendarRace] = relationship("CalendarRace", back_populates="sprint")

    __table_args__ = (UniqueConstraint("calendar_race_id", "driver_id", name="uq_sprint_driver"),)
