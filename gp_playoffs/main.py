from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from sqlalchemy.orm import Session

from gp_playoffs.database import Base, engine, get_db
from gp_playoffs.jolpica import parse_calendar, parse_race_weekend
from gp_playoffs.logging_config import configure_logging
from gp_playoffs.schemas import (
    CalendarReplace,
    FeedCalendarUpload,
    FeedRaceUpload,
    RaceWeekendUpsert,
    SeasonCreate,
)
from gp_playoffs.services import (
    classification_payload,
    driver_bracket_summary,
    get_season_or_404,
    list_seasons,
    playoff_state_payload,
    replace_calendar,
    season_playoff_state,
    upsert_race_weekend,
    upsert_season,
)

logger = logging.getLogger(__name__)


class PlayoffHub:
    def __init__(self) -> None:
        self._connections: dict[int, set[WebSocket]] = defaultdict(set)

    async def connect(self, year: int, ws: WebSocket) -> None:
        await ws.accept()
        self._connections[year].add(ws)

    def disconnect(self, year: int, ws: WebSocket) -> None:
        if year in self._connections and ws in self._connections[year]:
            self._connections[year].remove(ws)
            if not self._connections[year]:
                del self._connections[year]

    async def broadcast(self, year: int, payload: dict[str, Any]) -> None:
        targets = list(self._connections.get(year, set()))
        for ws in targets:
            try:
                await ws.send_json(payload)
            except Exception:
                logger.warning("Dropping websocket subscriber for season %s", year, exc_info=True)
                self.disconnect(year, ws)


app = FastAPI(
    title="Grand Prix Playoffs",
    version="1.0.0",
    description=(
        "Re-scores a Formula 1 season as a playoff: regular season qualification, "
        "three elimination rounds and a winner-takes-all final."
    ),
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

hub = PlayoffHub()


@app.on_event("startup")
def on_startup() -> None:
    configure_logging()
    Base.metadata.create_all(bind=engine)


async def _publish_snapshot(db: Session, year: int) -> dict[str, Any]:
    snapshot = playoff_state_payload(season_playoff_state(db, year))
    await hub.broadcast(year, {"type": "playoff_state", "season": year, "state": snapshot})
    return snapshot


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/seasons")
def create_season(payload: SeasonCreate, db: Session = Depends(get_db)):
    season = upsert_season(db, payload.year)
    db.commit()
    return {"year": season.year, "total_races": len(season.calendar)}


@app.get("/seasons")
def get_seasons(db: Session = Depends(get_db)):
    return list_seasons(db)


@app.put("/seasons/{year}/calendar")
async def put_calendar(year: int, payload: CalendarReplace, db: Session = Depends(get_db)):
    season = replace_calendar(db, year, [race.to_entry(year) for race in payload.races])
    db.commit()
    await _publish_snapshot(db, year)
    return {"year": year, "total_races": len(season.calendar)}


@app.put("/seasons/{year}/calendar/jolpica")
async def put_calendar_from_feed(year: int, payload: FeedCalendarUpload, db: Session = Depends(get_db)):
    try:
        entries = parse_calendar(payload.payload)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=f"Malformed calendar payload: {exc.error_count()} errors")
    season = replace_calendar(db, year, entries)
    db.commit()
    await _publish_snapshot(db, year)
    return {"year": year, "total_races": len(season.calendar)}


@app.post("/seasons/{year}/races")
async def post_race(year: int, payload: RaceWeekendUpsert, db: Session = Depends(get_db)):
    row = upsert_race_weekend(db, year, payload.to_race(year))
    db.commit()
    snapshot = await _publish_snapshot(db, year)
    return {"year": year, "round": row.round, "status": snapshot["status"], "stage": snapshot["stage"]}


@app.post("/seasons/{year}/races/jolpica")
async def post_race_from_feed(year: int, payload: FeedRaceUpload, db: Session = Depends(get_db)):
    try:
        race = parse_race_weekend(payload.results, payload.qualifying, payload.sprint)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=f"Malformed race payload: {exc.error_count()} errors")
    if race is None:
        raise HTTPException(status_code=400, detail="Race has no results yet")
    row = upsert_race_weekend(db, year, race)
    db.commit()
    snapshot = await _publish_snapshot(db, year)
    return {"year": year, "round": row.round, "status": snapshot["status"], "stage": snapshot["stage"]}


@app.get("/seasons/{year}/playoffs")
def get_playoffs(
    year: int,
    today: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
):
    return playoff_state_payload(season_playoff_state(db, year, today=today))


@app.get("/seasons/{year}/playoffs/classification")
def get_classification(year: int, db: Session = Depends(get_db)):
    state = season_playoff_state(db, year)
    return {
        "season": year,
        "status": state.status.value,
        "champion": state.champion,
        "classification": classification_payload(state),
    }


@app.get("/seasons/{year}/drivers/{driver_id}/bracket")
def get_driver_bracket(year: int, driver_id: str, db: Session = Depends(get_db)):
    state = season_playoff_state(db, year)
    return driver_bracket_summary(state, driver_id)


@app.websocket("/ws/seasons/{year}/playoffs")
async def playoff_updates_ws(websocket: WebSocket, year: int, db: Session = Depends(get_db)):
    get_season_or_404(db, year)
    await hub.connect(year, websocket)
    try:
        await websocket.send_json(
            {
                "type": "bootstrap",
                "season": year,
                "state": playoff_state_payload(season_playoff_state(db, year)),
            }
        )
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        hub.disconnect(year, websocket)
