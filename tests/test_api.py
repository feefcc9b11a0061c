import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gp_playoffs.database import Base, get_db
from gp_playoffs.main import app

DRIVERS = [f"d{i}" for i in range(1, 13)]


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(bind=engine, autoflush=True, autocommit=False)

    def _get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _calendar_body(total=24):
    return {"races": [{"round": i, "race_name": f"Grand Prix {i}", "race_date": "2024-03-02"} for i in range(1, total + 1)]}


def _race_body(round_number):
    return {
        "round": round_number,
        "results": [{"driver_id": d, "position": p} for p, d in enumerate(DRIVERS, start=1)],
        "qualifying": [{"driver_id": "d1", "position": 1}],
    }


def _seed(client, completed):
    assert client.post("/seasons", json={"year": 2024}).status_code == 200
    assert client.put("/seasons/2024/calendar", json=_calendar_body()).status_code == 200
    for i in range(1, completed + 1):
        response = client.post("/seasons/2024/races", json=_race_body(i))
        assert response.status_code == 200, response.text


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_full_season_over_http(client):
    _seed(client, 24)

    seasons = client.get("/seasons").json()
    assert seasons == [{"year": 2024, "total_races": 24, "completed_races": 24}]

    state = client.get("/seasons/2024/playoffs").json()
    assert state["champion"] == "d1"
    assert state["status"] == "completed"
    assert state["stage"] == "completed"
    assert len(state["rounds"]) == 4
    # Pole bonus on top of 25 per win.
    assert state["regular_season_standings"][0]["points"] == 17 * 26

    classification = client.get("/seasons/2024/playoffs/classification").json()
    assert classification["champion"] == "d1"
    assert [e["standing"]["driver"]["driver_id"] for e in classification["classification"][:3]] == ["d1", "d2", "d3"]

    bracket = client.get("/seasons/2024/drivers/d9/bracket").json()
    assert bracket["elimination_round"] == 1
    assert bracket["status"] == "eliminated"


def test_race_post_reports_phase(client):
    _seed(client, 17)
    response = client.post("/seasons/2024/races", json=_race_body(18))
    assert response.json() == {"year": 2024, "round": 18, "status": "playoffs", "stage": "round-1"}


def test_today_query_controls_pre_season(client):
    client.post("/seasons", json={"year": 2024})
    client.put("/seasons/2024/calendar", json=_calendar_body())

    early = client.get("/seasons/2024/playoffs", params={"today": "2024-01-01"}).json()
    late = client.get("/seasons/2024/playoffs", params={"today": "2024-03-10"}).json()
    assert early["status"] == "pre-season"
    assert late["status"] == "regular-season"


def test_validation_and_precondition_errors(client):
    assert client.post("/seasons", json={"year": 1800}).status_code == 422
    assert client.get("/seasons/1999/playoffs").status_code == 404

    _seed(client, 1)
    out_of_order = client.post("/seasons/2024/races", json=_race_body(3))
    assert out_of_order.status_code == 400
    assert client.post("/seasons/2024/races", json={"round": 2, "results": []}).status_code == 422
    assert client.get("/seasons/2024/drivers/nobody/bracket").status_code == 404


def test_feed_uploads(client):
    client.post("/seasons", json={"year": 2024})
    calendar = {
        "payload": {
            "MRData": {
                "RaceTable": {
                    "Races": [
                        {"season": "2024", "round": str(i), "raceName": f"GP {i}", "date": "2024-03-02"}
                        for i in range(1, 25)
                    ]
                }
            }
        }
    }
    assert client.put("/seasons/2024/calendar/jolpica", json=calendar).json()["total_races"] == 24

    race = {
        "season": "2024",
        "round": "1",
        "raceName": "GP 1",
        "Results": [
            {
                "position": "1",
                "points": "25",
                "status": "Finished",
                "Driver": {"driverId": "max_verstappen", "code": "VER", "givenName": "Max", "familyName": "Verstappen"},
            }
        ],
    }
    response = client.post("/seasons/2024/races/jolpica", json={"results": {"MRData": {"RaceTable": {"Races": [race]}}}})
    assert response.status_code == 200
    assert response.json()["round"] == 1

    not_run = {"MRData": {"RaceTable": {"Races": []}}}
    assert client.post("/seasons/2024/races/jolpica", json={"results": not_run}).status_code == 400
    assert client.post("/seasons/2024/races/jolpica", json={"results": {"nope": 1}}).status_code == 422
    assert client.put("/seasons/2024/calendar/jolpica", json={"payload": {}}).status_code == 422

    bracket = client.get("/seasons/2024/drivers/max_verstappen/bracket").json()
    assert bracket["driver"]["first_name"] == "Max"
    assert bracket["official_points"] == 25.0


def test_websocket_bootstrap(client):
    _seed(client, 2)
    with client.websocket_connect("/ws/seasons/2024/playoffs") as ws:
        message = ws.receive_json()
    assert message["type"] == "bootstrap"
    assert message["season"] == 2024
    assert message["state"]["completed_races"] == 2


def test_fastest_lap_outside_top_ten_is_rejected(client):
    client.post("/seasons", json={"year": 2024})
    client.put("/seasons/2024/calendar", json=_calendar_body())

    response = client.post(
        "/seasons/2024/races",
        json={
            "round": 1,
            "results": [
                {"driver_id": "a", "position": 1},
                {"driver_id": "b", "position": 15, "fastest_lap": True},
            ],
        },
    )
    assert response.status_code == 400
    assert "Fastest lap" in response.json()["detail"]

    state = client.get("/seasons/2024/playoffs").json()
    assert state["completed_races"] == 0
    assert state["regular_season_standings"] == []


def test_duplicate_driver_is_a_client_error(client):
    client.post("/seasons", json={"year": 2024})
    client.put("/seasons/2024/calendar", json=_calendar_body())

    response = client.post(
        "/seasons/2024/races",
        json={"round": 1, "results": [{"driver_id": "a", "position": 1}, {"driver_id": "a", "position": 2}]},
    )
    assert response.status_code == 400
