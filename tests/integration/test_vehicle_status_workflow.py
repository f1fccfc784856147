"""
Integration tests for daily status summaries and the trip report
"""
import io
from datetime import datetime, timezone

import pytest
from openpyxl import load_workbook
from sqlalchemy.exc import OperationalError

from fleet.database import get_db
from fleet.errors import NotFound, StoreUnavailable
from fleet.models import TripStatus, VehicleTrip
from fleet.reports import SHEET_NAME, XLSX_MEDIA_TYPE
from fleet.status import SqlTripStore, StatusAggregator


def at(hour, minute=0, day=1):
    return datetime(2024, 5, day, hour, minute, tzinfo=timezone.utc)


class UnreachableSession:
    """Session whose database connection is gone"""

    def __init__(self, error=None):
        self.error = error or OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))

    async def execute(self, *args, **kwargs):
        raise self.error


@pytest.fixture
async def trips(db_session, vehicle):
    """A day of driving and idling, plus trips on the neighbouring days"""
    rows = [
        VehicleTrip(vehicle_id=vehicle.id, status=TripStatus.IDLE, start_time=at(10), end_time=at(10, 30)),
        VehicleTrip(vehicle_id=vehicle.id, status=TripStatus.TRIP, start_time=at(8), end_time=at(10),
                    latitude=-6.2, longitude=106.8, address="Jakarta, Indonesia"),
        VehicleTrip(vehicle_id=vehicle.id, status=TripStatus.STOPPED, start_time=at(23, day=2),
                    end_time=at(23, 30, day=2)),
        VehicleTrip(vehicle_id=vehicle.id, status=TripStatus.STOPPED, start_time=at(0, day=2),
                    end_time=at(1, day=2)),
    ]
    db_session.add_all(rows)
    await db_session.commit()
    return rows


@pytest.mark.integration
async def test_vehicle_status_summary(client, user_headers, vehicle, trips):
    response = await client.get(
        f"/api/vehicles/{vehicle.id}/status", params={"date": "2024-05-01"}, headers=user_headers
    )
    assert response.status_code == 200
    data = response.json()

    assert data["date"] == "2024-05-01"
    assert data["summary"] == {"TRIP": 120, "IDLE": 30, "STOPPED": 0}
    assert [t["status"] for t in data["trips"]] == ["TRIP", "IDLE"]
    assert data["trips"][0]["startTime"].startswith("2024-05-01T08:00:00")
    assert data["trips"][0]["address"] == "Jakarta, Indonesia"
    assert data["trips"][0]["vehicleId"] == vehicle.id


@pytest.mark.integration
async def test_vehicle_status_next_day(client, user_headers, vehicle, trips):
    response = await client.get(
        f"/api/vehicles/{vehicle.id}/status", params={"date": "2024-05-02"}, headers=user_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["summary"] == {"TRIP": 0, "IDLE": 0, "STOPPED": 90}
    assert len(data["trips"]) == 2


@pytest.mark.integration
async def test_vehicle_status_empty_day(client, user_headers, vehicle, trips):
    response = await client.get(
        f"/api/vehicles/{vehicle.id}/status", params={"date": "2023-01-01"}, headers=user_headers
    )
    assert response.status_code == 200
    assert response.json() == {
        "date": "2023-01-01",
        "trips": [],
        "summary": {"TRIP": 0, "IDLE": 0, "STOPPED": 0},
    }


@pytest.mark.integration
@pytest.mark.parametrize("date", ["2024-13-40", "01-01-2024"])
async def test_vehicle_status_malformed_date(client, user_headers, vehicle, date):
    response = await client.get(
        f"/api/vehicles/{vehicle.id}/status", params={"date": date}, headers=user_headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Validation error"


@pytest.mark.integration
async def test_vehicle_status_missing_date(client, user_headers, vehicle):
    response = await client.get(f"/api/vehicles/{vehicle.id}/status", headers=user_headers)
    assert response.status_code == 400


@pytest.mark.integration
async def test_vehicle_status_unknown_vehicle(client, user_headers):
    response = await client.get(
        "/api/vehicles/non-existent-id/status", params={"date": "2024-05-01"}, headers=user_headers
    )
    assert response.status_code == 404


@pytest.mark.integration
async def test_vehicle_status_requires_auth(client, vehicle):
    response = await client.get(f"/api/vehicles/{vehicle.id}/status", params={"date": "2024-05-01"})
    assert response.status_code == 401


@pytest.mark.integration
async def test_sql_trip_store_window(db_session, vehicle, trips):
    store = SqlTripStore(db_session)
    found = await store.find_trips_in_window(vehicle.id, at(0), at(0, day=2))

    assert [t.start_time.hour for t in found] == [8, 10]
    assert await store.vehicle_exists(vehicle.id)
    assert not await store.vehicle_exists("non-existent-id")


@pytest.mark.integration
async def test_aggregator_against_database(db_session, vehicle, trips):
    summary = await StatusAggregator(SqlTripStore(db_session)).compute_status(vehicle.id, "2024-05-01")
    assert summary.summary == {"TRIP": 120, "IDLE": 30, "STOPPED": 0}

    with pytest.raises(NotFound):
        await StatusAggregator(SqlTripStore(db_session)).compute_status("non-existent-id", "2024-05-01")


@pytest.mark.integration
@pytest.mark.parametrize("error", [
    OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused")),
    ConnectionResetError("connection reset"),
])
async def test_sql_trip_store_wraps_database_errors(error):
    store = SqlTripStore(UnreachableSession(error))

    with pytest.raises(StoreUnavailable):
        await store.vehicle_exists("v1")
    with pytest.raises(StoreUnavailable):
        await store.find_trips_in_window("v1", at(0), at(0, day=2))


@pytest.mark.integration
async def test_vehicle_status_store_unavailable(app, client, user_headers):
    async def unreachable_db():
        yield UnreachableSession()

    app.dependency_overrides[get_db] = unreachable_db
    response = await client.get(
        "/api/vehicles/v1/status", params={"date": "2024-05-01"}, headers=user_headers
    )

    assert response.status_code == 503
    assert response.json()["error"] == "Service unavailable"


@pytest.mark.integration
async def test_vehicle_detail_lists_recent_trips(client, user_headers, vehicle, trips):
    response = await client.get(f"/api/vehicles/{vehicle.id}", headers=user_headers)
    assert response.status_code == 200
    starts = [t["startTime"][:16] for t in response.json()["trips"]]
    assert starts == ["2024-05-02T23:00", "2024-05-02T00:00", "2024-05-01T10:00", "2024-05-01T08:00"]


@pytest.mark.integration
async def test_delete_vehicle_removes_trips(client, admin_headers, db_session, vehicle, trips):
    response = await client.delete(f"/api/vehicles/{vehicle.id}", headers=admin_headers)
    assert response.status_code == 204

    store = SqlTripStore(db_session)
    assert await store.find_trips_in_window(vehicle.id, at(0), at(0, day=3)) == []


# Reports


@pytest.mark.integration
async def test_download_report(client, user_headers, vehicle, trips):
    response = await client.get("/api/reports/vehicles", headers=user_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == XLSX_MEDIA_TYPE
    assert response.headers["content-disposition"].startswith('attachment; filename="vehicle-report-')

    ws = load_workbook(io.BytesIO(response.content))[SHEET_NAME]
    rows = list(ws.iter_rows(min_row=2, values_only=True))
    assert len(rows) == 4
    # Newest first
    assert rows[0][3].startswith("2024-05-02T23:00")
    assert rows[-1][0] == "Toyota Avanza"
    assert rows[-1][5] == 120


@pytest.mark.integration
async def test_download_report_filtered(client, user_headers, vehicle, trips):
    response = await client.get(
        "/api/reports/vehicles",
        params={"vehicleId": vehicle.id, "startDate": "2024-05-02"},
        headers=user_headers,
    )
    assert response.status_code == 200
    ws = load_workbook(io.BytesIO(response.content))[SHEET_NAME]
    assert ws.max_row == 3


@pytest.mark.integration
async def test_download_report_bad_date(client, user_headers):
    response = await client.get(
        "/api/reports/vehicles", params={"startDate": "May 1st"}, headers=user_headers
    )
    assert response.status_code == 400


@pytest.mark.integration
async def test_download_report_requires_auth(client):
    response = await client.get("/api/reports/vehicles")
    assert response.status_code == 401
