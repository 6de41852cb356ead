from datetime import datetime

from bson import ObjectId

from conftest import ADMIN, EMPLOYEE, MANAGER, ORG_ID, at, event
from timeclock.models.geo import Coordinate
from timeclock.models.location import WorkSite
from timeclock.routes import locations

OFFICE = WorkSite(id="loc-1", name="Office", coordinates=Coordinate(lat=0.0, lng=0.0), radius_meters=150)
DEPOT = WorkSite(id="loc-2", name="Depot", coordinates=Coordinate(lat=0.01, lng=0.0), radius_meters=100)


def set_sites(monkeypatch, sites):
    async def fake_sites(organization_id):
        return sites
    monkeypatch.setattr(locations, "list_active_sites", fake_sites)


def test_verify_lists_sites_by_distance(client, login, monkeypatch):
    login(EMPLOYEE)
    set_sites(monkeypatch, [DEPOT, OFFICE])

    response = client.post("/api/locations/verify", json={"latitude": 0.001, "longitude": 0.0})

    assert response.status_code == 200
    body = response.json()
    assert body["isValid"] is True
    assert [loc["name"] for loc in body["locations"]] == ["Office", "Depot"]
    assert body["closestLocation"]["name"] == "Office"
    assert body["closestLocation"]["distance"] == 111
    assert body["closestLocation"]["status"] == "IN_RANGE"
    assert [loc["name"] for loc in body["inRangeLocations"]] == ["Office"]
    assert body["summary"] == {
        "totalLocations": 2,
        "inRangeCount": 1,
        "closestDistance": 111,
        "canClockIn": True,
    }


def test_verify_out_of_range(client, login, monkeypatch):
    login(EMPLOYEE)
    set_sites(monkeypatch, [OFFICE])

    body = client.post("/api/locations/verify", json={"latitude": 0.05, "longitude": 0.0}).json()

    assert body["isValid"] is False
    assert body["locations"][0]["status"] == "OUT_OF_RANGE"
    assert body["summary"]["canClockIn"] is False


def test_verify_without_locations(client, login, monkeypatch):
    login(EMPLOYEE)
    set_sites(monkeypatch, [])

    body = client.post("/api/locations/verify", json={"latitude": 10, "longitude": 10}).json()

    assert body["isValid"] is False
    assert body["error"] == "No work locations configured"
    assert body["locations"] == []


def test_verify_invalid_coordinate(client, login, monkeypatch):
    login(EMPLOYEE)
    set_sites(monkeypatch, [OFFICE])

    response = client.post("/api/locations/verify", json={"latitude": 0, "longitude": 200})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_COORDINATE"


def test_employee_cannot_create_location(client, login):
    login(EMPLOYEE)
    response = client.post("/api/locations/", json={
        "name": "Office", "address": "1 Main St", "coordinates": {"lat": 0, "lng": 0}
    })
    assert response.status_code == 403


def test_verify_checks_coordinates_before_sites(client, login, monkeypatch):
    login(EMPLOYEE)
    set_sites(monkeypatch, [])

    response = client.post("/api/locations/verify", json={"latitude": 95, "longitude": 0})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_COORDINATE"


def test_verify_records_activity(client, login, monkeypatch):
    login(EMPLOYEE)
    set_sites(monkeypatch, [OFFICE])
    logged = []

    async def fake_log_event(action, details=None, user_id=None, organization_id=None):
        logged.append((action, details, user_id))

    monkeypatch.setattr(locations, "log_event", fake_log_event)

    client.post("/api/locations/verify", json={"latitude": 0.001, "longitude": 0.0})

    assert logged == [(
        locations.EventTypes.LOCATION_VERIFIED,
        {"closest_location_id": "loc-1", "distance": 111, "in_range": True},
        "emp-1",
    )]


NEW_SITE = {
    "name": "Warehouse",
    "address": "2 Dock Rd",
    "coordinates": {"lat": 51.5, "lng": -0.1},
    "radius_meters": 200,
}


def stored_location(fake_db, name="Office", organization_id=ORG_ID, **fields):
    doc = {
        "_id": ObjectId(),
        "name": name,
        "address": "1 Main St",
        "coordinates": {"lat": 0.0, "lng": 0.0},
        "radius_meters": 100,
        "organization_id": organization_id,
        "is_active": True,
        "created_at": datetime(2025, 1, 1),
        **fields,
    }
    fake_db["locations"].docs.append(doc)
    return doc


def test_create_location(client, login, fake_db):
    login(MANAGER)

    response = client.post("/api/locations/", json=NEW_SITE)

    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Warehouse"
    assert body["radius_meters"] == 200
    assert body["organization_id"] == ORG_ID
    assert body["created_by"] == "mgr-1"
    assert body["is_active"] is True
    assert len(fake_db["locations"].docs) == 1


def test_create_location_duplicate_name(client, login, fake_db):
    login(MANAGER)
    stored_location(fake_db, name="Warehouse")

    response = client.post("/api/locations/", json=NEW_SITE)

    assert response.status_code == 400
    assert "already exists" in response.json()["detail"]
    assert len(fake_db["locations"].docs) == 1


def test_create_location_name_reusable_after_delete(client, login, fake_db):
    login(MANAGER)
    stored_location(fake_db, name="Warehouse", is_active=False)

    assert client.post("/api/locations/", json=NEW_SITE).status_code == 201


def test_list_locations_scoped_to_organization(client, login, fake_db):
    login(EMPLOYEE)
    stored_location(fake_db, name="Office")
    stored_location(fake_db, name="Annex")
    stored_location(fake_db, name="Elsewhere", organization_id="org-2")

    names = [loc["name"] for loc in client.get("/api/locations/").json()]

    assert names == ["Annex", "Office"]


def test_get_location(client, login, fake_db):
    login(EMPLOYEE)
    doc = stored_location(fake_db)

    response = client.get(f"/api/locations/{doc['_id']}")

    assert response.status_code == 200
    assert response.json()["name"] == "Office"


def test_get_location_invalid_id(client, login, fake_db):
    login(EMPLOYEE)

    response = client.get("/api/locations/not-an-id")

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid location ID format"


def test_get_location_other_organization(client, login, fake_db):
    login(EMPLOYEE)
    doc = stored_location(fake_db, organization_id="org-2")

    assert client.get(f"/api/locations/{doc['_id']}").status_code == 404


def test_update_location(client, login, fake_db):
    login(MANAGER)
    doc = stored_location(fake_db)

    response = client.put(f"/api/locations/{doc['_id']}", json={"radius_meters": 250})

    assert response.status_code == 200
    assert response.json()["radius_meters"] == 250
    assert response.json()["updated_at"] is not None


def test_update_location_name_conflict(client, login, fake_db):
    login(MANAGER)
    doc = stored_location(fake_db, name="Office")
    stored_location(fake_db, name="Depot")

    response = client.put(f"/api/locations/{doc['_id']}", json={"name": "Depot"})

    assert response.status_code == 400
    assert fake_db["locations"].docs[0]["name"] == "Office"


def test_delete_location_requires_admin(client, login, fake_db):
    login(MANAGER)
    doc = stored_location(fake_db)

    assert client.delete(f"/api/locations/{doc['_id']}").status_code == 403
    assert doc["is_active"] is True


def test_delete_location_is_soft(client, login, fake_db):
    login(ADMIN)
    doc = stored_location(fake_db)

    response = client.delete(f"/api/locations/{doc['_id']}")

    assert response.status_code == 204
    assert len(fake_db["locations"].docs) == 1
    assert doc["is_active"] is False
    assert doc["updated_at"] is not None


def test_generate_qr_code(client, login, fake_db):
    login(MANAGER)
    doc = stored_location(fake_db)

    body = client.post(f"/api/locations/{doc['_id']}/qr-code").json()

    assert body["success"] is True
    assert body["qrCode"].startswith(f"timeclock-{doc['_id']}-")
    assert body["location"]["qr_code"] == body["qrCode"]
    assert doc["qr_code"] == body["qrCode"]


def test_qr_code_image(client, login, fake_db):
    login(EMPLOYEE)
    doc = stored_location(fake_db, qr_code="timeclock-loc-1-1700000000000")

    response = client.get(f"/api/locations/{doc['_id']}/qr-code")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content.startswith(b"\x89PNG")


def test_qr_code_image_before_generation(client, login, fake_db):
    login(EMPLOYEE)
    doc = stored_location(fake_db)

    assert client.get(f"/api/locations/{doc['_id']}/qr-code").status_code == 404


def test_location_analytics(client, login, fake_db, monkeypatch):
    login(MANAGER)
    doc = stored_location(fake_db)
    calls = {}

    async def fake_location_events(organization_id, location_id, since):
        calls.update(organization_id=organization_id, location_id=location_id)
        return [
            event("CLOCK_OUT", at(17), employee_id="emp-2"),
            event("CLOCK_IN", at(9), employee_id="emp-2"),
            event("CLOCK_IN", at(8, day=14), employee_id="emp-1"),
        ]

    monkeypatch.setattr(locations, "get_location_events", fake_location_events)

    analytics = client.get(f"/api/locations/{doc['_id']}/analytics?days=7").json()["analytics"]

    assert calls == {"organization_id": ORG_ID, "location_id": str(doc["_id"])}
    assert analytics["totalEvents"] == 3
    assert analytics["uniqueUsers"] == 2
    assert analytics["clockInEvents"] == 2
    assert analytics["clockOutEvents"] == 1
    assert analytics["eventsByDay"] == {"2025-01-14": 1, "2025-01-15": 2}
    assert analytics["averageEventsPerDay"] == 0.43
    assert len(analytics["recentEvents"]) == 3


def test_location_analytics_requires_manager(client, login, fake_db):
    login(EMPLOYEE)
    doc = stored_location(fake_db)

    assert client.get(f"/api/locations/{doc['_id']}/analytics").status_code == 403
