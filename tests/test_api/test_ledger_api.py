"""
Tests for ledger edit API endpoints
"""
import pytest
from fastapi.testclient import TestClient

from messledger.api.deps import get_db
from messledger.infrastructure.households.repository import HouseholdRepository
from messledger.main import app


@pytest.fixture
def client(db_session, ledger):
    HouseholdRepository(db_session).create("mess-1", "Green House", ledger)
    db_session.commit()

    app.dependency_overrides[get_db] = lambda: db_session
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def repo(db_session):
    return HouseholdRepository(db_session)


def test_add_bazar_persists_and_changes_report(client, repo):
    response = client.post(
        "/api/v1/households/mess-1/bazars",
        json={"member_id": "a", "date": "2025-03-20", "amount": "500,00", "note": "Eggs"},
        headers={"X-Member-Id": "admin"},
    )

    assert response.status_code == 200
    assert repo.load("mess-1").bazars[-1].amount == 500

    report = client.get("/api/v1/households/mess-1/months/2025-03/report").json()
    assert report["total_bazar"] == 1500
    assert report["meal_rate"] == 15


def test_record_meal(client, repo):
    response = client.post(
        "/api/v1/households/mess-1/meals",
        json={"member_id": "b", "date": "2025-03-02", "lunch": 0.3},
        headers={"X-Member-Id": "b"},
    )

    assert response.status_code == 200
    meal = repo.load("mess-1").meals[-1]
    assert (meal.member_id, meal.date, meal.lunch) == ("b", "2025-03-02", 0.5)


def test_add_payment(client, repo):
    response = client.post(
        "/api/v1/households/mess-1/payments",
        json={"member_id": "b", "month": "2025-03", "amount": "950"},
        headers={"X-Member-Id": "admin"},
    )

    assert response.status_code == 200
    stats = client.get("/api/v1/households/mess-1/months/2025-03/members/b").json()
    assert stats["balance"] == 0


def test_edit_requires_member_header(client):
    response = client.post(
        "/api/v1/households/mess-1/payments",
        json={"member_id": "b", "month": "2025-03", "amount": "10"},
    )
    assert response.status_code == 422


def test_plain_member_forbidden(client):
    response = client.post(
        "/api/v1/households/mess-1/payments",
        json={"member_id": "a", "month": "2025-03", "amount": "10"},
        headers={"X-Member-Id": "a"},
    )
    assert response.status_code == 403


def test_invalid_amount_rejected(client):
    response = client.post(
        "/api/v1/households/mess-1/payments",
        json={"member_id": "a", "month": "2025-03", "amount": "10.555"},
        headers={"X-Member-Id": "admin"},
    )
    assert response.status_code == 422


def test_negative_amount_rejected(client):
    response = client.post(
        "/api/v1/households/mess-1/bazars",
        json={"member_id": "a", "date": "2025-03-20", "amount": "-5"},
        headers={"X-Member-Id": "admin"},
    )
    assert response.status_code == 422


def test_lock_and_unlock_month(client, repo):
    response = client.put("/api/v1/households/mess-1/locked-months/2025-03", headers={"X-Member-Id": "admin"})
    assert response.status_code == 200
    assert repo.load("mess-1").is_locked("2025-03")

    response = client.post(
        "/api/v1/households/mess-1/payments",
        json={"member_id": "a", "month": "2025-03", "amount": "10"},
        headers={"X-Member-Id": "admin"},
    )
    assert response.status_code == 423

    report = client.get("/api/v1/households/mess-1/months/2025-03/report").json()
    assert report["is_locked"] is True

    response = client.delete("/api/v1/households/mess-1/locked-months/2025-03", headers={"X-Member-Id": "admin"})
    assert response.status_code == 200
    assert not repo.load("mess-1").is_locked("2025-03")


def test_lock_month_forbidden_for_manager(client):
    response = client.put("/api/v1/households/mess-1/locked-months/2025-03", headers={"X-Member-Id": "b"})
    assert response.status_code == 403


def test_edit_unknown_household(client):
    response = client.post(
        "/api/v1/households/nope/payments",
        json={"member_id": "a", "month": "2025-03", "amount": "10"},
        headers={"X-Member-Id": "admin"},
    )
    assert response.status_code == 404


def test_basic_form_date_rejected_for_locked_month(client, repo):
    client.put("/api/v1/households/mess-1/locked-months/2025-03", headers={"X-Member-Id": "admin"})

    response = client.post(
        "/api/v1/households/mess-1/bazars",
        json={"member_id": "a", "date": "20250314", "amount": "100"},
        headers={"X-Member-Id": "admin"},
    )
    assert response.status_code == 422
    assert len(repo.load("mess-1").bazars) == 2


def test_delete_bazar(client, repo):
    response = client.delete("/api/v1/households/mess-1/bazars/b1", headers={"X-Member-Id": "b"})
    assert response.status_code == 200
    assert [b.id for b in repo.load("mess-1").bazars] == ["b2"]

    response = client.delete("/api/v1/households/mess-1/bazars/b1", headers={"X-Member-Id": "b"})
    assert response.status_code == 404


def test_set_monthly_role(client):
    response = client.put(
        "/api/v1/households/mess-1/months/2025-04/roles/a",
        json={"role": "MANAGER"},
        headers={"X-Member-Id": "admin"},
    )
    assert response.status_code == 200

    role = client.get("/api/v1/households/mess-1/months/2025-04/roles/a").json()
    assert role["role"] == "MANAGER"


def test_set_monthly_role_forbidden_for_manager(client):
    response = client.put(
        "/api/v1/households/mess-1/months/2025-03/roles/a",
        json={"role": "MANAGER"},
        headers={"X-Member-Id": "b"},
    )
    assert response.status_code == 403


def test_monthly_off_round_trip(client, repo):
    response = client.put("/api/v1/households/mess-1/months/2025-03/off/b", headers={"X-Member-Id": "admin"})
    assert response.status_code == 200
    stored = repo.load("mess-1")
    assert stored.member("b").monthly_off == ("2025-03",)
    assert stored.monthly_role("b", "2025-03") is None

    report = client.get("/api/v1/households/mess-1/months/2025-03/report").json()
    assert report["total_meals"] == 40

    response = client.delete("/api/v1/households/mess-1/months/2025-03/off/b", headers={"X-Member-Id": "admin"})
    assert response.status_code == 200
    assert repo.load("mess-1").member("b").monthly_off == ()


def test_permanent_off(client, repo):
    response = client.put("/api/v1/households/mess-1/members/b/permanent-off", headers={"X-Member-Id": "admin"})
    assert response.status_code == 200
    stored = repo.load("mess-1")
    assert stored.member("b").is_permanently_off
    assert stored.monthly_roles == ()

    response = client.delete("/api/v1/households/mess-1/members/b/permanent-off", headers={"X-Member-Id": "admin"})
    assert response.status_code == 200
    assert not repo.load("mess-1").member("b").is_permanently_off


def test_room_rent_override_and_assignment(client):
    response = client.put(
        "/api/v1/households/mess-1/rooms/r1/rent",
        json={"rent": "800", "month": "2025-03"},
        headers={"X-Member-Id": "b"},
    )
    assert response.status_code == 200
    stats = client.get("/api/v1/households/mess-1/months/2025-03/members/a").json()
    assert stats["room_rent"] == 400

    response = client.put(
        "/api/v1/households/mess-1/members/a/room",
        json={"room_id": None, "month": "2025-03"},
        headers={"X-Member-Id": "b"},
    )
    assert response.status_code == 200
    stats = client.get("/api/v1/households/mess-1/months/2025-03/members/b").json()
    assert stats["room_rent"] == 800


def test_base_rent_requires_admin(client):
    response = client.put(
        "/api/v1/households/mess-1/rooms/r1/rent",
        json={"rent": "800"},
        headers={"X-Member-Id": "b"},
    )
    assert response.status_code == 403


def test_utility_override_and_local_bill(client, repo):
    response = client.put(
        "/api/v1/households/mess-1/months/2025-03/utilities/e1",
        json={"calc_mode": "FIXED", "calc_values": {"a": 100}},
        headers={"X-Member-Id": "b"},
    )
    assert response.status_code == 200

    response = client.post(
        "/api/v1/households/mess-1/months/2025-03/local-utilities",
        json={"name": "Internet", "amount": "300"},
        headers={"X-Member-Id": "b"},
    )
    assert response.status_code == 200

    stats = {s["member_id"]: s for s in client.get("/api/v1/households/mess-1/months/2025-03/report").json()["user_stats"]}
    assert stats["a"]["utility_share"] == 250
    assert stats["b"]["utility_share"] == 550

    bill_id = repo.load("mess-1").local_utilities[0].id
    response = client.delete(f"/api/v1/households/mess-1/local-utilities/{bill_id}", headers={"X-Member-Id": "admin"})
    assert response.status_code == 200
    assert repo.load("mess-1").local_utilities == ()


def test_utility_override_unknown_bill(client):
    response = client.put(
        "/api/v1/households/mess-1/months/2025-03/utilities/gas",
        json={"amount": "10"},
        headers={"X-Member-Id": "admin"},
    )
    assert response.status_code == 404
