"""
Tests for HouseholdRepository (whole-document storage)
"""
import pytest

from messledger.domain.ledger import Ledger, Payment
from messledger.infrastructure.db.models import Household
from messledger.infrastructure.households.repository import HouseholdRepository, HouseholdNotFoundError


def test_create_and_load_round_trip(db_session, ledger):
    repo = HouseholdRepository(db_session)
    repo.create("mess-1", "Green House", ledger)
    db_session.commit()

    loaded = repo.load("mess-1")

    assert loaded == ledger
    assert loaded.extra["theme"] == "dark"


def test_create_with_empty_ledger(db_session):
    repo = HouseholdRepository(db_session)
    household = repo.create("mess-2", "Empty")

    assert household.db_json["users"] == []
    assert repo.load("mess-2") == Ledger()


def test_save_replaces_whole_document(db_session, ledger):
    repo = HouseholdRepository(db_session)
    repo.create("mess-1", "Green House", ledger)
    db_session.commit()

    updated = ledger.evolve(payments=(Payment(id="p9", member_id="b", month="2025-03", amount=50),))
    repo.save("mess-1", updated)

    stored = db_session.query(Household).filter(Household.id == "mess-1").first()
    assert [p["id"] for p in stored.db_json["payments"]] == ["p9"]
    assert repo.load("mess-1").payments[0].amount == 50


def test_unknown_household(db_session):
    repo = HouseholdRepository(db_session)

    with pytest.raises(HouseholdNotFoundError):
        repo.load("missing")
    with pytest.raises(HouseholdNotFoundError):
        repo.save("missing", Ledger())
