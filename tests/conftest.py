"""
Pytest fixtures for testing
"""
import pytest
from sqlalchemy import create_engine, JSON
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from sqlalchemy.dialects.postgresql import JSONB

from messledger.domain.ledger import Ledger
from messledger.infrastructure.db.session import Base
from messledger.infrastructure.db import models  # noqa: F401  (register tables)


@pytest.fixture
def db_engine():
    """In-memory SQLite engine shared across threads (TestClient), JSONB→JSON."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    # SQLite has no JSONB: remap to JSON
    for table in Base.metadata.tables.values():
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def household_document():
    """
    Two residents joining in 2025-03 and sharing one room, plus an admin
    who never eats.

    2025-03: rent 1000 (EQUAL), electricity 500 (EQUAL), 40 + 60 meals,
    bazar 1000 → meal rate 10.
    """
    return {
        "users": [
            {"id": "admin", "name": "Admin", "username": "admin", "isAdmin": True, "isPermanentlyOff": True},
            {"id": "a", "name": "Rahim", "username": "rahim", "isAdmin": False, "roomId": "r1", "joiningMonth": "2025-03"},
            {"id": "b", "name": "Karim", "username": "karim", "isAdmin": False, "roomId": "r1", "joiningMonth": "2025-03"},
        ],
        "rooms": [{"id": "r1", "name": "Room 1", "rent": 1000, "splitType": "EQUAL"}],
        "monthlyRoomOverrides": [],
        "utilities": [{"id": "e1", "name": "Electricity", "amount": 500, "defaultCalcMode": "EQUAL"}],
        "localUtilities": [],
        "monthlyUtilityOverrides": [],
        "monthlyRoles": [{"userId": "b", "month": "2025-03", "role": "MANAGER"}],
        "meals": [
            {"id": "m1", "userId": "a", "date": "2025-03-01", "breakfast": 10, "lunch": 15, "dinner": 15, "guest": 0},
            {"id": "m2", "userId": "b", "date": "2025-03-01", "breakfast": 20, "lunch": 20, "dinner": 15, "guest": 5},
        ],
        "bazars": [
            {"id": "b1", "userId": "a", "date": "2025-03-03", "amount": 600, "note": "Rice"},
            {"id": "b2", "userId": "b", "date": "2025-03-10", "amount": 400, "note": "Fish"},
        ],
        "extraCosts": [],
        "payments": [
            {"id": "p1", "userId": "a", "date": "2025-03-02", "amount": 500, "month": "2025-03"},
        ],
        "theme": "dark",
    }


@pytest.fixture
def ledger(household_document) -> Ledger:
    return Ledger.from_document(household_document)
