"""
Seed a demo household ("demo-mess") with two residents and one month of records.
Run:  python seed_demo_household.py
"""
from messledger.application.monthly_report import compute_month
from messledger.domain.ledger import Ledger
from messledger.infrastructure.db.session import get_db
from messledger.infrastructure.households.repository import HouseholdRepository

HOUSEHOLD_ID = "demo-mess"
MONTH = "2025-03"

document = {
    "users": [
        {"id": "admin", "name": "Admin", "username": "admin", "isAdmin": True, "isPermanentlyOff": True},
        {"id": "u1", "name": "Rahim", "username": "rahim", "isAdmin": False, "roomId": "r1", "joiningMonth": "2025-01"},
        {"id": "u2", "name": "Karim", "username": "karim", "isAdmin": False, "roomId": "r1", "joiningMonth": "2025-01"},
    ],
    "rooms": [{"id": "r1", "name": "Room 1", "rent": 1000, "splitType": "EQUAL"}],
    "utilities": [{"id": "e1", "name": "Electricity", "amount": 500, "defaultCalcMode": "EQUAL"}],
    "meals": [
        {"id": "m1", "userId": "u1", "date": f"{MONTH}-01", "breakfast": 10, "lunch": 15, "dinner": 15, "guest": 0},
        {"id": "m2", "userId": "u2", "date": f"{MONTH}-01", "breakfast": 20, "lunch": 20, "dinner": 20, "guest": 0},
    ],
    "bazars": [{"id": "b1", "userId": "u1", "date": f"{MONTH}-05", "amount": 1000, "note": "Rice, fish"}],
    "payments": [{"id": "p1", "userId": "u2", "date": f"{MONTH}-02", "amount": 1500, "month": MONTH}],
}

db = next(get_db())

try:
    repo = HouseholdRepository(db)
    ledger = Ledger.from_document(document)
    if repo.get(HOUSEHOLD_ID) is None:
        repo.create(HOUSEHOLD_ID, "Demo mess", ledger)
        db.commit()
        print(f"Created household {HOUSEHOLD_ID}")
    else:
        repo.save(HOUSEHOLD_ID, ledger)
        print(f"Household {HOUSEHOLD_ID} already exists, ledger replaced")

    report = compute_month(repo.load(HOUSEHOLD_ID), MONTH)
    print(f"{MONTH}: meal rate {report.meal_rate:.2f}")
    for s in report.user_stats:
        print(f"  - {s.name}: cost {s.current_month_cost:.2f}, balance {s.balance:.2f}")

finally:
    db.close()
