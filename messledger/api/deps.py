"""
FastAPI dependencies (DB session, acting member, household ledger)
"""
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from messledger.domain.ledger import Ledger
from messledger.domain.months import parse_month, MonthKeyError
from messledger.infrastructure.db.session import get_db as _get_db
from messledger.infrastructure.households.repository import HouseholdRepository, HouseholdNotFoundError


# Re-export get_db for convenience
get_db = _get_db


def get_actor_id(x_member_id: str = Header(...)) -> str:
    """
    Member performing the request

    Sessions are handled in front of this service; it only receives the
    resolved member id in the X-Member-Id header.
    """
    return x_member_id


def get_ledger(household_id: str, db: Session = Depends(get_db)) -> Ledger:
    """
    Load the household's ledger snapshot

    Raises:
        HTTPException(404): unknown household
    """
    try:
        return HouseholdRepository(db).load(household_id)
    except HouseholdNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def require_month(month: str) -> str:
    """
    Validate a YYYY-MM path parameter

    Raises:
        HTTPException(422): malformed month key
    """
    try:
        parse_month(month)
    except MonthKeyError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return month
