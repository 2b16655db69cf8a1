"""
Ledger edit API endpoints (meals, bazar, payments, roster, rooms, bills, month locks)

Every edit loads the household snapshot, applies one use case and writes
the whole document back.
"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from messledger.api.deps import get_db, get_actor_id, require_month
from messledger.application.ledger_edits import (
    RecordMealUseCase, AddBazarUseCase, DeleteBazarUseCase, AddPaymentUseCase, SetMonthLockUseCase,
    SetMonthlyRoleUseCase, SetMonthlyOffUseCase, SetPermanentOffUseCase,
    SetRoomRentUseCase, AssignRoomUseCase,
    SetUtilityOverrideUseCase, AddLocalUtilityUseCase, DeleteLocalUtilityUseCase,
    LedgerEditError, MonthLockedError, EditPermissionError, RecordNotFoundError,
)
from messledger.domain.ledger import CalcMode, Role
from messledger.infrastructure.households.repository import HouseholdRepository, HouseholdNotFoundError
from messledger.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1/households/{household_id}", tags=["ledger"])


# === Request/Response models ===

class RecordMealRequest(BaseModel):
    member_id: str
    date: str  # YYYY-MM-DD
    breakfast: Optional[float] = None
    lunch: Optional[float] = None
    dinner: Optional[float] = None
    guest: Optional[float] = None


class AddBazarRequest(BaseModel):
    member_id: str
    date: str
    amount: str
    note: str = ""

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        """Normalise amount (comma or dot, max 2 decimals)"""
        return validate_and_normalize_amount(v, max_decimal_places=2)


class AddPaymentRequest(BaseModel):
    member_id: str
    month: str
    amount: str
    date: str = ""

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v, max_decimal_places=2)


class SetRoleRequest(BaseModel):
    role: Role


class SetRoomRentRequest(BaseModel):
    rent: str
    month: Optional[str] = None  # None: change base rent

    @field_validator("rent")
    @classmethod
    def validate_rent(cls, v: str) -> str:
        return validate_and_normalize_amount(v, max_decimal_places=2)


class AssignRoomRequest(BaseModel):
    room_id: Optional[str] = None
    month: str


class UtilityOverrideRequest(BaseModel):
    amount: Optional[str] = None
    calc_mode: Optional[CalcMode] = None
    calc_values: Optional[Dict[str, float]] = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_and_normalize_amount(v, max_decimal_places=2)


class AddLocalUtilityRequest(BaseModel):
    name: str
    amount: str
    calc_mode: CalcMode = CalcMode.EQUAL
    calc_values: Dict[str, float] = {}

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v, max_decimal_places=2)


class EditResponse(BaseModel):
    household_id: str
    ok: bool = True


# === Helper function ===

def _apply(db: Session, household_id: str, edit) -> EditResponse:
    """Load snapshot, run `edit(ledger) -> Ledger`, persist the result"""
    repo = HouseholdRepository(db)
    try:
        ledger = repo.load(household_id)
        repo.save(household_id, edit(ledger))
    except HouseholdNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except MonthLockedError as e:
        raise HTTPException(status_code=status.HTTP_423_LOCKED, detail=str(e))
    except EditPermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except LedgerEditError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return EditResponse(household_id=household_id)


# === Endpoints ===

@router.post("/meals", response_model=EditResponse)
def record_meal(
    household_id: str,
    req: RecordMealRequest,
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Set meal counts of a member for a date"""
    return _apply(db, household_id, lambda ledger: RecordMealUseCase(ledger).execute(
        actor_id=actor_id,
        member_id=req.member_id,
        date=req.date,
        breakfast=req.breakfast,
        lunch=req.lunch,
        dinner=req.dinner,
        guest=req.guest,
    ))


@router.post("/bazars", response_model=EditResponse)
def add_bazar(
    household_id: str,
    req: AddBazarRequest,
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Record a grocery purchase"""
    return _apply(db, household_id, lambda ledger: AddBazarUseCase(ledger).execute(
        actor_id=actor_id,
        member_id=req.member_id,
        date=req.date,
        amount=float(req.amount),
        note=req.note,
    ))


@router.post("/payments", response_model=EditResponse)
def add_payment(
    household_id: str,
    req: AddPaymentRequest,
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Record a cash payment against a month"""
    return _apply(db, household_id, lambda ledger: AddPaymentUseCase(ledger).execute(
        actor_id=actor_id,
        member_id=req.member_id,
        month=req.month,
        amount=float(req.amount),
        date=req.date,
    ))


@router.put("/locked-months/{month}", response_model=EditResponse)
def lock_month(
    household_id: str,
    month: str = Depends(require_month),
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Lock a month against edits"""
    return _apply(db, household_id, lambda ledger: SetMonthLockUseCase(ledger).execute(
        actor_id=actor_id, month=month, locked=True,
    ))


@router.delete("/locked-months/{month}", response_model=EditResponse)
def unlock_month(
    household_id: str,
    month: str = Depends(require_month),
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Unlock a month"""
    return _apply(db, household_id, lambda ledger: SetMonthLockUseCase(ledger).execute(
        actor_id=actor_id, month=month, locked=False,
    ))


@router.delete("/bazars/{bazar_id}", response_model=EditResponse)
def delete_bazar(
    household_id: str,
    bazar_id: str,
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Remove a grocery purchase"""
    return _apply(db, household_id, lambda ledger: DeleteBazarUseCase(ledger).execute(
        actor_id=actor_id, bazar_id=bazar_id,
    ))


# === Roster ===

@router.put("/months/{month}/roles/{member_id}", response_model=EditResponse)
def set_monthly_role(
    household_id: str,
    member_id: str,
    req: SetRoleRequest,
    month: str = Depends(require_month),
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Assign MANAGER or MEMBER for a month"""
    return _apply(db, household_id, lambda ledger: SetMonthlyRoleUseCase(ledger).execute(
        actor_id=actor_id, member_id=member_id, month=month, role=req.role,
    ))


@router.put("/months/{month}/off/{member_id}", response_model=EditResponse)
def set_monthly_off(
    household_id: str,
    member_id: str,
    month: str = Depends(require_month),
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Mark a member off for a month"""
    return _apply(db, household_id, lambda ledger: SetMonthlyOffUseCase(ledger).execute(
        actor_id=actor_id, member_id=member_id, month=month, off=True,
    ))


@router.delete("/months/{month}/off/{member_id}", response_model=EditResponse)
def clear_monthly_off(
    household_id: str,
    member_id: str,
    month: str = Depends(require_month),
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    return _apply(db, household_id, lambda ledger: SetMonthlyOffUseCase(ledger).execute(
        actor_id=actor_id, member_id=member_id, month=month, off=False,
    ))


@router.put("/members/{member_id}/permanent-off", response_model=EditResponse)
def set_permanent_off(
    household_id: str,
    member_id: str,
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Mark a member permanently off"""
    return _apply(db, household_id, lambda ledger: SetPermanentOffUseCase(ledger).execute(
        actor_id=actor_id, member_id=member_id, off=True,
    ))


@router.delete("/members/{member_id}/permanent-off", response_model=EditResponse)
def clear_permanent_off(
    household_id: str,
    member_id: str,
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    return _apply(db, household_id, lambda ledger: SetPermanentOffUseCase(ledger).execute(
        actor_id=actor_id, member_id=member_id, off=False,
    ))


@router.put("/members/{member_id}/room", response_model=EditResponse)
def assign_room(
    household_id: str,
    member_id: str,
    req: AssignRoomRequest,
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Move a member into a room (room_id null clears it)"""
    return _apply(db, household_id, lambda ledger: AssignRoomUseCase(ledger).execute(
        actor_id=actor_id, member_id=member_id, room_id=req.room_id, month=req.month,
    ))


# === Rooms and bills ===

@router.put("/rooms/{room_id}/rent", response_model=EditResponse)
def set_room_rent(
    household_id: str,
    room_id: str,
    req: SetRoomRentRequest,
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Change base rent, or the rent of one month when `month` is given"""
    return _apply(db, household_id, lambda ledger: SetRoomRentUseCase(ledger).execute(
        actor_id=actor_id, room_id=room_id, rent=float(req.rent), month=req.month,
    ))


@router.put("/months/{month}/utilities/{utility_id}", response_model=EditResponse)
def set_utility_override(
    household_id: str,
    utility_id: str,
    req: UtilityOverrideRequest,
    month: str = Depends(require_month),
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Override a recurring bill for one month"""
    return _apply(db, household_id, lambda ledger: SetUtilityOverrideUseCase(ledger).execute(
        actor_id=actor_id,
        utility_id=utility_id,
        month=month,
        amount=float(req.amount) if req.amount is not None else None,
        calc_mode=req.calc_mode,
        calc_values=req.calc_values,
    ))


@router.post("/months/{month}/local-utilities", response_model=EditResponse)
def add_local_utility(
    household_id: str,
    req: AddLocalUtilityRequest,
    month: str = Depends(require_month),
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Add a one-off bill to a month"""
    return _apply(db, household_id, lambda ledger: AddLocalUtilityUseCase(ledger).execute(
        actor_id=actor_id,
        month=month,
        name=req.name,
        amount=float(req.amount),
        calc_mode=req.calc_mode,
        calc_values=req.calc_values,
    ))


@router.delete("/local-utilities/{utility_id}", response_model=EditResponse)
def delete_local_utility(
    household_id: str,
    utility_id: str,
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Remove a one-off bill"""
    return _apply(db, household_id, lambda ledger: DeleteLocalUtilityUseCase(ledger).execute(
        actor_id=actor_id, utility_id=utility_id,
    ))
