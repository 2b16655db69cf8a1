"""
Report API endpoints (monthly statistics, roles, yearly analytics)
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from messledger.api.deps import get_ledger, require_month
from messledger.application.analytics import yearly_summary, member_contributions
from messledger.application.monthly_report import MonthlyCalculator, MemberMonthStats, MonthlyReport
from messledger.application.roster import role_in_month
from messledger.config import get_settings
from messledger.domain.ledger import Ledger


router = APIRouter(prefix="/api/v1/households/{household_id}", tags=["reports"])


# === Response models ===

class MemberStatsResponse(BaseModel):
    member_id: str
    name: str
    is_active: bool
    total_meals: float
    meal_cost: float
    room_rent: float
    utility_share: float
    current_month_cost: float
    prev_adjustment: float
    net_required: float
    contribution: float
    balance: float


class MonthlyReportResponse(BaseModel):
    month: str
    total_bazar: float
    total_meals: float
    meal_rate: float
    is_locked: bool
    user_stats: list[MemberStatsResponse]


class RoleResponse(BaseModel):
    member_id: str
    month: str
    role: str


class MemberYearRow(BaseModel):
    member_id: str
    name: str
    meals: float
    meal_cost: float
    bazar: float
    balance: float


class MonthSummaryResponse(BaseModel):
    month: str
    meal_rate: float
    total_bazar: float
    total_meals: float
    members: list[MemberYearRow]


class ContributionResponse(BaseModel):
    member_id: str
    name: str
    amount: float


# === Helpers ===

def _calculator(ledger: Ledger) -> MonthlyCalculator:
    return MonthlyCalculator(ledger, max_depth=get_settings().MAX_LOOKBACK_DEPTH)


def _stats_response(stats: MemberMonthStats) -> MemberStatsResponse:
    return MemberStatsResponse(**stats.to_dict())


def _report_response(report: MonthlyReport, ledger: Ledger) -> MonthlyReportResponse:
    return MonthlyReportResponse(
        month=report.month,
        total_bazar=report.total_bazar,
        total_meals=report.total_meals,
        meal_rate=report.meal_rate,
        is_locked=ledger.is_locked(report.month),
        user_stats=[_stats_response(s) for s in report.user_stats],
    )


# === Endpoints ===

@router.get("/months/{month}/report", response_model=MonthlyReportResponse)
def get_monthly_report(
    month: str = Depends(require_month),
    ledger: Ledger = Depends(get_ledger),
):
    """Monthly statistics of every member"""
    report = _calculator(ledger).compute(month)
    return _report_response(report, ledger)


@router.get("/months/{month}/members/{member_id}", response_model=MemberStatsResponse)
def get_member_month(
    member_id: str,
    month: str = Depends(require_month),
    ledger: Ledger = Depends(get_ledger),
):
    """Personal account of one member for one month"""
    stats = _calculator(ledger).compute(month).stats_for(member_id)
    if stats is None:
        raise HTTPException(status_code=404, detail=f"Member {member_id} not found")
    return _stats_response(stats)


@router.get("/months/{month}/roles/{member_id}", response_model=RoleResponse)
def get_member_role(
    member_id: str,
    month: str = Depends(require_month),
    ledger: Ledger = Depends(get_ledger),
):
    """Effective role of a member in a month"""
    role = role_in_month(ledger, member_id, month)
    return RoleResponse(member_id=member_id, month=month, role=role.value)


@router.get("/years/{year}/summary", response_model=list[MonthSummaryResponse])
def get_yearly_summary(year: int, ledger: Ledger = Depends(get_ledger)):
    """January to December overview of a calendar year"""
    if not 1 <= year <= 9999:
        raise HTTPException(status_code=422, detail=f"Invalid year: {year}")
    rows = yearly_summary(ledger, year, max_depth=get_settings().MAX_LOOKBACK_DEPTH)
    return [MonthSummaryResponse(**row) for row in rows]


@router.get("/contributions", response_model=list[ContributionResponse])
def get_contributions(ledger: Ledger = Depends(get_ledger)):
    """All-time contribution ranking"""
    return [ContributionResponse(**row) for row in member_contributions(ledger)]
