"""
Yearly analytics over monthly reports.

All twelve months share one MonthlyCalculator, so each month aggregate is
computed once per request.
"""
from typing import Dict, Any, List

from messledger.application.monthly_report import MonthlyCalculator, MAX_LOOKBACK_DEPTH
from messledger.domain.ledger import Ledger
from messledger.domain.months import year_months, in_month


def yearly_summary(ledger: Ledger, year: int, max_depth: int = MAX_LOOKBACK_DEPTH) -> List[Dict[str, Any]]:
    """
    Calendar-year overview (January to December).

    Returns:
        One row per month: meal rate, total bazar, total meals and per-member
        meals / meal cost / bazar / balance.
    """
    calc = MonthlyCalculator(ledger, max_depth=max_depth)
    rows = []
    for month in year_months(year):
        report = calc.compute(month)
        bazar_by_member: Dict[str, float] = {}
        for bazar in ledger.bazars:
            if in_month(bazar.date, month):
                bazar_by_member[bazar.member_id] = bazar_by_member.get(bazar.member_id, 0.0) + bazar.amount

        rows.append({
            "month": month,
            "meal_rate": report.meal_rate,
            "total_bazar": report.total_bazar,
            "total_meals": report.total_meals,
            "members": [
                {
                    "member_id": s.member_id,
                    "name": s.name,
                    "meals": s.total_meals,
                    "meal_cost": s.meal_cost,
                    "bazar": bazar_by_member.get(s.member_id, 0.0),
                    "balance": s.balance,
                }
                for s in report.user_stats
            ],
        })
    return rows


def member_contributions(ledger: Ledger) -> List[Dict[str, Any]]:
    """All-time bazar + payment totals of non-admin members, largest first."""
    totals = []
    for member in ledger.members:
        if member.is_admin:
            continue
        amount = (
            sum((b.amount for b in ledger.bazars if b.member_id == member.id), 0.0)
            + sum((p.amount for p in ledger.payments if p.member_id == member.id), 0.0)
        )
        totals.append({"member_id": member.id, "name": member.name, "amount": amount})

    totals.sort(key=lambda row: row["amount"], reverse=True)
    return totals
