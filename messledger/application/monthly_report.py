"""
Monthly calculation engine.

Aggregates one month of the ledger into per-member statistics: meal cost at
the month's meal rate, room rent, utility share, contribution (payments +
bazar), and a balance carried forward from the previous month.

The carry-forward walks back one month per level with an explicit depth and
stops after MAX_LOOKBACK_DEPTH levels. A MonthlyCalculator is bound to one
ledger snapshot and memoises both the month aggregates (depth independent)
and the carried reports per (month, depth), so the output never depends on
what was computed before.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, asdict, replace
from typing import Dict, Any, List, Mapping, Optional, Sequence, Tuple

from messledger.application.allocation import allocate, room_rent_share
from messledger.application.roster import active_members
from messledger.domain.ledger import Ledger, Member
from messledger.domain.months import in_month, previous_month

logger = logging.getLogger(__name__)

MAX_LOOKBACK_DEPTH = 12


@dataclass(frozen=True)
class MemberMonthStats:
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
    balance: float  # > 0: refund owed to the member, < 0: member owes

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MonthlyReport:
    month: str
    total_bazar: float
    total_meals: float
    meal_rate: float
    user_stats: Tuple[MemberMonthStats, ...]

    def stats_for(self, member_id: str) -> Optional[MemberMonthStats]:
        return next((s for s in self.user_stats if s.member_id == member_id), None)

    def balances(self) -> Dict[str, float]:
        return {s.member_id: s.balance for s in self.user_stats}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "total_bazar": self.total_bazar,
            "total_meals": self.total_meals,
            "meal_rate": self.meal_rate,
            "user_stats": [s.to_dict() for s in self.user_stats],
        }


def utility_shares(ledger: Ledger, month: str, active: Sequence[Member]) -> Dict[str, float]:
    """
    Accumulated utility share per active member for `month`.

    Master utilities use the month override when one exists (amount, mode
    and per-member values), otherwise their defaults with no per-member
    values. Local utilities of the month are added afterwards.
    """
    shares = {m.id: 0.0 for m in active}

    def _add(part: Mapping[str, float]) -> None:
        for member_id, value in part.items():
            shares[member_id] += value

    for utility in ledger.utilities:
        override = ledger.utility_override(utility.id, month)
        if override is not None:
            _add(allocate(override.amount, override.calc_mode, override.calc_values, active))
        else:
            _add(allocate(utility.amount, utility.default_calc_mode, {}, active))

    for local in ledger.local_utilities_in(month):
        _add(allocate(local.amount, local.calc_mode, local.calc_values, active))

    return shares


class MonthlyCalculator:
    """
    Monthly statistics for one ledger snapshot.

    Usage:
        calc = MonthlyCalculator(ledger)
        report = calc.compute("2025-03")
        yearly = [calc.compute(m) for m in year_months(2025)]
    """

    def __init__(self, ledger: Ledger, max_depth: int = MAX_LOOKBACK_DEPTH):
        self.ledger = ledger
        self.max_depth = max_depth
        self._bases: Dict[str, MonthlyReport] = {}
        self._reports: Dict[Tuple[str, int], MonthlyReport] = {}

    def compute(self, month: str, depth: int = 0) -> MonthlyReport:
        """
        Report for `month` with balances carried from earlier months.

        `depth` counts how far this call is from the originally requested
        month; the previous month is only consulted while depth < max_depth.
        """
        key = (month, depth)
        cached = self._reports.get(key)
        if cached is not None:
            return cached

        base = self._month_base(month)

        prev_balances: Dict[str, float] = {}
        prev = previous_month(month)
        if depth < self.max_depth and prev != month:
            prev_balances = self.compute(prev, depth + 1).balances()

        report = _carry_forward(base, prev_balances)
        self._reports[key] = report
        return report

    def _month_base(self, month: str) -> MonthlyReport:
        """Month aggregates with no carry-forward applied (prev_adjustment = 0)."""
        cached = self._bases.get(month)
        if cached is not None:
            return cached

        logger.debug("Aggregating month %s", month)
        ledger = self.ledger
        active = active_members(ledger.members, month)
        active_ids = {m.id for m in active}
        roster_ids = ledger.member_ids

        # Contributions count for any roster member, costs only for active ones
        bazars = [b for b in ledger.bazars if in_month(b.date, month) and b.member_id in roster_ids]
        meals = [m for m in ledger.meals if in_month(m.date, month) and m.member_id in active_ids]
        payments = [p for p in ledger.payments if p.month == month and p.member_id in roster_ids]

        shares = utility_shares(ledger, month, active)

        total_bazar = sum((b.amount for b in bazars), 0.0)
        total_meals = sum((m.units for m in meals), 0.0)
        meal_rate = total_bazar / total_meals if total_meals > 0 else 0.0

        meals_by_member: Dict[str, float] = defaultdict(float)
        for meal in meals:
            meals_by_member[meal.member_id] += meal.units
        paid_by_member: Dict[str, float] = defaultdict(float)
        for payment in payments:
            paid_by_member[payment.member_id] += payment.amount
        bazar_by_member: Dict[str, float] = defaultdict(float)
        for bazar in bazars:
            bazar_by_member[bazar.member_id] += bazar.amount

        rows: List[MemberMonthStats] = []
        for member in ledger.members:
            is_active = member.id in active_ids
            member_meals = meals_by_member[member.id] if is_active else 0.0
            meal_cost = member_meals * meal_rate
            room_rent = room_rent_share(ledger, member, month, active) if is_active else 0.0
            utility_share = shares.get(member.id, 0.0) if is_active else 0.0
            cost = meal_cost + room_rent + utility_share
            contribution = paid_by_member[member.id] + bazar_by_member[member.id]

            rows.append(MemberMonthStats(
                member_id=member.id,
                name=member.name,
                is_active=is_active,
                total_meals=member_meals,
                meal_cost=meal_cost,
                room_rent=room_rent,
                utility_share=utility_share,
                current_month_cost=cost,
                prev_adjustment=0.0,
                net_required=cost,
                contribution=contribution,
                balance=contribution - cost,
            ))

        base = MonthlyReport(
            month=month,
            total_bazar=total_bazar,
            total_meals=total_meals,
            meal_rate=meal_rate,
            user_stats=tuple(rows),
        )
        self._bases[month] = base
        return base


def _carry_forward(base: MonthlyReport, prev_balances: Mapping[str, float]) -> MonthlyReport:
    if not prev_balances:
        return base

    stats = []
    for row in base.user_stats:
        prev_adjustment = prev_balances.get(row.member_id, 0.0)
        net_required = row.current_month_cost - prev_adjustment
        stats.append(replace(
            row,
            prev_adjustment=prev_adjustment,
            net_required=net_required,
            balance=row.contribution - net_required,
        ))
    return replace(base, user_stats=tuple(stats))


def compute_month(ledger: Ledger, month: str, max_depth: int = MAX_LOOKBACK_DEPTH) -> MonthlyReport:
    """One-off monthly report; use MonthlyCalculator to share work across months."""
    return MonthlyCalculator(ledger, max_depth=max_depth).compute(month)
