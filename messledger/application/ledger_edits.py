"""
Ledger edit use cases.

Each use case takes the current snapshot and returns a new Ledger; the
caller persists the whole document afterwards. Editing a month requires
the actor to be an admin or that month's manager, and a locked month
rejects every change.
"""
import logging
import math
import uuid
from dataclasses import replace
from datetime import date as date_type
from typing import Mapping, Optional

from messledger.application.roster import can_edit_month, is_active
from messledger.domain.ledger import (
    Ledger, Meal, Bazar, Payment, CalcMode, Role, MonthlyRole, MonthlyRoomOverride,
    MonthlyUtilityOverride, LocalUtilityExpense, freeze_values,
)
from messledger.domain.meals import normalize_quantity, MEAL_FIELDS
from messledger.domain.months import DATE_RE, parse_month, month_of, MonthKeyError

logger = logging.getLogger(__name__)


class LedgerEditError(ValueError):
    """Invalid ledger edit"""
    pass


class MonthLockedError(LedgerEditError):
    """The month is locked for editing"""
    pass


class EditPermissionError(LedgerEditError):
    """Actor may not edit this month"""
    pass


class RecordNotFoundError(LedgerEditError):
    """Referenced member, room, utility or bazar does not exist"""
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


def _month_of_date(value: str) -> str:
    if not isinstance(value, str) or DATE_RE.fullmatch(value) is None:
        raise LedgerEditError(f"Invalid date: {value!r}. Expected YYYY-MM-DD")
    try:
        date_type.fromisoformat(value)
    except ValueError:
        raise LedgerEditError(f"Invalid date: {value!r}. Expected YYYY-MM-DD")
    return month_of(value)


def _check_month(month: str) -> str:
    try:
        parse_month(month)
    except MonthKeyError as e:
        raise LedgerEditError(str(e))
    return month


def _positive(amount, what: str) -> float:
    # NaN fails every comparison, so `not amount > 0` rejects it too
    if amount is None or not amount > 0 or not math.isfinite(amount):
        raise LedgerEditError(f"{what} must be positive")
    return float(amount)


def _non_negative(amount, what: str) -> float:
    if amount is None or not amount >= 0 or not math.isfinite(amount):
        raise LedgerEditError(f"{what} must be zero or positive")
    return float(amount)


class _LedgerUseCase:

    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    def _ensure_editable(self, actor_id: str, month: str) -> None:
        if self.ledger.is_locked(month):
            raise MonthLockedError(f"Month {month} is locked")
        if not can_edit_month(self.ledger, actor_id, month):
            raise EditPermissionError(f"Member {actor_id} cannot edit {month}")

    def _ensure_admin(self, actor_id: str, action: str) -> None:
        actor = self.ledger.member(actor_id)
        if actor is None or not actor.is_admin:
            raise EditPermissionError(f"Member {actor_id} cannot {action}")

    def _require_member(self, member_id: str):
        member = self.ledger.member(member_id)
        if member is None:
            raise RecordNotFoundError(f"Unknown member: {member_id}")
        return member

    def _replace_member(self, member) -> tuple:
        return tuple(member if m.id == member.id else m for m in self.ledger.members)


class RecordMealUseCase(_LedgerUseCase):
    """
    Use case: set meal counts of one member for one date

    Upserts the (member, date) record. Only the given fields change;
    values are normalised to half-meal steps.
    """

    def execute(
        self,
        actor_id: str,
        member_id: str,
        date: str,
        breakfast: Optional[float] = None,
        lunch: Optional[float] = None,
        dinner: Optional[float] = None,
        guest: Optional[float] = None,
    ) -> Ledger:
        month = _month_of_date(date)
        self._ensure_editable(actor_id, month)
        member = self._require_member(member_id)
        if not is_active(member, month):
            raise LedgerEditError(f"Member {member_id} is not active in {month}")

        given = {"breakfast": breakfast, "lunch": lunch, "dinner": dinner, "guest": guest}
        changes = {k: normalize_quantity(v) for k, v in given.items() if v is not None}

        meals = list(self.ledger.meals)
        idx = next((i for i, m in enumerate(meals) if m.member_id == member_id and m.date == date), None)
        if idx is not None:
            meals[idx] = replace(meals[idx], **changes)
        else:
            meals.append(Meal(
                id=_new_id(),
                member_id=member_id,
                date=date,
                **{f: changes.get(f, 0.0) for f in MEAL_FIELDS},
            ))

        logger.info("Meal recorded: member=%s date=%s by=%s", member_id, date, actor_id)
        return self.ledger.evolve(meals=tuple(meals))


class AddBazarUseCase(_LedgerUseCase):
    """Use case: record a grocery purchase paid by a member"""

    def execute(self, actor_id: str, member_id: str, date: str, amount: float, note: str = "") -> Ledger:
        month = _month_of_date(date)
        self._ensure_editable(actor_id, month)
        self._require_member(member_id)
        amount = _positive(amount, "Bazar amount")

        entry = Bazar(id=_new_id(), member_id=member_id, date=date, amount=amount, note=note or "")
        logger.info("Bazar added: member=%s date=%s amount=%s by=%s", member_id, date, amount, actor_id)
        return self.ledger.evolve(bazars=self.ledger.bazars + (entry,))


class DeleteBazarUseCase(_LedgerUseCase):
    """Use case: remove a grocery purchase; guarded by the month of its date"""

    def execute(self, actor_id: str, bazar_id: str) -> Ledger:
        entry = next((b for b in self.ledger.bazars if b.id == bazar_id), None)
        if entry is None:
            raise RecordNotFoundError(f"Unknown bazar entry: {bazar_id}")
        self._ensure_editable(actor_id, month_of(entry.date))

        logger.info("Bazar deleted: id=%s member=%s date=%s by=%s", bazar_id, entry.member_id, entry.date, actor_id)
        return self.ledger.evolve(bazars=tuple(b for b in self.ledger.bazars if b.id != bazar_id))


class AddPaymentUseCase(_LedgerUseCase):
    """Use case: record a cash payment against a month"""

    def execute(self, actor_id: str, member_id: str, month: str, amount: float, date: str = "") -> Ledger:
        _check_month(month)
        self._ensure_editable(actor_id, month)
        self._require_member(member_id)
        amount = _positive(amount, "Payment amount")

        entry = Payment(id=_new_id(), member_id=member_id, month=month, amount=amount, date=date or "")
        logger.info("Payment added: member=%s month=%s amount=%s by=%s", member_id, month, amount, actor_id)
        return self.ledger.evolve(payments=self.ledger.payments + (entry,))


class SetMonthLockUseCase(_LedgerUseCase):
    """Use case: lock or unlock a month (admins only)"""

    def execute(self, actor_id: str, month: str, locked: bool) -> Ledger:
        _check_month(month)
        self._ensure_admin(actor_id, "lock months")

        months = [m for m in self.ledger.locked_months if m != month]
        if locked:
            months.append(month)
        logger.info("Month %s %s by=%s", month, "locked" if locked else "unlocked", actor_id)
        return self.ledger.evolve(locked_months=tuple(months))


# ----------------------------------------------------------------------
# Roster edits (admins only)
# ----------------------------------------------------------------------

class SetMonthlyRoleUseCase(_LedgerUseCase):
    """
    Use case: assign MANAGER or MEMBER to a member for one month

    A member who is off that month (or permanently) cannot become manager.
    """

    def execute(self, actor_id: str, member_id: str, month: str, role: Role) -> Ledger:
        _check_month(month)
        try:
            role = Role(role)
        except ValueError:
            raise LedgerEditError(f"Unknown role: {role!r}")
        if role == Role.ADMIN:
            raise LedgerEditError("ADMIN is not a monthly role")
        if self.ledger.is_locked(month):
            raise MonthLockedError(f"Month {month} is locked")
        self._ensure_admin(actor_id, "assign roles")
        member = self._require_member(member_id)
        if role == Role.MANAGER and (member.is_permanently_off or month in member.monthly_off):
            raise LedgerEditError(f"Member {member_id} is off in {month} and cannot be manager")

        roles = [r for r in self.ledger.monthly_roles if not (r.member_id == member_id and r.month == month)]
        roles.append(MonthlyRole(member_id=member_id, month=month, role=role))
        logger.info("Role set: member=%s month=%s role=%s by=%s", member_id, month, role.value, actor_id)
        return self.ledger.evolve(monthly_roles=tuple(roles))


class SetMonthlyOffUseCase(_LedgerUseCase):
    """Use case: mark a member off (or back on) for one month; going off revokes that month's role"""

    def execute(self, actor_id: str, member_id: str, month: str, off: bool) -> Ledger:
        _check_month(month)
        if self.ledger.is_locked(month):
            raise MonthLockedError(f"Month {month} is locked")
        self._ensure_admin(actor_id, "change attendance")
        member = self._require_member(member_id)

        months = [m for m in member.monthly_off if m != month]
        if off:
            months.append(month)
        roles = self.ledger.monthly_roles
        if off:
            roles = tuple(r for r in roles if not (r.member_id == member_id and r.month == month))

        logger.info("Monthly off %s: member=%s month=%s by=%s", "set" if off else "cleared", member_id, month, actor_id)
        return self.ledger.evolve(
            members=self._replace_member(replace(member, monthly_off=tuple(months))),
            monthly_roles=roles,
        )


class SetPermanentOffUseCase(_LedgerUseCase):
    """
    Use case: mark a member permanently off (or back on)

    Not tied to one month, so month locks do not apply. Going off revokes
    the member's roles in every month.
    """

    def execute(self, actor_id: str, member_id: str, off: bool) -> Ledger:
        self._ensure_admin(actor_id, "change attendance")
        member = self._require_member(member_id)

        roles = self.ledger.monthly_roles
        if off:
            roles = tuple(r for r in roles if r.member_id != member_id)

        logger.info("Permanent off %s: member=%s by=%s", "set" if off else "cleared", member_id, actor_id)
        return self.ledger.evolve(
            members=self._replace_member(replace(member, is_permanently_off=bool(off))),
            monthly_roles=roles,
        )


# ----------------------------------------------------------------------
# Rooms and utilities
# ----------------------------------------------------------------------

class SetRoomRentUseCase(_LedgerUseCase):
    """
    Use case: change room rent

    Without a month the base rent changes (admins only). With a month a
    monthly override is written, which the month's manager may also do.
    """

    def execute(self, actor_id: str, room_id: str, rent: float, month: Optional[str] = None) -> Ledger:
        room = self.ledger.room(room_id)
        if room is None:
            raise RecordNotFoundError(f"Unknown room: {room_id}")
        rent = _non_negative(rent, "Rent")

        if month is None:
            self._ensure_admin(actor_id, "change base rent")
            logger.info("Base rent set: room=%s rent=%s by=%s", room_id, rent, actor_id)
            rooms = tuple(replace(r, rent=rent) if r.id == room_id else r for r in self.ledger.rooms)
            return self.ledger.evolve(rooms=rooms)

        _check_month(month)
        self._ensure_editable(actor_id, month)
        overrides = [o for o in self.ledger.room_overrides if not (o.room_id == room_id and o.month == month)]
        overrides.append(MonthlyRoomOverride(room_id=room_id, month=month, rent=rent))
        logger.info("Rent override set: room=%s month=%s rent=%s by=%s", room_id, month, rent, actor_id)
        return self.ledger.evolve(room_overrides=tuple(overrides))


class AssignRoomUseCase(_LedgerUseCase):
    """Use case: move a member into a room (room_id=None clears it); guarded by `month`"""

    def execute(self, actor_id: str, member_id: str, room_id: Optional[str], month: str) -> Ledger:
        _check_month(month)
        self._ensure_editable(actor_id, month)
        member = self._require_member(member_id)
        if room_id is not None and self.ledger.room(room_id) is None:
            raise RecordNotFoundError(f"Unknown room: {room_id}")

        logger.info("Room assigned: member=%s room=%s by=%s", member_id, room_id, actor_id)
        return self.ledger.evolve(members=self._replace_member(replace(member, room_id=room_id)))


class SetUtilityOverrideUseCase(_LedgerUseCase):
    """
    Use case: override a recurring bill for one month

    Fields not given keep the existing override's value, or the bill's
    defaults when there is none. `calc_values` entries are merged into the
    existing ones.
    """

    def execute(
        self,
        actor_id: str,
        utility_id: str,
        month: str,
        amount: Optional[float] = None,
        calc_mode: Optional[CalcMode] = None,
        calc_values: Optional[Mapping[str, float]] = None,
    ) -> Ledger:
        _check_month(month)
        self._ensure_editable(actor_id, month)
        utility = next((u for u in self.ledger.utilities if u.id == utility_id), None)
        if utility is None:
            raise RecordNotFoundError(f"Unknown utility: {utility_id}")

        current = self.ledger.utility_override(utility_id, month) or MonthlyUtilityOverride(
            utility_id=utility_id, month=month, amount=utility.amount, calc_mode=utility.default_calc_mode,
        )
        override = MonthlyUtilityOverride(
            utility_id=utility_id,
            month=month,
            amount=current.amount if amount is None else _non_negative(amount, "Utility amount"),
            calc_mode=current.calc_mode if calc_mode is None else CalcMode(calc_mode),
            calc_values=freeze_values({**current.calc_values, **(calc_values or {})}),
        )
        overrides = [o for o in self.ledger.utility_overrides if not (o.utility_id == utility_id and o.month == month)]
        overrides.append(override)
        logger.info("Utility override set: utility=%s month=%s by=%s", utility_id, month, actor_id)
        return self.ledger.evolve(utility_overrides=tuple(overrides))


class AddLocalUtilityUseCase(_LedgerUseCase):
    """Use case: add a one-off bill to a month"""

    def execute(
        self,
        actor_id: str,
        month: str,
        name: str,
        amount: float,
        calc_mode: CalcMode = CalcMode.EQUAL,
        calc_values: Optional[Mapping[str, float]] = None,
    ) -> Ledger:
        _check_month(month)
        self._ensure_editable(actor_id, month)
        if not (name or "").strip():
            raise LedgerEditError("Bill name is required")
        entry = LocalUtilityExpense(
            id=_new_id(),
            month=month,
            name=name.strip(),
            amount=_positive(amount, "Bill amount"),
            calc_mode=CalcMode(calc_mode),
            calc_values=freeze_values(calc_values),
        )
        logger.info("Local bill added: month=%s name=%s amount=%s by=%s", month, entry.name, entry.amount, actor_id)
        return self.ledger.evolve(local_utilities=self.ledger.local_utilities + (entry,))


class DeleteLocalUtilityUseCase(_LedgerUseCase):
    """Use case: remove a one-off bill; guarded by its month"""

    def execute(self, actor_id: str, utility_id: str) -> Ledger:
        entry = next((u for u in self.ledger.local_utilities if u.id == utility_id), None)
        if entry is None:
            raise RecordNotFoundError(f"Unknown bill: {utility_id}")
        self._ensure_editable(actor_id, entry.month)

        logger.info("Local bill deleted: id=%s month=%s by=%s", utility_id, entry.month, actor_id)
        return self.ledger.evolve(local_utilities=tuple(u for u in self.ledger.local_utilities if u.id != utility_id))
