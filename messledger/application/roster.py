"""
Roster resolution: who shares costs in a month, and with which role.
"""
from typing import Iterable, Tuple

from messledger.domain.ledger import Ledger, Member, Role


def is_within_stay(member: Member, month: str) -> bool:
    """Joined on or before `month` and not left before it (bounds inclusive)."""
    joined = not member.joining_month or member.joining_month <= month
    not_left = not member.leaving_month or member.leaving_month >= month
    return joined and not_left


def is_active(member: Member, month: str) -> bool:
    if member.is_permanently_off or month in member.monthly_off:
        return False
    return is_within_stay(member, month)


def active_members(members: Iterable[Member], month: str) -> Tuple[Member, ...]:
    """
    Members counted toward cost sharing in `month`, in input order.

    Never raises; an empty roster gives an empty tuple.
    """
    return tuple(m for m in members if is_active(m, month))


def role_in_month(ledger: Ledger, member_id: str, month: str) -> Role:
    """
    Effective role of a member for one month.

    Admins are always ADMIN. Outside the member's stay, or without a
    monthly assignment, the role is MEMBER.
    """
    member = ledger.member(member_id)
    if member is None:
        return Role.MEMBER
    if member.is_admin:
        return Role.ADMIN
    if not is_within_stay(member, month):
        return Role.MEMBER

    assignment = ledger.monthly_role(member_id, month)
    return assignment.role if assignment else Role.MEMBER


def can_edit_month(ledger: Ledger, member_id: str, month: str) -> bool:
    """Admins edit any month; managers edit the months they manage."""
    return role_in_month(ledger, member_id, month) in (Role.ADMIN, Role.MANAGER)
