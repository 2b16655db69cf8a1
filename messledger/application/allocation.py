"""
Cost allocators: shared bills (utilities) and room rent.

All functions are pure and zero-guarded. Amounts are floats; negative
amounts are passed through unchanged.
"""
from typing import Callable, Dict, Mapping, Sequence

from messledger.domain.ledger import CalcMode, Ledger, Member, Room, SplitType

DEFAULT_MULTIPLIER = 1.0

Allocator = Callable[[float, Mapping[str, float], Sequence[Member]], Dict[str, float]]


def _allocate_equal(amount: float, values: Mapping[str, float], members: Sequence[Member]) -> Dict[str, float]:
    share = amount / max(1, len(members))
    return {m.id: share for m in members}


def _allocate_multiplier(amount: float, values: Mapping[str, float], members: Sequence[Member]) -> Dict[str, float]:
    weights = {m.id: values.get(m.id, DEFAULT_MULTIPLIER) for m in members}
    total_weight = sum(weights.values())
    if total_weight == 0:
        return {m.id: 0.0 for m in members}
    return {member_id: amount * weight / total_weight for member_id, weight in weights.items()}


def _allocate_fixed(amount: float, values: Mapping[str, float], members: Sequence[Member]) -> Dict[str, float]:
    shares = {m.id: 0.0 for m in members}
    fixed_total = 0.0
    for member_id, value in values.items():
        if member_id in shares:
            shares[member_id] += value
            fixed_total += value

    unfixed = [m.id for m in members if m.id not in values]
    # Nobody left to absorb the remainder: it stays undistributed
    if unfixed:
        remainder_share = (amount - fixed_total) / len(unfixed)
        for member_id in unfixed:
            shares[member_id] += remainder_share
    return shares


_ALLOCATORS: Dict[CalcMode, Allocator] = {
    CalcMode.EQUAL: _allocate_equal,
    CalcMode.MULTIPLIER: _allocate_multiplier,
    CalcMode.FIXED: _allocate_fixed,
}


def allocate(
    amount: float,
    mode: CalcMode,
    per_user_values: Mapping[str, float] | None,
    members: Sequence[Member],
) -> Dict[str, float]:
    """
    Split a bill across active members.

    Args:
        amount: bill total
        mode: EQUAL, MULTIPLIER (per-member weight, default 1.0) or
            FIXED (listed members pay their value, the rest split the remainder)
        per_user_values: member id -> weight or fixed amount
        members: active members for the month

    Returns:
        {member_id: share} with an entry for every active member
    """
    return _ALLOCATORS[CalcMode(mode)](amount, per_user_values or {}, members)


def effective_room_rent(ledger: Ledger, room: Room, month: str) -> float:
    override = ledger.room_override(room.id, month)
    return override.rent if override is not None else room.rent


def room_rent_share(
    ledger: Ledger,
    member: Member,
    month: str,
    active: Sequence[Member],
) -> float:
    """
    Room rent owed by an active member for `month`.

    PERCENTAGE rooms charge the member's rent_share percent; EQUAL rooms
    split among the room's active occupants. No room means no rent.
    """
    room = ledger.room(member.room_id)
    if room is None:
        return 0.0

    rent = effective_room_rent(ledger, room, month)
    if room.split_type == SplitType.PERCENTAGE:
        return rent * (member.rent_share or 0) / 100

    occupants = sum(1 for m in active if m.room_id == room.id)
    return rent / max(1, occupants)
