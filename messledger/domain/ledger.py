"""
Household ledger domain types.

The whole household is kept as one JSON document (camelCase keys, as the
client writes it). `Ledger.from_document` turns that document into frozen
value objects; `Ledger.to_document` writes it back. Within one calculation
the ledger never changes: edits produce a new `Ledger` (see
`messledger.application.ledger_edits`).
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Dict, Any, Tuple, Optional, Iterable, Mapping


class CalcMode(str, Enum):
    """Policy for splitting a shared bill across active members"""
    EQUAL = "EQUAL"
    MULTIPLIER = "MULTIPLIER"
    FIXED = "FIXED"


class SplitType(str, Enum):
    """Room rent split"""
    EQUAL = "EQUAL"
    PERCENTAGE = "PERCENTAGE"


class Role(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    MEMBER = "MEMBER"


def _num(value, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _enum(enum_cls, value, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


def freeze_values(raw: Mapping[str, Any] | None = None) -> Mapping[str, float]:
    """Read-only member id -> number mapping for split values"""
    return MappingProxyType({str(k): _num(v) for k, v in (raw or {}).items()})


@dataclass(frozen=True)
class Member:
    id: str
    name: str
    username: str = ""
    is_admin: bool = False
    room_id: Optional[str] = None
    rent_share: Optional[float] = None  # percent of room rent
    joining_month: Optional[str] = None
    leaving_month: Optional[str] = None
    is_permanently_off: bool = False
    monthly_off: Tuple[str, ...] = ()
    # Keys the ledger does not interpret (credentials etc.), written back untouched
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    _KNOWN = (
        "id", "name", "username", "isAdmin", "roomId", "rentShare",
        "joiningMonth", "leavingMonth", "isPermanentlyOff", "monthlyOff",
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Member":
        rent_share = data.get("rentShare")
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            username=data.get("username") or "",
            is_admin=bool(data.get("isAdmin", False)),
            room_id=data.get("roomId") or None,
            rent_share=_num(rent_share) if rent_share is not None else None,
            joining_month=data.get("joiningMonth") or None,
            leaving_month=data.get("leavingMonth") or None,
            is_permanently_off=bool(data.get("isPermanentlyOff", False)),
            monthly_off=tuple(data.get("monthlyOff") or ()),
            extra={k: v for k, v in data.items() if k not in cls._KNOWN},
        )

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            "id": self.id,
            "name": self.name,
            "username": self.username,
            "isAdmin": self.is_admin,
            "isPermanentlyOff": self.is_permanently_off,
            "monthlyOff": list(self.monthly_off),
            "leavingMonth": self.leaving_month,
        })
        if self.room_id is not None:
            data["roomId"] = self.room_id
        if self.rent_share is not None:
            data["rentShare"] = self.rent_share
        if self.joining_month is not None:
            data["joiningMonth"] = self.joining_month
        return data


@dataclass(frozen=True)
class Room:
    id: str
    name: str
    rent: float
    split_type: SplitType = SplitType.EQUAL

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Room":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            rent=_num(data.get("rent")),
            split_type=_enum(SplitType, data.get("splitType"), SplitType.EQUAL),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "rent": self.rent, "splitType": self.split_type.value}


@dataclass(frozen=True)
class MonthlyRoomOverride:
    room_id: str
    month: str
    rent: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MonthlyRoomOverride":
        return cls(room_id=str(data["roomId"]), month=data["month"], rent=_num(data.get("rent")))

    def to_dict(self) -> Dict[str, Any]:
        return {"roomId": self.room_id, "month": self.month, "rent": self.rent}


@dataclass(frozen=True)
class UtilityExpense:
    """Recurring bill charged every month unless overridden"""
    id: str
    name: str
    amount: float
    default_calc_mode: CalcMode = CalcMode.EQUAL

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UtilityExpense":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            amount=_num(data.get("amount")),
            default_calc_mode=_enum(CalcMode, data.get("defaultCalcMode"), CalcMode.EQUAL),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "amount": self.amount,
            "defaultCalcMode": self.default_calc_mode.value,
        }


@dataclass(frozen=True)
class MonthlyUtilityOverride:
    utility_id: str
    month: str
    amount: float
    calc_mode: CalcMode
    # member id -> multiplier or fixed amount; read-only, left out of hash()
    calc_values: Mapping[str, float] = field(default_factory=freeze_values, hash=False)

    def __post_init__(self):
        if not isinstance(self.calc_values, MappingProxyType):
            object.__setattr__(self, "calc_values", freeze_values(self.calc_values))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MonthlyUtilityOverride":
        return cls(
            utility_id=str(data["utilityId"]),
            month=data["month"],
            amount=_num(data.get("amount")),
            calc_mode=_enum(CalcMode, data.get("calcMode"), CalcMode.EQUAL),
            calc_values=freeze_values(data.get("calcValues")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "utilityId": self.utility_id,
            "month": self.month,
            "amount": self.amount,
            "calcMode": self.calc_mode.value,
            "calcValues": dict(self.calc_values),
        }


@dataclass(frozen=True)
class LocalUtilityExpense:
    """One-off bill that exists for a single month"""
    id: str
    month: str
    name: str
    amount: float
    calc_mode: CalcMode = CalcMode.EQUAL
    calc_values: Mapping[str, float] = field(default_factory=freeze_values, hash=False)

    def __post_init__(self):
        if not isinstance(self.calc_values, MappingProxyType):
            object.__setattr__(self, "calc_values", freeze_values(self.calc_values))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LocalUtilityExpense":
        return cls(
            id=str(data["id"]),
            month=data["month"],
            name=data.get("name") or "",
            amount=_num(data.get("amount")),
            calc_mode=_enum(CalcMode, data.get("calcMode"), CalcMode.EQUAL),
            calc_values=freeze_values(data.get("calcValues")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "month": self.month,
            "name": self.name,
            "amount": self.amount,
            "calcMode": self.calc_mode.value,
            "calcValues": dict(self.calc_values),
        }


@dataclass(frozen=True)
class MonthlyRole:
    member_id: str
    month: str
    role: Role

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MonthlyRole":
        return cls(
            member_id=str(data["userId"]),
            month=data["month"],
            role=_enum(Role, data.get("role"), Role.MEMBER),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"userId": self.member_id, "month": self.month, "role": self.role.value}


@dataclass(frozen=True)
class Meal:
    id: str
    member_id: str
    date: str  # YYYY-MM-DD
    breakfast: float = 0.0
    lunch: float = 0.0
    dinner: float = 0.0
    guest: float = 0.0

    @property
    def units(self) -> float:
        return self.breakfast + self.lunch + self.dinner + self.guest

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Meal":
        return cls(
            id=str(data.get("id") or ""),
            member_id=str(data["userId"]),
            date=data.get("date") or "",
            breakfast=_num(data.get("breakfast")),
            lunch=_num(data.get("lunch")),
            dinner=_num(data.get("dinner")),
            guest=_num(data.get("guest")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.member_id,
            "date": self.date,
            "breakfast": self.breakfast,
            "lunch": self.lunch,
            "dinner": self.dinner,
            "guest": self.guest,
        }


@dataclass(frozen=True)
class Bazar:
    """Grocery purchase paid by a member"""
    id: str
    member_id: str
    date: str
    amount: float
    note: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Bazar":
        return cls(
            id=str(data.get("id") or ""),
            member_id=str(data["userId"]),
            date=data.get("date") or "",
            amount=_num(data.get("amount")),
            note=data.get("note") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "userId": self.member_id, "date": self.date, "amount": self.amount, "note": self.note}


@dataclass(frozen=True)
class Payment:
    """Cash contribution recorded against a month (not a date)"""
    id: str
    member_id: str
    month: str
    amount: float
    date: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Payment":
        return cls(
            id=str(data.get("id") or ""),
            member_id=str(data["userId"]),
            month=data.get("month") or "",
            amount=_num(data.get("amount")),
            date=data.get("date") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "userId": self.member_id, "date": self.date, "amount": self.amount, "month": self.month}


# document key -> (Ledger attribute, record type)
_COLLECTIONS = {
    "users": ("members", Member),
    "rooms": ("rooms", Room),
    "monthlyRoomOverrides": ("room_overrides", MonthlyRoomOverride),
    "utilities": ("utilities", UtilityExpense),
    "localUtilities": ("local_utilities", LocalUtilityExpense),
    "monthlyUtilityOverrides": ("utility_overrides", MonthlyUtilityOverride),
    "monthlyRoles": ("monthly_roles", MonthlyRole),
    "meals": ("meals", Meal),
    "bazars": ("bazars", Bazar),
    "payments": ("payments", Payment),
}


@dataclass(frozen=True)
class Ledger:
    """
    Immutable snapshot of one household's records.

    Records are append-only from the engine's point of view; lookups return
    the first matching record, as the client does.
    """
    members: Tuple[Member, ...] = ()
    rooms: Tuple[Room, ...] = ()
    room_overrides: Tuple[MonthlyRoomOverride, ...] = ()
    utilities: Tuple[UtilityExpense, ...] = ()
    local_utilities: Tuple[LocalUtilityExpense, ...] = ()
    utility_overrides: Tuple[MonthlyUtilityOverride, ...] = ()
    monthly_roles: Tuple[MonthlyRole, ...] = ()
    meals: Tuple[Meal, ...] = ()
    bazars: Tuple[Bazar, ...] = ()
    payments: Tuple[Payment, ...] = ()
    locked_months: Tuple[str, ...] = ()
    # UI-only document keys (theme, extraCosts, messPassword, ...)
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_document(cls, document: Dict[str, Any] | None) -> "Ledger":
        document = document or {}
        kwargs: Dict[str, Any] = {}
        for key, (attr, record_cls) in _COLLECTIONS.items():
            kwargs[attr] = tuple(record_cls.from_dict(item) for item in (document.get(key) or ()))
        kwargs["locked_months"] = tuple(document.get("lockedMonths") or ())
        known = set(_COLLECTIONS) | {"lockedMonths"}
        kwargs["extra"] = {k: v for k, v in document.items() if k not in known}
        return cls(**kwargs)

    def to_document(self) -> Dict[str, Any]:
        document = dict(self.extra)
        for key, (attr, _) in _COLLECTIONS.items():
            document[key] = [record.to_dict() for record in getattr(self, attr)]
        document["lockedMonths"] = list(self.locked_months)
        return document

    def evolve(self, **changes) -> "Ledger":
        return replace(self, **changes)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def member(self, member_id: str) -> Optional[Member]:
        return next((m for m in self.members if m.id == member_id), None)

    def room(self, room_id: Optional[str]) -> Optional[Room]:
        if room_id is None:
            return None
        return next((r for r in self.rooms if r.id == room_id), None)

    def room_override(self, room_id: str, month: str) -> Optional[MonthlyRoomOverride]:
        return next((o for o in self.room_overrides if o.room_id == room_id and o.month == month), None)

    def utility_override(self, utility_id: str, month: str) -> Optional[MonthlyUtilityOverride]:
        return next(
            (o for o in self.utility_overrides if o.utility_id == utility_id and o.month == month),
            None,
        )

    def monthly_role(self, member_id: str, month: str) -> Optional[MonthlyRole]:
        return next((r for r in self.monthly_roles if r.member_id == member_id and r.month == month), None)

    def local_utilities_in(self, month: str) -> Iterable[LocalUtilityExpense]:
        return (u for u in self.local_utilities if u.month == month)

    def is_locked(self, month: str) -> bool:
        return month in self.locked_months

    @property
    def member_ids(self) -> frozenset:
        return frozenset(m.id for m in self.members)
