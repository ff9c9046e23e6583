"""Transaction record model shared by every FinTrack component.

Wire / persistence form uses the camelCase keys the spreadsheet expects
(``bankName``); Python attributes are snake_case.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping
import uuid

DEFAULT_TAG = "Uncategorized"

DEFAULT_TAGS = ["Rent", "Utilities", "Software", "Travel", "Meals", "Office Supplies"]

DEFAULT_BANKS = ["HDFC Bank", "ICICI Bank", "State Bank of India", "Axis Bank", "Kotak Mahindra Bank"]

# Filter value meaning "no filter"
ALL = "All"


def _norm(value: Any) -> str:
    return str(value or "").strip().lower()


class Direction(str, Enum):
    """Whether money left (Spent) or arrived (Received)."""

    SPENT = "Spent"
    RECEIVED = "Received"

    @classmethod
    def coerce(cls, value: Any) -> "Direction":
        # Anything not clearly "Received" is treated as an expense
        if isinstance(value, cls):
            return value
        return cls.RECEIVED if _norm(value) == "received" else cls.SPENT


class CategoryType(str, Enum):
    """Expense sub-classification; ignored for Received records."""

    PERSONAL = "Personal"
    OFFICE = "Office"

    @classmethod
    def coerce(cls, value: Any) -> "CategoryType":
        if isinstance(value, cls):
            return value
        return cls.OFFICE if _norm(value) == "office" else cls.PERSONAL


class Status(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"

    @classmethod
    def coerce(cls, value: Any) -> "Status":
        if isinstance(value, cls):
            return value
        return cls.APPROVED if _norm(value) == "approved" else cls.PENDING


def new_id() -> str:
    return uuid.uuid4().hex[:12]


def normalise_date(value: Any) -> str:
    """Return ``YYYY-MM-DD`` for a date or ISO datetime string.

    Google Sheets hands dates back as ``2024-01-05T00:00:00.000Z``; anything we
    can't parse is returned as-is (trimmed).
    """
    s = str(value or "").strip()
    if not s:
        return s
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(s[:10]).date().isoformat()
    except ValueError:
        return s


def coerce_amount(value: Any) -> float:
    """Parse an amount into a non-negative float (raises ValueError / TypeError)."""
    if isinstance(value, str):
        value = value.replace(",", "").strip()
    return abs(float(value))


@dataclass
class Transaction:
    """A single statement transaction."""

    date: str  # YYYY-MM-DD
    bank_name: str
    description: str
    amount: float
    direction: Direction = Direction.SPENT
    type: CategoryType = CategoryType.PERSONAL
    tag: str = DEFAULT_TAG
    status: Status = Status.PENDING
    id: str = ""

    def __post_init__(self):
        if not self.id:
            self.id = new_id()
        self.amount = coerce_amount(self.amount)
        self.direction = Direction.coerce(self.direction)
        self.type = CategoryType.coerce(self.type)
        self.status = Status.coerce(self.status)
        self.tag = self.tag or DEFAULT_TAG

    @property
    def month(self) -> str:
        return self.date[:7]

    @property
    def is_approved(self) -> bool:
        return self.status is Status.APPROVED

    def with_status(self, status: Status) -> "Transaction":
        return replace(self, status=status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "bankName": self.bank_name,
            "description": self.description,
            "amount": self.amount,
            "direction": self.direction.value,
            "type": self.type.value,
            "tag": self.tag,
            "status": self.status.value,
        }

    def to_sync_row(self) -> Dict[str, Any]:
        """Row shape appended to the spreadsheet (no id / status)."""
        return {
            "date": self.date,
            "bankName": self.bank_name,
            "description": self.description,
            "amount": float(self.amount),
            "direction": self.direction.value,
            "type": self.type.value,
            "tag": self.tag,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Transaction":
        return cls(
            id=str(data.get("id") or ""),
            date=normalise_date(data.get("date")),
            bank_name=str(data.get("bankName") or "").strip(),
            description=str(data.get("description") or "").strip(),
            amount=data.get("amount", 0),
            direction=data.get("direction"),
            type=data.get("type"),
            tag=str(data.get("tag") or DEFAULT_TAG).strip(),
            status=data.get("status"),
        )
