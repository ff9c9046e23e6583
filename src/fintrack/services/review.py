"""
Working set of extracted transactions awaiting review.

Records move pending <-> approved by toggling; both states can be edited or
deleted. Approved records leave the list only after a sync dispatch.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Iterator, List, Optional

from fintrack.domain.models import (
    DEFAULT_TAG,
    CategoryType,
    Direction,
    Status,
    Transaction,
    coerce_amount,
    normalise_date,
)

EDITABLE_FIELDS = {"date", "bank_name", "description", "amount", "direction", "type", "tag", "status"}


def _clean_changes(changes: dict) -> dict:
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot edit field(s): {', '.join(sorted(unknown))}")

    out = dict(changes)
    if "amount" in out:
        try:
            amount = float(out["amount"])
        except (TypeError, ValueError) as e:
            raise ValueError(f"Amount must be a number, got {out['amount']!r}") from e
        if amount < 0:
            raise ValueError("Amount cannot be negative")
        out["amount"] = coerce_amount(amount)
    if "direction" in out:
        out["direction"] = Direction.coerce(out["direction"])
    if "type" in out:
        out["type"] = CategoryType.coerce(out["type"])
    if "status" in out:
        out["status"] = Status.coerce(out["status"])
    if "date" in out:
        out["date"] = normalise_date(out["date"])
    for key in ("bank_name", "description"):
        if key in out:
            out[key] = str(out[key] or "").strip()
    if "tag" in out:
        out["tag"] = str(out["tag"] or "").strip() or DEFAULT_TAG
    return out


class ReviewList:
    def __init__(self, records: Optional[Iterable[Transaction]] = None):
        self._items: List[Transaction] = list(records or [])

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(list(self._items))

    @property
    def items(self) -> List[Transaction]:
        return list(self._items)

    def load(self, records: Iterable[Transaction]):
        """Replace the working set with freshly extracted (pending) records."""
        self._items = [t.with_status(Status.PENDING) for t in records]

    def _index(self, tx_id: str) -> int:
        for i, t in enumerate(self._items):
            if t.id == tx_id:
                return i
        raise KeyError(tx_id)

    def get(self, tx_id: str) -> Transaction:
        return self._items[self._index(tx_id)]

    def update(self, tx_id: str, **changes) -> Transaction:
        i = self._index(tx_id)
        updated = replace(self._items[i], **_clean_changes(changes))
        self._items[i] = updated
        return updated

    def delete(self, tx_id: str) -> bool:
        try:
            i = self._index(tx_id)
        except KeyError:
            return False
        del self._items[i]
        return True

    def toggle(self, tx_id: str) -> Transaction:
        t = self.get(tx_id)
        return self.update(tx_id, status=Status.PENDING if t.is_approved else Status.APPROVED)

    @property
    def all_approved(self) -> bool:
        return bool(self._items) and all(t.is_approved for t in self._items)

    def toggle_all(self):
        """Select all, or deselect all when everything is already selected."""
        target = Status.PENDING if self.all_approved else Status.APPROVED
        self._items = [t.with_status(target) for t in self._items]

    def approved(self) -> List[Transaction]:
        return [t for t in self._items if t.is_approved]

    @property
    def approved_count(self) -> int:
        return len(self.approved())

    def remove_approved(self) -> List[Transaction]:
        removed = self.approved()
        self._items = [t for t in self._items if not t.is_approved]
        return removed
