from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, List, Optional

from fintrack import config
from fintrack.domain.models import ALL, DEFAULT_TAG, CategoryType, Direction, Transaction


@dataclass
class DashboardStats:
    total_spent: float = 0.0
    total_received: float = 0.0
    personal_spending: float = 0.0
    office_spending: float = 0.0


@dataclass
class Dashboard:
    month: str
    bank: str
    count: int
    stats: DashboardStats
    expense_mix: List[Dict] = field(default_factory=list)
    tags: List[Dict] = field(default_factory=list)
    trend: List[Dict] = field(default_factory=list)
    banks_breakdown: List[Dict] = field(default_factory=list)
    months: List[str] = field(default_factory=list)
    banks: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return asdict(self)


def available_months(records: Iterable[Transaction]) -> List[str]:
    months = {t.month for t in records if t.month}
    return [ALL] + sorted(months, reverse=True)


def available_banks(records: Iterable[Transaction]) -> List[str]:
    banks = {t.bank_name for t in records if t.bank_name}
    return [ALL] + sorted(banks)


def filter_transactions(records: Iterable[Transaction], month: str = ALL, bank: str = ALL) -> List[Transaction]:
    out = list(records)
    if month and month != ALL:
        out = [t for t in out if t.date.startswith(month)]
    if bank and bank != ALL:
        out = [t for t in out if t.bank_name == bank]
    return out


def summarize(records: Iterable[Transaction]) -> DashboardStats:
    stats = DashboardStats()
    for t in records:
        amt = float(t.amount)
        if t.direction is Direction.RECEIVED:
            stats.total_received += amt
            continue

        stats.total_spent += amt
        # Personal/Office split only applies to spending
        if t.type is CategoryType.PERSONAL:
            stats.personal_spending += amt
        else:
            stats.office_spending += amt
    return stats


def expense_mix(stats: DashboardStats) -> List[Dict]:
    return [
        {"name": "Personal Expense", "value": stats.personal_spending},
        {"name": "Office Expense", "value": stats.office_spending},
    ]


def tag_breakdown(records: Iterable[Transaction]) -> List[Dict]:
    """Spending per tag, largest first (received money is ignored)."""
    grouped: Dict[str, float] = defaultdict(float)
    for t in records:
        if t.direction is Direction.RECEIVED:
            continue
        grouped[t.tag or DEFAULT_TAG] += float(t.amount)

    rows = [{"name": k, "value": v} for k, v in grouped.items()]
    rows.sort(key=lambda r: r["value"], reverse=True)
    return rows


def trend(records: Iterable[Transaction], month: str = ALL) -> List[Dict]:
    """Spent/received per month, or per day when a single month is selected."""
    grouped: Dict[str, Dict] = {}
    for t in records:
        key = t.month if month == ALL else t.date
        bucket = grouped.setdefault(key, {"date": key, "spent": 0.0, "received": 0.0})
        if t.direction is Direction.RECEIVED:
            bucket["received"] += float(t.amount)
        else:
            bucket["spent"] += float(t.amount)
    return [grouped[k] for k in sorted(grouped)]


def bank_breakdown(records: Iterable[Transaction]) -> List[Dict]:
    grouped: Dict[str, Dict] = {}
    for t in records:
        bucket = grouped.setdefault(t.bank_name, {"name": t.bank_name, "spent": 0.0, "received": 0.0})
        if t.direction is Direction.RECEIVED:
            bucket["received"] += float(t.amount)
        else:
            bucket["spent"] += float(t.amount)

    rows = list(grouped.values())
    rows.sort(key=lambda r: (-(r["spent"] + r["received"]), r["name"]))
    return rows


def build_dashboard(records: Iterable[Transaction], month: str = ALL, bank: str = ALL) -> Dashboard:
    records = list(records)
    month = month or ALL
    bank = bank or ALL
    filtered = filter_transactions(records, month=month, bank=bank)
    stats = summarize(filtered)

    return Dashboard(
        month=month,
        bank=bank,
        count=len(filtered),
        stats=stats,
        expense_mix=expense_mix(stats),
        tags=tag_breakdown(filtered),
        trend=trend(filtered, month=month),
        banks_breakdown=bank_breakdown(filtered),
        months=available_months(records),
        banks=available_banks(records),
    )


def format_amount(value: float, symbol: Optional[str] = None) -> str:
    symbol = config.CURRENCY_SYMBOL if symbol is None else symbol
    return f"{symbol}{value:,.2f}"
