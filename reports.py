"""Aggregations behind the dashboard and expenses views.

All functions take record dicts in the shape the API serves them
(``amount``, ``month``, ``year``, ``category``, ``date``, ``createdAt``) and
are pure: the selected month, window and clock are passed in. They never
raise on bad data. Unparseable or infinite amounts count as zero, the
savings rate of a month without income is zero, and records without a
usable timestamp pass every time window.
"""
import calendar
import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

import pandas as pd

MONTHS = range(1, 13)
WINDOW_KINDS = ('all', 'today', 'yesterday', 'thisWeek', 'thisMonth', 'custom')
END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class MonthSummary:
    month: int
    label: str
    salary: float
    expenses: float
    savings: float
    savings_rate: float

    def to_dict(self):
        return {
            'month': self.label,
            'monthNumber': self.month,
            'salary': self.salary,
            'expenses': self.expenses,
            'savings': self.savings,
            'savingsRate': self.savings_rate,
        }


@dataclass(frozen=True)
class MonthChange:
    income_change: float
    expense_change: float

    def to_dict(self):
        return {'incomeChange': self.income_change, 'expenseChange': self.expense_change}


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    total: float

    def to_dict(self):
        return {'category': self.category, 'totalAmount': self.total}


def _rows(records):
    return [r for r in records or () if isinstance(r, Mapping)]


def _to_number(value) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _label(value):
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    return str(value)


def _to_datetime(value):
    """Naive local datetime for ``value``, or None when it cannot be read."""
    if value is None or value == '':
        return None
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    moment = ts.to_pydatetime()
    if moment.tzinfo is not None:
        moment = moment.astimezone().replace(tzinfo=None)
    return moment


def _to_date(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    moment = _to_datetime(value)
    return moment.date() if moment else None


def total_of(records) -> float:
    """Sum of ``amount`` over ``records``."""
    amounts = pd.Series([_to_number(r.get('amount')) for r in _rows(records)], dtype=float)
    return float(amounts.sum())


def _monthly_totals(records, year=None) -> pd.Series:
    rows = _rows(records)
    df = pd.DataFrame({
        'amount': [_to_number(r.get('amount')) for r in rows],
        'month': [_to_number(r.get('month')) for r in rows],
        'year': [_to_number(r.get('year')) for r in rows],
    }, dtype=float)
    if year is not None:
        df = df[df['year'] == year]
    return df.groupby('month')['amount'].sum().reindex(MONTHS, fill_value=0.0)


def monthly_series(salaries, expenses, year=None, match_year=False) -> list:
    """Twelve :class:`MonthSummary` entries, January first.

    Records are matched on ``month`` only, so several years collapse into one
    series. Pass ``match_year=True`` to keep only records of ``year``.
    """
    wanted = year if match_year else None
    income = _monthly_totals(salaries, wanted)
    spent = _monthly_totals(expenses, wanted)

    series = []
    for month in MONTHS:
        salary = float(income.loc[month])
        expense_total = float(spent.loc[month])
        savings = salary - expense_total
        rate = (savings / salary) * 100 if salary > 0 else 0.0
        series.append(MonthSummary(
            month=month,
            label=calendar.month_abbr[month],
            salary=salary,
            expenses=expense_total,
            savings=savings,
            savings_rate=rate,
        ))
    return series


def previous_month(month: int) -> int:
    # January looks back to December of the same series, not the prior year.
    return 12 if month == 1 else month - 1


def month_over_month_delta(series, selected_month: int) -> MonthChange:
    by_month = {summary.month: summary for summary in series}
    current = by_month.get(selected_month)
    previous = by_month.get(previous_month(selected_month))
    return MonthChange(
        income_change=(current.salary if current else 0.0) - (previous.salary if previous else 0.0),
        expense_change=(current.expenses if current else 0.0) - (previous.expenses if previous else 0.0),
    )


def category_breakdown(expenses, order=None) -> list:
    """Expense totals per category, in order of first occurrence.

    Categories summing to zero are left out. When ``order`` is given the
    entries follow it instead, with labels it does not list at the end.
    """
    rows = _rows(expenses)
    df = pd.DataFrame({
        'category': [_label(r.get('category')) for r in rows],
        'amount': [_to_number(r.get('amount')) for r in rows],
    })
    totals = df.groupby('category', sort=False, dropna=False)['amount'].sum()

    breakdown = [
        CategoryTotal(category=None if pd.isna(label) else label, total=float(total))
        for label, total in totals.items()
        if total != 0
    ]
    if order is not None:
        rank = {label: i for i, label in enumerate(order)}
        breakdown.sort(key=lambda entry: rank.get(entry.category, len(rank)))
    return breakdown


def _window_bounds(window, now, start, end):
    """Return ``(lower, upper)`` datetimes for ``window``, or None for no filter."""
    today = now.date()
    if window == 'today':
        return datetime.combine(today, time.min), datetime.combine(today, END_OF_DAY)
    if window == 'yesterday':
        day = today - timedelta(days=1)
        return datetime.combine(day, time.min), datetime.combine(day, END_OF_DAY)
    if window == 'thisWeek':
        # weeks start on Sunday
        sunday = today - timedelta(days=(today.weekday() + 1) % 7)
        return datetime.combine(sunday, time.min), None
    if window == 'thisMonth':
        return datetime.combine(today.replace(day=1), time.min), None
    if window == 'custom':
        first, last = _to_date(start), _to_date(end)
        if first is None or last is None:
            return None
        return datetime.combine(first, time.min), datetime.combine(last, END_OF_DAY)
    return None


def filter_expenses(expenses, window='all', start=None, end=None, now=None, field='createdAt') -> list:
    """Expenses whose ``field`` timestamp falls inside ``window``.

    ``field`` defaults to the insertion time; pass ``'date'`` to filter on the
    date the user entered instead. ``custom`` needs both ``start`` and
    ``end`` (inclusive, whole days) and is otherwise unfiltered, as are
    ``all`` and unknown window kinds.
    """
    records = list(expenses or ())
    bounds = _window_bounds(window, now or datetime.now(), start, end)
    if bounds is None:
        return records

    lower, upper = bounds
    kept = []
    for record in records:
        moment = _to_datetime(record.get(field)) if isinstance(record, Mapping) else None
        if moment is None:
            kept.append(record)
            continue
        if moment < lower:
            continue
        if upper is not None and moment > upper:
            continue
        kept.append(record)
    return kept


def dashboard(salaries, expenses, month: int, year: int) -> dict:
    series = monthly_series(salaries, expenses, year)
    income = total_of(salaries)
    spent = total_of(expenses)
    selected = next((summary for summary in series if summary.month == month), None)
    return {
        'year': year,
        'selectedMonth': month,
        'totals': {'income': income, 'expenses': spent, 'savings': income - spent},
        'months': [summary.to_dict() for summary in series],
        'selected': selected.to_dict() if selected else None,
        'change': month_over_month_delta(series, month).to_dict(),
        'categories': [entry.to_dict() for entry in category_breakdown(expenses)],
    }


def expense_report(expenses, window='all', start=None, end=None, now=None, order=None) -> dict:
    filtered = filter_expenses(expenses, window, start, end, now=now)
    return {
        'window': window,
        # zero-amount entries add nothing and are not listed
        'expenses': [r for r in filtered if _to_number(r.get('amount')) > 0],
        'total': total_of(filtered),
        'categories': [entry.to_dict() for entry in category_breakdown(filtered, order)],
    }
