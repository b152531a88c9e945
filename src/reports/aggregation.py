"""Pure aggregation functions over expense and budget snapshots.

Nothing here performs I/O. Functions that depend on the current time take
an optional ``now`` so callers and tests can pin it.
"""

import calendar
from collections import defaultdict
from datetime import datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Union

from shared.exceptions import ValidationError
from shared.observability import WarningHook, log_warning
from shared.validators import parse_datetime, validate_date_range, validate_month
from expenses.models import Expense
from budgets.models import (
    Budget,
    BudgetAdjustment,
    BudgetStatus,
    TotalBudgetStatus,
    STATUS_OK,
    STATUS_OVER,
    STATUS_WARNING,
)

PERIOD_TODAY = 'today'
PERIOD_WEEK = 'week'
PERIOD_MONTH = 'month'
NAMED_PERIODS = [PERIOD_TODAY, PERIOD_WEEK, PERIOD_MONTH]

DEFAULT_WARNING_THRESHOLD = 80.0


class DateRange(NamedTuple):
    """Inclusive range of local datetimes."""

    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


Period = Union[str, DateRange, tuple, Mapping[str, Any]]


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now()


def _start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min)


def _end_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.max)


def current_month(now: Optional[datetime] = None) -> str:
    """Month key (YYYY-MM) for the given or current moment."""
    return _now(now).strftime('%Y-%m')


def month_range(month: str) -> DateRange:
    """
    First through last instant of a calendar month.

    Raises:
        ValidationError: If month is not YYYY-MM
    """
    validate_month(month)
    year, month_number = (int(part) for part in month.split('-'))
    last_day = calendar.monthrange(year, month_number)[1]
    return DateRange(
        start=datetime(year, month_number, 1),
        end=datetime(year, month_number, last_day, 23, 59, 59, 999999)
    )


def period_range(period: Period, now: Optional[datetime] = None) -> DateRange:
    """
    Resolve a period selector to an inclusive date range.

    Args:
        period: 'today', 'week', 'month', a DateRange, a (start, end) tuple
            or a mapping with 'start' and 'end'
        now: Reference time (default: current local time)

    Returns:
        DateRange

    Raises:
        ValidationError: If the period is unknown or the range is malformed
    """
    if isinstance(period, DateRange):
        start, end = period
        if start > end:
            raise ValidationError("Date range start must not be after its end")
        return period

    if isinstance(period, str):
        moment = _now(now)
        if period == PERIOD_TODAY:
            return DateRange(_start_of_day(moment), _end_of_day(moment))
        if period == PERIOD_WEEK:
            # Rolling window, not aligned to calendar weeks
            return DateRange(_start_of_day(moment - timedelta(days=7)), moment)
        if period == PERIOD_MONTH:
            return month_range(current_month(moment))
        raise ValidationError(
            f"Invalid period. Must be one of: {', '.join(NAMED_PERIODS)} or a date range"
        )

    if isinstance(period, dict):
        return DateRange(*validate_date_range(period.get('start'), period.get('end')))

    if isinstance(period, tuple) and len(period) == 2:
        return DateRange(*validate_date_range(period[0], period[1]))

    raise ValidationError("Invalid period. Expected a period name or a date range")


def expense_datetime(expense: Expense) -> Optional[datetime]:
    """Date of an expense, or None if it cannot be interpreted."""
    try:
        return parse_datetime(expense.date)
    except (TypeError, ValueError, AttributeError):
        return None


def filter_by_period(
    expenses: Iterable[Expense],
    period: Period,
    now: Optional[datetime] = None
) -> List[Expense]:
    """
    Expenses whose date falls inside the period, in input order.

    Expenses with invalid dates are excluded rather than raising.

    Raises:
        ValidationError: If the period argument is malformed
    """
    date_range = period_range(period, now)
    return _within(expenses, date_range)


def _within(expenses: Iterable[Expense], date_range: DateRange) -> List[Expense]:
    selected = []
    for expense in expenses:
        moment = expense_datetime(expense)
        if moment is not None and date_range.contains(moment):
            selected.append(expense)
    return selected


def sum_by_category(expenses: Iterable[Expense]) -> Dict[str, float]:
    """Total amount per category. Categories without expenses are omitted."""
    totals: Dict[str, float] = defaultdict(float)
    for expense in expenses:
        totals[expense.category] += expense.amount
    return dict(totals)


def status_level(percentage: float, warning_threshold: float = DEFAULT_WARNING_THRESHOLD) -> str:
    """Classify a usage percentage as ok, warning or over."""
    if percentage >= 100:
        return STATUS_OVER
    if percentage >= warning_threshold:
        return STATUS_WARNING
    return STATUS_OK


def _percentage(spent: float, limit: float) -> float:
    return (spent / limit) * 100 if limit > 0 else 0.0


def compute_budget_status(
    budget: Budget,
    expenses: Iterable[Expense],
    warning_threshold: float = DEFAULT_WARNING_THRESHOLD
) -> BudgetStatus:
    """
    Spending against one budget.

    Only expenses in the budget's category and month count. Remaining may be
    negative; percentage is 0 when the limit is not positive.
    """
    matching = [e for e in expenses if e.category == budget.category]
    spent = sum(e.amount for e in _within(matching, month_range(budget.month)))
    percentage = _percentage(spent, budget.monthly_limit)

    return BudgetStatus(
        budget_id=budget.id,
        category=budget.category,
        month=budget.month,
        monthly_limit=budget.monthly_limit,
        spent=spent,
        remaining=budget.monthly_limit - spent,
        percentage_used=percentage,
        is_over_budget=spent > budget.monthly_limit,
        level=status_level(percentage, warning_threshold)
    )


def compute_total_budget_status(
    budgets: Iterable[Budget],
    expenses: Iterable[Expense],
    now: Optional[datetime] = None,
    warning_threshold: float = DEFAULT_WARNING_THRESHOLD
) -> TotalBudgetStatus:
    """
    Spending against the sum of all budgets.

    The total adds every budget's limit as-is, so budgets sharing a category
    or belonging to other months are all counted. Spent covers every expense
    in the current month, whatever its category.
    """
    total_budget = sum(budget.monthly_limit for budget in budgets)
    this_month = month_range(current_month(now))
    spent = sum(e.amount for e in _within(expenses, this_month))
    percentage = _percentage(spent, total_budget)

    return TotalBudgetStatus(
        total_budget=total_budget,
        spent=spent,
        remaining=total_budget - spent,
        percentage_used=percentage,
        level=status_level(percentage, warning_threshold)
    )


def rescale_budgets_proportionally(
    budgets: Iterable[Budget],
    new_total: float,
    on_warning: WarningHook = log_warning
) -> List[BudgetAdjustment]:
    """
    New limits that keep each budget's share of the total.

    When the current total is zero there is nothing to scale; the result is
    empty and the event is reported through ``on_warning``.
    """
    budgets = list(budgets)
    current_total = sum(budget.monthly_limit for budget in budgets)

    if current_total <= 0:
        on_warning('budget_rescale_skipped', {
            'reason': 'current total is zero',
            'requested_total': new_total,
            'budget_count': len(budgets)
        })
        return []

    ratio = new_total / current_total
    return [
        BudgetAdjustment(id=budget.id, new_monthly_limit=budget.monthly_limit * ratio)
        for budget in budgets
    ]


def search_expenses(
    expenses: Iterable[Expense],
    query: Optional[str] = None,
    category: Optional[str] = None,
    start: Optional[Any] = None,
    end: Optional[Any] = None
) -> List[Expense]:
    """
    Filter expenses the way the history view does, newest first.

    Args:
        expenses: Expenses to search
        query: Case-insensitive text matched against notes, category and amount
        category: Exact category
        start: Optional inclusive lower bound
        end: Optional inclusive upper bound

    Raises:
        ValidationError: If a bound cannot be parsed
    """
    lower = upper = None
    try:
        if start is not None:
            lower = parse_datetime(start)
        if end is not None:
            upper = parse_datetime(end)
    except ValueError:
        raise ValidationError("Invalid date range. Use YYYY-MM-DD")

    needle = query.strip().lower() if query else ''
    results = []

    for expense in expenses:
        moment = expense_datetime(expense)
        if moment is None:
            continue
        if needle and not (
            needle in (expense.notes or '').lower()
            or needle in _amount_text(expense.amount)
            or needle in expense.category.lower()
        ):
            continue
        if category and expense.category != category:
            continue
        if lower is not None and moment < lower:
            continue
        if upper is not None and moment > upper:
            continue
        results.append((moment, expense))

    results.sort(key=lambda pair: pair[0], reverse=True)
    return [expense for _, expense in results]


def _amount_text(amount: float) -> str:
    return str(int(amount)) if float(amount).is_integer() else repr(float(amount))


def summarize_expenses(expenses: Iterable[Expense]) -> Dict[str, Any]:
    """
    Totals for a set of expenses, unrounded.

    Returns:
        Dictionary with total_amount, expense_count, average_expense and
        by_category (amount, count, percentage per category)
    """
    expenses = list(expenses)
    total_amount = sum(e.amount for e in expenses)
    by_category: Dict[str, Dict[str, Any]] = defaultdict(lambda: {'amount': 0.0, 'count': 0})

    for expense in expenses:
        by_category[expense.category]['amount'] += expense.amount
        by_category[expense.category]['count'] += 1

    for data in by_category.values():
        data['percentage'] = (data['amount'] / total_amount * 100) if total_amount > 0 else 0.0

    return {
        'total_amount': total_amount,
        'expense_count': len(expenses),
        'average_expense': total_amount / len(expenses) if expenses else 0.0,
        'by_category': dict(by_category)
    }
