"""Expense service for managing expenses."""

from typing import Dict, Any, List, Optional
from datetime import datetime
import logging

from shared.validators import (
    validate_amount,
    validate_category,
    validate_date,
    sanitize_string
)
from shared.exceptions import ValidationError
from store.state import ExpenseStore
from expenses.models import Expense, ExpenseCreate
from reports.aggregation import Period, filter_by_period, period_range, search_expenses, summarize_expenses
from reports.formatting import round_amount

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ['amount', 'category', 'notes', 'date']


class ExpenseService:
    """Service for managing expenses."""

    def __init__(self, store: ExpenseStore):
        """
        Initialize expense service.

        Args:
            store: Store context shared with the rest of the application
        """
        self.store = store

    def add_expense(
        self,
        amount: Any,
        category: str,
        date: Any,
        notes: Optional[str] = None
    ) -> Expense:
        """
        Record a new expense.

        Args:
            amount: Expense amount (> 0)
            category: Expense category
            date: Date of the transaction
            notes: Optional notes

        Returns:
            Created expense

        Raises:
            ValidationError: If validation fails
        """
        expense = ExpenseCreate(
            amount=float(validate_amount(amount)),
            category=validate_category(category),
            date=validate_date(date),
            notes=sanitize_string(notes, max_length=1000) if notes else None
        )

        created = self.store.add_expense(expense)
        logger.info(f"Created expense {created.id} in {created.category}")
        return created

    def get_expense(self, expense_id: str) -> Expense:
        """
        Get expense by ID.

        Raises:
            NotFoundError: If expense not found
        """
        return self.store.get_expense(expense_id)

    def list_expenses(
        self,
        period: Optional[Period] = None,
        now: Optional[datetime] = None
    ) -> List[Expense]:
        """
        List expenses, optionally restricted to a period.

        Args:
            period: Optional 'today', 'week', 'month' or date range
            now: Reference time for named periods

        Returns:
            Expenses in stored order
        """
        expenses = self.store.expenses
        if period is None:
            return expenses
        return filter_by_period(expenses, period, now)

    def search_expenses(
        self,
        query: Optional[str] = None,
        category: Optional[str] = None,
        start_date: Optional[Any] = None,
        end_date: Optional[Any] = None
    ) -> List[Expense]:
        """Search expenses by text, category and date bounds, newest first."""
        return search_expenses(
            self.store.expenses,
            query=query,
            category=category,
            start=start_date,
            end=end_date
        )

    def update_expense(self, expense_id: str, updates: Dict[str, Any]) -> Expense:
        """
        Update expense.

        Args:
            expense_id: Expense ID
            updates: Fields to update

        Returns:
            Updated expense

        Raises:
            NotFoundError: If expense not found
            ValidationError: If validation fails
        """
        unknown = [key for key in updates if key not in UPDATABLE_FIELDS]
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(unknown)}")

        updates = dict(updates)

        # Validate updates
        if 'amount' in updates:
            updates['amount'] = float(validate_amount(updates['amount']))

        if 'category' in updates:
            updates['category'] = validate_category(updates['category'])

        if 'date' in updates:
            updates['date'] = validate_date(updates['date'])

        if 'notes' in updates and updates['notes'] is not None:
            updates['notes'] = sanitize_string(updates['notes'], max_length=1000)

        updated = self.store.update_expense(expense_id, updates)

        logger.info(f"Updated expense {expense_id}")
        return updated

    def delete_expense(self, expense_id: str) -> None:
        """
        Delete expense. Deleting an unknown ID does nothing.

        Args:
            expense_id: Expense ID
        """
        self.store.delete_expense(expense_id)

    def get_summary(
        self,
        period: Period = 'month',
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Get expense summary for a period.

        Args:
            period: 'today', 'week', 'month' or date range (default: month)
            now: Reference time for named periods

        Returns:
            Summary statistics, rounded for display
        """
        date_range = period_range(period, now)
        expenses = filter_by_period(self.store.expenses, date_range)
        summary = summarize_expenses(expenses)

        return {
            'total_amount': round_amount(summary['total_amount']),
            'expense_count': summary['expense_count'],
            'average_expense': round_amount(summary['average_expense']),
            'by_category': {
                k: round_amount(v['amount']) for k, v in summary['by_category'].items()
            },
            'start_date': date_range.start.strftime('%Y-%m-%d'),
            'end_date': date_range.end.strftime('%Y-%m-%d')
        }

    def clear_all_data(self) -> None:
        """Delete every expense and budget."""
        self.store.clear_all()
        logger.info("Cleared all data")
