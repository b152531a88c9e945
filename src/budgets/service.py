"""Budget service for managing budgets and alerts."""

from typing import Dict, Any, List, Optional
from datetime import datetime
import logging

from shared.validators import (
    EXPENSE_CATEGORIES,
    validate_amount,
    validate_category,
    validate_month,
)
from shared.exceptions import ConflictError, ValidationError
from shared.observability import WarningHook, log_warning
from store.state import ExpenseStore
from budgets.models import Budget, BudgetCreate, BudgetStatus, TotalBudgetStatus
from reports.aggregation import (
    DEFAULT_WARNING_THRESHOLD,
    compute_budget_status,
    compute_total_budget_status,
    current_month,
    rescale_budgets_proportionally,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ['category', 'monthly_limit', 'month']


class BudgetService:
    """Service for managing budgets."""

    def __init__(
        self,
        store: ExpenseStore,
        warning_threshold: float = DEFAULT_WARNING_THRESHOLD,
        on_warning: WarningHook = log_warning
    ):
        """
        Initialize budget service.

        Args:
            store: Store context shared with the rest of the application
            warning_threshold: Percentage at which a budget is flagged
            on_warning: Hook receiving non-fatal events such as a skipped rescale
        """
        self.store = store
        self.warning_threshold = warning_threshold
        self.on_warning = on_warning

    def create_budget(
        self,
        category: str,
        monthly_limit: Any,
        month: Optional[str] = None
    ) -> Budget:
        """
        Create a new budget.

        Args:
            category: Budget category
            monthly_limit: Spending cap for the month
            month: Budget month (YYYY-MM, default: current month)

        Returns:
            Created budget

        Raises:
            ValidationError: If validation fails
            ConflictError: If the category already has a budget that month
        """
        category = validate_category(category)
        monthly_limit = float(validate_amount(monthly_limit))
        month = validate_month(month or current_month())

        self._ensure_unique(category, month)

        budget = self.store.add_budget(
            BudgetCreate(category=category, monthly_limit=monthly_limit, month=month)
        )

        logger.info(f"Created budget {budget.id} for category {category}")
        return budget

    def get_budget(self, budget_id: str) -> Budget:
        """
        Get budget by ID.

        Raises:
            NotFoundError: If budget not found
        """
        return self.store.get_budget(budget_id)

    def list_budgets(self, month: Optional[str] = None) -> List[Budget]:
        """
        List budgets, optionally for one month.

        Args:
            month: Optional month filter (YYYY-MM)
        """
        budgets = self.store.budgets
        if month is None:
            return budgets

        month = validate_month(month)
        return [budget for budget in budgets if budget.month == month]

    def update_budget(self, budget_id: str, updates: Dict[str, Any]) -> Budget:
        """
        Update budget.

        Args:
            budget_id: Budget ID
            updates: Fields to update

        Returns:
            Updated budget

        Raises:
            NotFoundError: If budget not found
            ValidationError: If validation fails
            ConflictError: If the change collides with another budget
        """
        unknown = [key for key in updates if key not in UPDATABLE_FIELDS]
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(unknown)}")

        budget = self.get_budget(budget_id)
        updates = dict(updates)

        # Validate updates
        if 'monthly_limit' in updates:
            updates['monthly_limit'] = float(validate_amount(updates['monthly_limit']))

        if 'category' in updates:
            updates['category'] = validate_category(updates['category'])

        if 'month' in updates:
            updates['month'] = validate_month(updates['month'])

        category = updates.get('category', budget.category)
        month = updates.get('month', budget.month)
        if (category, month) != (budget.category, budget.month):
            self._ensure_unique(category, month)

        updated = self.store.update_budget(budget_id, updates)

        logger.info(f"Updated budget {budget_id}")
        return updated

    def delete_budget(self, budget_id: str) -> None:
        """
        Delete budget. Deleting an unknown ID does nothing.

        Args:
            budget_id: Budget ID
        """
        self.store.delete_budget(budget_id)

    def get_budget_status(self, budget_id: str) -> BudgetStatus:
        """
        Current spending against a budget.

        Raises:
            NotFoundError: If budget not found
        """
        budget = self.get_budget(budget_id)
        return compute_budget_status(budget, self.store.expenses, self.warning_threshold)

    def list_budget_statuses(self, month: Optional[str] = None) -> List[BudgetStatus]:
        """Spending against every budget, optionally for one month."""
        expenses = self.store.expenses
        return [
            compute_budget_status(budget, expenses, self.warning_threshold)
            for budget in self.list_budgets(month)
        ]

    def get_total_budget_status(self, now: Optional[datetime] = None) -> TotalBudgetStatus:
        """Spending this month against the sum of all budgets."""
        return compute_total_budget_status(
            self.store.budgets,
            self.store.expenses,
            now=now,
            warning_threshold=self.warning_threshold
        )

    def update_total_budget(self, new_total: Any) -> List[Budget]:
        """
        Rescale every budget so that the limits add up to a new total.

        Each budget keeps its share of the current total. When the current
        total is zero nothing changes. All limits are saved in one write.

        Args:
            new_total: Desired sum of all monthly limits

        Returns:
            The updated budgets

        Raises:
            ValidationError: If the new total is invalid
        """
        new_total = float(validate_amount(new_total))
        adjustments = rescale_budgets_proportionally(
            self.store.budgets,
            new_total,
            on_warning=self.on_warning
        )

        updated = self.store.update_budgets({
            adjustment.id: {'monthly_limit': adjustment.new_monthly_limit}
            for adjustment in adjustments
        })

        logger.info(f"Rescaled {len(updated)} budgets to a total of {new_total}")
        return updated

    def available_categories(self, month: Optional[str] = None) -> List[str]:
        """Suggested categories that have no budget in the month yet."""
        month = validate_month(month or current_month())
        taken = {budget.category for budget in self.store.budgets if budget.month == month}
        return [category for category in EXPENSE_CATEGORIES if category not in taken]

    def check_budget_alerts(self, month: Optional[str] = None) -> List[BudgetStatus]:
        """
        Check budgets for alerts.

        Args:
            month: Month to check (default: current month)

        Returns:
            Statuses at or above the warning threshold
        """
        statuses = self.list_budget_statuses(month or current_month())
        return [
            status for status in statuses
            if status.percentage_used >= self.warning_threshold
        ]

    def _ensure_unique(self, category: str, month: str) -> None:
        for budget in self.store.budgets:
            if budget.category == category and budget.month == month:
                raise ConflictError("A budget for this category already exists this month")
