"""In-memory mirror of the persisted expense and budget collections."""

from typing import Any, Callable, Dict, List, TypeVar, Union
import logging

from shared.exceptions import NotFoundError, StorageError
from expenses.models import Expense, ExpenseCreate, ExpenseUpdate
from budgets.models import Budget, BudgetCreate, BudgetUpdate
from store.record_store import RecordStore

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ExpenseStore:
    """
    Read-optimized cache of the record store, owned by the application root.

    Every mutation goes through ``_commit``: the persistence call runs first
    and the cache is only changed once it has succeeded.
    """

    def __init__(self, record_store: RecordStore):
        self.record_store = record_store
        self._expenses: List[Expense] = []
        self._budgets: List[Budget] = []
        self.is_loading = False

    @property
    def expenses(self) -> List[Expense]:
        """Snapshot of the cached expenses."""
        return list(self._expenses)

    @property
    def budgets(self) -> List[Budget]:
        """Snapshot of the cached budgets."""
        return list(self._budgets)

    def load(self) -> None:
        """Refresh both collections from storage."""
        self.load_expenses()
        self.load_budgets()

    def load_expenses(self) -> None:
        self.is_loading = True
        try:
            self._expenses = self.record_store.list_expenses()
            logger.debug(f"Loaded {len(self._expenses)} expenses")
        finally:
            self.is_loading = False

    def load_budgets(self) -> None:
        self._budgets = self.record_store.list_budgets()
        logger.debug(f"Loaded {len(self._budgets)} budgets")

    def get_expense(self, expense_id: str) -> Expense:
        """
        Get a cached expense by ID.

        Raises:
            NotFoundError: If expense not found
        """
        for expense in self._expenses:
            if expense.id == expense_id:
                return expense
        raise NotFoundError("Expense not found")

    def get_budget(self, budget_id: str) -> Budget:
        """
        Get a cached budget by ID.

        Raises:
            NotFoundError: If budget not found
        """
        for budget in self._budgets:
            if budget.id == budget_id:
                return budget
        raise NotFoundError("Budget not found")

    # Mutations

    def add_expense(self, data: Union[ExpenseCreate, Dict[str, Any]]) -> Expense:
        def apply(expense: Expense) -> None:
            self._expenses = self._expenses + [expense]

        return self._commit(lambda: self.record_store.create_expense(data), apply)

    def update_expense(self, expense_id: str, updates: Union[ExpenseUpdate, Dict[str, Any]]) -> Expense:
        def apply(expense: Expense) -> None:
            self._expenses = _replace(self._expenses, expense)

        return self._commit(lambda: self.record_store.update_expense(expense_id, updates), apply)

    def delete_expense(self, expense_id: str) -> None:
        def apply(_: None) -> None:
            self._expenses = [e for e in self._expenses if e.id != expense_id]

        self._commit(lambda: self.record_store.delete_expense(expense_id), apply)

    def add_budget(self, data: Union[BudgetCreate, Dict[str, Any]]) -> Budget:
        def apply(budget: Budget) -> None:
            self._budgets = self._budgets + [budget]

        return self._commit(lambda: self.record_store.create_budget(data), apply)

    def update_budget(self, budget_id: str, updates: Union[BudgetUpdate, Dict[str, Any]]) -> Budget:
        def apply(budget: Budget) -> None:
            self._budgets = _replace(self._budgets, budget)

        return self._commit(lambda: self.record_store.update_budget(budget_id, updates), apply)

    def update_budgets(self, changes: Dict[str, Union[BudgetUpdate, Dict[str, Any]]]) -> List[Budget]:
        def apply(budgets: List[Budget]) -> None:
            for budget in budgets:
                self._budgets = _replace(self._budgets, budget)

        return self._commit(lambda: self.record_store.update_budgets(changes), apply)

    def delete_budget(self, budget_id: str) -> None:
        def apply(_: None) -> None:
            self._budgets = [b for b in self._budgets if b.id != budget_id]

        self._commit(lambda: self.record_store.delete_budget(budget_id), apply)

    def clear_all(self) -> None:
        def apply(_: None) -> None:
            self._expenses = []
            self._budgets = []

        try:
            self._commit(self.record_store.clear_all, apply)
        except StorageError:
            # Part of the removal may have gone through; mirror what is stored now
            self.load()
            raise

    def _commit(self, persist: Callable[[], T], apply: Callable[[T], None]) -> T:
        """Run the persistence call, then mirror its result into the cache."""
        result = persist()
        apply(result)
        return result


def _replace(records: List[T], updated: T) -> List[T]:
    """Swap in the updated record, appending it if the cache missed it."""
    replaced = [updated if record.id == updated.id else record for record in records]
    if not any(record.id == updated.id for record in records):
        replaced.append(updated)
    return replaced
