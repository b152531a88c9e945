"""Unit tests for budget service."""

import pytest
from unittest.mock import Mock
from datetime import datetime
import sys
import os

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from budgets.service import BudgetService
from shared.storage import MemoryStorage
from shared.exceptions import ConflictError, NotFoundError, StorageError, ValidationError
from shared.validators import EXPENSE_CATEGORIES
from store.record_store import RecordStore
from store.state import ExpenseStore
from reports.aggregation import current_month

NOW = datetime(2024, 3, 20, 15, 30)


class TestBudgetService:
    """Test cases for BudgetService."""

    @pytest.fixture
    def record_store(self):
        return RecordStore(MemoryStorage())

    @pytest.fixture
    def store(self, record_store):
        return ExpenseStore(record_store)

    @pytest.fixture
    def on_warning(self):
        return Mock()

    @pytest.fixture
    def budget_service(self, store, on_warning):
        return BudgetService(store, warning_threshold=80, on_warning=on_warning)

    def add_expense(self, store, amount, category, when):
        return store.add_expense({'amount': amount, 'category': category, 'date': when})

    def test_create_budget_defaults_to_current_month(self, budget_service):
        """Test creating a budget without a month."""
        budget = budget_service.create_budget('Groceries', 400)

        assert budget.month == current_month()
        assert budget.monthly_limit == 400.0
        assert budget_service.list_budgets() == [budget]

    def test_create_budget_duplicate(self, budget_service):
        """Test that one category cannot have two budgets in a month."""
        budget_service.create_budget('Groceries', 400, month='2024-03')

        with pytest.raises(ConflictError, match="already exists"):
            budget_service.create_budget('Groceries', 250, month='2024-03')

    def test_create_budget_same_category_other_month(self, budget_service):
        """Test that a category can be budgeted in several months."""
        budget_service.create_budget('Groceries', 400, month='2024-03')
        budget_service.create_budget('Groceries', 400, month='2024-04')

        assert len(budget_service.list_budgets()) == 2
        assert len(budget_service.list_budgets('2024-04')) == 1

    @pytest.mark.parametrize('limit', [0, -5, 'lots', None])
    def test_create_budget_invalid_limit(self, budget_service, limit):
        """Test that the limit must be a positive amount."""
        with pytest.raises(ValidationError):
            budget_service.create_budget('Groceries', limit, month='2024-03')

    def test_create_budget_invalid_month(self, budget_service):
        """Test that the month must be YYYY-MM."""
        with pytest.raises(ValidationError, match="YYYY-MM"):
            budget_service.create_budget('Groceries', 100, month='03-2024')

    def test_update_budget_limit(self, budget_service):
        """Test changing a budget's limit."""
        budget = budget_service.create_budget('Groceries', 400, month='2024-03')

        updated = budget_service.update_budget(budget.id, {'monthly_limit': 450})

        assert updated.monthly_limit == 450.0
        assert budget_service.get_budget(budget.id).monthly_limit == 450.0

    def test_update_budget_conflict(self, budget_service):
        """Test that moving a budget onto another category is rejected."""
        budget_service.create_budget('Groceries', 400, month='2024-03')
        other = budget_service.create_budget('Shopping', 200, month='2024-03')

        with pytest.raises(ConflictError):
            budget_service.update_budget(other.id, {'category': 'Groceries'})

    def test_update_budget_invalid_fields(self, budget_service):
        """Test that update rejects invalid fields."""
        budget = budget_service.create_budget('Groceries', 400, month='2024-03')

        with pytest.raises(ValidationError, match="Cannot update fields"):
            budget_service.update_budget(budget.id, {'spent': 10})

    def test_get_budget_not_found(self, budget_service):
        """Test getting a non-existent budget."""
        with pytest.raises(NotFoundError, match="Budget not found"):
            budget_service.get_budget('nonexistent')

    def test_delete_budget(self, budget_service):
        """Test deleting a budget."""
        budget = budget_service.create_budget('Groceries', 400, month='2024-03')

        budget_service.delete_budget(budget.id)
        budget_service.delete_budget(budget.id)

        assert budget_service.list_budgets() == []

    def test_get_budget_status(self, budget_service, store):
        """Test spending against a budget."""
        budget = budget_service.create_budget('Food & Dining', 300, month='2024-03')
        self.add_expense(store, 50, 'Food & Dining', '2024-03-02')
        self.add_expense(store, 60, 'Food & Dining', '2024-03-10')
        self.add_expense(store, 200, 'Food & Dining', '2024-03-25')
        self.add_expense(store, 80, 'Food & Dining', '2024-04-01')

        status = budget_service.get_budget_status(budget.id)

        assert status.spent == 310
        assert status.remaining == -10
        assert status.percentage_used == pytest.approx(103.33, abs=0.01)
        assert status.is_over_budget is True
        assert status.level == 'over'

    def test_get_total_budget_status(self, budget_service, store):
        """Test the total across all budgets."""
        budget_service.create_budget('Food & Dining', 300, month='2024-03')
        budget_service.create_budget('Transportation', 100, month='2024-03')
        self.add_expense(store, 40, 'Food & Dining', '2024-03-02')
        self.add_expense(store, 60, 'Shopping', '2024-03-05')

        status = budget_service.get_total_budget_status(now=NOW)

        assert status.total_budget == 400
        assert status.spent == 100
        assert status.percentage_used == 25
        assert status.level == 'ok'

    def test_update_total_budget(self, budget_service, record_store):
        """Test rescaling every budget to a new total."""
        budget_service.create_budget('Food & Dining', 300, month='2024-03')
        budget_service.create_budget('Transportation', 100, month='2024-03')

        updated = budget_service.update_total_budget(800)

        limits = {budget.category: budget.monthly_limit for budget in updated}
        assert limits == {'Food & Dining': pytest.approx(600), 'Transportation': pytest.approx(200)}
        persisted = {budget.category: budget.monthly_limit for budget in record_store.list_budgets()}
        assert persisted == limits

    def test_update_total_budget_saves_in_one_write(self, budget_service, record_store):
        """Test that a storage accepting only one more write still gets every limit."""
        budget_service.create_budget('Food & Dining', 300, month='2024-03')
        budget_service.create_budget('Transportation', 100, month='2024-03')
        write = record_store.storage.set_item
        calls = []

        def write_once(key, value):
            calls.append(key)
            if len(calls) > 1:
                raise StorageError("disk full")
            write(key, value)

        record_store.storage.set_item = write_once

        budget_service.update_total_budget(800)

        assert calls == ['budgets']
        persisted = {budget.category: budget.monthly_limit for budget in record_store.list_budgets()}
        assert persisted == {'Food & Dining': pytest.approx(600), 'Transportation': pytest.approx(200)}

    def test_update_total_budget_is_all_or_nothing(self, budget_service, record_store, store):
        """Test that a failed save leaves every limit as it was."""
        budget_service.create_budget('Food & Dining', 300, month='2024-03')
        budget_service.create_budget('Transportation', 100, month='2024-03')
        record_store.storage.set_item = Mock(side_effect=StorageError("disk full"))

        with pytest.raises(StorageError):
            budget_service.update_total_budget(800)

        expected = {'Food & Dining': 300, 'Transportation': 100}
        assert {b.category: b.monthly_limit for b in record_store.list_budgets()} == expected
        assert {b.category: b.monthly_limit for b in store.budgets} == expected

    def test_update_total_budget_without_budgets(self, budget_service, on_warning):
        """Test that rescaling nothing reports and changes nothing."""
        assert budget_service.update_total_budget(500) == []
        assert on_warning.call_args[0][0] == 'budget_rescale_skipped'

    def test_update_total_budget_invalid(self, budget_service):
        """Test that the new total must be a positive amount."""
        with pytest.raises(ValidationError):
            budget_service.update_total_budget(-100)

    def test_available_categories(self, budget_service):
        """Test that budgeted categories are no longer suggested."""
        budget_service.create_budget('Groceries', 400, month='2024-03')
        budget_service.create_budget('Travel', 400, month='2024-04')

        available = budget_service.available_categories('2024-03')

        assert 'Groceries' not in available
        assert 'Travel' in available
        assert len(available) == len(EXPENSE_CATEGORIES) - 1

    def test_check_budget_alerts(self, budget_service, store):
        """Test that only budgets past the warning threshold alert."""
        month = current_month()
        today = datetime.now()
        budget_service.create_budget('Food & Dining', 100, month=month)
        budget_service.create_budget('Transportation', 100, month=month)
        budget_service.create_budget('Shopping', 100, month=month)
        self.add_expense(store, 85, 'Food & Dining', today)
        self.add_expense(store, 10, 'Transportation', today)
        self.add_expense(store, 120, 'Shopping', today)

        alerts = budget_service.check_budget_alerts()

        assert {status.category: status.level for status in alerts} == {
            'Food & Dining': 'warning',
            'Shopping': 'over'
        }


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
