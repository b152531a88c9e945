"""Unit tests for the cached store context."""

import pytest
from unittest.mock import Mock
from datetime import datetime
import sys
import os

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from shared.storage import FileStorage, MemoryStorage
from shared.exceptions import NotFoundError, StorageError
from expenses.models import Expense
from store.record_store import RecordStore
from store.state import ExpenseStore


def make_expense(expense_id, amount=10.0, category='Groceries'):
    stamp = datetime(2024, 3, 15, 12, 0)
    return Expense(
        id=expense_id,
        amount=amount,
        category=category,
        date=stamp,
        created_at=stamp,
        updated_at=stamp
    )


class TestExpenseStore:
    """Test cases for ExpenseStore."""

    @pytest.fixture
    def record_store(self):
        return RecordStore(MemoryStorage())

    @pytest.fixture
    def store(self, record_store):
        return ExpenseStore(record_store)

    @pytest.fixture
    def groceries(self):
        return {'amount': 25.0, 'category': 'Groceries', 'date': '2024-03-15'}

    def test_add_expense_updates_cache_and_storage(self, store, record_store, groceries):
        """Test that an add is visible in both the cache and storage."""
        expense = store.add_expense(groceries)

        assert store.expenses == [expense]
        assert record_store.list_expenses() == [expense]

    def test_load_reads_persisted_collections(self, record_store, groceries):
        """Test that a fresh store loads what an earlier one wrote."""
        expense_id = record_store.add_expense(groceries)
        budget_id = record_store.add_budget({'category': 'Groceries', 'monthly_limit': 300, 'month': '2024-03'})

        store = ExpenseStore(record_store)
        store.load()

        assert [e.id for e in store.expenses] == [expense_id]
        assert [b.id for b in store.budgets] == [budget_id]
        assert store.is_loading is False

    def test_snapshot_is_a_copy(self, store, groceries):
        """Test that callers cannot mutate the cache through a snapshot."""
        store.add_expense(groceries)

        snapshot = store.expenses
        snapshot.clear()

        assert len(store.expenses) == 1

    def test_update_expense_replaces_cached_record(self, store, groceries):
        """Test that updates are mirrored into the cache."""
        expense = store.add_expense(groceries)

        updated = store.update_expense(expense.id, {'amount': 30.0})

        assert store.expenses == [updated]
        assert store.get_expense(expense.id).amount == 30.0

    def test_delete_expense(self, store, groceries):
        """Test that deletes are mirrored into the cache."""
        expense = store.add_expense(groceries)

        store.delete_expense(expense.id)

        assert store.expenses == []
        with pytest.raises(NotFoundError):
            store.get_expense(expense.id)

    def test_delete_unknown_expense(self, store, groceries):
        """Test that deleting an unknown identifier changes nothing."""
        store.add_expense(groceries)

        store.delete_expense('nonexistent')

        assert len(store.expenses) == 1

    def test_clear_all(self, store, record_store, groceries):
        """Test clearing both collections."""
        store.add_expense(groceries)
        store.add_budget({'category': 'Groceries', 'monthly_limit': 300, 'month': '2024-03'})

        store.clear_all()

        assert store.expenses == []
        assert store.budgets == []
        assert record_store.list_expenses() == []

    def test_failed_clear_on_disk_keeps_cache_in_step(self, tmp_path, groceries):
        """Test that the cache matches the files after a clear fails part way."""
        record_store = RecordStore(FileStorage(tmp_path))
        store = ExpenseStore(record_store)
        store.add_expense(groceries)
        store.add_budget({'category': 'Groceries', 'monthly_limit': 300, 'month': '2024-03'})
        (tmp_path / 'budgets.json').unlink()
        (tmp_path / 'budgets.json').mkdir()
        (tmp_path / 'budgets.json' / 'nested').write_text('x')

        with pytest.raises(StorageError):
            store.clear_all()

        assert [e.id for e in store.expenses] == [e.id for e in record_store.list_expenses()]
        assert len(store.expenses) == 1
        assert store.budgets == record_store.list_budgets()

    def test_get_budget_not_found(self, store):
        """Test looking up an unknown budget."""
        with pytest.raises(NotFoundError, match="Budget not found"):
            store.get_budget('nonexistent')


class TestExpenseStoreFailures:
    """Test cases for persistence failures."""

    @pytest.fixture
    def record_store(self):
        record_store = Mock()
        record_store.list_expenses.return_value = [make_expense('exp1')]
        record_store.list_budgets.return_value = []
        return record_store

    @pytest.fixture
    def store(self, record_store):
        store = ExpenseStore(record_store)
        store.load()
        return store

    def test_failed_add_leaves_cache_unchanged(self, store, record_store):
        """Test that a failed write is not reflected in the cache."""
        record_store.create_expense.side_effect = StorageError("disk full")

        with pytest.raises(StorageError):
            store.add_expense({'amount': 5, 'category': 'Other', 'date': '2024-03-01'})

        assert [e.id for e in store.expenses] == ['exp1']

    def test_failed_update_leaves_cache_unchanged(self, store, record_store):
        """Test that a failed update keeps the previous record."""
        record_store.update_expense.side_effect = StorageError("disk full")

        with pytest.raises(StorageError):
            store.update_expense('exp1', {'amount': 99})

        assert store.get_expense('exp1').amount == 10.0

    def test_failed_delete_leaves_cache_unchanged(self, store, record_store):
        """Test that a failed delete keeps the record."""
        record_store.delete_expense.side_effect = StorageError("disk full")

        with pytest.raises(StorageError):
            store.delete_expense('exp1')

        assert [e.id for e in store.expenses] == ['exp1']

    def test_failed_clear_leaves_cache_unchanged(self, store, record_store):
        """Test that a failed clear keeps everything."""
        record_store.clear_all.side_effect = StorageError("disk full")

        with pytest.raises(StorageError):
            store.clear_all()

        assert len(store.expenses) == 1

    def test_failed_clear_reloads_from_storage(self, store, record_store):
        """Test that the cache is refreshed from storage when a clear fails."""
        record_store.clear_all.side_effect = StorageError("partly removed")
        record_store.list_expenses.return_value = []

        with pytest.raises(StorageError):
            store.clear_all()

        assert store.expenses == []
        assert record_store.list_budgets.call_count == 2

    def test_load_resets_loading_flag_on_error(self, record_store):
        """Test that the loading flag is cleared even if loading fails."""
        record_store.list_expenses.side_effect = RuntimeError("boom")
        store = ExpenseStore(record_store)

        with pytest.raises(RuntimeError):
            store.load()

        assert store.is_loading is False


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
