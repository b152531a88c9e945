"""Durable CRUD for the expense and budget collections."""

import json
import uuid
from typing import Any, Dict, List, Optional, Type, TypeVar, Union
from datetime import datetime
import logging
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from shared.storage import KeyValueStorage
from shared.observability import WarningHook, log_warning
from shared.exceptions import NotFoundError, StorageError, ValidationError
from expenses.models import Expense, ExpenseCreate, ExpenseUpdate
from budgets.models import Budget, BudgetCreate, BudgetUpdate

logger = logging.getLogger(__name__)

EXPENSES_KEY = 'expenses'
BUDGETS_KEY = 'budgets'

RecordT = TypeVar('RecordT', Expense, Budget)


def serialize_records(records: List[BaseModel]) -> str:
    """Serialize a collection to its persisted JSON form."""
    return json.dumps([record.model_dump(mode='json', by_alias=True) for record in records])


def deserialize_records(
    payload: str,
    model: Type[RecordT],
    on_warning: WarningHook = log_warning
) -> List[RecordT]:
    """
    Parse a persisted collection.

    Records that fail validation are dropped and reported.

    Raises:
        ValueError: If the payload is not a JSON array
    """
    data = json.loads(payload)
    if not isinstance(data, list):
        raise ValueError(f"expected a JSON array, got {type(data).__name__}")

    records = []
    for index, item in enumerate(data):
        try:
            records.append(model.model_validate(item))
        except PydanticValidationError as e:
            on_warning('malformed_record_dropped', {
                'model': model.__name__,
                'index': index,
                'errors': e.error_count()
            })
    return records


class RecordStore:
    """
    Persists each collection as a single blob in a key-value storage.

    Every mutation reads the whole collection, changes it and writes the
    whole collection back.
    """

    def __init__(self, storage: KeyValueStorage, on_warning: WarningHook = log_warning):
        """
        Initialize record store.

        Args:
            storage: Key-value storage backend
            on_warning: Hook receiving non-fatal data-loss events
        """
        self.storage = storage
        self.on_warning = on_warning

    # Expenses

    def list_expenses(self) -> List[Expense]:
        """
        List all expenses.

        Returns an empty list when the storage read fails or the payload is
        malformed.
        """
        return self._list(EXPENSES_KEY, Expense)

    def create_expense(self, data: Union[ExpenseCreate, Dict[str, Any]]) -> Expense:
        """
        Store a new expense.

        Args:
            data: Expense fields without an identifier

        Returns:
            The stored expense

        Raises:
            ValidationError: If the payload is malformed
            StorageError: If the collection cannot be read or written
        """
        fields = _parse_payload(ExpenseCreate, data).model_dump()
        return self._create(EXPENSES_KEY, Expense, fields)

    def add_expense(self, data: Union[ExpenseCreate, Dict[str, Any]]) -> str:
        """Store a new expense and return its identifier."""
        return self.create_expense(data).id

    def update_expense(
        self,
        expense_id: str,
        updates: Union[ExpenseUpdate, Dict[str, Any]]
    ) -> Expense:
        """
        Merge partial fields into an expense.

        Raises:
            NotFoundError: If expense not found
            ValidationError: If the updates are malformed
            StorageError: If the collection cannot be read or written
        """
        changes = _parse_payload(ExpenseUpdate, updates).model_dump(exclude_unset=True)
        return self._update(EXPENSES_KEY, Expense, expense_id, changes, "Expense not found")

    def delete_expense(self, expense_id: str) -> None:
        """Delete an expense. Deleting an absent identifier is a no-op."""
        self._delete(EXPENSES_KEY, Expense, expense_id)

    # Budgets

    def list_budgets(self) -> List[Budget]:
        """
        List all budgets.

        Returns an empty list when the storage read fails or the payload is
        malformed.
        """
        return self._list(BUDGETS_KEY, Budget)

    def create_budget(self, data: Union[BudgetCreate, Dict[str, Any]]) -> Budget:
        """Store a new budget and return it."""
        fields = _parse_payload(BudgetCreate, data).model_dump()
        return self._create(BUDGETS_KEY, Budget, fields)

    def add_budget(self, data: Union[BudgetCreate, Dict[str, Any]]) -> str:
        """Store a new budget and return its identifier."""
        return self.create_budget(data).id

    def update_budget(
        self,
        budget_id: str,
        updates: Union[BudgetUpdate, Dict[str, Any]]
    ) -> Budget:
        """Merge partial fields into a budget."""
        changes = _parse_payload(BudgetUpdate, updates).model_dump(exclude_unset=True)
        return self._update(BUDGETS_KEY, Budget, budget_id, changes, "Budget not found")

    def update_budgets(
        self,
        changes: Dict[str, Union[BudgetUpdate, Dict[str, Any]]]
    ) -> List[Budget]:
        """
        Merge partial fields into several budgets with a single write.

        Either every budget is updated or none is.

        Args:
            changes: Updates keyed by budget ID

        Returns:
            The updated budgets, in the order of ``changes``

        Raises:
            NotFoundError: If any budget is not found
            ValidationError: If any of the updates is malformed
            StorageError: If the collection cannot be read or written
        """
        parsed = {
            budget_id: _parse_payload(BudgetUpdate, updates).model_dump(exclude_unset=True)
            for budget_id, updates in changes.items()
        }
        if not parsed:
            return []

        records = self._read(BUDGETS_KEY, Budget)
        updated = []
        for budget_id, fields in parsed.items():
            index = _find_index(records, budget_id)
            if index is None:
                raise NotFoundError("Budget not found")
            records[index] = _merge(Budget, records[index], fields)
            updated.append(records[index])

        self._write(BUDGETS_KEY, records)

        logger.info(f"Updated {len(updated)} budgets")
        return updated

    def delete_budget(self, budget_id: str) -> None:
        """Delete a budget. Deleting an absent identifier is a no-op."""
        self._delete(BUDGETS_KEY, Budget, budget_id)

    def clear_all(self) -> None:
        """
        Remove both collections in one storage call.

        Raises:
            StorageError: If the removal fails
        """
        self.storage.remove_items([EXPENSES_KEY, BUDGETS_KEY])
        logger.info("Cleared all expenses and budgets")

    # Internals

    def _list(self, key: str, model: Type[RecordT]) -> List[RecordT]:
        try:
            return self._read(key, model)
        except StorageError as e:
            self.on_warning('storage_read_failed', {'key': key, 'error': e.message})
            return []

    def _read(self, key: str, model: Type[RecordT]) -> List[RecordT]:
        payload = self.storage.get_item(key)
        if not payload:
            return []

        try:
            return deserialize_records(payload, model, self.on_warning)
        except ValueError as e:
            # JSONDecodeError is a ValueError
            self.on_warning('malformed_payload', {'key': key, 'error': str(e)})
            return []

    def _write(self, key: str, records: List[RecordT]) -> None:
        try:
            payload = serialize_records(records)
        except (TypeError, ValueError) as e:
            logger.error(f"Error serializing {key}: {e}")
            raise StorageError(f"Failed to serialize {key}: {str(e)}")

        self.storage.set_item(key, payload)

    def _create(self, key: str, model: Type[RecordT], fields: Dict[str, Any]) -> RecordT:
        records = self._read(key, model)

        now = datetime.now()
        record = model.model_validate({
            **fields,
            'id': _new_id(),
            'created_at': now,
            'updated_at': now
        })

        records.append(record)
        self._write(key, records)

        logger.info(f"Created {model.__name__.lower()} {record.id}")
        return record

    def _update(
        self,
        key: str,
        model: Type[RecordT],
        record_id: str,
        changes: Dict[str, Any],
        missing_message: str
    ) -> RecordT:
        records = self._read(key, model)
        index = _find_index(records, record_id)

        if index is None:
            raise NotFoundError(missing_message)

        records[index] = _merge(model, records[index], changes)
        self._write(key, records)

        logger.info(f"Updated {model.__name__.lower()} {record_id}")
        return records[index]

    def _delete(self, key: str, model: Type[RecordT], record_id: str) -> None:
        records = self._read(key, model)
        remaining = [record for record in records if record.id != record_id]

        if len(remaining) == len(records):
            logger.debug(f"{model.__name__} {record_id} not present, nothing to delete")
            return

        self._write(key, remaining)
        logger.info(f"Deleted {model.__name__.lower()} {record_id}")


def _new_id() -> str:
    return str(uuid.uuid4())


def _merge(model: Type[RecordT], record: RecordT, changes: Dict[str, Any]) -> RecordT:
    merged = {
        **record.model_dump(),
        **changes,
        'updated_at': datetime.now()
    }
    try:
        return model.model_validate(merged)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {model.__name__} update: {e.error_count()} error(s)")


def _find_index(records: List[RecordT], record_id: str) -> Optional[int]:
    for index, record in enumerate(records):
        if record.id == record_id:
            return index
    return None


def _parse_payload(model: Type[BaseModel], data: Union[BaseModel, Dict[str, Any]]) -> BaseModel:
    """Validate a create/update payload, mapping pydantic errors to ValidationError."""
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)

    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        fields = ', '.join(
            '.'.join(str(part) for part in error['loc']) or 'payload'
            for error in e.errors()
        )
        raise ValidationError(f"Invalid {model.__name__} fields: {fields}")
