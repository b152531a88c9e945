"""Application root: builds every collaborator once with explicit dependencies."""

import logging
from typing import Optional

from shared.config import Settings, configure_logging
from shared.observability import WarningHook, log_warning
from shared.storage import KeyValueStorage, create_storage
from store.record_store import RecordStore
from store.state import ExpenseStore
from expenses.service import ExpenseService
from budgets.service import BudgetService
from reports.generator import ReportGenerator

logger = logging.getLogger(__name__)


class ExpenseTrackerApp:
    """Owns the store context and the services built on top of it."""

    def __init__(
        self,
        settings: Settings,
        storage: KeyValueStorage,
        on_warning: WarningHook = log_warning
    ):
        self.settings = settings
        self.storage = storage
        self.record_store = RecordStore(storage, on_warning=on_warning)
        self.store = ExpenseStore(self.record_store)
        self.expenses = ExpenseService(self.store)
        self.budgets = BudgetService(
            self.store,
            warning_threshold=settings.budget_warning_threshold,
            on_warning=on_warning
        )
        self.reports = ReportGenerator(
            self.store,
            currency=settings.default_currency,
            export_dir=settings.resolved_export_dir
        )


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[KeyValueStorage] = None,
    on_warning: WarningHook = log_warning
) -> ExpenseTrackerApp:
    """
    Build the application and load the cached collections.

    Args:
        settings: Settings (default: read from the environment)
        storage: Storage backend (default: the one named by the settings)
        on_warning: Hook receiving non-fatal data-loss events

    Returns:
        Ready-to-use application
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = ExpenseTrackerApp(settings, storage or create_storage(settings), on_warning)
    app.store.load()

    logger.info(
        f"Loaded {len(app.store.expenses)} expenses and {len(app.store.budgets)} budgets "
        f"from {settings.storage_backend} storage"
    )
    return app
