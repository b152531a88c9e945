"""Report generation utilities."""

import re
from typing import Any, Dict, List, Optional, Union
from datetime import datetime
from pathlib import Path
from collections import defaultdict
import logging
from io import StringIO
from pydantic import BaseModel

from shared.exceptions import StorageError
from shared.validators import validate_date_range
from expenses.models import Expense
from store.state import ExpenseStore
from reports.aggregation import (
    DateRange,
    Period,
    expense_datetime,
    filter_by_period,
    period_range,
    summarize_expenses,
)
from reports.formatting import Currency, format_amount, get_currency, round_amount

logger = logging.getLogger(__name__)

CSV_HEADER = ['Date', 'Category', 'Amount', 'Notes']
BYTE_ORDER_MARK = '\ufeff'

# Leading emoji, pictographs, symbols and separators before a category name
LEADING_SYMBOLS = re.compile(r'^\W+')


class CsvExport(BaseModel):
    """A rendered CSV export."""

    filename: str
    content: str
    expense_count: int
    total_amount: float

    @property
    def is_empty(self) -> bool:
        """True when no expense matched the export range."""
        return self.expense_count == 0

    def encode(self) -> bytes:
        return self.content.encode('utf-8')


def strip_emoji(category: str) -> str:
    """Remove leading emoji and pictographic glyphs from a category name."""
    return LEADING_SYMBOLS.sub('', category).strip()


def format_csv_number(value: float) -> str:
    """Render a number without a trailing '.0' for whole values."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def quote_csv_cell(value: str) -> str:
    """Quote a cell that holds a separator, a quote or a line break."""
    if any(char in value for char in ',"\r\n'):
        return '"' + value.replace('"', '""') + '"'
    return value


def _csv_row(expense: Expense) -> str:
    moment = expense_datetime(expense)
    date_str = moment.strftime('%Y-%m-%d') if moment else ''
    notes = (expense.notes or '').replace(',', ';').replace('"', '""')
    category = quote_csv_cell(strip_emoji(expense.category))
    return f'{date_str},{category},{format_csv_number(expense.amount)},"{notes}"'


class ReportGenerator:
    """Service for generating expense summaries and CSV exports."""

    def __init__(
        self,
        store: ExpenseStore,
        currency: Union[Currency, str] = 'USD',
        export_dir: Optional[Path] = None
    ):
        """
        Initialize report generator.

        Args:
            store: Store context whose cached expenses are reported on
            currency: Currency (or code) used for formatted amounts
            export_dir: Default directory for saved CSV files
        """
        self.store = store
        self.currency = currency if isinstance(currency, Currency) else get_currency(currency)
        self.export_dir = Path(export_dir) if export_dir else None

    def generate_period_report(
        self,
        period: Period = 'month',
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Generate a spending summary for a period.

        Args:
            period: 'today', 'week', 'month' or an explicit date range
            now: Reference time (default: current local time)

        Returns:
            Report data, with amounts rounded for display
        """
        date_range = period_range(period, now)
        expenses = filter_by_period(self.store.expenses, date_range)
        summary = summarize_expenses(expenses)

        by_date = defaultdict(float)
        for expense in expenses:
            by_date[expense_datetime(expense).strftime('%Y-%m-%d')] += expense.amount

        date_range_days = (date_range.end.date() - date_range.start.date()).days + 1
        total_amount = summary['total_amount']
        average_daily = total_amount / date_range_days if date_range_days > 0 else 0.0

        return {
            'report_type': period if isinstance(period, str) else 'custom',
            'start_date': date_range.start.strftime('%Y-%m-%d'),
            'end_date': date_range.end.strftime('%Y-%m-%d'),
            'generated_at': datetime.now().isoformat(),
            'currency': self.currency.code,
            'summary': {
                'total_amount': round_amount(total_amount),
                'formatted_total': format_amount(total_amount, self.currency),
                'expense_count': summary['expense_count'],
                'average_expense': round_amount(summary['average_expense']),
                'average_daily': round_amount(average_daily),
                'date_range_days': date_range_days
            },
            'by_category': {
                category: {
                    'amount': round_amount(data['amount']),
                    'count': data['count'],
                    'percentage': round_amount(data['percentage'])
                }
                for category, data in sorted(
                    summary['by_category'].items(),
                    key=lambda item: item[1]['amount'],
                    reverse=True
                )
            },
            'daily_spending': {
                day: round_amount(amount)
                for day, amount in sorted(by_date.items())
            }
        }

    def export_to_csv(
        self,
        start_date: Any,
        end_date: Any,
        expenses: Optional[List[Expense]] = None
    ) -> CsvExport:
        """
        Export expenses in an inclusive date range to CSV.

        Args:
            start_date: Range start (date, datetime or YYYY-MM-DD)
            end_date: Range end; a bare date covers the whole day
            expenses: Expenses to export (default: the store's expenses)

        Returns:
            CsvExport with UTF-8 BOM, header, one row per expense and a totals row

        Raises:
            ValidationError: If the date range is malformed
        """
        start, end = validate_date_range(start_date, end_date)
        source = self.store.expenses if expenses is None else expenses
        selected = filter_by_period(source, DateRange(start, end))

        total = sum(expense.amount for expense in selected)

        output = StringIO()
        output.write(BYTE_ORDER_MARK)
        output.write(','.join(CSV_HEADER) + '\n')
        rows = [_csv_row(expense) for expense in selected]
        rows.append(f",,{format_csv_number(total)},")
        output.write('\n'.join(rows))

        csv_content = output.getvalue()
        output.close()

        if not selected:
            logger.info("No expenses found for selected dates.")

        return CsvExport(
            filename=f"expenses_{start.strftime('%Y-%m-%d')}_{end.strftime('%Y-%m-%d')}.csv",
            content=csv_content,
            expense_count=len(selected),
            total_amount=total
        )

    def save_csv(self, export: CsvExport, directory: Optional[Path] = None) -> Path:
        """
        Write an export to disk.

        Args:
            export: Rendered export
            directory: Target directory (default: the configured export directory)

        Returns:
            Path of the written file

        Raises:
            StorageError: If the file cannot be written
        """
        target_dir = Path(directory) if directory else self.export_dir
        if target_dir is None:
            raise StorageError("No export directory configured")

        path = target_dir / export.filename
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(export.encode())
        except OSError as e:
            logger.error(f"Error exporting CSV: {e}")
            raise StorageError(f"Failed to save CSV: {str(e)}")

        logger.info(f"CSV file saved to: {path}")
        return path
