#!/usr/bin/env python3
"""
Seed data script for testing the expense tracker application.
Creates sample expenses and budgets in the configured storage backend.
"""

import os
import sys
from datetime import datetime, timedelta
import random

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from shared.container import create_app
from shared.validators import EXPENSE_CATEGORIES
from reports.aggregation import current_month


NOTES = {
    'Food & Dining': ['Lunch with team', 'Coffee', 'Pizza night', 'Brunch'],
    'Groceries': ['Weekly groceries', 'Farmers market', 'Snacks'],
    'Transportation': ['Bus pass', 'Taxi home', 'Fuel', 'Parking'],
    'Shopping': ['New shoes', 'Gift for a friend', 'Books'],
    'Entertainment': ['Movie tickets', 'Concert', 'Streaming subscription'],
    'Bills & Utilities': ['Electricity', 'Internet', 'Phone bill'],
    'Healthcare': ['Pharmacy', 'Dentist'],
    'Travel': ['Hotel', 'Train tickets'],
    'Education': ['Online course', 'Workshop'],
    'Other': ['Miscellaneous']
}


def seed_expenses(app, num_expenses=50):
    """Seed sample expenses."""
    print(f"Creating {num_expenses} sample expenses...")

    expenses = []
    for _ in range(num_expenses):
        # Random date within last 60 days
        days_ago = random.randint(0, 60)
        date = datetime.now() - timedelta(days=days_ago)

        category = random.choice(EXPENSE_CATEGORIES)
        notes = random.choice(NOTES.get(category, NOTES['Other']))

        # Random amount
        amount = round(random.uniform(5.0, 200.0), 2)

        expenses.append(app.expenses.add_expense(amount, category, date, notes=notes))

    print(f"Created {len(expenses)} expenses")
    return expenses


def seed_budgets(app):
    """Seed sample budgets for the current month."""
    budgets_data = [
        {'category': 'Food & Dining', 'monthly_limit': 500},
        {'category': 'Groceries', 'monthly_limit': 400},
        {'category': 'Transportation', 'monthly_limit': 200},
        {'category': 'Shopping', 'monthly_limit': 300},
        {'category': 'Entertainment', 'monthly_limit': 150}
    ]

    month = current_month()
    existing = {budget.category for budget in app.budgets.list_budgets(month)}

    print(f"Creating up to {len(budgets_data)} sample budgets for {month}...")

    budgets = []
    for budget_data in budgets_data:
        if budget_data['category'] in existing:
            continue
        budgets.append(app.budgets.create_budget(month=month, **budget_data))

    print(f"Created {len(budgets)} budgets")
    return budgets


def main():
    """Main function."""
    print("=" * 50)
    print("Expense Tracker - Seed Data Script")
    print("=" * 50)

    app = create_app()
    print(f"\nStorage backend: {app.settings.storage_backend}")

    # Get number of expenses
    num_expenses = input("Enter number of expenses to create (default: 50): ").strip()
    num_expenses = int(num_expenses) if num_expenses else 50

    # Seed expenses
    print("\nSeeding expenses...")
    expenses = seed_expenses(app, num_expenses)

    # Seed budgets
    print("\nSeeding budgets...")
    budgets = seed_budgets(app)

    print("\n" + "=" * 50)
    print("Data seeding complete!")
    print("=" * 50)
    print("\nCreated:")
    print(f"  - {len(expenses)} expenses")
    print(f"  - {len(budgets)} budgets")


if __name__ == '__main__':
    main()
