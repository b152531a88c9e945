"""Budget data models."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime

from shared.validators import MAX_AMOUNT, MONTH_PATTERN, parse_datetime

STATUS_OK = 'ok'
STATUS_WARNING = 'warning'
STATUS_OVER = 'over'


def _check_month(value):
    if not isinstance(value, str) or not MONTH_PATTERN.match(value):
        raise ValueError("month must use the YYYY-MM format")
    return value


class BudgetCreate(BaseModel):
    """Fields supplied when creating a budget."""

    model_config = ConfigDict(extra='forbid', populate_by_name=True, str_strip_whitespace=True)

    category: str = Field(..., min_length=1)
    monthly_limit: float = Field(..., gt=0, le=float(MAX_AMOUNT), alias='monthlyLimit')
    month: str = Field(..., description="Budget month (YYYY-MM)")

    @field_validator('month')
    @classmethod
    def validate_month(cls, value):
        return _check_month(value)


class BudgetUpdate(BaseModel):
    """Budget update request model."""

    model_config = ConfigDict(extra='forbid', populate_by_name=True, str_strip_whitespace=True)

    category: Optional[str] = Field(None, min_length=1)
    monthly_limit: Optional[float] = Field(None, gt=0, le=float(MAX_AMOUNT), alias='monthlyLimit')
    month: Optional[str] = None

    @field_validator('month')
    @classmethod
    def validate_optional_month(cls, value):
        if value is None:
            return None
        return _check_month(value)


class Budget(BaseModel):
    """Monthly spending cap for one category, persisted with camelCase keys."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    category: str
    monthly_limit: float = Field(..., alias='monthlyLimit')
    month: str
    created_at: datetime = Field(..., alias='createdAt')
    updated_at: datetime = Field(..., alias='updatedAt')

    @field_validator('month')
    @classmethod
    def validate_month(cls, value):
        return _check_month(value)

    @field_validator('created_at', 'updated_at', mode='before')
    @classmethod
    def parse_datetimes(cls, value):
        return parse_datetime(value)


class BudgetStatus(BaseModel):
    """Spending against one budget. Derived on every read, never stored."""

    budget_id: str
    category: str
    month: str
    monthly_limit: float
    spent: float
    remaining: float
    percentage_used: float
    is_over_budget: bool
    level: str


class TotalBudgetStatus(BaseModel):
    """Spending against the sum of all budgets for the current month."""

    total_budget: float
    spent: float
    remaining: float
    percentage_used: float
    level: str


class BudgetAdjustment(BaseModel):
    """New limit for one budget after a proportional rescale."""

    id: str
    new_monthly_limit: float
