"""Expense data models."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime

from shared.validators import MAX_AMOUNT, parse_datetime


class ExpenseCreate(BaseModel):
    """Fields supplied when recording a new expense."""

    model_config = ConfigDict(extra='forbid', str_strip_whitespace=True)

    amount: float = Field(..., gt=0, le=float(MAX_AMOUNT), description="Expense amount")
    category: str = Field(..., min_length=1, description="Expense category")
    notes: Optional[str] = Field(None, description="Optional notes")
    date: datetime = Field(..., description="Date of the transaction")

    @field_validator('date', mode='before')
    @classmethod
    def parse_date(cls, value):
        return parse_datetime(value)


class ExpenseUpdate(BaseModel):
    """Expense update request model."""

    model_config = ConfigDict(extra='forbid', str_strip_whitespace=True)

    amount: Optional[float] = Field(None, gt=0, le=float(MAX_AMOUNT), description="Expense amount")
    category: Optional[str] = Field(None, min_length=1, description="Expense category")
    notes: Optional[str] = Field(None, description="Optional notes")
    date: Optional[datetime] = Field(None, description="Date of the transaction")

    @field_validator('date', mode='before')
    @classmethod
    def parse_date(cls, value):
        if value is None:
            return None
        return parse_datetime(value)


class Expense(BaseModel):
    """Expense model, persisted with camelCase keys."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    amount: float
    category: str
    notes: Optional[str] = None
    date: datetime
    created_at: datetime = Field(..., alias='createdAt')
    updated_at: datetime = Field(..., alias='updatedAt')

    @field_validator('date', 'created_at', 'updated_at', mode='before')
    @classmethod
    def parse_datetimes(cls, value):
        return parse_datetime(value)
