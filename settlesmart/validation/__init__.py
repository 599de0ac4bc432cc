"""Expense validation package."""

from settlesmart.validation.validator import ExpenseValidator

__all__ = ["ExpenseValidator"]
