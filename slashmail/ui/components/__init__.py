"""Reusable UI components for terminal output."""

from .prompts import ConfirmPrompt, PasswordPrompt
from .tables import MessageTable, QuotaTable, StatusTable, format_size

__all__ = [
    "ConfirmPrompt",
    "PasswordPrompt",
    "MessageTable",
    "QuotaTable",
    "StatusTable",
    "format_size",
]
