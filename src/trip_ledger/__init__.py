"""trip-ledger - Split group trip expenses and suggest who pays whom."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .db import Database
from .ledger.reconciler import (
    apply_settlements,
    calculate_user_balances,
    convert_expense_to_base_currency,
    optimize_settlements,
)
from .ledger.service import SettlementService
from .ledger.shares import build_expense_participants, resolve_payer
from .models import (
    Expense,
    ExpenseInput,
    ExpenseParticipantShare,
    ParsedExpense,
    Settlement,
    SettlementSummary,
    Trip,
    TripParticipant,
    UserBalance,
)
from .parser.expense import parse_expense

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "apply_settlements",
    "calculate_user_balances",
    "convert_expense_to_base_currency",
    "optimize_settlements",
    "SettlementService",
    "build_expense_participants",
    "resolve_payer",
    "Expense",
    "ExpenseInput",
    "ExpenseParticipantShare",
    "ParsedExpense",
    "Settlement",
    "SettlementSummary",
    "Trip",
    "TripParticipant",
    "UserBalance",
    "parse_expense",
]
