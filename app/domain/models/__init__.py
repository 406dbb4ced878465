"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Enums
    CycleAction,
    CycleStatus,
    DecisionAction,

    # Entities
    CycleOutcome,
    CycleRecord,
    Decision,
    Profitability,
    Wallet,
    YieldQuote,
)

__all__ = [
    # Enums
    "CycleAction",
    "CycleStatus",
    "DecisionAction",

    # Entities
    "CycleOutcome",
    "CycleRecord",
    "Decision",
    "Profitability",
    "Wallet",
    "YieldQuote",
]
