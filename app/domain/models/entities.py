"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from app.utils.time import to_utc_iso_db


class DecisionAction(str, Enum):
    """Action an AI decision may recommend"""
    BUY = "BUY"
    HOLD = "HOLD"


class CycleAction(str, Enum):
    """Action recorded in the audit log"""
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class CycleStatus(str, Enum):
    """How a decision cycle ended"""
    COMPLETED = "COMPLETED"
    SKIPPED_DUST = "SKIPPED_DUST"
    ABORTED = "ABORTED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class Wallet:
    """Custodial agent wallet - singleton per process"""
    address: str
    provider_wallet_id: str

    def __post_init__(self):
        if not self.address:
            raise ValueError("Wallet address cannot be empty")
        if not self.provider_wallet_id:
            raise ValueError("Provider wallet id cannot be empty")


@dataclass(frozen=True)
class YieldQuote:
    """Market yield snapshot - produced fresh each cycle"""
    apy: float
    source: str


@dataclass(frozen=True)
class Decision:
    """Normalized AI decision"""
    action: DecisionAction
    reason: str

    @property
    def is_buy(self) -> bool:
        return self.action == DecisionAction.BUY


@dataclass(frozen=True)
class CycleRecord:
    """Audit log entry - append-only, one per logged cycle"""
    timestamp: datetime
    action: CycleAction
    amount: str
    reason: str
    sentiment_score: float
    apy_snapshot: float
    tx_hash: Optional[str] = None

    def __post_init__(self):
        if self.tx_hash is not None and self.action != CycleAction.BUY:
            raise ValueError("tx_hash is only allowed on BUY records")

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": to_utc_iso_db(self.timestamp),
            "action": self.action.value,
            "amount": self.amount,
            "reason": self.reason,
            "sentimentScore": self.sentiment_score,
            "apySnapshot": self.apy_snapshot,
            "txHash": self.tx_hash,
        }


@dataclass(frozen=True)
class CycleOutcome:
    """Result of one run_once() invocation"""
    status: CycleStatus
    record: Optional[CycleRecord] = None
    detail: str = ""
    wallet_address: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "detail": self.detail,
            "walletAddress": self.wallet_address,
            "record": self.record.to_dict() if self.record else None,
        }


@dataclass(frozen=True)
class Profitability:
    """Daily-yield profitability snapshot"""
    daily_yield: Decimal
    gas_cost: Decimal
    is_profitable: bool
