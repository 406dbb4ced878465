"""
CYCLE ORCHESTRATOR
One full treasury decision cycle

SEQUENCE:
1. Provision wallet        (ProvisioningError -> abort, no record)
2. Read balance            (ReadError -> balance 0)
3. Dust check              (below threshold -> skip, no record)
4. Fetch market yield      (MarketDataError -> abort at cycle boundary)
5. Compute profitability
6. Ask decision engine     (any failure -> HOLD with diagnostic)
7. Execute transfer        (only BUY + profitable; ExecutionError -> HOLD)
8. Append audit record     (exactly once per cycle reaching this step)

RULES:
❌ Not safe to run concurrently with itself (the scheduler guards it)
❌ No retries inside a cycle
❌ No timeouts imposed here (collaborators bound their own calls)
✅ Collaborators injected, never global
"""

from __future__ import annotations

import logging
from decimal import ROUND_DOWN, Decimal
from typing import Callable, Optional, Protocol

from app.domain.errors import ExecutionError
from app.domain.models import (
    CycleAction,
    CycleOutcome,
    CycleRecord,
    CycleStatus,
    Decision,
    Wallet,
    YieldQuote,
)
from app.domain.services.decision_normalizer import decision_from_error, normalize_decision
from app.domain.services.profitability_calculator import ProfitabilityCalculator, sentiment_for_apy
from app.utils.time import utc_now_naive

logger = logging.getLogger(__name__)


class WalletProvisioner(Protocol):
    """Idempotent custodial wallet access"""

    async def ensure_wallet(self) -> Wallet:
        ...


class BalanceReader(Protocol):
    """Tracked-asset balance lookup"""

    async def read(self, address: str) -> Decimal:
        ...


class MarketDataProvider(Protocol):
    """Current yield of the target asset"""

    async def get_yield(self) -> YieldQuote:
        ...


class DecisionEngine(Protocol):
    """AI-backed BUY/HOLD recommendation"""

    async def decide(self, apy: float, gas_cost: float) -> Decision:
        ...


class TransferExecutor(Protocol):
    """Moves funds out of the agent wallet"""

    async def transfer(self, destination: str, amount: str, token_identity: str) -> str:
        ...


class AuditLogStore(Protocol):
    """Append-only cycle record storage"""

    async def append(self, record: CycleRecord) -> None:
        ...


class CycleOrchestrator:
    """
    Cycle Orchestrator
    Sequences provisioning, observation, decision, execution and audit
    """

    def __init__(
        self,
        wallet_provisioner: WalletProvisioner,
        balance_reader: BalanceReader,
        market_data: MarketDataProvider,
        decision_engine: DecisionEngine,
        transfer_executor: TransferExecutor,
        audit_log: AuditLogStore,
        *,
        token_address: Optional[str],
        destination_address: Optional[str],
        dust_threshold: Decimal = Decimal("1.0"),
        gas_cost: Decimal = Decimal("0.05"),
        token_decimals: int = 6,
        sentiment_threshold_apy: float = 6.0,
        high_sentiment_score: float = 0.8,
        low_sentiment_score: float = 0.4,
        calculator: Optional[ProfitabilityCalculator] = None,
        clock: Callable = utc_now_naive,
    ):
        self.wallet_provisioner = wallet_provisioner
        self.balance_reader = balance_reader
        self.market_data = market_data
        self.decision_engine = decision_engine
        self.transfer_executor = transfer_executor
        self.audit_log = audit_log

        self.token_address = token_address
        self.destination_address = destination_address
        self.dust_threshold = Decimal(str(dust_threshold))
        self.gas_cost = Decimal(str(gas_cost))
        self.token_decimals = token_decimals
        self.sentiment_threshold_apy = sentiment_threshold_apy
        self.high_sentiment_score = high_sentiment_score
        self.low_sentiment_score = low_sentiment_score
        self.calculator = calculator or ProfitabilityCalculator()
        self.clock = clock

    async def run_once(self) -> CycleOutcome:
        """
        Execute one decision cycle.

        Never raises: any failure not recovered by a step is logged here and
        ends the cycle without an audit record.
        """
        logger.info("--- Starting agent cycle ---")
        try:
            return await self._run_cycle()
        except Exception as exc:
            logger.exception("❌ Error in agent cycle: %s", exc)
            return CycleOutcome(status=CycleStatus.FAILED, detail=f"{type(exc).__name__}: {exc}")

    async def _run_cycle(self) -> CycleOutcome:
        # 1. Wallet
        try:
            wallet = await self.wallet_provisioner.ensure_wallet()
        except Exception as exc:
            logger.error("❌ Critical: could not get/create agent wallet: %s", exc)
            return CycleOutcome(status=CycleStatus.ABORTED, detail=f"Provisioning failed: {exc}")

        logger.info("Agent wallet: %s", wallet.address)

        # 2. Balance
        balance = await self._read_balance(wallet.address)
        amount = self.format_amount(balance)
        logger.info("Current balance: %s", amount)

        # 3. Dust
        if balance < self.dust_threshold:
            logger.info("Balance %s below dust threshold %s; skipping cycle", amount, self.dust_threshold)
            return CycleOutcome(
                status=CycleStatus.SKIPPED_DUST,
                detail=f"Balance {amount} below dust threshold",
                wallet_address=wallet.address,
            )

        # 4. Market (failures propagate to run_once)
        quote = await self.market_data.get_yield()
        logger.info("Market data: %s%% APY from %s", quote.apy, quote.source)

        # 5. Profitability
        profitability = self.calculator.evaluate(balance, quote.apy, self.gas_cost)
        logger.info(
            "Profitability check: daily yield %.4f vs gas %s. Profitable? %s",
            profitability.daily_yield,
            self.gas_cost,
            profitability.is_profitable,
        )

        # 6. Decision
        decision = await self._decide(quote.apy)
        logger.info("AI decision: %s because %r", decision.action.value, decision.reason)

        # 7. Execution
        final_action = CycleAction.HOLD
        tx_hash: Optional[str] = None
        if decision.is_buy and profitability.is_profitable:
            tx_hash = await self._execute(amount)
            if tx_hash is not None:
                final_action = CycleAction.BUY

        # 8. Audit
        record = CycleRecord(
            timestamp=self.clock(),
            action=final_action,
            amount=amount,
            reason=decision.reason,
            sentiment_score=sentiment_for_apy(
                quote.apy,
                threshold=self.sentiment_threshold_apy,
                high=self.high_sentiment_score,
                low=self.low_sentiment_score,
            ),
            apy_snapshot=quote.apy,
            tx_hash=tx_hash,
        )
        await self.audit_log.append(record)
        logger.info("✅ Cycle logged: %s %s (tx=%s)", record.action.value, record.amount, record.tx_hash)

        return CycleOutcome(
            status=CycleStatus.COMPLETED,
            record=record,
            detail=f"Recorded {record.action.value}",
            wallet_address=wallet.address,
        )

    async def _read_balance(self, address: str) -> Decimal:
        try:
            raw = await self.balance_reader.read(address)
            return raw if isinstance(raw, Decimal) else Decimal(str(raw))
        except Exception as exc:
            logger.error("Failed to fetch balance, assuming 0 for safety: %s", exc)
            return Decimal("0")

    async def _decide(self, apy: float) -> Decision:
        try:
            raw = await self.decision_engine.decide(apy, float(self.gas_cost))
        except Exception as exc:
            logger.warning("Decision engine failed; defaulting to HOLD: %s", exc)
            return decision_from_error(exc)

        return normalize_decision(raw)

    async def _execute(self, amount: str) -> Optional[str]:
        logger.info("Executing BUY order...")
        try:
            if not self.destination_address:
                raise ExecutionError("Destination (yield token) address missing")
            if not self.token_address:
                raise ExecutionError("Source token address missing")

            tx_id = await self.transfer_executor.transfer(
                self.destination_address,
                amount,
                self.token_address,
            )
            if not tx_id:
                raise ExecutionError("Transfer returned no transaction id")
        except Exception as exc:
            logger.error("Execution failed; recording HOLD: %s", exc)
            return None

        logger.info("Transfer initiated. ID: %s", tx_id)
        return tx_id

    def format_amount(self, balance: Decimal) -> str:
        """Fixed-point string at token precision, trailing zeros dropped."""
        quantum = Decimal(1).scaleb(-self.token_decimals)
        value = balance.quantize(quantum, rounding=ROUND_DOWN).normalize()
        text = format(value, "f")
        return "0" if text in ("-0", "") else text
