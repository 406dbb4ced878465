"""
Agent Service
Composition root for the treasury agent plus the read/trigger facade
used by the HTTP layer.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.config import Settings
from app.domain.models import CycleOutcome, CycleRecord, Wallet
from app.domain.services.cycle_orchestrator import BalanceReader, CycleOrchestrator
from app.scheduler.main import AgentScheduler

logger = logging.getLogger(__name__)

STATUS_ACTIVITY_LIMIT = 5
CHAT_CONTEXT_LIMIT = 3


class WalletLookup(Protocol):
    async def get_existing(self) -> Optional[Wallet]:
        ...


class RecentRecords(Protocol):
    async def recent(self, limit: int = 5) -> List[CycleRecord]:
        ...


class Explainer(Protocol):
    async def explain(self, logs_context: str, user_question: str) -> str:
        ...


class AgentService:
    """Status, chat and manual trigger on top of one orchestrator/scheduler pair"""

    def __init__(
        self,
        scheduler: AgentScheduler,
        wallets: WalletLookup,
        balance_reader: BalanceReader,
        records: RecentRecords,
        explainer: Explainer,
    ):
        self.scheduler = scheduler
        self.wallets = wallets
        self.balance_reader = balance_reader
        self.records = records
        self.explainer = explainer

    @property
    def orchestrator(self) -> CycleOrchestrator:
        return self.scheduler.orchestrator

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: Optional[async_sessionmaker] = None,
    ) -> "AgentService":
        from app.infrastructure.ai.gemini_client import GeminiDecisionEngine
        from app.infrastructure.chain.balance_reader import Erc20BalanceReader
        from app.infrastructure.circle.client import CircleClient
        from app.infrastructure.circle.transfer_executor import CircleTransferExecutor
        from app.infrastructure.circle.wallet_provisioner import CircleWalletProvisioner
        from app.infrastructure.db.repositories.agent_log_repository import SqlAuditLogStore
        from app.infrastructure.market_data.provider_factory import get_yield_provider

        if session_factory is None:
            from app.infrastructure.db.database import async_session_factory
            session_factory = async_session_factory

        timeout = settings.HTTP_TIMEOUT_SECONDS
        circle = CircleClient(
            api_key=settings.CIRCLE_API_KEY,
            entity_secret=settings.CIRCLE_ENTITY_SECRET,
            api_base_url=settings.CIRCLE_API_BASE_URL,
            timeout=timeout,
        )
        provisioner = CircleWalletProvisioner(
            client=circle,
            session_factory=session_factory,
            wallet_set_id=settings.CIRCLE_WALLET_SET_ID,
            blockchain=settings.CIRCLE_BLOCKCHAIN,
            account_type=settings.CIRCLE_ACCOUNT_TYPE,
        )
        executor = CircleTransferExecutor(
            client=circle,
            provisioner=provisioner,
            blockchain=settings.CIRCLE_BLOCKCHAIN,
            fee_level=settings.CIRCLE_FEE_LEVEL,
        )
        balance_reader = Erc20BalanceReader(
            rpc_url=settings.ARC_RPC_URL,
            token_address=settings.USDC_CONTRACT_ADDRESS,
            decimals=settings.TOKEN_DECIMALS,
            timeout=timeout,
        )
        engine = GeminiDecisionEngine(
            api_key=settings.GEMINI_API_KEY,
            model=settings.GEMINI_MODEL,
            api_base_url=settings.GEMINI_API_BASE_URL,
            timeout=timeout,
            sentiment_threshold_apy=settings.HIGH_SENTIMENT_APY,
        )
        audit_store = SqlAuditLogStore(session_factory)

        orchestrator = CycleOrchestrator(
            wallet_provisioner=provisioner,
            balance_reader=balance_reader,
            market_data=get_yield_provider(settings),
            decision_engine=engine,
            transfer_executor=executor,
            audit_log=audit_store,
            token_address=settings.USDC_CONTRACT_ADDRESS,
            destination_address=settings.USYC_CONTRACT_ADDRESS,
            dust_threshold=Decimal(str(settings.DUST_THRESHOLD)),
            gas_cost=Decimal(str(settings.ESTIMATED_GAS_COST)),
            token_decimals=settings.TOKEN_DECIMALS,
            sentiment_threshold_apy=settings.HIGH_SENTIMENT_APY,
            high_sentiment_score=settings.HIGH_SENTIMENT_SCORE,
            low_sentiment_score=settings.LOW_SENTIMENT_SCORE,
        )
        scheduler = AgentScheduler(
            orchestrator,
            interval_minutes=settings.CYCLE_INTERVAL_MINUTES,
            timezone=settings.TIMEZONE,
        )
        return cls(
            scheduler=scheduler,
            wallets=provisioner,
            balance_reader=balance_reader,
            records=audit_store,
            explainer=engine,
        )

    async def status(self) -> Dict[str, Any]:
        """Wallet address, best-effort balance and latest audit records."""
        wallet = await self.wallets.get_existing()
        balance = "0"
        if wallet:
            try:
                observed = await self.balance_reader.read(wallet.address)
                balance = self.orchestrator.format_amount(Decimal(str(observed)))
            except Exception as exc:
                logger.error("Status balance fetch error: %s", exc)

        records = await self.records.recent(limit=STATUS_ACTIVITY_LIMIT)
        return {
            "walletAddress": wallet.address if wallet else "Not Created",
            "currentBalance": balance,
            "cycleInProgress": self.scheduler.cycle_in_progress,
            "lastActivity": [r.to_dict() for r in records],
        }

    async def chat(self, message: str) -> str:
        records = await self.records.recent(limit=CHAT_CONTEXT_LIMIT)
        context = json.dumps([r.to_dict() for r in records], indent=2)
        return await self.explainer.explain(context, message)

    async def trigger(self) -> CycleOutcome:
        """Run one cycle now; raises CycleInProgressError if one is active."""
        return await self.scheduler.trigger_now()
