from decimal import Decimal
from typing import AsyncGenerator, List, Optional

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.infrastructure.db.database import Base
from app.infrastructure.db import models  # noqa: F401
from app.api.routes import agent, admin
from app.domain.errors import ProvisioningError
from app.domain.models import CycleRecord, Decision, DecisionAction, Wallet, YieldQuote
from app.domain.services.cycle_orchestrator import CycleOrchestrator


# ----------------------------------------------------------------------
# Database
# ----------------------------------------------------------------------

@pytest.fixture()
async def db_engine(tmp_path):
    db_path = tmp_path / "test.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(db_engine) -> async_sessionmaker:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ----------------------------------------------------------------------
# Collaborator fakes
# ----------------------------------------------------------------------

AGENT_ADDRESS = "0x" + "ab" * 20
USDC_ADDRESS = "0x" + "11" * 20
USYC_ADDRESS = "0x" + "22" * 20


class FakeWalletProvisioner:
    def __init__(self, wallet: Optional[Wallet] = None, error: Optional[Exception] = None):
        self.wallet = wallet or Wallet(address=AGENT_ADDRESS, provider_wallet_id="wallet-1")
        self.error = error
        self.calls = 0

    async def ensure_wallet(self) -> Wallet:
        self.calls += 1
        if self.error:
            raise self.error
        return self.wallet

    async def get_existing(self) -> Optional[Wallet]:
        return None if self.error else self.wallet


class FakeBalanceReader:
    def __init__(self, balance="100", error: Optional[Exception] = None):
        self.balance = Decimal(str(balance))
        self.error = error
        self.calls: List[str] = []

    async def read(self, address: str) -> Decimal:
        self.calls.append(address)
        if self.error:
            raise self.error
        return self.balance


class FakeMarketData:
    def __init__(self, apy: float = 7.0, source: str = "TestMarket", error: Optional[Exception] = None):
        self.quote = YieldQuote(apy=apy, source=source)
        self.error = error
        self.calls = 0

    async def get_yield(self) -> YieldQuote:
        self.calls += 1
        if self.error:
            raise self.error
        return self.quote


class FakeDecisionEngine:
    def __init__(self, decision=None, error: Optional[Exception] = None):
        self.decision = decision or Decision(action=DecisionAction.BUY, reason="Yield beats gas")
        self.error = error
        self.calls: List[tuple] = []

    async def decide(self, apy: float, gas_cost: float):
        self.calls.append((apy, gas_cost))
        if self.error:
            raise self.error
        return self.decision

    async def explain(self, logs_context: str, user_question: str) -> str:
        self.calls.append((logs_context, user_question))
        return f"explained: {user_question}"


class FakeTransferExecutor:
    def __init__(self, tx_id: str = "tx-123", error: Optional[Exception] = None):
        self.tx_id = tx_id
        self.error = error
        self.calls: List[tuple] = []

    async def transfer(self, destination: str, amount: str, token_identity: str) -> str:
        self.calls.append((destination, amount, token_identity))
        if self.error:
            raise self.error
        return self.tx_id


class FakeAuditLog:
    def __init__(self, error: Optional[Exception] = None):
        self.records: List[CycleRecord] = []
        self.error = error

    async def append(self, record: CycleRecord) -> None:
        if self.error:
            raise self.error
        self.records.append(record)

    async def recent(self, limit: int = 5) -> List[CycleRecord]:
        return list(reversed(self.records))[:limit]


class Collaborators:
    """Bundle of fakes with a factory for the orchestrator under test."""

    def __init__(self):
        self.provisioner = FakeWalletProvisioner()
        self.balance = FakeBalanceReader()
        self.market = FakeMarketData()
        self.engine = FakeDecisionEngine()
        self.executor = FakeTransferExecutor()
        self.audit = FakeAuditLog()

    def orchestrator(self, **overrides) -> CycleOrchestrator:
        kwargs = dict(
            token_address=USDC_ADDRESS,
            destination_address=USYC_ADDRESS,
            dust_threshold=Decimal("1.0"),
            gas_cost=Decimal("0.05"),
        )
        kwargs.update(overrides)
        return CycleOrchestrator(
            self.provisioner,
            self.balance,
            self.market,
            self.engine,
            self.executor,
            self.audit,
            **kwargs,
        )


@pytest.fixture()
def fakes() -> Collaborators:
    return Collaborators()


@pytest.fixture()
def failing_provisioner() -> FakeWalletProvisioner:
    return FakeWalletProvisioner(error=ProvisioningError("CIRCLE_WALLET_SET_ID is missing"))


# ----------------------------------------------------------------------
# API
# ----------------------------------------------------------------------

@pytest.fixture()
def agent_service(fakes):
    from app.scheduler.main import AgentScheduler
    from app.services.agent_service import AgentService

    scheduler = AgentScheduler(fakes.orchestrator())
    return AgentService(
        scheduler=scheduler,
        wallets=fakes.provisioner,
        balance_reader=fakes.balance,
        records=fakes.audit,
        explainer=fakes.engine,
    )


@pytest.fixture()
async def app(agent_service) -> FastAPI:
    app = FastAPI()
    app.include_router(agent.router, prefix="/agent", tags=["agent"])
    app.include_router(admin.router, prefix="/admin", tags=["admin"])
    app.state.agent_service = agent_service
    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
