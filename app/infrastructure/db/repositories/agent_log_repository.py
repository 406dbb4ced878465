"""
Agent Log Repository
Append-only audit trail of decision cycles
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.domain.models import CycleAction, CycleRecord
from app.infrastructure.db.models import AgentActionEnum, AgentLogModel


class AgentLogRepository:
    """Repository for CycleRecord audit entries"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def create(self, record: CycleRecord) -> int:
        """
        Append one audit record

        Args:
            record: CycleRecord domain object

        Returns:
            ID of created row
        """
        model = AgentLogModel(
            timestamp=record.timestamp,
            action=AgentActionEnum(record.action.value),
            amount=record.amount,
            reason=record.reason,
            sentiment_score=record.sentiment_score,
            market_apy_snapshot=record.apy_snapshot,
            tx_hash=record.tx_hash,
        )
        self.session.add(model)
        await self.session.flush()
        return model.id

    async def get_recent(self, limit: int = 5) -> List[CycleRecord]:
        """Most recent records, newest first"""
        result = await self.session.execute(
            select(AgentLogModel)
            .order_by(AgentLogModel.timestamp.desc(), AgentLogModel.id.desc())
            .limit(limit)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def get_latest(self) -> Optional[CycleRecord]:
        records = await self.get_recent(limit=1)
        return records[0] if records else None

    @staticmethod
    def _to_domain(model: AgentLogModel) -> CycleRecord:
        action = model.action.value if isinstance(model.action, AgentActionEnum) else str(model.action)
        return CycleRecord(
            timestamp=model.timestamp,
            action=CycleAction(action),
            amount=model.amount,
            reason=model.reason,
            sentiment_score=float(model.sentiment_score),
            apy_snapshot=float(model.market_apy_snapshot),
            tx_hash=model.tx_hash,
        )


class SqlAuditLogStore:
    """AuditLogStore backed by the agent_log table (one transaction per append)"""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def append(self, record: CycleRecord) -> None:
        async with self.session_factory() as session:
            await AgentLogRepository(session).create(record)
            await session.commit()

    async def recent(self, limit: int = 5) -> List[CycleRecord]:
        async with self.session_factory() as session:
            return await AgentLogRepository(session).get_recent(limit=limit)
