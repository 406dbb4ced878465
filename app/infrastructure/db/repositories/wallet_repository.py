"""
Agent Wallet Repository
Lookup and one-time creation of the custodial wallet row
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import Wallet
from app.infrastructure.db.models import AgentWalletModel


class WalletRepository:
    """Repository for the agent wallet"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_first(self) -> Optional[Wallet]:
        result = await self.session.execute(
            select(AgentWalletModel).order_by(AgentWalletModel.id).limit(1)
        )
        model = result.scalars().first()
        return self._to_domain(model) if model else None

    async def create(self, wallet: Wallet) -> int:
        model = AgentWalletModel(
            circle_wallet_id=wallet.provider_wallet_id,
            address=wallet.address,
        )
        self.session.add(model)
        await self.session.flush()
        return model.id

    @staticmethod
    def _to_domain(model: AgentWalletModel) -> Wallet:
        return Wallet(address=model.address, provider_wallet_id=model.circle_wallet_id)
