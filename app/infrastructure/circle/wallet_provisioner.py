"""
Circle wallet provisioner.

Exactly one agent wallet per deployment: the persisted row wins, and a new
Circle wallet is only created when no row exists yet.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.domain.errors import ProvisioningError
from app.domain.models import Wallet
from app.infrastructure.circle.client import CircleAPIError, CircleClient
from app.infrastructure.db.repositories.wallet_repository import WalletRepository

logger = logging.getLogger(__name__)

_IDEMPOTENCY_NAMESPACE = uuid.UUID("6f1c5f0e-2b8a-4d3e-9c71-0d5a8e4b2f10")


class CircleWalletProvisioner:
    def __init__(
        self,
        client: CircleClient,
        session_factory: async_sessionmaker,
        wallet_set_id: Optional[str],
        blockchain: str = "ETH-SEPOLIA",
        account_type: str = "SCA",
    ):
        self.client = client
        self.session_factory = session_factory
        self.wallet_set_id = (wallet_set_id or "").strip() or None
        self.blockchain = blockchain
        self.account_type = account_type
        self._wallet: Optional[Wallet] = None
        self._lock = asyncio.Lock()

    async def get_existing(self) -> Optional[Wallet]:
        """Persisted wallet without ever creating one."""
        if self._wallet is not None:
            return self._wallet
        async with self.session_factory() as session:
            return await WalletRepository(session).get_first()

    async def ensure_wallet(self) -> Wallet:
        if self._wallet is not None:
            return self._wallet

        async with self._lock:
            if self._wallet is not None:
                return self._wallet

            async with self.session_factory() as session:
                repo = WalletRepository(session)
                existing = await repo.get_first()
                if existing:
                    self._wallet = existing
                    return existing

                wallet = await self._create_wallet()
                await repo.create(wallet)
                await session.commit()

            logger.info("✅ Created agent wallet %s (circle id %s)", wallet.address, wallet.provider_wallet_id)
            self._wallet = wallet
            return wallet

    async def _create_wallet(self) -> Wallet:
        if not self.wallet_set_id:
            raise ProvisioningError("CIRCLE_WALLET_SET_ID is missing")

        # Same key for the same wallet set: a retried creation returns the same wallet
        idempotency_key = str(uuid.uuid5(_IDEMPOTENCY_NAMESPACE, f"agent-wallet:{self.wallet_set_id}"))
        try:
            wallets = await self.client.create_wallets(
                wallet_set_id=self.wallet_set_id,
                blockchains=[self.blockchain],
                count=1,
                account_type=self.account_type,
                idempotency_key=idempotency_key,
            )
        except CircleAPIError as exc:
            raise ProvisioningError(f"Failed to create agent wallet: {exc}") from exc

        first = wallets[0] if wallets else None
        if not isinstance(first, dict) or not first.get("id") or not first.get("address"):
            raise ProvisioningError("Failed to create wallet: response missing id/address")

        return Wallet(address=str(first["address"]), provider_wallet_id=str(first["id"]))
