"""
Circle transfer executor.
Sends the idle balance from the agent wallet to the yield token destination.
"""

from __future__ import annotations

import logging

from app.domain.errors import ExecutionError
from app.infrastructure.circle.client import CircleAPIError, CircleClient
from app.infrastructure.circle.wallet_provisioner import CircleWalletProvisioner

logger = logging.getLogger(__name__)


class CircleTransferExecutor:
    def __init__(
        self,
        client: CircleClient,
        provisioner: CircleWalletProvisioner,
        blockchain: str = "ETH-SEPOLIA",
        fee_level: str = "MEDIUM",
    ):
        self.client = client
        self.provisioner = provisioner
        self.blockchain = blockchain
        self.fee_level = fee_level

    async def transfer(self, destination: str, amount: str, token_identity: str) -> str:
        wallet = await self.provisioner.get_existing()
        if wallet is None:
            raise ExecutionError("No agent wallet found")

        try:
            data = await self.client.create_transfer(
                wallet_id=wallet.provider_wallet_id,
                destination_address=destination,
                amount=amount,
                token_address=token_identity,
                blockchain=self.blockchain,
                fee_level=self.fee_level,
            )
        except CircleAPIError as exc:
            raise ExecutionError(f"Failed to execute transfer: {exc}") from exc

        tx_id = data.get("id")
        if not isinstance(tx_id, str) or not tx_id:
            raise ExecutionError("Transfer response missing transaction id")

        logger.info("Circle transfer %s state=%s", tx_id, data.get("state"))
        return tx_id
