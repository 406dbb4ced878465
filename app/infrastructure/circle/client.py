"""
Circle Developer-Controlled Wallets client (W3S REST API)

Only the three calls the agent needs:
- entity public key (for entitySecretCiphertext)
- create wallets
- create transfer transaction
"""

from __future__ import annotations

import base64
import logging
import uuid
from typing import Any, Dict, List, Optional

import httpx
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding

logger = logging.getLogger(__name__)


class CircleAPIError(Exception):
    """Circle API request failed or returned an unexpected payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CircleClient:
    def __init__(
        self,
        api_key: Optional[str],
        entity_secret: Optional[str],
        api_base_url: str = "https://api.circle.com",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = (api_key or "").strip() or None
        self.entity_secret = (entity_secret or "").strip() or None
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._public_key_pem: Optional[str] = None

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _request_json(self, method: str, path: str, body: Optional[dict] = None) -> Dict[str, Any]:
        if not self.api_key:
            raise CircleAPIError("CIRCLE_API_KEY is missing")

        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        url = f"{self.api_base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, headers=headers, json=body)
        except httpx.HTTPError as exc:
            raise CircleAPIError(f"Circle request failed: {type(exc).__name__}: {exc}") from exc

        if response.status_code >= 400:
            raise CircleAPIError(
                f"Circle API {response.status_code}: {response.text[:300]}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise CircleAPIError("Circle API returned non-JSON body") from exc
        if not isinstance(payload, dict):
            raise CircleAPIError("Circle API returned unexpected payload")
        return payload

    @staticmethod
    def _data(payload: Dict[str, Any]) -> Dict[str, Any]:
        data = payload.get("data")
        if not isinstance(data, dict):
            raise CircleAPIError("Circle API response missing 'data'")
        return data

    # ------------------------------------------------------------------
    # ENTITY SECRET
    # ------------------------------------------------------------------

    async def get_entity_public_key(self) -> str:
        if self._public_key_pem:
            return self._public_key_pem
        payload = await self._request_json("GET", "/v1/w3s/config/entity/publicKey")
        pem = self._data(payload).get("publicKey")
        if not isinstance(pem, str) or not pem.strip():
            raise CircleAPIError("Circle entity public key missing from response")
        self._public_key_pem = pem
        return pem

    async def entity_secret_ciphertext(self) -> str:
        """
        Fresh RSA-OAEP(SHA-256) ciphertext of the entity secret.

        Circle rejects re-used ciphertexts, so this is generated per request.
        """
        if not self.entity_secret:
            raise CircleAPIError("CIRCLE_ENTITY_SECRET is missing")
        try:
            secret_bytes = bytes.fromhex(self.entity_secret)
        except ValueError as exc:
            raise CircleAPIError("CIRCLE_ENTITY_SECRET must be hex encoded") from exc

        pem = await self.get_entity_public_key()
        public_key = serialization.load_pem_public_key(pem.encode("utf-8"))
        ciphertext = public_key.encrypt(
            secret_bytes,
            padding.OAEP(
                mgf=padding.MGF1(algorithm=hashes.SHA256()),
                algorithm=hashes.SHA256(),
                label=None,
            ),
        )
        return base64.b64encode(ciphertext).decode("ascii")

    # ------------------------------------------------------------------
    # WALLETS / TRANSACTIONS
    # ------------------------------------------------------------------

    async def create_wallets(
        self,
        wallet_set_id: str,
        blockchains: List[str],
        count: int = 1,
        account_type: str = "SCA",
        idempotency_key: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        body = {
            "idempotencyKey": idempotency_key or str(uuid.uuid4()),
            "entitySecretCiphertext": await self.entity_secret_ciphertext(),
            "walletSetId": wallet_set_id,
            "blockchains": blockchains,
            "count": count,
            "accountType": account_type,
        }
        payload = await self._request_json("POST", "/v1/w3s/developer/wallets", body)
        wallets = self._data(payload).get("wallets")
        if not isinstance(wallets, list):
            raise CircleAPIError("Circle create-wallets response missing 'wallets'")
        return wallets

    async def create_transfer(
        self,
        wallet_id: str,
        destination_address: str,
        amount: str,
        token_address: str,
        blockchain: str,
        fee_level: str = "MEDIUM",
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        body = {
            "idempotencyKey": idempotency_key or str(uuid.uuid4()),
            "entitySecretCiphertext": await self.entity_secret_ciphertext(),
            "walletId": wallet_id,
            "tokenAddress": token_address,
            "blockchain": blockchain,
            "destinationAddress": destination_address,
            "amounts": [amount],
            "feeLevel": fee_level,
        }
        payload = await self._request_json("POST", "/v1/w3s/developer/transactions/transfer", body)
        return self._data(payload)
