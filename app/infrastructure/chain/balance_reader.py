"""
ERC-20 balance reader (JSON-RPC eth_call).
Reads balanceOf(owner) of the tracked stablecoin on the Arc network.
"""

from __future__ import annotations

import itertools
import logging
import re
from decimal import Decimal
from typing import Optional

import httpx

from app.domain.errors import ReadError

logger = logging.getLogger(__name__)

BALANCE_OF_SELECTOR = "0x70a08231"
_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def format_units(value: int, decimals: int) -> str:
    """
    Integer base units -> decimal string, trailing zeros dropped.

    format_units(100000000, 6) == "100"
    format_units(1500000, 6) == "1.5"
    """
    negative = value < 0
    digits = str(abs(value)).rjust(decimals + 1, "0") if decimals else str(abs(value))
    if decimals:
        integer, fraction = digits[:-decimals], digits[-decimals:].rstrip("0")
    else:
        integer, fraction = digits, ""
    text = f"{integer}.{fraction}" if fraction else integer
    return f"-{text}" if negative else text


def encode_balance_of(owner: str) -> str:
    if not _ADDRESS_RE.match(owner or ""):
        raise ReadError(f"Invalid address: {owner!r}")
    return BALANCE_OF_SELECTOR + owner[2:].lower().rjust(64, "0")


class Erc20BalanceReader:
    def __init__(
        self,
        rpc_url: str,
        token_address: Optional[str],
        decimals: int = 6,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.rpc_url = rpc_url
        self.token_address = (token_address or "").strip() or None
        self.decimals = decimals
        self.timeout = timeout
        self._transport = transport
        self._ids = itertools.count(1)

    async def _rpc(self, method: str, params: list) -> object:
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.rpc_url, json=body)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ReadError(f"RPC {method} failed: {type(exc).__name__}: {exc}") from exc

        if not isinstance(payload, dict):
            raise ReadError(f"RPC {method} returned unexpected payload")
        if payload.get("error"):
            raise ReadError(f"RPC {method} error: {payload['error']}")
        return payload.get("result")

    async def read_raw(self, address: str) -> int:
        if not self.token_address:
            raise ReadError("USDC_CONTRACT_ADDRESS is missing")

        call = {"to": self.token_address, "data": encode_balance_of(address)}
        result = await self._rpc("eth_call", [call, "latest"])

        if not isinstance(result, str) or not result.startswith("0x") or result == "0x":
            raise ReadError(f"balanceOf returned empty result: {result!r}")
        try:
            return int(result, 16)
        except ValueError as exc:
            raise ReadError(f"balanceOf returned non-hex result: {result!r}") from exc

    async def read(self, address: str) -> Decimal:
        raw = await self.read_raw(address)
        return Decimal(format_units(raw, self.decimals))
