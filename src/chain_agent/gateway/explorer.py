"""Read-only client for an Etherscan-style blockchain explorer API."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import httpx

from chain_agent.config import GatewayConfig
from chain_agent.errors import GatewayError

logger = logging.getLogger(__name__)

WEI_PER_ETHER = 10**18

# Placeholder conversion, not an exchange rate.
PLACEHOLDER_LOCAL_CURRENCY_RATE = 2


class ExplorerGateway:
    """Executes explorer reads and returns normalized JSON-ready payloads.

    Every call goes through `call`, which treats `status == "1"` in the
    response body as the only success signal. The HTTP status code is not
    consulted.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: GatewayConfig | None = None,
    ) -> None:
        self._client = client
        self.config = config if config is not None else GatewayConfig()

    @classmethod
    def create(cls, config: GatewayConfig | None = None) -> ExplorerGateway:
        return cls(httpx.AsyncClient(), config)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def call(self, *, failure_message: str = "Explorer request failed.", **params: Any) -> Any:
        """Run one GET against the explorer and return its `result` field."""
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["X-API-KEY"] = self.config.api_key

        try:
            response = await self._client.get(
                self.config.base_url, params=params, headers=headers
            )
            payload = response.json()
        except httpx.HTTPError as exc:
            logger.warning("Explorer transport error for %s: %s", params, exc)
            raise GatewayError(f"{failure_message} {exc}".strip()) from exc
        except ValueError as exc:
            raise GatewayError(f"{failure_message} Response was not JSON.") from exc

        if not isinstance(payload, dict):
            raise GatewayError(failure_message)

        status = str(payload.get("status"))
        if status != "1":
            message = payload.get("message") or failure_message
            logger.info(
                "Explorer returned status=%s for module=%s action=%s: %s",
                status,
                params.get("module"),
                params.get("action"),
                message,
            )
            raise GatewayError(str(message), status=status)
        return payload.get("result")

    async def get_balances(self, addresses: list[str]) -> list[dict[str, Any]]:
        result = await self.call(
            module="account",
            action="balancemulti",
            address=",".join(addresses),
            failure_message="Failed to fetch balances.",
        )
        balances = []
        for item in result or []:
            wei = int(item["balance"])
            balances.append(
                {
                    "address": item["account"],
                    "balanceWei": str(item["balance"]),
                    "balanceEth": format_ether(wei),
                    "balanceLocalCurrencyEstimate": float(Decimal(wei) / WEI_PER_ETHER)
                    * PLACEHOLDER_LOCAL_CURRENCY_RATE,
                }
            )
        return balances

    async def get_block_number(self) -> int:
        result = await self.call(
            module="block",
            action="eth_block_number",
            failure_message="Failed to fetch latest block.",
        )
        return parse_quantity(result)

    async def get_block(self, block_number: int | str) -> Any:
        return await self.call(
            module="block",
            action="getblockreward",
            blockno=block_number,
            failure_message="Failed to fetch block details.",
        )

    async def get_latest_block(self) -> dict[str, Any]:
        """Resolve the chain head: block number first, then its metadata."""
        height = await self.get_block_number()
        block = await self.get_block(height)
        return {
            "blockHeight": height,
            "timestamp": to_iso_timestamp(parse_quantity(block["timeStamp"])),
        }

    async def get_transactions(
        self, address: str, *, limit: int, page: int = 1
    ) -> list[dict[str, Any]]:
        result = await self.call(
            module="account",
            action="txlist",
            address=address,
            startblock=0,
            endblock=99999999,
            page=page,
            offset=limit,
            sort="asc",
            failure_message="Failed to fetch transactions.",
        )
        return list(result or [])

    async def get_contract_abi(self, address: str) -> Any:
        result = await self.call(
            module="contract",
            action="getabi",
            address=address,
            failure_message="Failed to fetch contract ABI.",
        )
        if isinstance(result, str):
            try:
                return json.loads(result)
            except json.JSONDecodeError as exc:
                raise GatewayError("Contract ABI is not valid JSON.") from exc
        return result

    async def get_transaction(self, tx_hash: str) -> Any:
        return await self.call(
            module="transaction",
            action="gettxinfo",
            txhash=tx_hash,
            failure_message="Failed to fetch transaction details.",
        )

    async def get_transaction_status(self, tx_hash: str) -> Any:
        return await self.call(
            module="transaction",
            action="getstatus",
            txhash=tx_hash,
            failure_message="Failed to fetch transaction status.",
        )


def parse_quantity(value: Any) -> int:
    """Parse a block number or timestamp given as `0x` hex or decimal."""
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.lower().startswith("0x"):
        return int(text, 16)
    return int(text)


def format_ether(wei: int) -> str:
    whole, fraction = divmod(wei, WEI_PER_ETHER)
    fraction_text = f"{fraction:018d}".rstrip("0") or "0"
    return f"{whole}.{fraction_text}"


def to_iso_timestamp(seconds: int) -> str:
    moment = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
