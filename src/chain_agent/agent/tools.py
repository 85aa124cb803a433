"""Built-in blockchain tools offered to the model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from chain_agent.agent.magic_links import MagicLinkStore
from chain_agent.agent.registry import ToolRegistry, ToolResult, ToolSpec
from chain_agent.gateway.explorer import ExplorerGateway

_SIGNING_MESSAGE = "Signature URL created successfully. Please sign the transaction on this link."


class _ToolInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SendTransactionInput(_ToolInput):
    to: str = Field(min_length=1, description="The recipient's address")
    amount: float = Field(gt=0, description="The amount to send")
    symbol: str = Field(min_length=1, description="The token symbol (e.g., 'CRO')")


class TokenAmountInput(_ToolInput):
    amount: float = Field(gt=0, description="The amount of tokens")


class GetBalanceInput(_ToolInput):
    wallet_addresses: list[str] = Field(
        alias="walletAddresses",
        min_length=1,
        description="Wallet addresses to look up",
    )


class GetLatestBlockInput(_ToolInput):
    pass


class GetTransactionsByAddressInput(_ToolInput):
    address: str = Field(min_length=1, description="The wallet address")
    limit: int = Field(default=10, ge=1, le=100, description="Transactions per page")
    page: int = Field(default=1, ge=1, description="Page number, starting at 1")


class AddressInput(_ToolInput):
    address: str = Field(min_length=1, description="The contract address")


class TxHashInput(_ToolInput):
    tx_hash: str = Field(alias="txHash", min_length=1, description="The transaction hash")


class GetBlocksByNumberInput(_ToolInput):
    block_numbers: list[str] = Field(
        alias="blockNumbers",
        min_length=1,
        description="Block numbers, or 'latest'",
    )
    tx_detail: bool = Field(
        default=False,
        alias="txDetail",
        description="Include transaction details",
    )


def register_chain_tools(
    registry: ToolRegistry,
    gateway: ExplorerGateway,
    magic_links: MagicLinkStore,
) -> None:
    """Register the tool set used by the dispatcher.

    Tools:
    - `SendTransaction` / `WrapToken` / `SwapToken`: issue signing links; no
      on-chain execution happens server-side.
    - `GetBalance`, `GetLatestBlock`, `GetTransactionsByAddress`,
      `GetContractABI`, `GetTransactionByHash`, `GetBlocksByNumber`,
      `GetTransactionStatus`: explorer reads.
    """

    async def _send_transaction(input_data: SendTransactionInput) -> ToolResult:
        link = magic_links.issue(
            "SendTransaction",
            input_data.model_dump(),
            path="sign-transaction",
        )
        return ToolResult.success(
            "SendTransaction", _SIGNING_MESSAGE, {"magicLink": link.url}
        )

    async def _wrap_token(input_data: TokenAmountInput) -> ToolResult:
        link = magic_links.issue("WrapToken", input_data.model_dump(), path="sign-wrap-token")
        return ToolResult.success("WrapToken", _SIGNING_MESSAGE, {"magicLink": link.url})

    async def _swap_token(input_data: TokenAmountInput) -> ToolResult:
        link = magic_links.issue("SwapToken", input_data.model_dump(), path="sign-swap-token")
        return ToolResult.success("SwapToken", _SIGNING_MESSAGE, {"magicLink": link.url})

    async def _get_balance(input_data: GetBalanceInput) -> ToolResult:
        balances = await gateway.get_balances(input_data.wallet_addresses)
        return ToolResult.success(
            "GetBalance", "Balances fetched successfully.", {"balances": balances}
        )

    async def _get_latest_block(input_data: GetLatestBlockInput) -> ToolResult:
        block = await gateway.get_latest_block()
        return ToolResult.success(
            "GetLatestBlock", f"Latest block height: {block['blockHeight']}", block
        )

    async def _get_transactions(input_data: GetTransactionsByAddressInput) -> ToolResult:
        transactions = await gateway.get_transactions(
            input_data.address, limit=input_data.limit, page=input_data.page
        )
        return ToolResult.success(
            "GetTransactionsByAddress",
            f"Retrieved {len(transactions)} transactions for {input_data.address}",
            {
                "transactions": transactions,
                "pagination": {
                    "nextPage": input_data.page + 1,
                    "hasMore": len(transactions) == input_data.limit,
                },
            },
        )

    async def _get_contract_abi(input_data: AddressInput) -> ToolResult:
        abi = await gateway.get_contract_abi(input_data.address)
        return ToolResult.success(
            "GetContractABI",
            f"Fetched ABI for contract at {input_data.address}",
            {"abi": abi},
        )

    async def _get_transaction(input_data: TxHashInput) -> ToolResult:
        transaction = await gateway.get_transaction(input_data.tx_hash)
        return ToolResult.success(
            "GetTransactionByHash",
            f"Retrieved details for transaction {input_data.tx_hash}",
            {"transaction": transaction},
        )

    async def _get_blocks(input_data: GetBlocksByNumberInput) -> ToolResult:
        # Only the first requested block is resolved.
        first = input_data.block_numbers[0]
        if first.lower() == "latest":
            first = "latest"
        block = await gateway.get_block(first)
        return ToolResult.success(
            "GetBlocksByNumber", "Retrieved information for blocks", {"blocks": block}
        )

    async def _get_transaction_status(input_data: TxHashInput) -> ToolResult:
        result: Any = await gateway.get_transaction_status(input_data.tx_hash)
        status = result.get("status") if isinstance(result, dict) else result
        return ToolResult.success(
            "GetTransactionStatus", f"Transaction status: {status}", {"status": status}
        )

    registry.register(
        ToolSpec(
            name="SendTransaction",
            description="Send a transaction from one address to another",
            args_schema=SendTransactionInput,
            handler=_send_transaction,
            failure_message="Failed to send transaction.",
        )
    )
    registry.register(
        ToolSpec(
            name="GetBalance",
            description="Get the native token balance of one or more wallet addresses",
            args_schema=GetBalanceInput,
            handler=_get_balance,
            failure_message="Failed to fetch balances.",
        )
    )
    registry.register(
        ToolSpec(
            name="GetLatestBlock",
            description="Get the latest block height and its timestamp",
            args_schema=GetLatestBlockInput,
            handler=_get_latest_block,
            failure_message="Failed to fetch the latest block.",
        )
    )
    registry.register(
        ToolSpec(
            name="GetTransactionsByAddress",
            description="List transactions sent from or to an address",
            args_schema=GetTransactionsByAddressInput,
            handler=_get_transactions,
            failure_message="Failed to fetch transactions.",
        )
    )
    registry.register(
        ToolSpec(
            name="GetContractABI",
            description="Get the ABI of a verified smart contract",
            args_schema=AddressInput,
            handler=_get_contract_abi,
            failure_message="Failed to fetch contract ABI.",
        )
    )
    registry.register(
        ToolSpec(
            name="GetTransactionByHash",
            description="Get the details of a transaction by its hash",
            args_schema=TxHashInput,
            handler=_get_transaction,
            failure_message="Failed to fetch transaction details.",
        )
    )
    registry.register(
        ToolSpec(
            name="GetBlocksByNumber",
            description="Get block information for a block number (only the first is resolved)",
            args_schema=GetBlocksByNumberInput,
            handler=_get_blocks,
            failure_message="Failed to fetch block details.",
        )
    )
    registry.register(
        ToolSpec(
            name="GetTransactionStatus",
            description="Get the execution status of a transaction",
            args_schema=TxHashInput,
            handler=_get_transaction_status,
            failure_message="Failed to fetch transaction status.",
        )
    )
    registry.register(
        ToolSpec(
            name="WrapToken",
            description="Wrap native tokens into their wrapped ERC-20 form",
            args_schema=TokenAmountInput,
            handler=_wrap_token,
            failure_message="Failed to wrap tokens.",
        )
    )
    registry.register(
        ToolSpec(
            name="SwapToken",
            description="Swap tokens on a decentralized exchange",
            args_schema=TokenAmountInput,
            handler=_swap_token,
            failure_message="Failed to swap tokens.",
        )
    )
