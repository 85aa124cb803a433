import httpx
import pytest

from chain_agent.agent.magic_links import MagicLinkStore
from chain_agent.agent.registry import ToolRegistry
from chain_agent.agent.tools import register_chain_tools
from chain_agent.config import MagicLinkConfig
from conftest import QueuedExplorer

_ADDRESS = "0x" + "ab" * 20


def _registry(explorer: QueuedExplorer) -> tuple[ToolRegistry, MagicLinkStore]:
    registry = ToolRegistry()
    links = MagicLinkStore(MagicLinkConfig(frontend_url="http://wallet.test"))
    register_chain_tools(registry, explorer.gateway(), links)
    return registry, links


def test_catalog_order_is_stable() -> None:
    registry, _ = _registry(QueuedExplorer())

    assert registry.names() == [
        "SendTransaction",
        "GetBalance",
        "GetLatestBlock",
        "GetTransactionsByAddress",
        "GetContractABI",
        "GetTransactionByHash",
        "GetBlocksByNumber",
        "GetTransactionStatus",
        "WrapToken",
        "SwapToken",
    ]
    assert [d.name for d in registry.descriptors()] == registry.names()


@pytest.mark.asyncio
async def test_every_tool_returns_error_result_for_empty_arguments() -> None:
    failing = [httpx.ConnectError("explorer down") for _ in range(20)]
    registry, _ = _registry(QueuedExplorer(*failing))

    for name in registry.names():
        result = await registry.invoke(name, {})
        assert result.status == "Error", name
        assert result.error, name
        assert result.action == name


@pytest.mark.asyncio
async def test_get_balance_maps_each_account() -> None:
    explorer = QueuedExplorer(
        {
            "status": "1",
            "message": "OK",
            "result": [{"account": _ADDRESS, "balance": "1500000000000000000"}],
        }
    )
    registry, _ = _registry(explorer)

    result = await registry.invoke("GetBalance", {"walletAddresses": [_ADDRESS]})

    assert result.status == "Success"
    [balance] = result.data["balances"]
    assert balance == {
        "address": _ADDRESS,
        "balanceWei": "1500000000000000000",
        "balanceEth": "1.5",
        "balanceLocalCurrencyEstimate": 3.0,
    }
    assert explorer.params(0)["action"] == "balancemulti"
    assert explorer.params(0)["address"] == _ADDRESS


@pytest.mark.asyncio
async def test_get_latest_block_chains_two_calls() -> None:
    explorer = QueuedExplorer(
        {"status": "1", "result": "0x10"},
        {"status": "1", "result": {"timeStamp": "0x5f5e100"}},
    )
    registry, _ = _registry(explorer)

    result = await registry.invoke("GetLatestBlock", {})

    assert result.data == {"blockHeight": 16, "timestamp": "1973-03-03T09:46:40.000Z"}
    assert result.message == "Latest block height: 16"
    assert explorer.params(0)["action"] == "eth_block_number"
    assert explorer.params(1)["action"] == "getblockreward"
    assert explorer.params(1)["blockno"] == "16"


@pytest.mark.asyncio
async def test_get_latest_block_aborts_on_first_failure() -> None:
    explorer = QueuedExplorer({"status": "0", "message": "Rate limit reached"})
    registry, _ = _registry(explorer)

    result = await registry.invoke("GetLatestBlock", {})

    assert result.status == "Error"
    assert result.error == "Failed to fetch the latest block."
    assert result.detail == "Rate limit reached"
    assert len(explorer.requests) == 1


@pytest.mark.asyncio
async def test_get_blocks_by_number_resolves_only_first_block() -> None:
    explorer = QueuedExplorer({"status": "1", "result": {"blockNumber": "100"}})
    registry, _ = _registry(explorer)

    result = await registry.invoke("GetBlocksByNumber", {"blockNumbers": ["LATEST", "99"]})

    assert result.data == {"blocks": {"blockNumber": "100"}}
    assert len(explorer.requests) == 1
    assert explorer.params(0)["blockno"] == "latest"


@pytest.mark.asyncio
async def test_transactions_pagination() -> None:
    explorer = QueuedExplorer({"status": "1", "result": [{"hash": "0x1"}, {"hash": "0x2"}]})
    registry, _ = _registry(explorer)

    result = await registry.invoke(
        "GetTransactionsByAddress", {"address": _ADDRESS, "limit": 2, "page": 3}
    )

    assert result.data["pagination"] == {"nextPage": 4, "hasMore": True}
    assert explorer.params(0)["offset"] == "2"
    assert explorer.params(0)["page"] == "3"


@pytest.mark.asyncio
async def test_contract_abi_is_decoded() -> None:
    explorer = QueuedExplorer({"status": "1", "result": '[{"type": "function", "name": "f"}]'})
    registry, _ = _registry(explorer)

    result = await registry.invoke("GetContractABI", {"address": _ADDRESS})

    assert result.data == {"abi": [{"type": "function", "name": "f"}]}


@pytest.mark.asyncio
async def test_transaction_status_message() -> None:
    explorer = QueuedExplorer({"status": "1", "result": {"status": "1"}})
    registry, _ = _registry(explorer)

    result = await registry.invoke("GetTransactionStatus", {"txHash": "0xabc"})

    assert result.message == "Transaction status: 1"
    assert result.data == {"status": "1"}


@pytest.mark.asyncio
async def test_signing_tools_issue_magic_links_without_touching_the_chain() -> None:
    explorer = QueuedExplorer()
    registry, links = _registry(explorer)

    send = await registry.invoke(
        "SendTransaction", {"to": _ADDRESS, "amount": 1.25, "symbol": "CRO"}
    )
    wrap = await registry.invoke("WrapToken", {"amount": 2})
    swap = await registry.invoke("SwapToken", {"amount": 3})

    assert send.data["magicLink"].startswith("http://wallet.test/sign-transaction/")
    assert wrap.data["magicLink"].startswith("http://wallet.test/sign-wrap-token/")
    assert swap.data["magicLink"].startswith("http://wallet.test/sign-swap-token/")
    assert "?token=" in send.data["magicLink"]
    assert send.data["magicLink"] != wrap.data["magicLink"]
    assert len(links) == 3
    assert explorer.requests == []
