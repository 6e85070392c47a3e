import httpx
import pytest

from conftest import (
    ADDRESS,
    MAINNET,
    SECURITY_JSON,
    SUMMARY_JSON,
    TESTNET,
    ExplorerStub,
    FakeChain,
    FakeModel,
    etherscan_payload,
)
from mantleai.decoder import ContractDecoder
from mantleai.errors import LanguageModelError, ResponseParseError, SourceNotFound
from mantleai.prompts import Task
from mantleai.source import SourceResolver
from mantleai.truncate import TRUNCATION_MARKER


SOURCE = "pragma solidity ^0.8.19;\ncontract Vault {}"


def make_decoder(model, source=SOURCE, deployed=None, max_code_length=6000):
    chain = FakeChain(deployed if deployed is not None else {"mainnet": "0x6080"})
    explorer = ExplorerStub(lambda request: httpx.Response(200, json=etherscan_payload(source)))
    resolver = SourceResolver(chain, (TESTNET, MAINNET), explorer.client())
    return ContractDecoder(resolver, model, (TESTNET, MAINNET), max_code_length)


@pytest.mark.asyncio
async def test_decode_merges_summary_and_security_findings():
    model = FakeModel({Task.SUMMARIZE: SUMMARY_JSON, Task.SECURITY_ANALYSIS: "```json\n" + SECURITY_JSON + "\n```"})

    result = await make_decoder(model).decode(ADDRESS)

    assert result.contract_code == SOURCE
    assert result.summary == "A simple ETH vault. Users deposit and withdraw MNT."
    assert result.features == [
        "🌐 Network: Mantle Mainnet",
        "📄 Contract: Vault",
        "⚙️ Compiler: v0.8.19+commit.7dd6d404",
        "✨ Deposits",
        "✨ Withdrawals",
        "🔧 deposit()",
        "🔧 withdraw(uint256)",
        "📝 Owner controlled",
        "🟠 [MEDIUM] Owner can drain funds",
        "🟡 [LOW] Missing event on withdraw",
        "🛡️ Overall risk: medium",
    ]
    assert sorted(prompt.task for prompt in model.prompts) == sorted([Task.SUMMARIZE, Task.SECURITY_ANALYSIS])


@pytest.mark.asyncio
async def test_decode_sends_truncated_code_but_returns_full_source():
    source = "A" * 5000 + "B" * 5000
    model = FakeModel({Task.SUMMARIZE: SUMMARY_JSON, Task.SECURITY_ANALYSIS: '{"issues": []}'})

    result = await make_decoder(model, source=source, max_code_length=1000).decode(ADDRESS)

    assert result.contract_code == source
    for prompt in model.prompts:
        assert TRUNCATION_MARKER in prompt.user
        assert source not in prompt.user
    assert result.features[-1] == "🛡️ Overall risk: safe"


@pytest.mark.asyncio
async def test_missing_contract_makes_no_model_calls():
    model = FakeModel()

    with pytest.raises(SourceNotFound):
        await make_decoder(model, deployed={}).decode(ADDRESS)
    assert model.prompts == []


@pytest.mark.asyncio
async def test_one_failed_model_call_fails_the_decode():
    model = FakeModel({Task.SUMMARIZE: SUMMARY_JSON, Task.SECURITY_ANALYSIS: LanguageModelError("timeout")})

    with pytest.raises(LanguageModelError):
        await make_decoder(model).decode(ADDRESS)


@pytest.mark.asyncio
async def test_unparseable_summary_fails_the_decode():
    model = FakeModel({Task.SUMMARIZE: "This contract is a vault.", Task.SECURITY_ANALYSIS: SECURITY_JSON})

    with pytest.raises(ResponseParseError):
        await make_decoder(model).decode(ADDRESS)
