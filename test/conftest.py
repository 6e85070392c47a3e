"""
Shared fakes and fixtures. Nothing here touches the network.
"""
import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from mantleai.assistant import ContractAssistant
from mantleai.config import Network, Settings
from mantleai.decoder import ContractDecoder
from mantleai.errors import StorageError
from mantleai.main import create_app
from mantleai.prompts import PromptMessages, Task
from mantleai.services import Services
from mantleai.source import SourceResolver
from mantleai.store import StoredContract


ADDRESS = "0x" + "ab" * 20

TESTNET = Network(
    name="testnet",
    label="Mantle Sepolia Testnet",
    rpc_url="http://testnet.invalid",
    explorer_url="https://explorer.sepolia.mantle.xyz",
)
MAINNET = Network(
    name="mainnet",
    label="Mantle Mainnet",
    rpc_url="http://mainnet.invalid",
    explorer_url="https://explorer.mantle.xyz",
)


class FakeChain:
    def __init__(self, deployed: Optional[Dict[str, str]] = None) -> None:
        self.deployed = deployed or {}
        self.calls: List[str] = []

    async def get_code(self, network: Network, address: str) -> Optional[str]:
        self.calls.append(network.name)
        return self.deployed.get(network.name)

    async def close(self) -> None:
        pass


class FakeModel:
    """Returns canned text per task; an Exception value is raised instead."""

    def __init__(self, responses: Optional[Dict[Task, Any]] = None) -> None:
        self.responses = responses or {}
        self.prompts: List[PromptMessages] = []

    async def complete(self, prompt: PromptMessages) -> str:
        self.prompts.append(prompt)
        response = self.responses[prompt.task]
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self) -> None:
        pass


class FakeStore:
    def __init__(self, fail: bool = False, unreachable: bool = False) -> None:
        self.fail = fail or unreachable
        self.unreachable = unreachable
        self.saved: List[StoredContract] = []

    async def connect(self) -> None:
        if self.unreachable:
            raise ServerSelectionTimeoutError("127.0.0.1:1: connection refused")

    async def close(self) -> None:
        pass

    async def save_contract(self, code: str, description: Optional[str], metadata: Dict[str, Any]) -> StoredContract:
        if self.fail:
            raise StorageError("Failed to store contract", details="connection refused")
        contract = StoredContract(
            id=f"c{len(self.saved) + 1}",
            name="Contract_1",
            code=code,
            code_hash="hash",
            description=description,
            metadata=metadata,
        )
        self.saved.append(contract)
        return contract

    async def list_contracts(self, limit: int = 20) -> List[StoredContract]:
        return list(reversed(self.saved))[:limit]

    async def get_contract(self, contract_id: str) -> Optional[StoredContract]:
        return next((c for c in self.saved if c.id == contract_id), None)


class ExplorerStub:
    """Records explorer requests and answers them through a handler."""

    def __init__(self, handler: Optional[Callable[[httpx.Request], httpx.Response]] = None) -> None:
        self.requests: List[httpx.Request] = []
        self._handler = handler or (lambda request: httpx.Response(404))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def etherscan_payload(source: str, name: str = "Vault", compiler: str = "v0.8.19+commit.7dd6d404") -> Dict[str, Any]:
    return {
        "status": "1",
        "message": "OK",
        "result": [{"SourceCode": source, "ContractName": name, "CompilerVersion": compiler}],
    }


SECURITY_JSON = json.dumps(
    {
        "overallRisk": "low",
        "issues": [
            {"severity": "medium", "description": "Owner can drain funds", "recommendation": "Add a timelock"},
            {"severity": "low", "description": "Missing event on withdraw"},
        ],
    }
)

SUMMARY_JSON = json.dumps(
    {
        "overview": "A simple ETH vault.",
        "purpose": "Users deposit and withdraw MNT.",
        "features": ["Deposits", "Withdrawals"],
        "functions": ["deposit()", "withdraw(uint256)"],
        "specialNotes": ["Owner controlled"],
    }
)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key="",
        openai_model="gpt-4o",
        openai_timeout=5.0,
        openai_json_mode=True,
        mongodb_uri="mongodb://localhost:27017",
        mongodb_db="mantleai-test",
        mongodb_collection="contracts",
        mongodb_max_pool_size=5,
        networks=(TESTNET, MAINNET),
        max_code_length=6000,
        solc_version="0.8.19",
        host="127.0.0.1",
        port=5000,
        log_level="INFO",
    )


@pytest.fixture
def make_services(settings):
    def _make(
        chain: Optional[FakeChain] = None,
        model: Optional[FakeModel] = None,
        store: Optional[FakeStore] = None,
        explorer: Optional[ExplorerStub] = None,
        compiler: Any = None,
    ) -> Services:
        chain = chain or FakeChain()
        model = model or FakeModel()
        store = store or FakeStore()
        explorer = explorer or ExplorerStub()
        http_client = explorer.client()
        resolver = SourceResolver(chain, settings.networks, http_client)
        return Services(
            http_client=http_client,
            chain=chain,
            model=model,
            store=store,
            resolver=resolver,
            assistant=ContractAssistant(model, store),
            decoder=ContractDecoder(resolver, model, settings.networks, settings.max_code_length),
            compiler=compiler,
        )

    return _make


@pytest.fixture
def make_client(settings, make_services):
    def _make(**kwargs) -> TestClient:
        return TestClient(create_app(settings, make_services(**kwargs)))

    return _make
