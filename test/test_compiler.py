import json
from pathlib import Path
from types import SimpleNamespace

import pytest
import solcx.main

from mantleai import compiler as compiler_module
from mantleai.compiler import SolidityCompiler
from mantleai.errors import CompilationFailed, InvalidRequest


@pytest.fixture
def fake_solc(monkeypatch):
    """Stand in for the solc binary; compile_standard itself runs unchanged."""
    calls = {"install": [], "compile": []}
    output = {}

    monkeypatch.setattr(compiler_module.solcx, "get_installed_solc_versions", lambda: [])
    monkeypatch.setattr(compiler_module.solcx, "install_solc", lambda version: calls["install"].append(version))
    monkeypatch.setattr(solcx.main, "get_executable", lambda *args, **kwargs: Path("/opt/solc/bin/solc-v0.8.19"))

    def solc_wrapper(solc_binary=None, stdin=None, **kwargs):
        calls["compile"].append(json.loads(stdin))
        command = [str(solc_binary), "--standard-json"]
        return json.dumps(output), "", command, SimpleNamespace(returncode=0)

    monkeypatch.setattr(solcx.main.wrapper, "solc_wrapper", solc_wrapper)
    return calls, output


@pytest.mark.asyncio
async def test_compile_returns_first_contract(fake_solc):
    calls, output = fake_solc
    output["contracts"] = {
        "contract.sol": {"Counter": {"abi": [{"type": "function"}], "evm": {"bytecode": {"object": "6080"}}}}
    }
    compiler = SolidityCompiler("0.8.19")

    result = await compiler.compile("contract Counter {}")
    await compiler.compile("contract Counter {}")

    assert result.to_dict() == {"contractName": "Counter", "abi": [{"type": "function"}], "bytecode": "6080"}
    assert calls["install"] == ["0.8.19"]
    input_data = calls["compile"][0]
    assert input_data["settings"]["optimizer"] == {"enabled": True, "runs": 200}
    assert input_data["sources"]["contract.sol"]["content"] == "contract Counter {}"


@pytest.mark.asyncio
async def test_compile_reports_error_messages_only(fake_solc):
    _, output = fake_solc
    output["errors"] = [
        {"severity": "warning", "message": "Unused variable", "formattedMessage": "Warning: Unused variable\n"},
        {"severity": "error", "message": "Expected ';'", "formattedMessage": "ParserError: Expected ';'\n"},
    ]

    with pytest.raises(CompilationFailed) as excinfo:
        await SolidityCompiler("0.8.19").compile("contract {")

    assert excinfo.value.details == ["ParserError: Expected ';'"]
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_compile_with_warnings_only_succeeds(fake_solc):
    _, output = fake_solc
    output["errors"] = [{"severity": "warning", "formattedMessage": "Warning: Unused variable"}]
    output["contracts"] = {"contract.sol": {"A": {"abi": [], "evm": {"bytecode": {"object": "60"}}}}}

    result = await SolidityCompiler("0.8.19").compile("contract A { function f() public { uint x; } }")

    assert result.contract_name == "A"


@pytest.mark.asyncio
async def test_compile_rejects_empty_source(fake_solc):
    calls, _ = fake_solc

    with pytest.raises(InvalidRequest):
        await SolidityCompiler("0.8.19").compile("  ")
    assert calls["compile"] == []
