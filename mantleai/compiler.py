import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List

import solcx
from solcx.exceptions import SolcError

from .errors import CompilationFailed, InvalidRequest


logger = logging.getLogger(__name__)

SOURCE_NAME = "contract.sol"
OPTIMIZER_RUNS = 200
EVM_VERSION = "paris"


@dataclass(frozen=True)
class CompilationResult:
    contract_name: str
    abi: List[Dict[str, Any]]
    bytecode: str

    def to_dict(self) -> Dict[str, Any]:
        return {"contractName": self.contract_name, "abi": self.abi, "bytecode": self.bytecode}


def _error_messages(diagnostics: List[Dict[str, Any]]) -> List[str]:
    return [
        (error.get("formattedMessage") or error.get("message", "")).strip()
        for error in diagnostics
        if error.get("severity") == "error"
    ]


class SolidityCompiler:
    """Compiles single-file Solidity sources with a pinned solc release."""

    def __init__(self, version: str) -> None:
        self._version = version
        self._installed = False
        self._lock = asyncio.Lock()

    async def ensure_installed(self) -> None:
        async with self._lock:
            if self._installed:
                return
            installed = {str(v) for v in solcx.get_installed_solc_versions()}
            if self._version not in installed:
                logger.info("Installing solc %s", self._version)
                await asyncio.to_thread(solcx.install_solc, self._version)
            self._installed = True

    def _input(self, code: str) -> Dict[str, Any]:
        return {
            "language": "Solidity",
            "sources": {SOURCE_NAME: {"content": code}},
            "settings": {
                "optimizer": {"enabled": True, "runs": OPTIMIZER_RUNS},
                "evmVersion": EVM_VERSION,
                "outputSelection": {"*": {"*": ["abi", "evm.bytecode.object"]}},
            },
        }

    async def compile(self, code: str) -> CompilationResult:
        if not code.strip():
            raise InvalidRequest("Contract code is required")

        await self.ensure_installed()
        try:
            output = await asyncio.to_thread(
                solcx.compile_standard, self._input(code), solc_version=self._version
            )
        except SolcError as exc:
            # compile_standard raises whenever solc reports an error-severity diagnostic
            logger.info("Compilation failed: %s", exc.message)
            details = _error_messages(exc.error_dict or []) or [exc.message]
            raise CompilationFailed("Compilation failed", details=details) from exc

        errors = _error_messages(output.get("errors", []))
        if errors:
            raise CompilationFailed("Compilation failed", details=errors)

        contracts = output.get("contracts", {}).get(SOURCE_NAME, {})
        if not contracts:
            raise CompilationFailed("Compilation failed", details=["No contract found in source"])

        name = next(iter(contracts))
        contract = contracts[name]
        return CompilationResult(
            contract_name=name,
            abi=contract.get("abi", []),
            bytecode=contract["evm"]["bytecode"]["object"],
        )
