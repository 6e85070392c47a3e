"""Verified-source lookup against the Mantle block explorers."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from .chain import ChainReader, is_address
from .config import Network
from .errors import InvalidRequest, SourceNotFound


logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"

# Tried in order against the explorer API base of the network holding the bytecode.
SOURCE_ENDPOINT_PATTERNS = (
    "?module=contract&action=getsourcecode&address={address}",
    "/v2/smart-contracts/{address}/source-code",
    "/v1/contracts/{address}/source-code",
    "/contracts/{address}/source-code",
)


@dataclass(frozen=True)
class SourceRecord:
    source_code: str
    contract_name: str
    compiler_version: str
    network: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceCode": self.source_code,
            "contractName": self.contract_name,
            "compilerVersion": self.compiler_version,
            "network": self.network,
        }


def _flatten_sources(source_code: str) -> str:
    """Combine etherscan multi-file JSON (``{{ ... }}``) into a single listing."""
    if not source_code.startswith("{{"):
        return source_code
    try:
        sources_dict = json.loads(source_code[1:-1])
    except ValueError as exc:
        logger.warning("Failed to parse multi-file source JSON: %s", exc)
        return source_code

    files = sources_dict.get("sources", sources_dict)
    combined: List[str] = []
    for filename, filedata in files.items():
        if isinstance(filedata, dict) and "content" in filedata:
            combined.append(f"// File: {filename}\n{filedata['content']}")
    return "\n\n".join(combined) if combined else source_code


def _from_mapping(data: Dict[str, Any]) -> Optional[Tuple[str, str, str]]:
    source_code = data.get("SourceCode") or data.get("sourceCode")
    if not source_code or not isinstance(source_code, str):
        return None
    return (
        _flatten_sources(source_code),
        data.get("ContractName") or data.get("contractName") or UNKNOWN,
        data.get("CompilerVersion") or data.get("compilerVersion") or UNKNOWN,
    )


def parse_source_payload(data: Any) -> Optional[Tuple[str, str, str]]:
    """Return ``(source_code, contract_name, compiler_version)`` for a known response shape."""
    if isinstance(data, dict):
        result = data.get("result")
        if isinstance(result, list) and result and isinstance(result[0], dict):
            parsed = _from_mapping(result[0])
            if parsed:
                return parsed
        return _from_mapping(data)

    if isinstance(data, str) and data:
        try:
            decoded = json.loads(data)
        except ValueError:
            # Not JSON: the string itself is the source.
            return data, UNKNOWN, UNKNOWN
        if isinstance(decoded, dict):
            return _from_mapping(decoded)
    return None


class SourceResolver:
    def __init__(
        self,
        chain: ChainReader,
        networks: Sequence[Network],
        http_client: httpx.AsyncClient,
    ) -> None:
        if not networks:
            raise ValueError("At least one network must be configured.")
        self._chain = chain
        self._networks = tuple(networks)
        self._http = http_client

    async def find_network(self, address: str) -> Optional[Network]:
        """Return the first configured network with bytecode at ``address``."""
        for network in self._networks:
            logger.info("Checking %s for contract %s", network.name, address)
            code = await self._chain.get_code(network, address)
            if code:
                logger.info("Contract %s found on %s", address, network.name)
                return network
        return None

    async def resolve(self, address: str) -> SourceRecord:
        if not is_address(address):
            raise InvalidRequest("Invalid contract address")

        network = await self.find_network(address)
        if network is None:
            checked = self._networks[-1]
            raise SourceNotFound(
                "Contract not found on either testnet or mainnet",
                explorer_url=checked.address_url(address),
            )

        for pattern in SOURCE_ENDPOINT_PATTERNS:
            url = network.explorer_api + pattern.format(address=address)
            parsed = await self._fetch(url)
            if parsed:
                source_code, contract_name, compiler_version = parsed
                logger.info("Fetched source for %s from %s", address, url)
                return SourceRecord(
                    source_code=source_code,
                    contract_name=contract_name,
                    compiler_version=compiler_version,
                    network=network.name,
                )

        raise SourceNotFound(
            f"Contract source code not verified on {network.name}",
            explorer_url=network.address_url(address),
        )

    async def _fetch(self, url: str) -> Optional[Tuple[str, str, str]]:
        logger.info("Trying endpoint: %s", url)
        try:
            response = await self._http.get(url, headers={"accept": "application/json"})
        except httpx.HTTPError as exc:
            logger.info("Endpoint %s failed: %s", url, exc)
            return None

        if not response.is_success:
            logger.info("Response status for %s: %s", url, response.status_code)
            return None

        try:
            data = response.json()
        except ValueError:
            logger.info("Endpoint %s returned a non-JSON body", url)
            return None
        return parse_source_payload(data)
