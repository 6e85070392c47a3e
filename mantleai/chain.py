import logging
import re
from typing import Dict, Iterable, Optional

from web3 import AsyncHTTPProvider, AsyncWeb3

from .config import Network
from .errors import ChainUnavailable, InvalidRequest


logger = logging.getLogger(__name__)

ADDRESS_RE = re.compile(r"0x[0-9a-fA-F]{40}")


def is_address(value: object) -> bool:
    return isinstance(value, str) and bool(ADDRESS_RE.fullmatch(value))


class ChainReader:
    """Reads deployed bytecode from the configured Mantle JSON-RPC endpoints."""

    def __init__(self, networks: Iterable[Network], timeout: float = 10.0) -> None:
        self._web3: Dict[str, AsyncWeb3] = {
            network.name: AsyncWeb3(
                AsyncHTTPProvider(network.rpc_url, request_kwargs={"timeout": timeout})
            )
            for network in networks
        }

    async def get_code(self, network: Network, address: str) -> Optional[str]:
        """Return the hex bytecode at ``address``, or ``None`` when nothing is deployed."""
        if not is_address(address):
            raise InvalidRequest("Invalid contract address")

        w3 = self._web3[network.name]
        try:
            code = await w3.eth.get_code(AsyncWeb3.to_checksum_address(address))
        except Exception as exc:
            logger.error("Bytecode lookup on %s failed: %s", network.name, exc)
            raise ChainUnavailable("Failed to verify contract existence", details=str(exc)) from exc

        if not code:
            return None
        return "0x" + bytes(code).hex()

    async def close(self) -> None:
        for w3 in self._web3.values():
            await w3.provider.disconnect()
