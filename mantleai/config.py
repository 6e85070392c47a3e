import logging
import os
import sys
from dataclasses import dataclass
from typing import Tuple

from dotenv import load_dotenv


DEFAULT_OPENAI_MODEL = "gpt-4o"
DEFAULT_OPENAI_TIMEOUT = 60.0
DEFAULT_MONGODB_URI = "mongodb://localhost:27017"
DEFAULT_DB_NAME = "mantleai"
DEFAULT_COLLECTION_NAME = "contracts"
DEFAULT_MONGODB_MAX_POOL_SIZE = 20
DEFAULT_TESTNET_RPC = "https://rpc.sepolia.mantle.xyz"
DEFAULT_MAINNET_RPC = "https://rpc.mantle.xyz"
DEFAULT_TESTNET_EXPLORER = "https://explorer.sepolia.mantle.xyz"
DEFAULT_MAINNET_EXPLORER = "https://explorer.mantle.xyz"
DEFAULT_MAX_CODE_LENGTH = 6000
DEFAULT_SOLC_VERSION = "0.8.19"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 5000

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Network:
    """A Mantle network with its JSON-RPC endpoint and block explorer."""

    name: str
    label: str
    rpc_url: str
    explorer_url: str

    @property
    def explorer_api(self) -> str:
        return f"{self.explorer_url}/api"

    def address_url(self, address: str) -> str:
        return f"{self.explorer_url}/address/{address}"


@dataclass(frozen=True)
class Settings:
    openai_api_key: str
    openai_model: str
    openai_timeout: float
    openai_json_mode: bool
    mongodb_uri: str
    mongodb_db: str
    mongodb_collection: str
    mongodb_max_pool_size: int
    networks: Tuple[Network, ...]
    max_code_length: int
    solc_version: str
    host: str
    port: int
    log_level: str

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        testnet = Network(
            name="testnet",
            label="Mantle Sepolia Testnet",
            rpc_url=os.environ.get("MANTLE_TESTNET_RPC", DEFAULT_TESTNET_RPC),
            explorer_url=os.environ.get("MANTLE_TESTNET_EXPLORER", DEFAULT_TESTNET_EXPLORER).rstrip("/"),
        )
        mainnet = Network(
            name="mainnet",
            label="Mantle Mainnet",
            rpc_url=os.environ.get("MANTLE_MAINNET_RPC", DEFAULT_MAINNET_RPC),
            explorer_url=os.environ.get("MANTLE_MAINNET_EXPLORER", DEFAULT_MAINNET_EXPLORER).rstrip("/"),
        )
        return cls(
            openai_api_key=os.environ.get("OPENAI_API_KEY", ""),
            openai_model=os.environ.get("OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
            openai_timeout=float(os.environ.get("OPENAI_TIMEOUT", DEFAULT_OPENAI_TIMEOUT)),
            openai_json_mode=_env_bool("OPENAI_JSON_MODE", True),
            mongodb_uri=os.environ.get("MONGODB_URI", DEFAULT_MONGODB_URI),
            mongodb_db=os.environ.get("MONGODB_DB", DEFAULT_DB_NAME),
            mongodb_collection=os.environ.get("MONGODB_COLLECTION", DEFAULT_COLLECTION_NAME),
            mongodb_max_pool_size=int(os.environ.get("MONGODB_MAX_POOL_SIZE", DEFAULT_MONGODB_MAX_POOL_SIZE)),
            # Testnet is probed before mainnet.
            networks=(testnet, mainnet),
            max_code_length=int(os.environ.get("DECODER_MAX_CODE_LENGTH", DEFAULT_MAX_CODE_LENGTH)),
            solc_version=os.environ.get("SOLC_VERSION", DEFAULT_SOLC_VERSION),
            host=os.environ.get("HOST", DEFAULT_HOST),
            port=int(os.environ.get("PORT", DEFAULT_PORT)),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    # stdout so process managers pick the lines up
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
