import logging
from dataclasses import dataclass

import httpx
from pymongo.errors import PyMongoError

from .assistant import ContractAssistant
from .chain import ChainReader
from .compiler import SolidityCompiler
from .config import Settings
from .decoder import ContractDecoder
from .model import LanguageModel
from .source import SourceResolver
from .store import ContractStore


logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Process-wide clients and the operations built on them."""

    http_client: httpx.AsyncClient
    chain: ChainReader
    model: LanguageModel
    store: ContractStore
    resolver: SourceResolver
    assistant: ContractAssistant
    decoder: ContractDecoder
    compiler: SolidityCompiler

    async def startup(self) -> None:
        # Storage failures are reported per request; everything else keeps serving.
        try:
            await self.store.connect()
        except PyMongoError as exc:
            logger.error("Contract store unavailable, generated contracts will not be stored: %s", exc)

    async def shutdown(self) -> None:
        await self.store.close()
        await self.model.close()
        await self.chain.close()
        await self.http_client.aclose()


def build_services(settings: Settings) -> Services:
    http_client = httpx.AsyncClient(timeout=settings.openai_timeout, follow_redirects=True)
    chain = ChainReader(settings.networks)
    model = LanguageModel(
        api_key=settings.openai_api_key,
        model_id=settings.openai_model,
        timeout=settings.openai_timeout,
        json_mode=settings.openai_json_mode,
    )
    store = ContractStore(
        uri=settings.mongodb_uri,
        db_name=settings.mongodb_db,
        collection_name=settings.mongodb_collection,
        max_pool_size=settings.mongodb_max_pool_size,
    )
    resolver = SourceResolver(chain, settings.networks, http_client)
    return Services(
        http_client=http_client,
        chain=chain,
        model=model,
        store=store,
        resolver=resolver,
        assistant=ContractAssistant(model, store),
        decoder=ContractDecoder(resolver, model, settings.networks, settings.max_code_length),
        compiler=SolidityCompiler(settings.solc_version),
    )
