import asyncio
import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from .errors import StorageError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredContract:
    name: str
    code: str
    code_hash: str
    description: Optional[str]
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "codeHash": self.code_hash,
            "description": self.description,
            "metadata": self.metadata,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "StoredContract":
        return cls(
            id=str(data["_id"]),
            name=data["name"],
            code=data["code"],
            code_hash=data["code_hash"],
            description=data.get("description"),
            metadata=data.get("metadata") or {},
            created_at=data.get("created_at"),
        )


class ContractStore:
    """Generated-contract records in MongoDB."""

    def __init__(self, uri: str, db_name: str, collection_name: str, max_pool_size: int = 20) -> None:
        self._uri = uri
        self._db_name = db_name
        self._collection_name = collection_name
        self._max_pool_size = max_pool_size
        self._client: Optional[AsyncIOMotorClient] = None
        self._collection: Optional[AsyncIOMotorCollection] = None
        self._connect_lock = asyncio.Lock()

    @staticmethod
    def compute_hash(code: str) -> str:
        return hashlib.sha256(code.encode("utf-8")).hexdigest()

    async def connect(self) -> None:
        async with self._connect_lock:
            if self._client is not None and self._collection is not None:
                return

            client = AsyncIOMotorClient(self._uri, maxPoolSize=self._max_pool_size)
            collection = client[self._db_name][self._collection_name]
            try:
                await collection.create_index([("created_at", DESCENDING)])
                await collection.create_index("code_hash")
            except PyMongoError:
                client.close()
                raise
            self._client = client
            self._collection = collection

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._collection = None

    @property
    def collection(self) -> AsyncIOMotorCollection:
        if self._collection is None:
            raise RuntimeError("ContractStore.connect() must be called before use.")
        return self._collection

    async def save_contract(
        self,
        code: str,
        description: Optional[str],
        metadata: Dict[str, Any],
    ) -> StoredContract:
        now = datetime.now(timezone.utc)
        document = {
            "name": f"Contract_{int(now.timestamp() * 1000)}",
            "code": code,
            "code_hash": self.compute_hash(code),
            "description": description,
            "metadata": metadata,
            "created_at": now,
        }
        try:
            result = await self.collection.insert_one(document)
        except (PyMongoError, RuntimeError) as exc:
            raise StorageError("Failed to store contract", details=str(exc)) from exc

        document["_id"] = result.inserted_id
        logger.info("Stored generated contract %s", result.inserted_id)
        return StoredContract.from_document(document)

    async def get_contract(self, contract_id: str) -> Optional[StoredContract]:
        if not ObjectId.is_valid(contract_id):
            return None
        try:
            document = await self.collection.find_one({"_id": ObjectId(contract_id)})
        except (PyMongoError, RuntimeError) as exc:
            raise StorageError("Failed to load contract", details=str(exc)) from exc
        return StoredContract.from_document(document) if document else None

    async def list_contracts(self, limit: int = 20) -> List[StoredContract]:
        try:
            cursor = self.collection.find().sort("created_at", DESCENDING).limit(limit)
            documents = await cursor.to_list(length=limit)
        except (PyMongoError, RuntimeError) as exc:
            raise StorageError("Failed to list contracts", details=str(exc)) from exc
        return [StoredContract.from_document(document) for document in documents]
