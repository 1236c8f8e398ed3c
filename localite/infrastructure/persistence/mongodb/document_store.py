"""MongoDB implementation of IDocumentStore.

Layout:
  * flat collection ``name``: one document per record, ``_id = doc_id``
  * partitioned collection ``{parent}_{name}`` (e.g. ``users_journeys``):
    ``_id = "{owner_id}/{doc_id}"`` plus ``owner_id`` and ``doc_id``
    fields, indexed on ``owner_id``

Record fields live under ``data`` in both layouts, so query predicates
and sort keys are prefixed with ``data.``.

Design decisions:
  * create-if-absent relies on the unique ``_id`` (DuplicateKeyError -> False)
  * commit runs in a multi-document transaction (requires a replica set)
  * reads retried on AutoReconnect with tenacity; writes are not retried
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

import structlog
from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorClientSession,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import AutoReconnect, DuplicateKeyError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from localite.domain.shared.errors import BatchLimitExceededError
from localite.domain.shared.ports.document_store import (
    DEFAULT_MAX_BATCH_OPERATIONS,
    CollectionRef,
    Document,
    DocumentRef,
    SortDirection,
    StoredDocument,
    WriteKind,
    WriteOp,
)
from localite.infrastructure.config import get_mongodb_database, get_mongodb_uri

logger = structlog.get_logger(__name__)

DATA_FIELD = "data"

_read_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
    retry=retry_if_exception_type(AutoReconnect),
    reraise=True,
)


def _flatten(patch: Document, prefix: str) -> Document:
    """Dotted ``$set`` paths for a deep merge."""
    flat: Document = {}
    for field, value in patch.items():
        path = f"{prefix}.{field}"
        if isinstance(value, dict) and value:
            flat.update(_flatten(value, path))
        else:
            flat[path] = value
    return flat


class MongoDocumentStore:
    """
    MongoDB implementation of IDocumentStore port.

    Example:
        >>> store = MongoDocumentStore()  # from MONGODB_URI
        >>> ref = CollectionRef(name="journeys", owner_id="u1").document("j1")
        >>> await store.set(ref, {"title": "Harbor walk"})
    """

    def __init__(
        self,
        client: Optional[AsyncIOMotorClient[Dict[str, Any]]] = None,
        database_name: Optional[str] = None,
        max_batch_operations: int = DEFAULT_MAX_BATCH_OPERATIONS,
    ):
        """
        Initialize store with optional client.

        Args:
            client: Motor client (if None, creates new one from config)
            database_name: Database (default: MONGODB_DATABASE)
            max_batch_operations: Atomic batch ceiling
        """
        if client is None:
            uri = get_mongodb_uri()
            if not uri:
                raise ValueError(
                    "MONGODB_URI not configured. "
                    "Set MONGODB_URI, MONGODB_USER, "
                    "and MONGODB_PASSWORD environment variables."
                )
            self._client: AsyncIOMotorClient[Dict[str, Any]] = AsyncIOMotorClient(uri)
        else:
            self._client = client

        self._db: AsyncIOMotorDatabase[Dict[str, Any]] = self._client[
            database_name or get_mongodb_database()
        ]
        self.max_batch_operations = max_batch_operations

        logger.info("Initialized MongoDocumentStore", database=self._db.name)

    # ============================================================
    # Addressing
    # ============================================================

    def _collection(self, ref: CollectionRef) -> AsyncIOMotorCollection[Dict[str, Any]]:
        if ref.owner_id is None:
            return self._db[ref.name]
        return self._db[f"{ref.parent}_{ref.name}"]

    @staticmethod
    def _key(ref: DocumentRef) -> str:
        owner_id = ref.collection.owner_id
        if owner_id is None:
            return ref.doc_id
        return f"{owner_id}/{ref.doc_id}"

    @staticmethod
    def _scope(ref: CollectionRef) -> Document:
        if ref.owner_id is None:
            return {}
        return {"owner_id": ref.owner_id}

    def _envelope(self, ref: DocumentRef, data: Document) -> Document:
        document: Document = {"_id": self._key(ref), DATA_FIELD: data}
        if ref.collection.owner_id is not None:
            document["owner_id"] = ref.collection.owner_id
            document["doc_id"] = ref.doc_id
        return document

    def _to_stored(self, collection: CollectionRef, raw: Document) -> StoredDocument:
        doc_id = raw.get("doc_id") or str(raw["_id"])
        return StoredDocument(
            id=doc_id,
            owner_id=collection.owner_id,
            data=raw.get(DATA_FIELD) or {},
        )

    # ============================================================
    # Reads
    # ============================================================

    @_read_retry
    async def get(self, ref: DocumentRef) -> Optional[StoredDocument]:
        try:
            raw = await self._collection(ref.collection).find_one({"_id": self._key(ref)})
        except Exception as e:
            logger.error("find_one failed", path=ref.path, error=str(e))
            raise
        if raw is None:
            return None
        return self._to_stored(ref.collection, raw)

    @_read_retry
    async def query(
        self,
        collection: CollectionRef,
        where: Optional[Document] = None,
        order_by: Sequence[Tuple[str, SortDirection]] = (),
        limit: Optional[int] = None,
    ) -> List[StoredDocument]:
        filter_dict = self._scope(collection)
        for field, value in (where or {}).items():
            filter_dict[f"{DATA_FIELD}.{field}"] = value

        try:
            cursor = self._collection(collection).find(filter_dict)
            if order_by:
                cursor = cursor.sort(
                    [
                        (
                            f"{DATA_FIELD}.{field}",
                            DESCENDING
                            if SortDirection(direction) is SortDirection.DESCENDING
                            else ASCENDING,
                        )
                        for field, direction in order_by
                    ]
                )
            if limit:
                cursor = cursor.limit(limit)
            documents = await cursor.to_list(length=limit)
        except Exception as e:
            logger.error(
                "find failed",
                path=collection.path,
                filter=filter_dict,
                error=str(e),
            )
            raise

        return [self._to_stored(collection, raw) for raw in documents]

    @_read_retry
    async def count(self, collection: CollectionRef) -> int:
        try:
            return int(
                await self._collection(collection).count_documents(self._scope(collection))
            )
        except Exception as e:
            logger.error("count_documents failed", path=collection.path, error=str(e))
            raise

    @_read_retry
    async def list_partitions(self, parent: str, name: str) -> List[str]:
        try:
            owners = await self._db[f"{parent}_{name}"].distinct("owner_id")
        except Exception as e:
            logger.error("distinct failed", parent=parent, name=name, error=str(e))
            raise
        return sorted(str(owner) for owner in owners if owner)

    # ============================================================
    # Writes
    # ============================================================

    async def set(self, ref: DocumentRef, data: Document, merge: bool = False) -> None:
        try:
            await self._write(ref, data, merge)
        except Exception as e:
            logger.error("write failed", path=ref.path, merge=merge, error=str(e))
            raise

    async def create(self, ref: DocumentRef, data: Document) -> bool:
        try:
            await self._collection(ref.collection).insert_one(self._envelope(ref, data))
        except DuplicateKeyError:
            return False
        except Exception as e:
            logger.error("insert_one failed", path=ref.path, error=str(e))
            raise
        return True

    async def delete(self, ref: DocumentRef) -> bool:
        try:
            result = await self._collection(ref.collection).delete_one({"_id": self._key(ref)})
        except Exception as e:
            logger.error("delete_one failed", path=ref.path, error=str(e))
            raise
        return bool(result.deleted_count)

    async def commit(self, ops: Sequence[WriteOp]) -> None:
        """Apply ``ops`` in one transaction; nothing is applied on failure."""
        if len(ops) > self.max_batch_operations:
            raise BatchLimitExceededError(len(ops), self.max_batch_operations)
        if not ops:
            return

        try:
            async with await self._client.start_session() as session:
                async with session.start_transaction():
                    for op in ops:
                        if op.kind is WriteKind.DELETE:
                            await self._collection(op.ref.collection).delete_one(
                                {"_id": self._key(op.ref)}, session=session
                            )
                        else:
                            await self._write(
                                op.ref,
                                op.data or {},
                                op.kind is WriteKind.MERGE,
                                session=session,
                            )
        except Exception as e:
            logger.error("transaction aborted", operations=len(ops), error=str(e))
            raise

        logger.debug("transaction committed", operations=len(ops))

    async def _write(
        self,
        ref: DocumentRef,
        data: Document,
        merge: bool,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> None:
        collection = self._collection(ref.collection)
        envelope = self._envelope(ref, data)

        if not merge:
            await collection.replace_one(
                {"_id": envelope["_id"]}, envelope, upsert=True, session=session
            )
            return

        sets = {key: value for key, value in envelope.items() if key not in ("_id", DATA_FIELD)}
        sets.update(_flatten(data, DATA_FIELD))
        update: Document = {}
        if sets:
            update["$set"] = sets
        if not data:
            update["$setOnInsert"] = {DATA_FIELD: {}}
        await collection.update_one(
            {"_id": envelope["_id"]}, update, upsert=True, session=session
        )

    # ============================================================
    # Maintenance
    # ============================================================

    async def ensure_indexes(self, parent: str, name: str) -> None:
        """Create the ``owner_id`` index of a partitioned collection."""
        await self._db[f"{parent}_{name}"].create_index("owner_id")
        logger.info("Index ensured", collection=f"{parent}_{name}", field="owner_id")

    async def close(self) -> None:
        """Close MongoDB connection."""
        self._client.close()
        logger.info("Closed MongoDocumentStore connection")
