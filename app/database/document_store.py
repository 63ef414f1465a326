"""
Document store used by every service.

Wraps the Supabase async client behind the small set of primitives the
services need: create, get, conditional update, delete, query, atomic batch
and live change notifications. Rows come back as plain dicts.
"""

import asyncio
import logging
import uuid
from typing import Any, AsyncIterator, Dict, List, Optional

from pydantic import BaseModel, Field
from postgrest.exceptions import APIError
from supabase import AsyncClient

from app.database.supabase_client import get_supabase

logger = logging.getLogger(__name__)

USERS = "users"
GROUPS = "groups"
SESSIONS = "sessions"

BATCH_FUNCTION = "apply_batch"


class BatchWrite(BaseModel):
    """One document's share of an atomic batch."""
    collection: str
    doc_id: str
    fields: Dict[str, Any] = Field(default_factory=dict)
    array_append: Dict[str, str] = Field(default_factory=dict)  # column -> element, set semantics
    array_remove: Dict[str, str] = Field(default_factory=dict)


class DocumentStore:
    def __init__(self, client: AsyncClient):
        self.client = client

    async def create(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a document; the store assigns the id"""
        result = await self.client.table(collection).insert(data).execute()
        if not result.data:
            raise RuntimeError(f"Insert into {collection} returned no row")
        return result.data[0]

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = await self.client.table(collection)\
                .select("*")\
                .eq("id", doc_id)\
                .maybe_single()\
                .execute()
        except APIError as e:
            # some postgrest releases report a missing row as a 204 error
            if str(e.code) == "204":
                return None
            raise
        # maybe_single() yields no response at all when the row is missing
        if result is None or not result.data:
            return None
        return result.data

    async def update(
        self,
        collection: str,
        doc_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None
    ) -> Optional[Dict[str, Any]]:
        """Update named fields only. Returns None when no row matched (missing or version moved on)."""
        query = self.client.table(collection)\
            .update(fields)\
            .eq("id", doc_id)
        if expected_version is not None:
            query = query.eq("version", expected_version)
        result = await query.execute()
        if not result.data:
            return None
        return result.data[0]

    async def delete(self, collection: str, doc_id: str) -> bool:
        result = await self.client.table(collection)\
            .delete()\
            .eq("id", doc_id)\
            .execute()
        return len(result.data) > 0

    async def query(
        self,
        collection: str,
        equals: Optional[Dict[str, Any]] = None,
        contains: Optional[Dict[str, Any]] = None,
        one_of: Optional[Dict[str, List[Any]]] = None,
        greater_equal: Optional[Dict[str, Any]] = None,
        less_than: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[Dict[str, Any]]:
        """Equality, array containment, membership and range filters, ANDed together"""
        query = self.client.table(collection).select("*")
        for column, value in (equals or {}).items():
            query = query.eq(column, value)
        for column, value in (contains or {}).items():
            query = query.contains(column, [value])
        for column, values in (one_of or {}).items():
            query = query.in_(column, values)
        for column, value in (greater_equal or {}).items():
            query = query.gte(column, value)
        for column, value in (less_than or {}).items():
            query = query.lt(column, value)
        if order_by:
            query = query.order(order_by, desc=descending)
        result = await query.execute()
        return result.data or []

    async def batch(self, writes: List[BatchWrite]) -> None:
        """Apply all writes in one database transaction (see app/database/models.py)"""
        await self.client.rpc(
            BATCH_FUNCTION,
            {"operations": [w.model_dump() for w in writes]}
        ).execute()

    async def watch(
        self,
        collection: str,
        equals: Optional[Dict[str, Any]] = None
    ) -> AsyncIterator[Dict[str, Any]]:
        """
        Yield once as soon as the subscription is live, then once per change
        to the collection. Realtime filters only support a single equality,
        so at most one entry of `equals` is honoured.
        """
        changes: asyncio.Queue = asyncio.Queue()
        channel = self.client.channel(f"{collection}-{uuid.uuid4().hex}")
        realtime_filter = None
        if equals:
            column, value = next(iter(equals.items()))
            realtime_filter = f"{column}=eq.{value}"
        channel.on_postgres_changes(
            "*",
            callback=changes.put_nowait,
            table=collection,
            schema="public",
            filter=realtime_filter,
        )
        await channel.subscribe()
        logger.debug(f"Subscribed to {collection} changes (filter={realtime_filter})")
        try:
            yield {"eventType": "SUBSCRIBED"}
            while True:
                yield await changes.get()
        finally:
            await self.client.remove_channel(channel)
            logger.debug(f"Unsubscribed from {collection} changes")


async def get_document_store() -> DocumentStore:
    return DocumentStore(await get_supabase())
