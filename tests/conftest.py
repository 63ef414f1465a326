import asyncio
import copy
import itertools
from collections import defaultdict
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.core.dependencies import get_store
from app.main import app
from app.modules.groups.service import GroupService
from app.modules.memberships.service import MembershipService
from app.modules.sessions.mutations import SessionMutationService
from app.modules.sessions.schemas import SessionCreate
from app.modules.sessions.service import SessionService
from app.modules.users.service import UserService


def _comparable(value):
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return value
    return value


class InMemoryStore:
    """Test double with the same interface as app.database.document_store.DocumentStore"""

    def __init__(self):
        self.collections = defaultdict(dict)
        self.batch_error = None
        self.before_update = None
        self._ids = itertools.count(1)
        self._watchers = []

    def _notify(self, collection, doc):
        for watched, equals, queue in list(self._watchers):
            if watched == collection and all(doc.get(k) == v for k, v in equals.items()):
                queue.put_nowait({"eventType": "CHANGE", "record": copy.deepcopy(doc)})

    async def create(self, collection, data):
        doc_id = f"{collection}-{next(self._ids)}"
        doc = copy.deepcopy({**data, "id": doc_id})
        self.collections[collection][doc_id] = doc
        self._notify(collection, doc)
        return copy.deepcopy(doc)

    async def get(self, collection, doc_id):
        doc = self.collections[collection].get(doc_id)
        return copy.deepcopy(doc) if doc else None

    async def update(self, collection, doc_id, fields, expected_version=None):
        if self.before_update:
            await self.before_update(collection, doc_id)
        doc = self.collections[collection].get(doc_id)
        if doc is None:
            return None
        if expected_version is not None and doc.get("version") != expected_version:
            return None
        doc.update(copy.deepcopy(fields))
        self._notify(collection, doc)
        return copy.deepcopy(doc)

    async def delete(self, collection, doc_id):
        doc = self.collections[collection].pop(doc_id, None)
        if doc:
            self._notify(collection, doc)
        return doc is not None

    async def query(
        self,
        collection,
        equals=None,
        contains=None,
        one_of=None,
        greater_equal=None,
        less_than=None,
        order_by=None,
        descending=False
    ):
        docs = list(self.collections[collection].values())
        for column, value in (equals or {}).items():
            docs = [d for d in docs if d.get(column) == value]
        for column, value in (contains or {}).items():
            docs = [d for d in docs if value in (d.get(column) or [])]
        for column, values in (one_of or {}).items():
            docs = [d for d in docs if d.get(column) in values]
        for column, value in (greater_equal or {}).items():
            docs = [d for d in docs if _comparable(d.get(column)) >= _comparable(value)]
        for column, value in (less_than or {}).items():
            docs = [d for d in docs if _comparable(d.get(column)) < _comparable(value)]
        if order_by:
            docs.sort(key=lambda d: _comparable(d.get(order_by)), reverse=descending)
        return copy.deepcopy(docs)

    async def batch(self, writes):
        if self.batch_error:
            raise self.batch_error
        for write in writes:
            if write.doc_id not in self.collections[write.collection]:
                raise LookupError(f"document {write.collection}/{write.doc_id} not found")
        touched = []
        for write in writes:
            doc = self.collections[write.collection][write.doc_id]
            doc.update(copy.deepcopy(write.fields))
            for column, element in write.array_append.items():
                doc[column] = [e for e in doc.get(column, []) if e != element] + [element]
            for column, element in write.array_remove.items():
                doc[column] = [e for e in doc.get(column, []) if e != element]
            touched.append((write.collection, doc))
        for collection, doc in touched:
            self._notify(collection, doc)

    async def watch(self, collection, equals=None):
        entry = (collection, dict(equals or {}), asyncio.Queue())
        self._watchers.append(entry)
        try:
            yield {"eventType": "SUBSCRIBED"}
            while True:
                yield await entry[2].get()
        finally:
            self._watchers.remove(entry)


def next_week(days: int = 7) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def users(store):
    return UserService(store)


@pytest.fixture
def groups(store):
    return GroupService(store)


@pytest.fixture
def memberships(store):
    return MembershipService(store)


@pytest.fixture
def sessions(store):
    return SessionService(store, max_attempts=3)


@pytest.fixture
def mutations(sessions):
    return SessionMutationService(sessions)


@pytest.fixture
async def host(users):
    return (await users.create_user("game_master")).data


@pytest.fixture
async def group(groups, host):
    return (await groups.create_group("Test Group", host.id)).data


@pytest.fixture
async def session(sessions, group):
    return (await sessions.create_session(SessionCreate(
        group_id=group.id,
        session_date=next_week(),
        host_notes="Bring dice",
        is_confirmed=False
    ))).data


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
