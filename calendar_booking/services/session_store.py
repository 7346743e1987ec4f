from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from functools import lru_cache
import threading

from calendar_booking.core.config import Settings
from calendar_booking.services.booking_models import TokenRecord


class SessionStore(ABC):
    """Maps the opaque user id handed out after login to its Graph token."""

    @abstractmethod
    def get(self, user_id: str) -> TokenRecord | None:
        raise NotImplementedError

    @abstractmethod
    def put(self, user_id: str, record: TokenRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, user_id: str) -> None:
        raise NotImplementedError


class InMemorySessionStore(SessionStore):
    """Process-local store; a record is evicted the first time it is read after expiry."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, TokenRecord] = {}

    def get(self, user_id: str) -> TokenRecord | None:
        with self._lock:
            record = self._records.get(user_id)
            if record is None:
                return None
            if record.is_expired():
                del self._records[user_id]
                return None
            return record

    def put(self, user_id: str, record: TokenRecord) -> None:
        with self._lock:
            self._records[user_id] = record

    def delete(self, user_id: str) -> None:
        with self._lock:
            self._records.pop(user_id, None)


class MongoSessionStore(SessionStore):
    """Sessions in MongoDB; a TTL index on ``expires_on`` lets the server evict them."""

    def __init__(
        self,
        *,
        uri: str,
        db_name: str,
        collection_name: str,
        connect_timeout_ms: int = 2000,
    ) -> None:
        from pymongo import ASCENDING, MongoClient

        self._client = MongoClient(
            uri,
            serverSelectionTimeoutMS=connect_timeout_ms,
            tz_aware=True,
        )
        self._collection = self._client[db_name][collection_name]
        self._collection.create_index([("expires_on", ASCENDING)], expireAfterSeconds=0)

    def get(self, user_id: str) -> TokenRecord | None:
        document = self._collection.find_one({"_id": user_id})
        if not document:
            return None
        record = TokenRecord.from_dict(document)
        # The TTL monitor runs about once a minute, so expiry is checked here too.
        if record.is_expired(datetime.now(UTC)):
            return None
        return record

    def put(self, user_id: str, record: TokenRecord) -> None:
        self._collection.replace_one(
            {"_id": user_id},
            {"_id": user_id, **record.to_dict()},
            upsert=True,
        )

    def delete(self, user_id: str) -> None:
        self._collection.delete_one({"_id": user_id})


def create_session_store(settings: Settings) -> SessionStore:
    return _create_session_store_cached(
        session_store=settings.session_store,
        mongodb_uri=settings.mongodb_uri,
        mongodb_db_name=settings.mongodb_db_name,
        mongodb_sessions_collection=settings.mongodb_sessions_collection,
        mongodb_connect_timeout_ms=settings.mongodb_connect_timeout_ms,
    )


@lru_cache
def _create_session_store_cached(
    *,
    session_store: str,
    mongodb_uri: str,
    mongodb_db_name: str,
    mongodb_sessions_collection: str,
    mongodb_connect_timeout_ms: int,
) -> SessionStore:
    if session_store == "mongodb":
        return MongoSessionStore(
            uri=mongodb_uri,
            db_name=mongodb_db_name,
            collection_name=mongodb_sessions_collection,
            connect_timeout_ms=mongodb_connect_timeout_ms,
        )
    return InMemorySessionStore()


def clear_session_store_cache() -> None:
    _create_session_store_cached.cache_clear()
