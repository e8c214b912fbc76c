"""
Durable local key-value ports for draft slots.

All stores are synchronous get/set/remove by string key. Writes may raise
StorageError (e.g. StorageQuotaExceeded); DraftPersistence catches them.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

import redis
from sqlalchemy import create_engine, delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from listing_composer.core.config import Settings
from listing_composer.core.errors import StorageError, StorageQuotaExceeded
from listing_composer.models import Base
from listing_composer.models.draft_slot import DraftSlot


@runtime_checkable
class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class InMemoryKeyValueStore:
    """
    Process-local store. max_bytes emulates a browser storage quota.
    """

    def __init__(self, *, max_bytes: int | None = None):
        self._data: dict[str, str] = {}
        self.max_bytes = max_bytes

    def _size_with(self, key: str, value: str) -> int:
        total = sum(len(k) + len(v) for k, v in self._data.items() if k != key)
        return total + len(key) + len(value)

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.max_bytes is not None and self._size_with(key, value) > self.max_bytes:
            raise StorageQuotaExceeded(f"quota of {self.max_bytes} bytes exceeded writing {key!r}")
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class RedisKeyValueStore:
    def __init__(self, client: "redis.Redis", *, ttl_seconds: int | None = None):
        self.r = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, redis_url: str, **kwargs) -> "RedisKeyValueStore":
        return cls(redis.Redis.from_url(redis_url, decode_responses=True), **kwargs)

    def get(self, key: str) -> str | None:
        try:
            return self.r.get(key)
        except redis.RedisError as e:
            raise StorageError(str(e)) from e

    def set(self, key: str, value: str) -> None:
        try:
            self.r.set(key, value, ex=self.ttl_seconds)
        except redis.ResponseError as e:
            # maxmemory with noeviction policy
            if "OOM" in str(e):
                raise StorageQuotaExceeded(str(e)) from e
            raise StorageError(str(e)) from e
        except redis.RedisError as e:
            raise StorageError(str(e)) from e

    def remove(self, key: str) -> None:
        try:
            self.r.delete(key)
        except redis.RedisError as e:
            raise StorageError(str(e)) from e


class SqlKeyValueStore:
    """Draft slots in a SQL table (sqlite by default)."""

    def __init__(self, engine: Engine):
        self.engine = engine
        Base.metadata.create_all(engine)

    @classmethod
    def from_url(cls, database_url: str) -> "SqlKeyValueStore":
        return cls(create_engine(database_url, future=True, pool_pre_ping=True))

    def get(self, key: str) -> str | None:
        try:
            with Session(self.engine) as db:
                return db.execute(select(DraftSlot.value).where(DraftSlot.key == key)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

    def set(self, key: str, value: str) -> None:
        try:
            with Session(self.engine) as db, db.begin():
                slot = db.get(DraftSlot, key)
                if slot:
                    slot.value = value
                else:
                    db.add(DraftSlot(key=key, value=value))
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

    def remove(self, key: str) -> None:
        try:
            with Session(self.engine) as db, db.begin():
                db.execute(delete(DraftSlot).where(DraftSlot.key == key))
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e


def build_kv_store(settings: Settings) -> KeyValueStore:
    if settings.draft_backend == "redis":
        return RedisKeyValueStore.from_url(settings.redis_url)
    if settings.draft_backend == "sql":
        return SqlKeyValueStore.from_url(settings.draft_database_url)
    return InMemoryKeyValueStore()
