"""The abstract storage layer of VoidMail.

Every table in VoidMail is a `RecordStorage`: a keyed collection of Records. A Record is the smallest storable unit, usually a `dataclasses.dataclass`.

Storing arbitrary composite types is left to adapters. A `CommonStorage` is a `RecordStorage` whose records are plain `dict` with `str` keys, and `CommonStorageRecordWrapper` turns one into a `RecordStorage` of a specific type with the help of a `CommonStorageAdapter`:

````python
class UserStore(CommonStorageRecordWrapper[UserRecord]):
    def __init__(self, common_storage: CommonStorage) -> None:
        super().__init__(common_storage, DataclassCommonStorageAdapter(UserRecord))
````

Unlike a query-only document store, every storage here has a primary key field. Operations on a single key (`store`, `store_if_absent`, `patch`, `get`) are atomic.
"""
import dataclasses
from copy import deepcopy
from threading import Lock
from typing import (
    Any,
    AsyncIterable,
    Awaitable,
    Dict,
    Generic,
    List,
    Optional,
    Type,
    TypeVar,
)

T = TypeVar("T")


class RecordStorage(Generic[T]):
    """A protocol type which describes basic table operations on a type.

    Queries are described in `dict` with `str` as key, a record matches a query when all the given fields are equal.
    """

    def store(self, record: T) -> Awaitable[T]:
        """Save a record, replacing any record under the same key."""
        ...

    def store_if_absent(self, record: T) -> Awaitable[bool]:
        """Save a record only if its key is not taken yet. Return `True` if the record is saved.

        ..important:: The check and the insert are one atomic step.
        """
        ...

    def get(self, key: str) -> Awaitable[Optional[T]]:
        """Get the record under `key`."""
        ...

    def patch(self, key: str, changes: Dict[str, Any]) -> Awaitable[Optional[T]]:
        """Update some fields of the record under `key` in one atomic step. Return the updated record."""
        ...

    def find(self, query: Dict[str, Any]) -> AsyncIterable[T]:
        """Find records which completely match `query`, in insertion order."""
        ...

    def count(self) -> Awaitable[int]:
        """Return the number of records."""
        ...

    def snapshot(self) -> Awaitable[Dict[str, T]]:
        """Return a copy of the whole table, key to record."""
        ...

    def restore(self, table: Dict[str, T]) -> Awaitable[None]:
        """Replace the whole table with `table`.

        ..caution:: The previous content is discarded, this is not a merge.
        """
        ...


class CommonStorage(RecordStorage[Dict[str, Any]]):
    """A protocol type which is `RecordStorage` with `Dict[str, Any]` (read/write `dict`) for general purpose."""

    pass


class CommonStorageAdapter(Generic[T]):
    """Adapter for `CommonStorageRecordWrapper`.
    Implement `record2dict` and `dict2record` to transform the data between record and dict.
    """

    def record2dict(self, record: T) -> Dict[str, Any]:
        """Build a `dict` from `record`."""
        ...

    def dict2record(self, d: Dict[str, Any]) -> T:
        """Build a record from a `d`."""
        ...


class CommonStorageRecordWrapper(RecordStorage[T]):
    """
    A wrapper for `CommonStorage`, convert the common storage to a `RecordStorage` which can read and write a record type directly.

    Records returned from the wrapper are always copies. Changing them does not change the table, use `patch` or `store` for that.
    """

    def __init__(
        self, common_storage: CommonStorage, adapter: CommonStorageAdapter[T]
    ) -> None:
        self.common_storage = common_storage
        self.adapter = adapter
        super().__init__()

    async def store(self, record: T) -> T:
        d = self.adapter.record2dict(record)
        result = await self.common_storage.store(d)
        return self.adapter.dict2record(result)

    async def store_if_absent(self, record: T) -> bool:
        return await self.common_storage.store_if_absent(
            self.adapter.record2dict(record)
        )

    async def get(self, key: str) -> Optional[T]:
        result = await self.common_storage.get(key)
        if result is not None:
            return self.adapter.dict2record(result)
        return None

    async def patch(self, key: str, changes: Dict[str, Any]) -> Optional[T]:
        result = await self.common_storage.patch(key, changes)
        if result is not None:
            return self.adapter.dict2record(result)
        return None

    async def find(self, query: Dict[str, Any]) -> AsyncIterable[T]:
        async for doc in self.common_storage.find(query):
            yield self.adapter.dict2record(doc)

    async def count(self) -> int:
        return await self.common_storage.count()

    async def snapshot(self) -> Dict[str, T]:
        table = await self.common_storage.snapshot()
        return {k: self.adapter.dict2record(v) for k, v in table.items()}

    async def restore(self, table: Dict[str, T]) -> None:
        await self.common_storage.restore(
            {k: self.adapter.record2dict(v) for k, v in table.items()}
        )


class DataclassCommonStorageAdapter(Generic[T], CommonStorageAdapter[T]):
    """A `CommonStorageAdapter` for `dataclasses`.

    ..warning:: the checking is performed by dataclass itself. `dataclasses` does not check the actual data type, but checking the fields given.
    """

    def __init__(self, datacls: Type[T]) -> None:
        assert dataclasses.is_dataclass(datacls), "datacls should be a dataclass"
        self.datacls = datacls
        super().__init__()

    def dict2record(self, d: Dict[str, Any]) -> T:
        return self.datacls(**d)  # type: ignore # it should work

    def record2dict(self, record: T) -> Dict[str, Any]:
        return dataclasses.asdict(record)


class MemoryStorage(CommonStorage):
    """An in-memory implementation of `CommonStorage`, keyed by the field `key_field`.

    .. note:: The table is guarded by a `threading.Lock`.
        No method awaits while holding it, so every single-key operation is atomic for coroutines and for other threads alike.

    .. caution:: `find` iterates over a copy taken when the iteration begins.
        Records written after that are not seen, which is acceptable for listing and searching.
    """

    def __init__(self, key_field: str) -> None:
        self.key_field = key_field
        """`str`. The name of the field used as primary key."""
        self._table: Dict[str, Dict[str, Any]] = {}
        self._lock = Lock()
        super().__init__()

    def key_of(self, record: Dict[str, Any]) -> str:
        return record[self.key_field]

    @classmethod
    def doc_match(cls, doc: Dict[str, Any], match: Dict[str, Any]) -> bool:
        """Check if `doc` completely matches `match`."""
        for k in match:
            if k not in doc or doc[k] != match[k]:
                return False
        return True

    async def store(self, record: Dict[str, Any]) -> Dict[str, Any]:
        record = deepcopy(record)
        with self._lock:
            self._table[self.key_of(record)] = record
        return deepcopy(record)

    async def store_if_absent(self, record: Dict[str, Any]) -> bool:
        record = deepcopy(record)
        key = self.key_of(record)
        with self._lock:
            if key in self._table:
                return False
            self._table[key] = record
            return True

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            doc = self._table.get(key)
            return deepcopy(doc) if doc is not None else None

    async def patch(
        self, key: str, changes: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        assert self.key_field not in changes, "the key field could not be changed"
        with self._lock:
            doc = self._table.get(key)
            if doc is None:
                return None
            doc.update(changes)
            return deepcopy(doc)

    def _matching(self, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        with self._lock:
            return [
                deepcopy(doc)
                for doc in self._table.values()
                if self.doc_match(doc, query)
            ]

    async def find(self, query: Dict[str, Any]) -> AsyncIterable[Dict[str, Any]]:
        for doc in self._matching(query):
            yield doc

    async def count(self) -> int:
        with self._lock:
            return len(self._table)

    async def snapshot(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return deepcopy(self._table)

    async def restore(self, table: Dict[str, Dict[str, Any]]) -> None:
        table = deepcopy(table)
        with self._lock:
            self._table = table
