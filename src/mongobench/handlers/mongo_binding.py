"""
Record Operation Module.

This module provides the `MongoBinding`, the per-worker adapter through which
the load harness issues its five record operations (insert, read, update,
delete, scan) against MongoDB.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Type

from bson import ObjectId
from pymongo import ASCENDING

from ..comm import BindingContext, BindingContextProvider
from ..logging_config import get_logger
from ..models import OperationResult
from ..transforms import prepare_value
from .internal.insert_batch import _InsertBatch
from .row_verifier import RowVerifier

logger = get_logger(__name__)

INCLUDE = 1
"""Projection flag including a field in a response."""

UPDATE_MARKER_FIELD = "updateID"


def _as_bytes(value: Any) -> bytes:
    if isinstance(value, bytes):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    return str(value).encode("utf-8")


class MongoBinding:
    """
    One worker's view of the store.

    Every worker thread owns one `MongoBinding`. All the bindings of a process
    share the `BindingContext` handed out by a common
    [`BindingContextProvider`][mongobench.comm.BindingContextProvider]:
    connections, settings and the round-robin counter used to pick an
    endpoint for every operation. The insert batch is private to the binding.

    Operations never raise: store exceptions and empty outcomes are returned
    as [`OperationResult`][mongobench.models.OperationResult] errors, and no
    call is retried.

    Example:
        ```python
        provider = BindingContextProvider()
        with MongoBinding({"mongodb.url": "mongodb://localhost:27017"}, provider) as db:
            db.insert("usertable", "user1", {"field0": b"hello"})
            result = db.read("usertable", "user1")
        ```
    """

    def __init__(self, properties: Mapping[str, str], provider: BindingContextProvider):
        self._properties = dict(properties)
        self._provider = provider
        self._context: Optional[BindingContext] = None
        self._batch: Optional[_InsertBatch] = None

    # --- Lifecycle ---

    def init(self) -> None:
        """Registers the worker, opening the shared connections if first."""
        if self._context is not None:
            return
        self._context = self._provider.acquire(self._properties)
        self._batch = _InsertBatch(self._context.config.batch_size)

    def cleanup(self) -> None:
        """
        Flushes the partial insert batch, then unregisters the worker. The
        connections are closed once the last worker of the process is done.
        """
        if self._context is None:
            return
        try:
            if self._batch is not None and len(self._batch):
                self.flush()
        finally:
            self._context = None
            self._batch = None
            self._provider.release()

    def __enter__(self) -> "MongoBinding":
        self.init()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[Any],
    ) -> None:
        self.cleanup()

    def _require_context(self) -> BindingContext:
        if self._context is None:
            raise RuntimeError("MongoBinding used before init() or after cleanup()")
        return self._context

    @property
    def context(self) -> BindingContext:
        return self._require_context()

    def row_verifier(self) -> RowVerifier:
        """A verifier matching the routing fields configured for this binding."""
        cfg = self._require_context().config
        return RowVerifier(
            shard_key=cfg.shard_key,
            location=cfg.location,
            location_field=cfg.location_field,
        )

    # --- Document helpers ---

    def _record_filter(self, key: str) -> Dict[str, Any]:
        cfg = self._require_context().config
        query: Dict[str, Any] = {"_id": key}
        if cfg.shard_key:
            query[cfg.shard_key] = key  # shard key is the same as _id
        if cfg.location:
            query[cfg.location_field] = cfg.location
        return query

    def _routing_values(self, key: str) -> Dict[str, str]:
        cfg = self._require_context().config
        routing: Dict[str, str] = {}
        if cfg.shard_key:
            routing[cfg.shard_key] = key
        if cfg.location:
            routing[cfg.location_field] = cfg.location
        return routing

    def _is_immutable(self, field: str) -> bool:
        cfg = self._require_context().config
        return field == cfg.location_field or (
            bool(cfg.shard_key) and field == cfg.shard_key
        )

    def _prepare(self, field: str, data: bytes) -> Any:
        ctx = self._require_context()
        return prepare_value(
            field,
            data,
            generators=ctx.discrete_fields,
            ratio=ctx.config.compressibility,
            datatype=ctx.config.datatype,
        )

    def _projection(self, fields: Optional[Iterable[str]]) -> Optional[Dict[str, int]]:
        if fields is None:
            return None
        cfg = self._require_context().config
        projection = {f: INCLUDE for f in fields}
        if cfg.shard_key:
            projection[cfg.shard_key] = INCLUDE
        if cfg.location:
            projection[cfg.location_field] = INCLUDE
        return projection

    # --- Record operations ---

    def insert(self, table: str, key: str, values: Mapping[str, bytes]) -> OperationResult:
        """
        Inserts a record.

        Each value goes through discrete override, compressibility and
        encoding; the shard key and location, when configured, are stamped as
        plain strings. With a batch size above 1 the document is buffered in
        the batch of its table and `OK` is returned until that batch fills up,
        at which point it is written with a single `insert_many`.

        Args:
            table: The collection name.
            key: The record key, stored as `_id`.
            values: Field name to payload bytes.
        """
        ctx = self._require_context()
        routing = self._routing_values(key)
        try:
            collection = ctx.next_endpoint().database[table]
            document: Dict[str, Any] = {"_id": key}
            for field, data in values.items():
                if field in routing:
                    continue
                document[field] = self._prepare(field, data)
            document.update(routing)
        except Exception as e:
            logger.error(f"Couldn't build document for key {key}: '{e}'")
            return OperationResult.error(str(e))

        if ctx.config.batch_size == 1:
            try:
                collection.insert_one(document)
                return OperationResult.ok()
            except Exception as e:
                logger.error(f"Couldn't insert key {key}: '{e}'")
                return OperationResult.error(str(e))

        assert self._batch is not None
        if not self._batch.add(table, document):
            return OperationResult.ok()

        documents = self._batch.drain(table)[table]
        try:
            collection.insert_many(documents)
            return OperationResult.ok()
        except Exception as e:
            logger.error(
                f"Exception while trying bulk insert with {len(documents)} documents: '{e}'"
            )
            return OperationResult.error(str(e))

    def flush(self, table: Optional[str] = None) -> OperationResult:
        """
        Writes the buffered inserts now, whatever the batch fill level.

        Called by `cleanup()`: without it, a worker ending with a partial
        batch would silently lose those records.

        Args:
            table: The table whose batch is written, or None for every table.

        Returns:
            OperationResult: `OK` when every batch was written (or nothing was
                buffered), otherwise `ERROR` with the last failure. Failed
                batches are dropped.
        """
        ctx = self._require_context()
        if self._batch is None or not len(self._batch):
            return OperationResult.ok()

        result = OperationResult.ok()
        for name, documents in self._batch.drain(table).items():
            try:
                ctx.next_endpoint().database[name].insert_many(documents)
                logger.debug(f"Flushed {len(documents)} buffered documents into '{name}'")
            except Exception as e:
                logger.error(
                    f"Exception while flushing {len(documents)} documents into '{name}': '{e}'"
                )
                result = OperationResult.error(str(e))
        return result


    def read(
        self, table: str, key: str, fields: Optional[Iterable[str]] = None
    ) -> OperationResult:
        """
        Reads a record by key.

        The query is narrowed by the shard key and location when configured,
        and both are added to the projected fields. Every returned value is
        converted to bytes; `_id` is not part of the record.

        Args:
            table: The collection name.
            key: The record key.
            fields: Fields to return, or None for all of them.

        Returns:
            OperationResult: `OK` with the record as `data`, or `ERROR` when
                nothing matches.
        """
        ctx = self._require_context()
        try:
            collection = ctx.next_endpoint().database[table]
            doc = collection.find_one(self._record_filter(key), self._projection(fields))
            if doc:
                return OperationResult.ok(
                    data={k: _as_bytes(v) for k, v in doc.items() if k != "_id"}
                )
            logger.error(f"No results returned for key {key}")
            return OperationResult.error(f"No results returned for key {key}")
        except Exception as e:
            logger.error(f"Read of key {key} failed: '{e}'")
            return OperationResult.error(str(e))

    def update(self, table: str, key: str, values: Mapping[str, bytes]) -> OperationResult:
        """
        Sets the given fields of an existing record in place.

        Shard key and location are immutable and skipped. A fresh
        `updateID` marker is stamped on every update. A record that is not
        matched, or matched but not modified, is an error.
        """
        ctx = self._require_context()
        try:
            collection = ctx.next_endpoint().database[table]
            fields_to_set: Dict[str, Any] = {UPDATE_MARKER_FIELD: str(ObjectId())}
            for field, data in values.items():
                if self._is_immutable(field):
                    continue
                fields_to_set[field] = self._prepare(field, data)

            res = collection.update_one(self._record_filter(key), {"$set": fields_to_set})
            if res.matched_count == 0:
                logger.error(f"Can not find key {key}")
                return OperationResult.error(f"Can not find key {key}")
            if res.modified_count == 0:
                logger.error(f"Nothing updated for {key}")
                return OperationResult.error(f"Nothing updated for {key}")
            return OperationResult.ok()
        except Exception as e:
            logger.error(f"Update of key {key} failed: '{e}'")
            return OperationResult.error(str(e))

    def delete(self, table: str, key: str) -> OperationResult:
        """Removes every document matching the record filter (at most one)."""
        ctx = self._require_context()
        try:
            collection = ctx.next_endpoint().database[table]
            collection.delete_many(self._record_filter(key))
            return OperationResult.ok()
        except Exception as e:
            logger.error(f"Delete of key {key} failed: '{e}'")
            return OperationResult.error(str(e))

    def scan(
        self,
        table: str,
        start_key: str,
        record_count: int,
        fields: Optional[Iterable[str]] = None,
    ) -> OperationResult:
        """
        Reads up to `record_count` records with keys from `start_key` upwards,
        in ascending key order, restricted to the configured location.

        Only binary values are copied into the returned records.

        Returns:
            OperationResult: `OK` with a list of records as `data`, or `ERROR`
                when the range is empty.
        """
        ctx = self._require_context()
        cfg = ctx.config
        try:
            collection = ctx.next_endpoint().database[table]
            query: Dict[str, Any] = {"_id": {"$gte": start_key}}
            if cfg.location:
                query[cfg.location_field] = cfg.location

            projection = None
            if fields is not None:
                projection = {f: INCLUDE for f in fields}

            records: List[Dict[str, bytes]] = []
            with collection.find(query, projection).sort("_id", ASCENDING).limit(
                record_count
            ) as cursor:
                for doc in cursor:
                    records.append(
                        {k: bytes(v) for k, v in doc.items() if isinstance(v, bytes)}
                    )

            if not records:
                logger.error(f"Nothing found in scan for key {start_key}")
                return OperationResult.error(f"Nothing found in scan for key {start_key}")
            return OperationResult.ok(data=records)
        except Exception as e:
            logger.error(f"Scan from key {start_key} failed: '{e}'")
            return OperationResult.error(str(e))
