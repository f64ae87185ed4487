"""Remote document store used to mirror the till across devices."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from till.codec import iso
from till.config import DATABASE_NAME, DATABASE_URL, REMOTE_TIMEOUT_MS, SHOP_ID
from till.errors import SyncFailure

logger = logging.getLogger(__name__)

OrdersCallback = Callable[[list[tuple[str, dict[str, Any]]]], None]
Unsubscribe = Callable[[], None]
StreamError = Callable[[SyncFailure], None]


class RemoteStore(Protocol):
    """Full-state document plus an append-only orders collection."""

    def merge_state(self, document: dict[str, Any]) -> None: ...

    def read_state(self) -> dict[str, Any] | None: ...

    def create_order(self, document: dict[str, Any]) -> str: ...

    def update_order(self, remote_id: str, fields: dict[str, Any]) -> bool: ...

    def find_order_id(self, order_no: int, placed_at: datetime) -> str | None: ...

    def list_orders(self) -> list[tuple[str, dict[str, Any]]]: ...

    def subscribe_orders(self, callback: OrdersCallback, on_error: StreamError | None = None) -> Unsubscribe: ...

    def write_status(self, document: dict[str, Any]) -> None: ...


def _strip_id(document: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    body = dict(document)
    remote_id = str(body.pop("_id"))
    return remote_id, body


class MongoRemoteStore:
    """RemoteStore backed by MongoDB; every driver error surfaces as SyncFailure."""

    def __init__(
        self,
        url: str = DATABASE_URL,
        database: str = DATABASE_NAME,
        shop_id: str = SHOP_ID,
        client: Any = None,
    ) -> None:
        from pymongo import MongoClient

        self.shop_id = shop_id
        self._client = client or MongoClient(url, serverSelectionTimeoutMS=REMOTE_TIMEOUT_MS, tz_aware=True)
        self._db = self._client[database]

    @property
    def _state(self):
        return self._db["state"]

    @property
    def _orders(self):
        return self._db["orders"]

    @property
    def _status(self):
        return self._db["status"]

    def _call(self, action: str, fn: Callable[[], Any]) -> Any:
        from pymongo.errors import PyMongoError

        try:
            return fn()
        except PyMongoError as exc:
            logger.warning("remote %s failed: %s", action, exc)
            raise SyncFailure(f"Remote {action} failed: {exc}") from exc

    def merge_state(self, document: dict[str, Any]) -> None:
        fields = {**document, "updatedAt": datetime.now(timezone.utc)}
        self._call(
            "save",
            lambda: self._state.update_one({"_id": self.shop_id}, {"$set": fields}, upsert=True),
        )

    def read_state(self) -> dict[str, Any] | None:
        document = self._call("load", lambda: self._state.find_one({"_id": self.shop_id}))
        if document is None:
            return None
        document.pop("_id", None)
        document.pop("updatedAt", None)
        return document

    def create_order(self, document: dict[str, Any]) -> str:
        now = datetime.now(timezone.utc)
        body = {**document, "shopId": self.shop_id, "createdAt": now, "updatedAt": now}
        result = self._call("order create", lambda: self._orders.insert_one(body))
        return str(result.inserted_id)

    def update_order(self, remote_id: str, fields: dict[str, Any]) -> bool:
        from bson import ObjectId
        from bson.errors import InvalidId

        try:
            key = ObjectId(remote_id)
        except InvalidId:
            logger.warning("remote order id is malformed id=%s", remote_id)
            return False
        body = {**fields, "updatedAt": datetime.now(timezone.utc)}
        result = self._call("order update", lambda: self._orders.update_one({"_id": key}, {"$set": body}))
        return result.matched_count > 0

    def find_order_id(self, order_no: int, placed_at: datetime) -> str | None:
        query = {"shopId": self.shop_id, "orderNo": order_no, "date": iso(placed_at)}
        document = self._call("order lookup", lambda: self._orders.find_one(query, {"_id": 1}))
        return str(document["_id"]) if document else None

    def list_orders(self) -> list[tuple[str, dict[str, Any]]]:
        cursor = self._call(
            "order list",
            lambda: list(self._orders.find({"shopId": self.shop_id}).sort("createdAt", -1)),
        )
        return [_strip_id(document) for document in cursor]

    def subscribe_orders(self, callback: OrdersCallback, on_error: StreamError | None = None) -> Unsubscribe:
        """Deliver the whole orders list now and after every change, until unsubscribed.

        If the change stream cannot start or dies, ``on_error`` gets the failure.
        """
        from pymongo.errors import PyMongoError

        stop = threading.Event()
        pipeline = [{"$match": {"$or": [{"fullDocument.shopId": self.shop_id}, {"operationType": "update"}]}}]

        def _watch() -> None:
            try:
                callback(self.list_orders())
                with self._orders.watch(pipeline, max_await_time_ms=500) as stream:
                    while not stop.is_set() and stream.alive:
                        change = stream.try_next()
                        if change is None or stop.is_set():
                            continue
                        callback(self.list_orders())
            except (PyMongoError, SyncFailure) as exc:
                logger.warning("order stream stopped: %s", exc)
                if on_error is not None and not stop.is_set():
                    on_error(exc if isinstance(exc, SyncFailure) else SyncFailure(f"Live orders stopped: {exc}"))
                return
            if on_error is not None and not stop.is_set():
                on_error(SyncFailure("Live orders stream closed."))

        thread = threading.Thread(target=_watch, name="till-order-stream", daemon=True)
        thread.start()
        return stop.set

    def write_status(self, document: dict[str, Any]) -> None:
        fields = {**document, "online": True, "updatedAt": datetime.now(timezone.utc)}
        self._call(
            "status write",
            lambda: self._status.update_one({"_id": self.shop_id}, {"$set": fields}, upsert=True),
        )


def create_remote_store(url: str = DATABASE_URL) -> RemoteStore | None:
    """Mongo-backed store, or None when mirroring is not configured."""
    if not url:
        logger.info("remote mirror disabled: DATABASE_URL is empty")
        return None
    return MongoRemoteStore(url=url)
