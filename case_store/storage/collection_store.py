import json
import logging
import re
import threading
import uuid
import weakref
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..errors import CallerError, StoreCorruptionError, WriteConflictError

log = logging.getLogger(__name__)

RESERVED_FIELDS = ("id", "createdAt", "updatedAt")
COLLECTION_NAME = re.compile(r"^[A-Za-z0-9_-]+$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Millisecond UTC timestamp with a Z suffix, e.g. 2024-05-01T12:00:00.000Z."""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def from_iso(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 stamp; values without a zone are taken as UTC."""
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class CollectionStore:
    """JSON collections kept in a remote file store: one file per collection.

    Each file holds a JSON array of items. Every item carries ``id``,
    ``createdAt`` and ``updatedAt``, which the store owns. Mutations re-read the
    whole file, change it in memory and upload it again, conditional on the
    revision that was read.
    """

    def __init__(self, remote, root: str = "/legal-case-data", *, retries: int = 3,
                 clock: Callable[[], datetime] = utc_now,
                 id_factory: Callable[[], str] = lambda: str(uuid.uuid4())):
        self.remote = remote
        self.root = root.rstrip("/")
        self.retries = retries
        self.clock = clock
        self.id_factory = id_factory
        # Entries vanish once no writer holds the lock.
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _path(self, collection: str) -> str:
        if not isinstance(collection, str) or not COLLECTION_NAME.match(collection):
            raise CallerError(f"Invalid collection name: {collection!r}")
        return f"{self.root}/{collection}.json"

    def _lock(self, collection: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(collection)
            if lock is None:
                lock = threading.Lock()
                self._locks[collection] = lock
            return lock

    def _load(self, collection: str) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        path = self._path(collection)
        remote_file = self.remote.download(path)
        if remote_file is None:
            return [], None
        try:
            items = json.loads(remote_file.content.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise StoreCorruptionError(f"{path} is not valid JSON: {e}") from e
        if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
            raise StoreCorruptionError(f"{path} does not hold a JSON array of objects")
        return items, remote_file.rev

    def _save(self, collection: str, items: List[Dict[str, Any]], rev: Optional[str]):
        body = json.dumps(items, indent=2, ensure_ascii=False).encode("utf-8")
        self.remote.upload(self._path(collection), body, rev=rev)

    def _mutate(self, collection: str, change: Callable[[List[Dict[str, Any]]], List[Dict[str, Any]]]):
        """Run read -> change -> conditional upload, retrying lost races."""
        self._path(collection)
        with self._lock(collection):
            attempt = 0
            while True:
                items, rev = self._load(collection)
                items = change(items)
                try:
                    self._save(collection, items, rev)
                    return items
                except WriteConflictError:
                    attempt += 1
                    if attempt > self.retries:
                        raise
                    log.warning("Collection %s changed underneath us; retry %d/%d",
                                collection, attempt, self.retries)

    def _stamp(self, previous: Optional[str] = None) -> str:
        now = self.clock()
        before = from_iso(previous) if previous else None
        if before is not None and now <= before:
            # Clock did not advance past the last stamp (same millisecond or skew).
            now = before + timedelta(milliseconds=1)
        return to_iso(now)

    def read(self, collection: str) -> List[Dict[str, Any]]:
        items, _ = self._load(collection)
        return items

    def write(self, collection: str, data: Optional[Mapping[str, Any]] = None,
              item_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Insert or update one item and return the whole collection.

        An ``item_id`` matching an existing item merges ``data`` over it and
        refreshes ``updatedAt``. Otherwise a new item is appended under
        ``item_id`` or a generated id.
        """
        fields = {k: v for k, v in dict(data or {}).items() if k not in RESERVED_FIELDS}

        def change(items):
            if item_id is not None:
                for index, existing in enumerate(items):
                    if existing.get("id") == item_id:
                        merged = {**existing, **fields}
                        merged["updatedAt"] = self._stamp(existing.get("updatedAt"))
                        items[index] = merged
                        return items
            now = self._stamp()
            items.append({
                **fields,
                "id": item_id if item_id is not None else self.id_factory(),
                "createdAt": now,
                "updatedAt": now,
            })
            return items

        return self._mutate(collection, change)

    def delete(self, collection: str, item_id: str) -> List[Dict[str, Any]]:
        return self._mutate(collection, lambda items: [i for i in items if i.get("id") != item_id])
