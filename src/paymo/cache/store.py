"""JSON file-backed cache store with per-resource-type TTLs.

The whole cache is one document, persisted at ``<cache dir>/cache.json``::

    {
      "entries": {
        "projects": {
          "all": {"data": [...], "cached_at": 1700000000, "ttl_seconds": 3600}
        },
        "task": {
          "42": {"data": {...}, "cached_at": 1700000100, "ttl_seconds": 1800}
        }
      }
    }

The top level maps a *resource type* (a bucket) to cache keys, and each key
to one entry. The document is loaded once when the store is opened and
rewritten in full, atomically, after every mutation. A file that fails to
parse is discarded and the store starts empty; the cache is never the
source of truth, so losing it only costs a few extra API calls.

Freshness is decided per entry: an entry is fresh while
``now - cached_at <= ttl_seconds``. :meth:`CacheStore.get` only returns
fresh entries, while :meth:`CacheStore.get_stale` ignores age and exists
for the offline fallback in :class:`~paymo.cache.CachedClient`.

See Also:
    :data:`DEFAULT_TTL` -- the TTL table, overridable through
    :class:`~paymo.models.CacheConfig`.
"""

from __future__ import annotations

import copy
import threading
import time
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from paymo.config import atomic_write
from paymo.exceptions import CacheMiss
from paymo.output import debug, warning

DEFAULT_TTL: dict[str, int] = {
    "me": 24 * 60 * 60,
    "projects": 60 * 60,
    "project": 60 * 60,
    "project_by_name": 60 * 60,
    "tasks": 30 * 60,
    "task": 30 * 60,
    "task_by_name": 30 * 60,
    "tasklists": 60 * 60,
    "entries": 5 * 60,
    "entry": 5 * 60,
    "active_entry": 0,  # never cache
    "clients": 60 * 60,
}
"""TTL in seconds per resource type. ``0`` means the type is never cached."""

FALLBACK_TTL = 60 * 60
"""TTL applied to resource types missing from :data:`DEFAULT_TTL`."""

_JSON: TypeAdapter[Any] = TypeAdapter(Any)


class CacheEntry(BaseModel):
    """A single cached value with the time it was stored and its TTL."""

    data: Any = None
    cached_at: int
    ttl_seconds: int

    def is_fresh(self, now: int) -> bool:
        return now - self.cached_at <= self.ttl_seconds


class CacheDocument(BaseModel):
    """The persisted document: resource type -> cache key -> entry."""

    entries: dict[str, dict[str, CacheEntry]] = Field(default_factory=dict)


class CacheStore:
    """Persistent bucketed key/value cache.

    One store is opened per CLI invocation and handed to
    :class:`~paymo.cache.CachedClient`. It should be used as a context
    manager so the document is flushed on every exit path.

    All reads and mutations of the in-memory document hold a single lock,
    and the write to disk happens while that lock is still held, so two
    flushes can never interleave and a flush never sees a half-applied
    mutation.

    Args:
        path: Location of the JSON document. Parent directories are
            created (mode ``0700``) if missing.
        ttl_overrides: Per-type TTLs in seconds that replace entries of
            :data:`DEFAULT_TTL`.
        clock: Returns the current epoch time. Tests inject a fake clock
            to age entries without sleeping.

    Attributes:
        recovered: True when an existing file could not be parsed and was
            discarded. Callers surface this as a warning.

    Example::

        with CacheStore.open(get_cache_path()) as store:
            store.set("projects", "all", projects)
            store.get("projects", "all", list[Project])
    """

    def __init__(
        self,
        path: str | Path,
        ttl_overrides: Optional[dict[str, int]] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._path = Path(path)
        self._ttls = {**DEFAULT_TTL, **(ttl_overrides or {})}
        self._clock = clock
        self._lock = threading.Lock()
        self.recovered = False
        self._path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        self._doc = self._load()

    @classmethod
    def open(
        cls,
        path: str | Path,
        ttl_overrides: Optional[dict[str, int]] = None,
        clock: Callable[[], float] = time.time,
    ) -> CacheStore:
        """Open (or create) the cache document at *path*."""
        return cls(path, ttl_overrides=ttl_overrides, clock=clock)

    @property
    def path(self) -> Path:
        return self._path

    def __enter__(self) -> CacheStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Flush the in-memory document to disk."""
        with self._lock:
            self._flush_locked()

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get(self, resource_type: str, key: str, as_type: Any = None) -> Any:
        """Return the cached payload for (*resource_type*, *key*) if fresh.

        Args:
            resource_type: Bucket name, e.g. ``"projects"``.
            key: Cache key within the bucket.
            as_type: Optional type (``Project``, ``list[Task]``...) the JSON
                payload is validated into. Without it the decoded JSON is
                returned.

        Raises:
            CacheMiss: If the key is absent, expired, or no longer decodes
                into *as_type*.
        """
        with self._lock:
            entry = self._entry(resource_type, key)
            if not entry.is_fresh(self._now()):
                raise CacheMiss(f"{resource_type}/{key} expired")
            data = entry.data
        return _decode(resource_type, key, data, as_type)

    def get_stale(self, resource_type: str, key: str, as_type: Any = None) -> Any:
        """Return the cached payload regardless of age.

        Only meant for answering from cache when the API is unreachable.

        Raises:
            CacheMiss: If the key was never cached (or was invalidated).
        """
        with self._lock:
            data = self._entry(resource_type, key).data
        return _decode(resource_type, key, data, as_type)

    def lookup_name(self, resource_type: str, name_lower: str, project_id: int = 0) -> int:
        """Find the id of a cached project or task whose name contains *name_lower*.

        Scans the individually cached entities in the ``project`` or
        ``task`` bucket; matching is a case-insensitive substring test.
        Tasks must also belong to *project_id*. The first match in
        insertion order wins.

        Raises:
            CacheMiss: If nothing cached matches, or *resource_type* is not
                ``"project"``/``"task"``.
        """
        needle = name_lower.lower()
        with self._lock:
            if resource_type in ("project", "task"):
                for entry in self._doc.entries.get(resource_type, {}).values():
                    record = entry.data
                    if not isinstance(record, dict):
                        continue
                    name = record.get("name")
                    entity_id = record.get("id")
                    if not isinstance(name, str) or not isinstance(entity_id, int):
                        continue
                    if resource_type == "task" and record.get("project_id") != project_id:
                        continue
                    if needle in name.lower():
                        return entity_id
        raise CacheMiss(f"no cached {resource_type} named like '{name_lower}'")

    def stats(self) -> dict[str, int]:
        """Return the number of cached entries per resource type, expired or not."""
        with self._lock:
            return {rt: len(bucket) for rt, bucket in self._doc.entries.items()}

    def size_bytes(self) -> int:
        """Return the size of the document on disk, or 0 if it was never written."""
        try:
            return self._path.stat().st_size
        except FileNotFoundError:
            return 0

    def ttl_for(self, resource_type: str) -> int:
        """Return the TTL in seconds used when caching *resource_type*."""
        return self._ttls.get(resource_type, FALLBACK_TTL)

    # ------------------------------------------------------------------ #
    # Mutations (each one is flushed before returning)
    # ------------------------------------------------------------------ #

    def set(self, resource_type: str, key: str, value: Any) -> None:
        """Cache *value* under (*resource_type*, *key*) and persist.

        Pydantic models (and lists of them) are stored as their JSON form.
        Types whose TTL is 0 are never written.
        """
        ttl = self.ttl_for(resource_type)
        if ttl == 0:
            return
        payload = _JSON.dump_python(value, mode="json")
        with self._lock:
            bucket = self._doc.entries.setdefault(resource_type, {})
            bucket[key] = CacheEntry(data=payload, cached_at=self._now(), ttl_seconds=ttl)
            self._flush_locked()

    def invalidate_type(self, *resource_types: str) -> None:
        """Drop every entry of each named resource type and persist."""
        with self._lock:
            for rt in resource_types:
                self._doc.entries.pop(rt, None)
            self._flush_locked()

    def clear(self) -> None:
        """Drop all cached data and persist."""
        with self._lock:
            self._doc.entries.clear()
            self._flush_locked()

    def prune(self) -> int:
        """Drop expired entries (and buckets left empty), persist, return the count removed."""
        removed = 0
        with self._lock:
            now = self._now()
            for rt in list(self._doc.entries):
                bucket = self._doc.entries[rt]
                for key in [k for k, entry in bucket.items() if not entry.is_fresh(now)]:
                    del bucket[key]
                    removed += 1
                if not bucket:
                    del self._doc.entries[rt]
            self._flush_locked()
        return removed

    def index_name(
        self,
        resource_type: str,
        name_lower: str,
        entity_id: int,
        project_id: int = 0,
    ) -> None:
        """Record a name -> id mapping.

        A no-op: :meth:`lookup_name` scans the cached entities directly, so
        the mapping already exists once the entity itself is cached.
        """

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _now(self) -> int:
        return int(self._clock())

    def _entry(self, resource_type: str, key: str) -> CacheEntry:
        bucket = self._doc.entries.get(resource_type)
        if bucket is None or key not in bucket:
            raise CacheMiss(f"{resource_type}/{key} not cached")
        return bucket[key]

    def _load(self) -> CacheDocument:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return CacheDocument()
        except (OSError, UnicodeDecodeError) as exc:
            debug(f"Cache file {self._path} unreadable, starting empty: {exc}")
            self.recovered = True
            return CacheDocument()

        if not raw.strip():
            return CacheDocument()
        try:
            return CacheDocument.model_validate_json(raw)
        except ValidationError as exc:
            debug(f"Cache file {self._path} is corrupt, starting empty: {exc.error_count()} errors")
            self.recovered = True
            return CacheDocument()

    def _flush_locked(self) -> bool:
        """Write the document to disk. Caller must hold ``self._lock``."""
        try:
            atomic_write(self._path, self._doc.model_dump_json())
        except OSError as exc:
            warning(f"Could not write cache file {self._path}: {exc}")
            return False
        return True


def _decode(resource_type: str, key: str, data: Any, as_type: Any) -> Any:
    if as_type is None:
        return copy.deepcopy(data)
    try:
        return TypeAdapter(as_type).validate_python(data)
    except ValidationError as exc:
        raise CacheMiss(f"{resource_type}/{key} no longer matches {as_type}") from exc
