"""
Time-bounded response cache keyed by full request URL.

Two interchangeable stores:
- MemoryCache: in-process dict, used when no cache directory is configured
- FileCache: persistent named store (one JSON file per key), used when one is

Entries expire lazily: anything older than the staleness window reads as absent.
"""
from __future__ import annotations
import hashlib, json, os, sys, tempfile, threading, time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol

DEFAULT_TTL = 300.0  # 5 minutes
DEFAULT_CACHE_NAME = "catknow-api-cache"

Clock = Callable[[], float]

class ResponseCache(Protocol):
    ttl: float

    def get(self, key: str) -> Optional[Any]: ...

    def put(self, key: str, value: Any) -> None: ...

    def clear(self) -> None: ...

@dataclass
class CacheEntry:
    key: str
    value: Any
    stored_at: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.stored_at < ttl

class MemoryCache:
    def __init__(self, ttl: float = DEFAULT_TTL, *, clock: Clock = time.time):
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_fresh(self.clock(), self.ttl):
            with self._lock:
                # a fresher put may have landed since the read above
                if self._entries.get(key) is entry:
                    del self._entries[key]
            return None
        return entry.value

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(key, value, self.clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

class FileCache:
    """
    Named on-disk store: <directory>/<name>/<sha256(key)[:16]>.json.

    Reads and writes are synchronous file I/O on the calling thread, so inside the
    proxy they run on the event loop. Entries are small JSON pages.
    """

    def __init__(self, directory: Path | str, name: str = DEFAULT_CACHE_NAME, ttl: float = DEFAULT_TTL,
                 *, clock: Clock = time.time):
        self.root = Path(directory) / name
        self.ttl = ttl
        self.clock = clock

    def _path(self, key: str) -> Path:
        return self.root / f"{hashlib.sha256(key.encode()).hexdigest()[:16]}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                raw = json.load(f)
            entry = CacheEntry(raw["key"], raw["value"], float(raw["stored_at"]))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError, KeyError, TypeError, ValueError) as e:
            print(f"[warn] unreadable cache entry {path.name}: {e}", file=sys.stderr)
            return None
        # prefix collision guard
        if entry.key != key or not entry.is_fresh(self.clock(), self.ttl):
            return None
        return entry.value

    def put(self, key: str, value: Any) -> None:
        """Best effort: an unwritable store logs a warning and the entry is skipped."""
        record = {"key": key, "stored_at": self.clock(), "value": value}
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.root, suffix=".tmp")
        except OSError as e:
            print(f"[warn] cache store {self.root} not writable: {e}", file=sys.stderr)
            return
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record, f)
            os.replace(tmp, self._path(key))
        except OSError as e:
            Path(tmp).unlink(missing_ok=True)
            print(f"[warn] could not write cache entry {self._path(key).name}: {e}", file=sys.stderr)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def clear(self) -> None:
        if not self.root.exists():
            return
        for path in self.root.glob("*.json"):
            path.unlink(missing_ok=True)

def build_cache(cache_dir: Optional[str], ttl: float = DEFAULT_TTL) -> ResponseCache:
    """Persistent store when a directory is configured, in-process otherwise."""
    if cache_dir:
        return FileCache(cache_dir, ttl=ttl)
    return MemoryCache(ttl=ttl)
