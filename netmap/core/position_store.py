"""Position Store Module - Persistent Storage for Dragged Node Positions.

This module provides per-user persistence of node positions with:
- A pluggable key/value backend (JSON files on disk, or in memory)
- Namespaced keys derived from the user identity
- Failure isolation: unreadable or corrupt payloads load as "no saved
  positions", failed writes are logged and otherwise ignored

The self-anchor is never stored; it always sits at the origin.

File format: one JSON object per user, ``{node_id: {"x": .., "y": ..}}``,
written with sorted keys for stable diffs.

Usage:
    from netmap.core.position_store import PositionStore, JsonFileBackend

    store = PositionStore(JsonFileBackend("/var/lib/netmap"), user_id="user_42")
    store.save(nodes)
    positions = store.load()
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, Optional
from urllib.parse import quote

from pydantic import ValidationError

from netmap.models.layout_metadata import NetworkNode, NodePosition

logger = logging.getLogger(__name__)

KEY_PREFIX = "node-positions-"


class PositionStoreError(Exception):
    """Raised by backends when the underlying storage cannot be used."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Position storage for {key} failed: {reason}")


class PositionBackend(ABC):
    """Durable key -> serialized payload association."""

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """Return the payload stored under key, or None if absent.

        Raises:
            PositionStoreError: If the storage cannot be read
        """
        ...

    @abstractmethod
    def write(self, key: str, payload: str) -> None:
        """Store payload under key, replacing any previous value.

        Raises:
            PositionStoreError: If the storage cannot be written
        """
        ...

    @abstractmethod
    def remove(self, key: str) -> bool:
        """Delete key. Returns True if something was removed.

        Raises:
            PositionStoreError: If the storage cannot be modified
        """
        ...


class InMemoryBackend(PositionBackend):
    """Process-local backend, used in tests and for anonymous sessions."""

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = threading.RLock()

    def read(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def write(self, key: str, payload: str) -> None:
        with self._lock:
            self._data[key] = payload

    def remove(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class JsonFileBackend(PositionBackend):
    """One JSON file per key inside a directory.

    The directory is created on first write. Keys are percent-encoded into
    file names, so distinct keys never share a file.
    """

    def __init__(self, directory):
        self.directory = Path(directory)
        self._lock = threading.RLock()

    def path_for(self, key: str) -> Path:
        """File path used for a key."""
        return self.directory / f"{quote(key, safe='')}.json"

    def read(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        with self._lock:
            if not path.exists():
                return None
            try:
                return path.read_text(encoding="utf-8")
            except OSError as e:
                raise PositionStoreError(key, str(e)) from e

    def write(self, key: str, payload: str) -> None:
        path = self.path_for(key)
        with self._lock:
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                tmp_path = path.with_suffix(".json.tmp")
                tmp_path.write_text(payload, encoding="utf-8")
                tmp_path.replace(path)
            except OSError as e:
                raise PositionStoreError(key, str(e)) from e
        logger.debug(f"Wrote {path}")

    def remove(self, key: str) -> bool:
        path = self.path_for(key)
        with self._lock:
            if not path.exists():
                return False
            try:
                path.unlink()
            except OSError as e:
                raise PositionStoreError(key, str(e)) from e
            return True


class PositionStore:
    """Per-user persisted map of node id -> last known position.

    An absent user identity makes every operation a no-op: saves are
    skipped and loads return an empty map.

    Example:
        store = PositionStore(InMemoryBackend(), user_id="u1")
        store.save(nodes)           # excludes pinned nodes and the anchor
        positions = store.load()    # {} on any read/parse failure
        store.clear()               # reset layout
    """

    def __init__(
        self,
        backend: PositionBackend,
        user_id: Optional[str],
        self_node_id: str = "user-center",
    ):
        self.backend = backend
        self.user_id = user_id or None
        self.self_node_id = self_node_id
        self._lock = threading.RLock()

    @property
    def key(self) -> Optional[str]:
        """Namespaced storage key for this user, or None without identity."""
        if self.user_id is None:
            return None
        return f"{KEY_PREFIX}{self.user_id}"

    def save(self, nodes: Iterable[NetworkNode]) -> bool:
        """Persist positions of all non-anchor nodes.

        Args:
            nodes: Current nodes; pinned nodes and the self-anchor are skipped

        Returns:
            True if written, False if skipped or the write failed
        """
        if self.key is None:
            logger.debug("No user identity, skipping position save")
            return False

        positions = {
            node.id: {"x": node.position.x, "y": node.position.y}
            for node in nodes
            if not node.pinned and node.id != self.self_node_id
        }
        payload = json.dumps(positions, indent=2, sort_keys=True)

        with self._lock:
            try:
                self.backend.write(self.key, payload)
            except PositionStoreError as e:
                logger.error(f"Failed to save node positions: {e}")
                return False

        logger.info(f"Saved {len(positions)} positions for user {self.user_id}")
        return True

    def load(self) -> Dict[str, NodePosition]:
        """Load persisted positions.

        Returns:
            Mapping of node id -> NodePosition; empty when nothing is
            stored, the identity is absent, or the payload is unreadable
        """
        if self.key is None:
            logger.debug("No user identity, returning no saved positions")
            return {}

        with self._lock:
            try:
                payload = self.backend.read(self.key)
            except PositionStoreError as e:
                logger.error(f"Failed to load node positions: {e}")
                return {}

        if payload is None:
            logger.debug(f"No saved positions for user {self.user_id}")
            return {}

        try:
            data = json.loads(payload)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            positions = {
                str(node_id): NodePosition(**pos) if isinstance(pos, dict)
                else NodePosition.from_list(pos)
                for node_id, pos in data.items()
            }
        except (ValueError, TypeError, ValidationError) as e:
            logger.error(f"Ignoring corrupt saved positions for user {self.user_id}: {e}")
            return {}

        positions.pop(self.self_node_id, None)
        logger.debug(f"Loaded {len(positions)} saved positions for user {self.user_id}")
        return positions

    def clear(self) -> bool:
        """Remove all saved positions for this user.

        Returns:
            True if saved positions existed and were removed
        """
        if self.key is None:
            return False

        with self._lock:
            try:
                removed = self.backend.remove(self.key)
            except PositionStoreError as e:
                logger.error(f"Failed to clear node positions: {e}")
                return False

        if removed:
            logger.info(f"Cleared saved positions for user {self.user_id}")
        return removed


def create_position_store(
    user_id: Optional[str],
    storage_dir=None,
    self_node_id: str = "user-center",
) -> PositionStore:
    """Create a store backed by JSON files, or memory when no directory is given."""
    backend: PositionBackend = (
        JsonFileBackend(storage_dir) if storage_dir is not None else InMemoryBackend()
    )
    return PositionStore(backend, user_id, self_node_id)


__all__ = [
    "KEY_PREFIX",
    "PositionStoreError",
    "PositionBackend",
    "InMemoryBackend",
    "JsonFileBackend",
    "PositionStore",
    "create_position_store",
]
