"""File-backed layer store.

Each layer is persisted as ``<layers_dir>/<id>.json`` containing the full
layer JSON.  An in-memory index is rebuilt from those files by ``load()``.

Writes (save/delete) are serialized per layer id through a fixed pool of
locks.  Reads never lock: the
index is a dict that is replaced, never mutated, so a reader always sees a
consistent snapshot.

Usage:
    from schemascope.layers.store import LayerStore

    store = LayerStore("./layers")
    store.load()

    layer = store.save(Layer(name="baseline", tables=schema.tables))
    store.get(layer.id)
"""

import json
import logging
import os
import re
import tempfile
import threading
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path

from schemascope.errors import LayerStorageError
from schemascope.layers.models import LAYER_ID_PATTERN, Layer

logger = logging.getLogger(__name__)

# Writes for a given id always map to the same lock; the pool size is fixed.
LOCK_STRIPES = 64

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _created_key(layer: Layer) -> tuple[bool, datetime]:
    created = layer.created_at
    if created is None:
        return True, _EPOCH
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return False, created


def generate_layer_id() -> str:
    """Generate a layer id from the current time plus a random suffix.

    Example:
        >>> generate_layer_id().startswith("layer_")
        True
    """
    return f"layer_{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}"


class LayerStore:
    """Named, timestamped schema snapshots persisted as JSON files."""

    def __init__(self, layers_dir: str | Path):
        """Initialize the store.

        Args:
            layers_dir: Directory holding one JSON file per layer.  Created
                on first ``load()`` or ``save()`` if missing.
        """
        self._layers_dir = Path(layers_dir)
        self._layers: dict[str, Layer] = {}
        self._registry_lock = threading.Lock()
        self._id_locks = tuple(threading.Lock() for _ in range(LOCK_STRIPES))

    @property
    def layers_dir(self) -> Path:
        return self._layers_dir

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _path_for(self, layer_id: str) -> Path:
        """Return the file for *layer_id*, refusing ids that escape the directory."""
        path = self._layers_dir / f"{layer_id}.json"
        if not re.fullmatch(LAYER_ID_PATTERN, layer_id) or (
            path.resolve().parent != self._layers_dir.resolve()
        ):
            raise LayerStorageError(f"Invalid layer id: {layer_id!r}")
        return path

    def _lock_for(self, layer_id: str) -> threading.Lock:
        return self._id_locks[hash(layer_id) % LOCK_STRIPES]

    def _publish(self, layer_id: str, layer: Layer | None) -> None:
        """Swap in a new index with *layer_id* set (or removed if None)."""
        with self._registry_lock:
            index = dict(self._layers)
            if layer is None:
                index.pop(layer_id, None)
            else:
                index[layer_id] = layer
            self._layers = index

    def _write_file(self, layer: Layer) -> None:
        """Write *layer* atomically via a temp file in the same directory."""
        path = self._path_for(layer.id)
        content = json.dumps(layer.to_json_dict(), indent=2)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._layers_dir, prefix=f".{layer.id}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load(self) -> int:
        """Scan the layers directory and rebuild the in-memory index.

        Files that are not valid JSON or do not validate as a layer are
        logged and skipped.

        Returns:
            Number of layers loaded.
        """
        self._layers_dir.mkdir(parents=True, exist_ok=True)

        index: dict[str, Layer] = {}
        for path in sorted(self._layers_dir.glob("*.json")):
            try:
                layer = Layer.model_validate_json(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable layer file {path.name}: {e}")
                continue

            if not layer.id:
                logger.warning(f"Skipping layer file {path.name}: no id")
                continue
            index[layer.id] = layer

        with self._registry_lock:
            self._layers = index

        logger.info(f"Loaded {len(index)} layer(s) from {self._layers_dir}")
        return len(index)

    def save(self, layer: Layer) -> Layer:
        """Persist *layer* and return the stored copy.

        On first save (no ``id``) assigns ``id`` and ``created_at``.  Every
        save refreshes ``updated_at``.  The caller's object is not mutated.

        Raises:
            LayerStorageError: If the id cannot be used as a file name in the
                layers directory, or the layer file cannot be written.
        """
        stored = layer.model_copy(deep=True)
        now = datetime.now(timezone.utc)

        if not stored.id:
            stored.id = generate_layer_id()
            stored.created_at = now
        elif stored.created_at is None:
            existing = self._layers.get(stored.id)
            stored.created_at = existing.created_at if existing else now
        stored.updated_at = now

        with self._lock_for(stored.id):
            try:
                self._layers_dir.mkdir(parents=True, exist_ok=True)
                self._write_file(stored)
            except OSError as e:
                raise LayerStorageError(f"Failed to save layer {stored.id}: {e}") from e
            self._publish(stored.id, stored)

        logger.debug(f"Saved layer {stored.id} ({stored.name})")
        return stored.model_copy(deep=True)

    def get(self, layer_id: str) -> Layer | None:
        """Return a copy of the layer with *layer_id*, or None."""
        layer = self._layers.get(layer_id)
        return layer.model_copy(deep=True) if layer is not None else None

    def list(self) -> list[Layer]:
        """Return copies of all layers, oldest first."""
        layers = list(self._layers.values())
        layers.sort(key=_created_key)
        return [layer.model_copy(deep=True) for layer in layers]

    def delete(self, layer_id: str) -> bool:
        """Delete a layer.

        Returns:
            True if the layer existed and was removed, False if unknown.

        Raises:
            LayerStorageError: If the layer file cannot be removed.
        """
        with self._lock_for(layer_id):
            if layer_id not in self._layers:
                return False
            try:
                self._path_for(layer_id).unlink(missing_ok=True)
            except OSError as e:
                raise LayerStorageError(f"Failed to delete layer {layer_id}: {e}") from e
            self._publish(layer_id, None)

        logger.debug(f"Deleted layer {layer_id}")
        return True

    def __len__(self) -> int:
        return len(self._layers)

    def __contains__(self, layer_id: object) -> bool:
        return layer_id in self._layers
