"""
Scene Store
===========

String-keyed persistent store for the editor's scene. The store is an
explicit handle passed to hydration and persistence calls; hydration is a
fallible decode that fails safe to an empty scene.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol

from openimage.config.logging import get_logger
from openimage.core.scene.scene import MalformedScene, Scene

logger = get_logger(__name__)

ELEMENTS_KEY = "elements"


class StoreError(Exception):
    """Exception raised when the backing store cannot be read or written."""

    pass


class SceneStore(Protocol):
    """Minimal key/value contract the editor persists through."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemorySceneStore:
    """In-process store, mainly for tests and ephemeral editors."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JSONFileSceneStore:
    """Store backed by a single JSON object on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.logger = logger.bind(component="scene_store", path=str(self.path))

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.warning("Store file unreadable, treating as empty", error=str(e))
            return {}
        if not isinstance(data, dict):
            self.logger.warning("Store file is not a JSON object, treating as empty")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".store-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StoreError(f"Failed to write store {self.path}: {e}") from e


def hydrate_scene(store: SceneStore) -> Scene:
    """Load the persisted scene, falling back to an empty one."""
    raw = store.get(ELEMENTS_KEY)
    if raw is None:
        return Scene()
    try:
        scene = Scene.deserialize(raw)
    except MalformedScene as e:
        logger.warning("Discarding malformed persisted scene", error=str(e))
        return Scene()
    logger.info("Scene hydrated", elements=len(scene))
    return scene


def persist_scene(store: SceneStore, scene: Scene) -> None:
    """Write the scene's JSON form under the elements key."""
    store.set(ELEMENTS_KEY, scene.serialize())
