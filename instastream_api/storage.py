import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

from pydantic import ValidationError

from .errors import PlaylistPersistError
from .models import MediaItem, PlaylistSnapshot

logger = logging.getLogger(__name__)


class PlaylistView(NamedTuple):
    items: Tuple[MediaItem, ...]
    current_index: int

    @property
    def current(self) -> Optional[MediaItem]:
        return self.items[self.current_index] if self.items else None


def _parse_records(raw: Any) -> List[MediaItem]:
    if isinstance(raw, dict):
        records = raw.get("items", [])
    elif isinstance(raw, list):
        records = raw
    else:
        return []
    items: List[MediaItem] = []
    seen = set()
    for rec in records:
        try:
            item = MediaItem.model_validate(rec)
        except ValidationError as e:
            logger.warning("Skipping unreadable playlist record: %s", e.errors()[:1])
            continue
        if item.id in seen:
            continue
        seen.add(item.id)
        items.append(item)
    return items


class PlaylistStore:
    """Ordered playlist persisted as a single JSON snapshot.

    The cursor (``current_index``) is process-local and never written to
    disk. Every mutation holds one lock for its whole read-modify-write.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._current_index = 0
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._items: List[MediaItem] = self._load()
        if not self.path.exists():
            try:
                self._save(self._items)
            except PlaylistPersistError as e:
                logger.error("Could not create playlist file: %s", e)

    # -------- persistence --------
    def _load(self) -> List[MediaItem]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text())
        except (OSError, ValueError) as e:
            logger.error("Failed to read playlist %s: %s", self.path, e)
            return []
        return _parse_records(raw)

    def _save(self, items: Sequence[MediaItem]):
        body = PlaylistSnapshot(items=list(items)).model_dump_json(indent=2)
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            tmp.write_text(body)
            os.replace(tmp, self.path)
        except OSError as e:
            logger.error("Failed to save playlist: %s", e)
            raise PlaylistPersistError(f"Failed to save playlist: {e}") from e

    def _clamp(self):
        n = len(self._items)
        self._current_index = min(self._current_index, n - 1) if n else 0

    # -------- mutations --------
    def add(
        self,
        source_ref: str,
        display_name: str,
        size_bytes: int = 0,
        duration_seconds: Optional[float] = None,
        filename: Optional[str] = None,
    ) -> MediaItem:
        item = MediaItem(
            source_ref=str(source_ref),
            display_name=display_name,
            size_bytes=size_bytes,
            duration_seconds=duration_seconds,
            filename=filename,
        )
        with self._lock:
            new_items = self._items + [item]
            self._save(new_items)
            self._items = new_items
        logger.info("Item added to playlist id=%s name=%s", item.id, item.display_name)
        return item

    def remove(self, item_id: str) -> bool:
        with self._lock:
            new_items = [i for i in self._items if i.id != item_id]
            if len(new_items) == len(self._items):
                return False
            self._save(new_items)
            self._items = new_items
            self._clamp()
        logger.info("Item removed from playlist id=%s", item_id)
        return True

    def reorder(self, new_order: Sequence[str]) -> bool:
        with self._lock:
            by_id = {i.id: i for i in self._items}
            order = list(new_order)
            if len(order) != len(by_id) or set(order) != set(by_id):
                return False
            new_items = [by_id[i] for i in order]
            self._save(new_items)
            self._items = new_items
        logger.info("Playlist reordered")
        return True

    def clear(self):
        with self._lock:
            # index resets even when the write fails
            self._current_index = 0
            self._save([])
            self._items = []
        logger.info("Playlist cleared")

    # -------- cursor --------
    def set_current_index(self, index: int) -> bool:
        with self._lock:
            if isinstance(index, bool) or not 0 <= index < len(self._items):
                return False
            self._current_index = index
        logger.info("Current index set to %d", index)
        return True

    def advance(self) -> Optional[MediaItem]:
        with self._lock:
            if not self._items:
                self._current_index = 0
                return None
            self._current_index = (self._current_index + 1) % len(self._items)
            item = self._items[self._current_index]
        logger.info("Moving to next item index=%d", self._current_index)
        return item

    # -------- reads --------
    @property
    def current_index(self) -> int:
        return self._current_index

    def current_item(self) -> Optional[MediaItem]:
        return self.view().current

    def snapshot(self) -> Tuple[MediaItem, ...]:
        with self._lock:
            return tuple(self._items)

    def view(self) -> PlaylistView:
        with self._lock:
            return PlaylistView(tuple(self._items), self._current_index)

    def get(self, item_id: str) -> Optional[MediaItem]:
        with self._lock:
            return next((i for i in self._items if i.id == item_id), None)

    def __len__(self) -> int:
        return len(self._items)

    def status(self) -> Dict[str, Any]:
        view = self.view()
        current = view.current
        return {
            "current_index": view.current_index,
            "total": len(view.items),
            "current_item": current.summary() if current else None,
            "items": [i.summary() for i in view.items],
        }
