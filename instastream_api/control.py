# instastream_api/control.py
import functools
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from .errors import EncoderError, InstastreamError, PlaylistPersistError
from .models import MediaItem
from .storage import PlaylistStore
from .supervisor import EMPTY_PLAYLIST, EncodeSupervisor, Outcome, StreamPhase

logger = logging.getLogger(__name__)

OK = "ok"
REJECTED = "rejected"
ERROR = "error"

NOT_FOUND = "not_found"
INVALID_ORDER = "invalid_order"
INVALID_INDEX = "invalid_index"
STORE_IO = "store_io"
ENCODER = "encoder"
INTERNAL = "internal"

STREAM_URL = "/stream/stream.m3u8"


@dataclass
class ControlResult:
    status: str
    message: str
    code: Optional[str] = None
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.status == OK

    @classmethod
    def success(cls, message: str, data: Any = None) -> "ControlResult":
        return cls(OK, message, data=data)

    @classmethod
    def rejected(cls, code: str, message: str) -> "ControlResult":
        return cls(REJECTED, message, code=code)

    @classmethod
    def error(cls, code: str, message: str) -> "ControlResult":
        return cls(ERROR, message, code=code)

    def to_dict(self):
        body = {"success": self.ok, "message": self.message}
        if self.code:
            body["code"] = self.code
        if self.data is not None:
            body["data"] = self.data
        return body


def _guarded(action: str):
    """Turn anything raised below the facade into an error result."""
    def wrap(fn):
        @functools.wraps(fn)
        def inner(self, *args, **kwargs):
            try:
                return fn(self, *args, **kwargs)
            except PlaylistPersistError as e:
                logger.error("Failed to %s: %s", action, e)
                return ControlResult.error(STORE_IO, f"Failed to {action}: {e}")
            except EncoderError as e:
                logger.error("Failed to %s: %s", action, e)
                return ControlResult.error(ENCODER, f"Failed to {action}: {e}")
            except InstastreamError as e:
                logger.error("Failed to %s: %s", action, e)
                return ControlResult.error(INTERNAL, f"Failed to {action}: {e}")
            except Exception:
                logger.exception("Unexpected failure while trying to %s", action)
                return ControlResult.error(INTERNAL, f"Failed to {action}")
        return inner
    return wrap


class ControlFacade:
    def __init__(self, store: PlaylistStore, supervisor: EncodeSupervisor):
        self.store = store
        self.supervisor = supervisor

    def _from_outcome(self, outcome: Outcome, data: Any = None) -> ControlResult:
        if outcome.ok:
            return ControlResult.success(outcome.message, data)
        if outcome.is_fault:
            return ControlResult.error(outcome.reason, outcome.message)
        return ControlResult.rejected(outcome.reason, outcome.message)

    # -------- status --------
    def status(self) -> dict:
        session = self.supervisor.status()
        playlist = self.store.status()
        phase = session["phase"]
        active = phase in (StreamPhase.STREAMING.value, StreamPhase.PAUSED.value)
        playlist["is_playing"] = phase == StreamPhase.STREAMING.value
        return {
            "phase": phase,
            "is_streaming": active,
            "process_active": session["process_active"],
            "restart_pending": session["restart_pending"],
            "current_source": session["current_source"],
            "stream_url": STREAM_URL if active else None,
            "playlist": playlist,
        }

    @_guarded("get status")
    def list_status(self) -> ControlResult:
        return ControlResult.success("Status", self.status())

    @_guarded("get playlist")
    def playlist_status(self) -> ControlResult:
        return ControlResult.success("Playlist", self.status()["playlist"])

    # -------- playlist --------
    @_guarded("add item")
    def add_item(
        self,
        source_ref: str,
        name: str,
        size: int = 0,
        duration: Optional[float] = None,
        filename: Optional[str] = None,
    ) -> ControlResult:
        item: MediaItem = self.store.add(source_ref, name, size, duration, filename=filename)
        return ControlResult.success("Item added to playlist", item.summary())

    @_guarded("remove item")
    def remove_item(self, item_id: str) -> ControlResult:
        if not self.store.remove(item_id):
            return ControlResult.rejected(NOT_FOUND, "Item not found")
        return ControlResult.success("Item removed from playlist")

    @_guarded("reorder playlist")
    def reorder(self, order: Sequence[str]) -> ControlResult:
        if not self.store.reorder(order):
            return ControlResult.rejected(INVALID_ORDER, "Invalid order array")
        return ControlResult.success("Playlist reordered")

    @_guarded("clear playlist")
    def clear(self) -> ControlResult:
        self.store.clear()
        return ControlResult.success("Playlist cleared")

    @_guarded("set current item")
    def set_current(self, index: int) -> ControlResult:
        if not self.store.set_current_index(index):
            return ControlResult.rejected(INVALID_INDEX, "Invalid index")
        return ControlResult.success("Current item set")

    @_guarded("move to next item")
    def next_item(self) -> ControlResult:
        item = self.store.advance()
        if item is None:
            return ControlResult.rejected(EMPTY_PLAYLIST, "No items in playlist")
        if self.supervisor.phase in (StreamPhase.STREAMING, StreamPhase.PAUSED):
            outcome = self.supervisor.restart()
            if not outcome.ok:
                return self._from_outcome(outcome)
        return ControlResult.success("Moved to next item", item.summary())

    # -------- stream --------
    @_guarded("start stream")
    def start(self) -> ControlResult:
        outcome = self.supervisor.start()
        return self._from_outcome(outcome, self.status() if outcome.ok else None)

    @_guarded("stop stream")
    def stop(self) -> ControlResult:
        return self._from_outcome(self.supervisor.stop())

    @_guarded("pause stream")
    def pause(self) -> ControlResult:
        return self._from_outcome(self.supervisor.pause())

    @_guarded("resume stream")
    def resume(self) -> ControlResult:
        return self._from_outcome(self.supervisor.resume())
