# instastream_api/supervisor.py
import enum
import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .encoder import EncoderHandle, EncoderLauncher
from .errors import EncoderError, EncoderLaunchError
from .storage import PlaylistStore, PlaylistView

logger = logging.getLogger(__name__)

# outcome reasons
ALREADY_ACTIVE = "already_active"
EMPTY_PLAYLIST = "empty_playlist"
NO_ACTIVE_STREAM = "no_active_stream"
SOURCE_MISSING = "source_missing"
LAUNCH_FAILED = "launch_failed"
SIGNAL_FAILED = "signal_failed"
INTERRUPTED = "interrupted"

FAULTS = frozenset({SOURCE_MISSING, LAUNCH_FAILED, SIGNAL_FAILED})


class StreamPhase(str, enum.Enum):
    IDLE = "idle"
    STARTING = "starting"
    STREAMING = "streaming"
    PAUSED = "paused"
    STOPPING = "stopping"


@dataclass(frozen=True)
class Outcome:
    ok: bool
    message: str
    reason: Optional[str] = None

    @property
    def is_fault(self) -> bool:
        return not self.ok and self.reason in FAULTS

    @classmethod
    def success(cls, message: str) -> "Outcome":
        return cls(True, message)

    @classmethod
    def refused(cls, reason: str, message: str) -> "Outcome":
        return cls(False, message, reason)


def playback_order(view: PlaylistView) -> List[str]:
    """Every source in the snapshot, starting from the current item."""
    items = view.items[view.current_index:] + view.items[:view.current_index]
    sources = []
    for item in items:
        if os.path.exists(item.source_ref):
            sources.append(item.source_ref)
        else:
            logger.warning("Skipping missing source %s (%s)", item.display_name, item.source_ref)
    return sources


class EncodeSupervisor:
    """Owns the stream state machine and the one live encoder process.

    Phase, process handle, ``wants_playback`` and the session epoch are
    guarded by ``_lock``. Store calls and process launches happen outside
    it. ``stop()`` bumps the epoch, which invalidates any launch or
    restart that is still in flight.
    """

    def __init__(
        self,
        store: PlaylistStore,
        launcher: EncoderLauncher,
        restart_delay: float = 2.0,
        timer_factory: Callable[..., Any] = threading.Timer,
    ):
        self.store = store
        self.launcher = launcher
        self.restart_delay = restart_delay
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._phase = StreamPhase.IDLE
        self._process: Optional[EncoderHandle] = None
        self._current_source: Optional[str] = None
        self._wants_playback = False
        self._pending_restart = None
        self._epoch = 0

    # -------- introspection --------
    @property
    def phase(self) -> StreamPhase:
        return self._phase

    @property
    def wants_playback(self) -> bool:
        return self._wants_playback

    @property
    def restart_pending(self) -> bool:
        return self._pending_restart is not None

    def status(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "phase": self._phase.value,
                "process_active": self._process is not None,
                "current_source": self._current_source,
                "wants_playback": self._wants_playback,
                "restart_pending": self._pending_restart is not None,
            }

    # -------- controls --------
    def start(self) -> Outcome:
        with self._lock:
            if self._phase is not StreamPhase.IDLE:
                logger.warning("Start refused: stream already active (%s)", self._phase.value)
                return Outcome.refused(ALREADY_ACTIVE, "Stream already active")
            if not len(self.store):
                logger.warning("Start refused: no items in playlist")
                return Outcome.refused(EMPTY_PLAYLIST, "No items in playlist")
            self._phase = StreamPhase.STARTING
            self._wants_playback = True
            self._epoch += 1
            epoch = self._epoch

        try:
            self.launcher.reset_output()
        except OSError as e:
            logger.warning("Could not reset stream output: %s", e)

        outcome = self._guarded_launch(epoch)
        if not outcome.ok:
            self._settle_idle(epoch)
        return outcome

    def stop(self) -> Outcome:
        with self._lock:
            handle, self._process = self._process, None
            pending, self._pending_restart = self._pending_restart, None
            was_idle = self._phase is StreamPhase.IDLE
            self._wants_playback = False
            self._epoch += 1
            epoch = self._epoch
            if was_idle and handle is None and pending is None:
                return Outcome.success("Stream already stopped")
            self._phase = StreamPhase.STOPPING

        if pending is not None:
            pending.cancel()
        if handle is not None:
            try:
                handle.terminate()
                logger.info("Encoder process killed")
            except EncoderError as e:
                logger.error("Error while killing encoder: %s", e)

        with self._lock:
            if self._epoch == epoch:
                self._phase = StreamPhase.IDLE
                self._current_source = None
        logger.info("Stream stopped")
        return Outcome.success("Stream stopped")

    def pause(self) -> Outcome:
        with self._lock:
            if self._phase is not StreamPhase.STREAMING or self._process is None:
                return Outcome.refused(NO_ACTIVE_STREAM, "No active stream")
            try:
                self._process.suspend()
            except EncoderError as e:
                logger.error("Pause failed: %s", e)
                return Outcome.refused(SIGNAL_FAILED, str(e))
            self._phase = StreamPhase.PAUSED
        logger.info("Stream paused")
        return Outcome.success("Stream paused")

    def resume(self) -> Outcome:
        with self._lock:
            if self._phase is not StreamPhase.PAUSED or self._process is None:
                return Outcome.refused(NO_ACTIVE_STREAM, "No active stream")
            try:
                self._process.resume()
            except EncoderError as e:
                logger.error("Resume failed: %s", e)
                return Outcome.refused(SIGNAL_FAILED, str(e))
            self._phase = StreamPhase.STREAMING
        logger.info("Stream resumed")
        return Outcome.success("Stream resumed")

    def restart(self) -> Outcome:
        """Relaunch on whatever is current now (used after moving the cursor)."""
        with self._lock:
            if self._phase not in (StreamPhase.STREAMING, StreamPhase.PAUSED):
                return Outcome.refused(NO_ACTIVE_STREAM, "No active stream")
        self.stop()
        return self.start()

    def shutdown(self):
        self.stop()

    # -------- exit handling --------
    def on_process_exit(self, handle: EncoderHandle, returncode: Optional[int]):
        with self._lock:
            if handle is not self._process:
                return
            self._process = None
            if not self._wants_playback:
                self._phase = StreamPhase.IDLE
                return
            self._phase = StreamPhase.STARTING
            epoch = self._epoch

        logger.warning("Encoder exited unexpectedly (code=%s); moving to next item", returncode)
        self._advance_and_schedule(epoch)

    def _advance_and_schedule(self, epoch: int):
        if self.store.advance() is None:
            logger.warning("Playlist is empty; stream goes idle")
            self._settle_idle(epoch)
            return
        timer = self._timer_factory(self.restart_delay, self._restart, args=(epoch,))
        timer.daemon = True
        with self._lock:
            if epoch != self._epoch or not self._wants_playback:
                return
            self._pending_restart = timer
            timer.start()
        logger.info("Restarting stream in %.1fs", self.restart_delay)

    def _restart(self, epoch: int):
        with self._lock:
            if epoch != self._epoch or not self._wants_playback:
                logger.info("Pending restart cancelled")
                return
            self._pending_restart = None

        outcome = self._guarded_launch(epoch)
        if outcome.ok:
            return
        if outcome.reason in (EMPTY_PLAYLIST, INTERRUPTED):
            self._settle_idle(epoch)
            return
        logger.error("Restart failed (%s); trying next item", outcome.message)
        self._advance_and_schedule(epoch)

    # -------- internals --------
    def _settle_idle(self, epoch: int):
        with self._lock:
            if self._epoch != epoch:
                return
            self._phase = StreamPhase.IDLE
            self._wants_playback = False
            self._pending_restart = None
            self._current_source = None

    def _guarded_launch(self, epoch: int) -> Outcome:
        # any escape here would leave the phase stuck in Starting
        try:
            return self._launch(epoch)
        except Exception as e:
            logger.exception("Encoder launch failed unexpectedly")
            return Outcome.refused(LAUNCH_FAILED, f"Encoder launch failed: {e}")

    def _launch(self, epoch: int) -> Outcome:
        view = self.store.view()
        current = view.current
        if current is None:
            return Outcome.refused(EMPTY_PLAYLIST, "No items in playlist")
        if not os.path.exists(current.source_ref):
            logger.error("Source file not found: %s", current.source_ref)
            return Outcome.refused(SOURCE_MISSING, f"Source file not found: {current.display_name}")

        logger.info("Starting stream name=%s path=%s", current.display_name, current.source_ref)
        try:
            handle = self.launcher.launch(playback_order(view))
        except EncoderLaunchError as e:
            return Outcome.refused(LAUNCH_FAILED, str(e))

        with self._lock:
            stale = epoch != self._epoch or not self._wants_playback
            if not stale:
                self._process = handle
                self._current_source = current.source_ref
                self._phase = StreamPhase.STREAMING
        if stale:
            logger.info("Stream was stopped during launch; killing new encoder")
            try:
                handle.terminate()
            except EncoderError as e:
                logger.error("Error while killing encoder: %s", e)
            return Outcome.refused(INTERRUPTED, "Stream stopped during start")

        handle.on_exit(self.on_process_exit)
        return Outcome.success("Stream started")
