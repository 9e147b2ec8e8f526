"""Shared fixtures: a playlist on tmp_path, a fake encoder and a manual timer.

The fake launcher hands out FakeProcess handles instead of spawning ffmpeg,
and FakeTimer lets a test decide when a scheduled restart fires.
"""

from typing import List, Optional

import pytest

from instastream_api.config import Settings
from instastream_api.encoder import EncoderHandle, EncoderLauncher
from instastream_api.errors import EncoderLaunchError
from instastream_api.storage import PlaylistStore
from instastream_api.supervisor import EncodeSupervisor


class FakeProcess(EncoderHandle):
    def __init__(self, sources):
        self.sources = list(sources)
        self.suspended = False
        self.terminated = False
        self.returncode: Optional[int] = None
        self._callback = None

    def suspend(self):
        self.suspended = True

    def resume(self):
        self.suspended = False

    def terminate(self):
        self.terminated = True
        self._exit(-9)

    def is_alive(self):
        return self.returncode is None

    def on_exit(self, callback):
        self._callback = callback
        if self.returncode is not None:
            callback(self, self.returncode)

    def _exit(self, code):
        if self.returncode is not None:
            return
        self.returncode = code
        if self._callback:
            self._callback(self, code)

    def crash(self, code=1):
        self._exit(code)


class FakeLauncher(EncoderLauncher):
    def __init__(self):
        self.launched: List[FakeProcess] = []
        self.fail_next = 0
        self.resets = 0

    def reset_output(self):
        self.resets += 1

    def launch(self, sources):
        if self.fail_next:
            self.fail_next -= 1
            raise EncoderLaunchError("ffmpeg exited immediately with code 1", "boom")
        proc = FakeProcess(sources)
        self.launched.append(proc)
        return proc

    @property
    def last(self) -> FakeProcess:
        return self.launched[-1]


class FakeTimer:
    created: List["FakeTimer"] = []

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.started = False
        self.cancelled = False
        self.daemon = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        # runs even when cancelled, like a timer that already fired during cancel()
        self.function(*self.args, **self.kwargs)


@pytest.fixture
def timers():
    FakeTimer.created = []
    yield FakeTimer.created
    FakeTimer.created = []


@pytest.fixture
def store(tmp_path):
    return PlaylistStore(tmp_path / "uploads" / "playlist.json")


@pytest.fixture
def launcher():
    return FakeLauncher()


@pytest.fixture
def supervisor(store, launcher, timers):
    return EncodeSupervisor(store, launcher, restart_delay=2.0, timer_factory=FakeTimer)


@pytest.fixture
def media(tmp_path):
    """Create real (dummy) source files so existence checks pass."""
    folder = tmp_path / "media"
    folder.mkdir()

    def make(name: str) -> str:
        p = folder / name
        p.write_bytes(b"\x00" * 16)
        return str(p)

    return make


@pytest.fixture
def settings(tmp_path):
    return Settings(
        upload_dir=tmp_path / "uploads",
        stream_dir=tmp_path / "stream",
        max_upload_mb=1,
        ffprobe_bin="ffprobe-not-installed",
        restart_delay=0.0,
        launch_confirm_seconds=1.0,
    )
