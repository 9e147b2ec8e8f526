# instastream_api/encoder.py
import abc
import collections
import logging
import signal
import subprocess
import threading
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .config import Settings
from .errors import EncoderError, EncoderLaunchError

logger = logging.getLogger(__name__)

ExitCallback = Callable[["EncoderHandle", Optional[int]], None]

SEGMENT_PATTERN = "segment_%03d.ts"
CONCAT_NAME = "concat.txt"


class EncoderHandle(abc.ABC):
    """What the supervisor may do to a running encoder."""

    @abc.abstractmethod
    def suspend(self):
        ...

    @abc.abstractmethod
    def resume(self):
        ...

    @abc.abstractmethod
    def terminate(self):
        ...

    @abc.abstractmethod
    def on_exit(self, callback: ExitCallback):
        """Register the exit callback; fires at once if the process already ended."""

    @abc.abstractmethod
    def is_alive(self) -> bool:
        ...


class EncoderLauncher(abc.ABC):
    @abc.abstractmethod
    def launch(self, sources: Sequence[str]) -> EncoderHandle:
        """Start an encoder over ``sources``; raise EncoderLaunchError if it dies at once."""

    def reset_output(self):
        """Drop artifacts left behind by a previous session."""


class ProcessHandle(EncoderHandle):
    """Wraps a Popen; a watcher thread drains stderr then reports the exit."""

    def __init__(self, proc: subprocess.Popen, tail_lines: int = 20):
        self.proc = proc
        self._lock = threading.Lock()
        self._callback: Optional[ExitCallback] = None
        self._fired = False
        self._tail = collections.deque(maxlen=tail_lines)
        self.exited = threading.Event()
        self.returncode: Optional[int] = None
        self._watcher = threading.Thread(target=self._watch, name=f"encoder-{proc.pid}", daemon=True)
        self._watcher.start()

    @property
    def pid(self) -> int:
        return self.proc.pid

    @property
    def stderr_tail(self) -> str:
        return "\n".join(self._tail)

    def _watch(self):
        if self.proc.stderr is not None:
            try:
                for raw in iter(self.proc.stderr.readline, b""):
                    line = raw.decode(errors="ignore").rstrip()
                    if line:
                        self._tail.append(line)
                        logger.debug("[ffmpeg %d] %s", self.proc.pid, line)
            except (OSError, ValueError) as e:
                logger.debug("stderr read stopped: %s", e)
        self.returncode = self.proc.wait()
        self.exited.set()
        self._fire()

    def _fire(self):
        with self._lock:
            if self._fired or self._callback is None or not self.exited.is_set():
                return
            self._fired = True
            callback = self._callback
        callback(self, self.returncode)

    def on_exit(self, callback: ExitCallback):
        with self._lock:
            self._callback = callback
        self._fire()

    def is_alive(self) -> bool:
        return self.proc.poll() is None

    def _signal(self, sig, verb: str):
        if not self.is_alive():
            raise EncoderError(f"Cannot {verb}: encoder is not running")
        try:
            self.proc.send_signal(sig)
        except (OSError, ValueError) as e:
            raise EncoderError(f"Cannot {verb} encoder: {e}") from e

    def suspend(self):
        if not hasattr(signal, "SIGSTOP"):
            raise EncoderError("Suspending processes is not supported on this platform")
        self._signal(signal.SIGSTOP, "suspend")

    def resume(self):
        if not hasattr(signal, "SIGCONT"):
            raise EncoderError("Resuming processes is not supported on this platform")
        self._signal(signal.SIGCONT, "resume")

    def terminate(self, timeout: float = 5.0):
        if self.is_alive():
            try:
                self.proc.kill()
            except OSError as e:
                logger.debug("kill failed (already gone?): %s", e)
        try:
            self.proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            raise EncoderError(f"Encoder pid={self.pid} did not exit after kill") from e


# -------- ffmpeg --------
def _concat_line(path: str) -> str:
    # concat demuxer: single quotes are closed, escaped, reopened
    escaped = str(path).replace("'", "'\\''")
    return f"file '{escaped}'"


def write_concat_file(path: Path, sources: Sequence[str]) -> Path:
    path.write_text("\n".join(_concat_line(s) for s in sources) + "\n")
    return path


def build_ffmpeg_command(settings: Settings, concat_path: Path) -> List[str]:
    return [
        settings.ffmpeg_bin,
        "-hide_banner",
        "-loglevel", "warning",
        "-re",
        "-f", "concat",
        "-safe", "0",
        "-stream_loop", "-1",
        "-i", str(concat_path),
        "-c:v", "libx264",
        "-preset", "veryfast",
        "-tune", "zerolatency",
        "-c:a", "aac",
        "-b:a", "128k",
        "-ar", "44100",
        "-f", "hls",
        "-hls_time", str(settings.hls_segment_duration),
        "-hls_list_size", str(settings.hls_list_size),
        "-hls_flags", "delete_segments+append_list",
        "-hls_segment_filename", str(settings.stream_dir / SEGMENT_PATTERN),
        str(settings.manifest_path),
    ]


class FfmpegLauncher(EncoderLauncher):
    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def concat_path(self) -> Path:
        # kept out of stream_dir so the source paths are never served
        return self.settings.upload_dir / CONCAT_NAME

    def reset_output(self):
        stream_dir = self.settings.stream_dir
        stream_dir.mkdir(parents=True, exist_ok=True)
        removed = 0
        for p in stream_dir.iterdir():
            if p.is_file() and p.suffix in (".ts", ".m3u8", ".tmp"):
                try:
                    p.unlink()
                    removed += 1
                except OSError as e:
                    logger.warning("Could not remove %s: %s", p, e)
        if removed:
            logger.info("Stream directory cleaned (%d files)", removed)

    def launch(self, sources: Sequence[str]) -> ProcessHandle:
        if not sources:
            raise EncoderLaunchError("No sources to encode")
        try:
            self.settings.stream_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise EncoderLaunchError(f"Could not create stream directory: {e}") from e
        try:
            concat = write_concat_file(self.concat_path, sources)
        except OSError as e:
            raise EncoderLaunchError(f"Could not write concat list: {e}") from e

        cmd = build_ffmpeg_command(self.settings, concat)
        logger.info("Starting ffmpeg: %s", " ".join(cmd))
        try:
            proc = subprocess.Popen(cmd, stdin=subprocess.DEVNULL, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE)
        except OSError as e:
            raise EncoderLaunchError(f"Could not start {self.settings.ffmpeg_bin}: {e}") from e

        handle = ProcessHandle(proc)
        if handle.exited.wait(self.settings.launch_confirm_seconds):
            handle._watcher.join(timeout=1.0)
            tail = handle.stderr_tail
            logger.error("ffmpeg exited immediately (code=%s): %s", handle.returncode, tail or "<no output>")
            raise EncoderLaunchError(f"ffmpeg exited immediately with code {handle.returncode}", tail)
        logger.info("ffmpeg started pid=%d", handle.pid)
        return handle
