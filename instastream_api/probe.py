import logging
import subprocess
from typing import Optional

from mutagen import File as MutagenFile
from mutagen import MutagenError

logger = logging.getLogger(__name__)


def _mutagen_duration(path: str) -> Optional[float]:
    try:
        mf = MutagenFile(path)
        length = getattr(mf.info, "length", None) if mf and getattr(mf, "info", None) else None
        return round(float(length), 3) if length else None
    except (MutagenError, OSError) as e:
        logger.debug("mutagen could not read %s: %s", path, e)
    except Exception as e:
        # unknown containers can trip parser internals; duration is optional
        logger.debug("mutagen failed on %s: %r", path, e)
    return None


def _ffprobe_duration(path: str, ffprobe_bin: str, timeout: float) -> Optional[float]:
    cmd = [
        ffprobe_bin, "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        path,
    ]
    try:
        out = subprocess.run(cmd, capture_output=True, text=True, check=True, timeout=timeout).stdout
        return round(float(out.strip()), 3)
    except (OSError, subprocess.SubprocessError, ValueError) as e:
        logger.debug("ffprobe could not read %s: %s", path, e)
        return None


def probe_duration(path: str, ffprobe_bin: str = "ffprobe", timeout: float = 10.0) -> Optional[float]:
    """Best-effort duration in seconds; None when nothing can tell."""
    duration = _mutagen_duration(path) or _ffprobe_duration(path, ffprobe_bin, timeout)
    if duration is None:
        logger.warning("Could not get duration for %s", path)
    return duration
