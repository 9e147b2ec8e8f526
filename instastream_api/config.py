# instastream_api/config.py
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

ROOT = Path.cwd()


def _int_env(name: str, default: int) -> int:
    try:
        value = int(os.getenv(name, ""))
    except ValueError:
        return default
    return value if value > 0 else default


def _float_env(name: str, default: float) -> float:
    try:
        value = float(os.getenv(name, ""))
    except ValueError:
        return default
    return value if value >= 0 else default


@dataclass
class Settings:
    host: str = "0.0.0.0"
    port: int = 3000
    upload_dir: Path = ROOT / "uploads"
    stream_dir: Path = ROOT / "stream"
    hls_segment_duration: int = 2
    hls_list_size: int = 10
    max_upload_mb: int = 500
    ffmpeg_bin: str = "ffmpeg"
    ffprobe_bin: str = "ffprobe"
    restart_delay: float = 2.0
    launch_confirm_seconds: float = 0.5
    log_level: str = "INFO"
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])

    @property
    def playlist_path(self) -> Path:
        return self.upload_dir / "playlist.json"

    @property
    def manifest_path(self) -> Path:
        return self.stream_dir / "stream.m3u8"

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    def ensure_dirs(self):
        for d in (self.upload_dir, self.stream_dir):
            d.mkdir(parents=True, exist_ok=True)


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Read settings from the environment (and a .env file, if present)."""
    load_dotenv(env_file)
    origins = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()]
    return Settings(
        host=os.getenv("HOST", "0.0.0.0"),
        port=_int_env("PORT", 3000),
        upload_dir=Path(os.getenv("UPLOAD_DIR") or ROOT / "uploads").resolve(),
        stream_dir=Path(os.getenv("STREAM_DIR") or ROOT / "stream").resolve(),
        hls_segment_duration=_int_env("HLS_SEGMENT_DURATION", 2),
        hls_list_size=_int_env("HLS_LIST_SIZE", 10),
        max_upload_mb=_int_env("MAX_UPLOAD_SIZE", 500),
        ffmpeg_bin=os.getenv("FFMPEG_BIN", "ffmpeg"),
        ffprobe_bin=os.getenv("FFPROBE_BIN", "ffprobe"),
        restart_delay=_float_env("RESTART_DELAY", 2.0),
        launch_confirm_seconds=_float_env("LAUNCH_CONFIRM_SECONDS", 0.5),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        allowed_origins=origins or ["*"],
    )
