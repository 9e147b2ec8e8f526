import os
from pathlib import Path
from unittest import mock

from instastream_api.config import load_settings

ENV_VARS = (
    "PORT", "UPLOAD_DIR", "STREAM_DIR", "HLS_SEGMENT_DURATION", "HLS_LIST_SIZE",
    "MAX_UPLOAD_SIZE", "RESTART_DELAY", "LOG_LEVEL", "ALLOWED_ORIGINS",
)


def _clean(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch, tmp_path):
    _clean(monkeypatch)
    s = load_settings(str(tmp_path / "missing.env"))
    assert s.port == 3000
    assert s.hls_segment_duration == 2
    assert s.hls_list_size == 10
    assert s.max_upload_bytes == 500 * 1024 * 1024
    assert s.restart_delay == 2.0
    assert s.allowed_origins == ["*"]
    assert s.playlist_path.name == "playlist.json"
    assert s.manifest_path.name == "stream.m3u8"


def test_environment_overrides(monkeypatch, tmp_path):
    _clean(monkeypatch)
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "up"))
    monkeypatch.setenv("STREAM_DIR", str(tmp_path / "hls"))
    monkeypatch.setenv("HLS_SEGMENT_DURATION", "6")
    monkeypatch.setenv("RESTART_DELAY", "0.5")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://a.test, http://b.test")
    s = load_settings(str(tmp_path / "missing.env"))
    assert s.port == 8080
    assert s.upload_dir == Path(tmp_path / "up").resolve()
    assert s.stream_dir == Path(tmp_path / "hls").resolve()
    assert s.hls_segment_duration == 6
    assert s.restart_delay == 0.5
    assert s.log_level == "DEBUG"
    assert s.allowed_origins == ["http://a.test", "http://b.test"]


def test_bad_numbers_fall_back(monkeypatch, tmp_path):
    _clean(monkeypatch)
    monkeypatch.setenv("PORT", "abc")
    monkeypatch.setenv("HLS_SEGMENT_DURATION", "0")
    monkeypatch.setenv("RESTART_DELAY", "-1")
    s = load_settings(str(tmp_path / "missing.env"))
    assert s.port == 3000
    assert s.hls_segment_duration == 2
    assert s.restart_delay == 2.0


def test_env_file_is_read(monkeypatch, tmp_path):
    _clean(monkeypatch)
    env = tmp_path / ".env"
    env.write_text("HLS_LIST_SIZE=25\nMAX_UPLOAD_SIZE=50\n")
    # load_dotenv writes into os.environ; keep that from leaking into other tests
    with mock.patch.dict(os.environ):
        s = load_settings(str(env))
    assert s.hls_list_size == 25
    assert s.max_upload_mb == 50
