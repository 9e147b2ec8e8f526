# instastream_api/main.py
import argparse
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

# Use absolute package imports so uvicorn can resolve the module reliably.
from instastream_api.config import Settings, load_settings
from instastream_api.control import STREAM_URL, ControlFacade
from instastream_api.encoder import EncoderLauncher, FfmpegLauncher
from instastream_api.routes.playlist import router as playlist_router
from instastream_api.routes.stream import router as stream_router
from instastream_api.routes.ui import router as ui_router
from instastream_api.routes.upload import router as upload_router
from instastream_api.storage import PlaylistStore
from instastream_api.supervisor import EncodeSupervisor

logger = logging.getLogger(__name__)

ENDPOINTS = {
    "upload": {
        "POST /api/upload": 'Upload a video to the playlist (multipart/form-data with field "video")',
    },
    "playlist": {
        "GET /api/playlist": "Get playlist and current status",
        "DELETE /api/playlist/{id}": "Remove an item from the playlist",
        "POST /api/playlist/reorder": "Reorder playlist (body: { order: [id1, id2, ...] })",
        "DELETE /api/playlist": "Clear entire playlist",
        "POST /api/playlist/current/{index}": "Set current item by index",
        "POST /api/playlist/next": "Move to the next item (restarts an active stream)",
    },
    "stream": {
        "POST /api/stream/start": "Start streaming",
        "POST /api/stream/stop": "Stop streaming",
        "POST /api/stream/pause": "Pause streaming",
        "POST /api/stream/resume": "Resume streaming",
        "GET /api/stream/status": "Get stream status",
        f"GET {STREAM_URL}": "HLS stream playlist (use in video player)",
    },
    "utility": {
        "GET /health": "Health check endpoint",
        "GET /player": "Browser player with controls",
    },
}


def create_app(
    settings: Optional[Settings] = None,
    launcher: Optional[EncoderLauncher] = None,
    timer_factory=None,
) -> FastAPI:
    settings = settings or load_settings()
    settings.ensure_dirs()

    store = PlaylistStore(settings.playlist_path)
    supervisor_kwargs = {"restart_delay": settings.restart_delay}
    if timer_factory is not None:
        supervisor_kwargs["timer_factory"] = timer_factory
    supervisor = EncodeSupervisor(store, launcher or FfmpegLauncher(settings), **supervisor_kwargs)
    control = ControlFacade(store, supervisor)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Upload directory: %s", settings.upload_dir)
        logger.info("Stream directory: %s", settings.stream_dir)
        logger.info("HLS segment duration: %ss", settings.hls_segment_duration)
        yield
        supervisor.shutdown()

    app = FastAPI(title="Insta-Stream Server", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.control = control

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(upload_router)
    app.include_router(playlist_router)
    app.include_router(stream_router)
    app.include_router(ui_router)

    # HLS manifest + segments
    app.mount("/stream", StaticFiles(directory=str(settings.stream_dir)), name="stream")

    @app.get("/health")
    def health():
        return {
            "success": True,
            "message": "Server is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/")
    def index():
        return {
            "name": "Insta-Stream Server",
            "version": "1.0.0",
            "description": "Live streaming server with video upload and HLS streaming",
            "endpoints": ENDPOINTS,
        }

    return app


def main(argv=None):
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Run the Insta-Stream server.")
    parser.add_argument("--host", default=settings.host, help="Bind address")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to listen on")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Stream URL: http://localhost:%d%s", args.port, STREAM_URL)
    uvicorn.run(
        "instastream_api.main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
