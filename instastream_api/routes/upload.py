import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse

from ..config import Settings
from ..control import ControlFacade
from ..deps import get_control, get_settings
from ..errors import UploadRejected
from ..probe import probe_duration
from ..uploads import save_upload
from ..utils import respond

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["upload"])


@router.post("/upload")
def upload_video(
    video: Optional[UploadFile] = File(None),
    control: ControlFacade = Depends(get_control),
    settings: Settings = Depends(get_settings),
):
    if video is None:
        return JSONResponse({"success": False, "message": "No video file provided"}, status_code=400)
    try:
        stored = save_upload(
            video.file, video.filename, video.content_type,
            settings.upload_dir, settings.max_upload_bytes,
        )
    except UploadRejected as e:
        logger.warning("Upload rejected: %s", e)
        return JSONResponse({"success": False, "message": str(e)}, status_code=400)
    except OSError as e:
        logger.error("Failed to store upload: %s", e)
        return JSONResponse({"success": False, "message": "Failed to upload video"}, status_code=500)
    finally:
        video.file.close()

    duration = probe_duration(str(stored.path), settings.ffprobe_bin)
    result = control.add_item(
        str(stored.path), stored.original_name, stored.size, duration, filename=stored.filename
    )
    if result.ok:
        result.message = "Video uploaded successfully"
    else:
        stored.path.unlink(missing_ok=True)
    return respond(result)
