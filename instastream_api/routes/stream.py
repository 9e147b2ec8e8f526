from fastapi import APIRouter, Depends

from ..control import ControlFacade
from ..deps import get_control
from ..utils import respond

router = APIRouter(prefix="/api/stream", tags=["stream"])


@router.post("/start")
def start_stream(control: ControlFacade = Depends(get_control)):
    return respond(control.start())


@router.post("/stop")
def stop_stream(control: ControlFacade = Depends(get_control)):
    return respond(control.stop())


@router.post("/pause")
def pause_stream(control: ControlFacade = Depends(get_control)):
    return respond(control.pause())


@router.post("/resume")
def resume_stream(control: ControlFacade = Depends(get_control)):
    return respond(control.resume())


@router.get("/status")
def stream_status(control: ControlFacade = Depends(get_control)):
    return respond(control.list_status())
