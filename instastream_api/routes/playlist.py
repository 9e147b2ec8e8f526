from fastapi import APIRouter, Depends

from ..control import ControlFacade
from ..deps import get_control
from ..models import ReorderPayload
from ..utils import respond

router = APIRouter(prefix="/api/playlist", tags=["playlist"])


@router.get("")
def get_playlist(control: ControlFacade = Depends(get_control)):
    return respond(control.playlist_status())


@router.delete("")
def clear_playlist(control: ControlFacade = Depends(get_control)):
    return respond(control.clear())


@router.post("/reorder")
def reorder_playlist(payload: ReorderPayload, control: ControlFacade = Depends(get_control)):
    return respond(control.reorder(payload.order))


@router.post("/current/{index}")
def set_current(index: int, control: ControlFacade = Depends(get_control)):
    return respond(control.set_current(index))


@router.post("/next")
def next_item(control: ControlFacade = Depends(get_control)):
    return respond(control.next_item())


@router.delete("/{item_id}")
def remove_item(item_id: str, control: ControlFacade = Depends(get_control)):
    return respond(control.remove_item(item_id))
