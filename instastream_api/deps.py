from fastapi import Request

from .config import Settings
from .control import ControlFacade


def get_control(request: Request) -> ControlFacade:
    """FastAPI dependency for the facade built by create_app()."""
    return request.app.state.control


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
