from fastapi.responses import JSONResponse

from .control import NOT_FOUND, REJECTED, ControlResult


def safe_name(s: str) -> str:
    """Keep only characters that are harmless in a file name."""
    cleaned = "".join(ch for ch in s if ch.isalnum() or ch in ("-", "_", "."))
    return cleaned.lstrip(".") or "upload"


def http_status(result: ControlResult) -> int:
    if result.ok:
        return 200
    if result.status == REJECTED:
        return 404 if result.code == NOT_FOUND else 400
    return 500


def respond(result: ControlResult) -> JSONResponse:
    return JSONResponse(result.to_dict(), status_code=http_status(result))
