class InstastreamError(Exception):
    """Base class for faults raised by the store, encoder and uploads."""


class PlaylistPersistError(InstastreamError):
    pass


class EncoderError(InstastreamError):
    pass


class EncoderLaunchError(EncoderError):
    def __init__(self, message: str, stderr_tail: str = ""):
        super().__init__(message)
        self.stderr_tail = stderr_tail


class UploadRejected(InstastreamError):
    """Caller sent something we will not store (type, size, empty file)."""
