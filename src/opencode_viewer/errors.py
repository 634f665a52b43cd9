"""Errors raised while locating and loading session storage."""

from enum import Enum


class StorageErrorCode(str, Enum):
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_STORAGE_FOLDER = "NOT_STORAGE_FOLDER"
    PARSE_ERROR = "PARSE_ERROR"
    EMPTY_FOLDER = "EMPTY_FOLDER"


_SUGGESTIONS = {
    StorageErrorCode.PERMISSION_DENIED: "Check that the storage folder is readable by the current user.",
    StorageErrorCode.NOT_STORAGE_FOLDER: (
        "Point OPENCODE_VIEWER_OPENCODE_PATH at the OpenCode storage folder, "
        "typically ~/.local/share/opencode/storage/"
    ),
    StorageErrorCode.PARSE_ERROR: "Some session files may be corrupted. The viewer loads what it can.",
    StorageErrorCode.EMPTY_FOLDER: "Make sure the folder contains saved sessions.",
}


def get_error_suggestion(code: StorageErrorCode) -> str:
    """Return a user-facing hint for resolving a storage error."""
    return _SUGGESTIONS[StorageErrorCode(code)]


class StorageError(Exception):
    """A storage folder could not be used as a session source."""

    def __init__(self, message: str, code: StorageErrorCode):
        super().__init__(message)
        self.code = StorageErrorCode(code)

    @property
    def suggestion(self) -> str:
        return get_error_suggestion(self.code)

    @property
    def can_retry(self) -> bool:
        return self.code is StorageErrorCode.PERMISSION_DENIED
