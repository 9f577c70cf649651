"""Custom exceptions for sn-dotfiles.

Provides a structured exception hierarchy with error codes and
machine-readable error information. Precondition failures are raised
before any remote mutation; local write failures during a pull are
collected and raised together once every write has been attempted.
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Configuration errors (1xxx)
    CONFIG_INVALID = 1001
    HOME_REQUIRED = 1002
    TAG_TITLE_REQUIRED = 1003
    SESSION_INVALID = 1004

    # Path errors (2xxx)
    PATH_INVALID = 2001
    PATH_OUTSIDE_HOME = 2002
    PATH_NOT_FOUND = 2003

    # Remote store errors (3xxx)
    REMOTE_FETCH_FAILED = 3001
    REMOTE_PUSH_FAILED = 3002
    DECRYPTION_FAILED = 3003

    # Consistency errors (4xxx)
    DUPLICATE_NOTE_TITLE = 4001
    NO_REMOTE_DOTFILES = 4002

    # Sync errors (5xxx)
    NO_ITEMS_TO_PUSH = 5001
    LOCAL_WRITE_FAILED = 5002
    PULL_PARTIAL = 5003
    LOCAL_READ_FAILED = 5004


class DotfilesError(Exception):
    """Base exception for all sn-dotfiles errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class ConfigurationError(DotfilesError):
    """Raised for missing or invalid configuration (home, tag title)."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        code: ErrorCode = ErrorCode.CONFIG_INVALID
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, code=code, details=details)
        self.config_key = config_key


class SessionError(ConfigurationError):
    """Raised when a session string cannot be parsed."""

    def __init__(self, message: str = "session invalid"):
        super().__init__(message, config_key="session", code=ErrorCode.SESSION_INVALID)


class InvalidPathError(DotfilesError):
    """Raised when a path cannot be mapped to a tag title."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        home: Optional[str] = None,
        code: ErrorCode = ErrorCode.PATH_INVALID
    ):
        details = {}
        if path:
            details["path"] = path
        if home:
            details["home"] = home

        super().__init__(message, code=code, details=details)
        self.path = path
        self.home = home


class PathNotFoundError(DotfilesError):
    """Raised when one or more requested paths do not exist locally.

    All missing paths are reported together, before anything is changed.
    """

    def __init__(self, paths: Sequence[str]):
        self.paths: List[str] = list(paths)
        noun = "path" if len(self.paths) == 1 else "paths"
        super().__init__(
            f"{noun} not found: {', '.join(self.paths)}",
            code=ErrorCode.PATH_NOT_FOUND,
            details={"count": len(self.paths)}
        )


class RemoteFetchError(DotfilesError):
    """Raised when items cannot be retrieved or decoded from the store."""

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
        code: ErrorCode = ErrorCode.REMOTE_FETCH_FAILED
    ):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.original_error = original_error


class DecryptionError(DotfilesError):
    """Raised when an item payload fails authentication or decoding."""

    def __init__(self, message: str, item_uuid: Optional[str] = None):
        details = {}
        if item_uuid:
            details["uuid"] = item_uuid

        super().__init__(message, code=ErrorCode.DECRYPTION_FAILED, details=details)
        self.item_uuid = item_uuid


class RemotePushError(DotfilesError):
    """Raised when a batch of items cannot be submitted to the store."""

    def __init__(
        self,
        message: str,
        item_count: int = 0,
        original_error: Optional[Exception] = None,
        code: ErrorCode = ErrorCode.REMOTE_PUSH_FAILED
    ):
        details: Dict[str, Any] = {"item_count": item_count}
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.item_count = item_count
        self.original_error = original_error


class DuplicateNoteTitleError(DotfilesError):
    """Raised when a tag holds more than one note with the same title."""

    def __init__(self, tag_title: str, note_title: str):
        super().__init__(
            f"duplicate note '{note_title}' found under tag '{tag_title}'",
            code=ErrorCode.DUPLICATE_NOTE_TITLE,
            details={"tag": tag_title, "note": note_title}
        )
        self.tag_title = tag_title
        self.note_title = note_title


class NoRemoteDotfilesError(DotfilesError):
    """Raised when the tracked relationship is empty."""

    def __init__(self, message: str = "no remote dotfiles found"):
        super().__init__(message, code=ErrorCode.NO_REMOTE_DOTFILES)


class NoItemsToPushError(DotfilesError):
    """Raised when push is called with nothing to push."""

    def __init__(self, message: str = "no items to push"):
        super().__init__(message, code=ErrorCode.NO_ITEMS_TO_PUSH)


class LocalWriteError(DotfilesError):
    """Raised when remote content cannot be written to a local path."""

    def __init__(self, path: str, original_error: Optional[Exception] = None):
        details: Dict[str, Any] = {"path": path}
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(
            f"failed to write {path}",
            code=ErrorCode.LOCAL_WRITE_FAILED,
            details=details
        )
        self.path = path
        self.original_error = original_error


class LocalReadError(DotfilesError):
    """Raised when a tracked local file exists but cannot be read."""

    def __init__(self, path: str, original_error: Optional[Exception] = None):
        details: Dict[str, Any] = {"path": path}
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(
            f"failed to read {path}",
            code=ErrorCode.LOCAL_READ_FAILED,
            details=details
        )
        self.path = path
        self.original_error = original_error


class PullError(DotfilesError):
    """Raised after a pull in which one or more local writes failed.

    Successful writes are not rolled back.

    Attributes:
        failures: One LocalWriteError per path that could not be written
        written_count: Number of paths written successfully
        pushed_count: Number of items pushed earlier in the same pass
    """

    def __init__(
        self,
        failures: Sequence[LocalWriteError],
        written_count: int = 0,
        pushed_count: int = 0
    ):
        self.failures: List[LocalWriteError] = list(failures)
        self.written_count = written_count
        self.pushed_count = pushed_count
        super().__init__(
            f"{len(self.failures)} of {len(self.failures) + written_count} "
            "pulls failed",
            code=ErrorCode.PULL_PARTIAL,
            details={
                "failed_paths": [f.path for f in self.failures][:10],
                "written_count": written_count,
            }
        )

    @property
    def failed_paths(self) -> List[str]:
        return [f.path for f in self.failures]
