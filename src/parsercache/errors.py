from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    INVALID_INPUT = "INVALID_INPUT"
    GENERATION_FAILED = "GENERATION_FAILED"
    STORAGE_FAILED = "STORAGE_FAILED"
    PARSER_NOT_FOUND = "PARSER_NOT_FOUND"


class ParserCacheError(Exception):
    """Raised for all expected failure conditions.

    Caught by server.py and serialised into the MCP error response.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }


class InputError(ParserCacheError):
    """Missing or invalid caller input. Never reaches the coordinator."""

    def __init__(self, message: str, suggestion: str = "") -> None:
        super().__init__(
            code=ErrorCode.INVALID_INPUT,
            message=message,
            suggestion=suggestion or "Provide a non-empty url and html.",
            recoverable=False,
        )


class GenerationError(ParserCacheError):
    """The parser generation backend failed.

    Every caller coalesced onto the failed generation receives the same
    instance. The next call for the key starts a fresh generation.
    """

    def __init__(self, message: str, suggestion: str = "") -> None:
        super().__init__(
            code=ErrorCode.GENERATION_FAILED,
            message=message,
            suggestion=suggestion or "The generation backend may be unavailable. Try again later.",
            recoverable=True,
        )


class StorageError(ParserCacheError):
    """Persisting a generated parser failed."""

    def __init__(self, message: str) -> None:
        super().__init__(
            code=ErrorCode.STORAGE_FAILED,
            message=message,
            suggestion="Check that the storage directory or database is writable.",
            recoverable=True,
        )
