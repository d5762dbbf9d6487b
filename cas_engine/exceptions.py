"""
Exception hierarchy for the CAS extraction engine.

Components raise these typed errors; the orchestrator turns them into a
ParseFailure so that callers receive a result value instead of an exception.
Each exception carries an ErrorKind that the upload layer maps to user
guidance (for example "enter the correct password" vs. "unsupported file").
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Failure kinds reported to callers."""
    UNREADABLE_DOCUMENT = "UnreadableDocument"
    PASSWORD_REQUIRED = "PasswordRequired"
    INCORRECT_PASSWORD = "IncorrectPassword"
    UNSUPPORTED_FORMAT = "UnsupportedFormat"
    EXTRACTION_INCOMPLETE = "ExtractionIncomplete"
    INTERNAL_EXTRACTION_ERROR = "InternalExtractionError"
    CANCELLED = "Cancelled"


class CASEngineError(Exception):
    """Base exception for all engine errors."""

    kind: ErrorKind = ErrorKind.INTERNAL_EXTRACTION_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnreadableDocument(CASEngineError):
    """Raised when the byte buffer is not a readable PDF or has no text layer."""

    kind = ErrorKind.UNREADABLE_DOCUMENT


class PasswordRequired(CASEngineError):
    """Raised when the PDF is encrypted and no password was supplied."""

    kind = ErrorKind.PASSWORD_REQUIRED


class IncorrectPassword(CASEngineError):
    """Raised when the supplied password does not open the PDF."""

    kind = ErrorKind.INCORRECT_PASSWORD


class UnsupportedFormat(CASEngineError):
    """Raised when the text matches no known issuer format."""

    kind = ErrorKind.UNSUPPORTED_FORMAT


class ExtractionIncomplete(CASEngineError):
    """
    Raised when the format matched but a mandatory section is missing.

    This separates "right format, malformed or half-rendered statement" from
    a wrong format, which detection already rejects.
    """

    kind = ErrorKind.EXTRACTION_INCOMPLETE


class InternalExtractionError(CASEngineError):
    """
    Raised when a format extractor fails unexpectedly.

    The original exception is chained as __cause__.
    """

    kind = ErrorKind.INTERNAL_EXTRACTION_ERROR

    def __init__(
        self,
        message: str,
        format_type: Optional[str] = None,
        stage: Optional[str] = None,
    ):
        super().__init__(message)
        self.format_type = format_type
        self.stage = stage


class ParseCancelled(CASEngineError):
    """Raised between pipeline stages when the caller cancelled the parse."""

    kind = ErrorKind.CANCELLED
