"""
Error taxonomy for the adaptive test engine.

Every failure the engine reports is one of these types. The HTTP layer maps
them to status codes (see ``catexam.api.v1.cat``); non-HTTP callers catch
``CATError`` or one of its subclasses directly.

    CATError
    ├── NotFoundError          unknown session or item
    │   ├── SessionNotFoundError
    │   └── ItemNotFoundError
    ├── InvalidStateError      operation forbidden by the current session status
    ├── InvalidInputError      malformed answer, negative time, repeated item, bad config
    └── ExhaustedError         the item bank has nothing left to offer
"""

from typing import Any, Dict, Optional


class CATError(Exception):
    """Base exception for adaptive test engine failures.

    Attributes:
        message: Human-readable description of the failure.
        context: Structured data useful for logging (ids, counts, statuses).
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class NotFoundError(CATError):
    """Raised when a referenced session or item does not exist."""


class SessionNotFoundError(NotFoundError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__("Exam session not found", {"session_id": session_id})


class ItemNotFoundError(NotFoundError):
    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__("Item not found", {"item_id": item_id})


class InvalidStateError(CATError):
    """Raised when the session status forbids the requested operation."""


class InvalidInputError(CATError):
    """Raised for malformed answers, negative times and invalid configuration."""


class ExhaustedError(CATError):
    """Raised by storage adapters that cannot supply any eligible item.

    ``CATExamService`` never lets this escape from a start or an answer:
    an exhausted bank is converted into a forced stop with result
    ``undetermined`` and stop reason ``no_items_available``.
    """
