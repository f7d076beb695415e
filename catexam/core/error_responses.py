"""
Standardized error response messages and builders.

This module provides consistent error messages and HTTPException builders
for the API. Engine failures (``catexam.core.cat.exceptions``) are translated
into these by the routers.

Error Message Format Guidelines:
- Use sentence case (capitalize first letter only)
- End with a period for complete sentences
- Include relevant IDs in parentheses when helpful for debugging: "(ID: abc)"
- Use "Please try again later." for transient server errors

Usage:
    from catexam.core.error_responses import ErrorMessages, raise_not_found

    raise_not_found(ErrorMessages.session_not_found(session_id))
"""

from typing import NoReturn, Optional

from fastapi import HTTPException, status


class ErrorMessages:
    """Centralized error message constants and templates.

    Naming Convention:
    - Constants: SCREAMING_SNAKE_CASE for static messages
    - Methods: snake_case for templates that accept parameters
    """

    # ==========================================================================
    # Server Errors (500)
    # ==========================================================================
    EXAM_OPERATION_FAILED = "The exam operation failed. Please try again later."

    # ==========================================================================
    # Template Methods for Dynamic Messages
    # ==========================================================================
    @staticmethod
    def session_not_found(session_id: str) -> str:
        return f"Exam session not found (ID: {session_id})."

    @staticmethod
    def item_not_found(item_id: str) -> str:
        return f"Item not found (ID: {item_id})."

    @staticmethod
    def active_session_exists(session_id: str) -> str:
        """Message for when a subject has an active session blocking a new one.

        Includes session_id so clients can send the test-taker back to it.
        """
        return (
            f"Subject already has an exam session in progress (ID: {session_id}). "
            "Please finish or end the existing session before starting a new one."
        )

    @staticmethod
    def invalid_input(reason: str) -> str:
        return f"{reason.rstrip('.')}."


# ==============================================================================
# HTTPException Builder Functions
# ==============================================================================


def raise_bad_request(detail: str) -> NoReturn:
    """Raise a 400 Bad Request exception.

    Use for client errors where the request is malformed or invalid.

    Args:
        detail: User-facing error message

    Raises:
        HTTPException: 400 Bad Request
    """
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail,
    )


def raise_not_found(detail: str) -> NoReturn:
    """Raise a 404 Not Found exception.

    Use when a requested resource doesn't exist.

    Args:
        detail: User-facing error message

    Raises:
        HTTPException: 404 Not Found
    """
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail,
    )


def raise_conflict(detail: str) -> NoReturn:
    """Raise a 409 Conflict exception.

    Use when the request conflicts with the current session state.

    Args:
        detail: User-facing error message

    Raises:
        HTTPException: 409 Conflict
    """
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=detail,
    )


def raise_server_error(
    detail: str,
    error_id: Optional[str] = None,
) -> NoReturn:
    """Raise a 500 Internal Server Error exception.

    Use for unexpected server errors. Always use user-friendly messages;
    log technical details separately.

    Args:
        detail: User-facing error message (should be generic and friendly)
        error_id: Optional error tracking ID to include in response

    Raises:
        HTTPException: 500 Internal Server Error
    """
    if error_id:
        detail = f"{detail} (Error ID: {error_id})"

    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=detail,
    )
