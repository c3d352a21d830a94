"""
Failure taxonomy and response envelope for the ranking engine.

Every engine entry point either fully commits or raises one of the errors
below before touching any state. The HTTP layer turns them into a classified
envelope so callers can decide between "retry with fresh state" and "reload
the whole collection".

Error classes:
- ItemNotFoundError / SessionNotFoundError: unknown id (KnownError, 404)
- InvalidOperationError: request rejected, nothing changed (RefusalError, 409)
- InvariantViolation: stored order is corrupt (programming error, 500)

AUTHORITY BOUNDARY:
All user-visible responses pass through `finalize_response()`.
"""

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"

    # Resource failures
    NOT_FOUND = "not_found"

    # Rejected operations
    INVALID_OPERATION = "invalid_operation"
    DUPLICATE_ITEM = "duplicate_item"

    # Internal errors
    INVARIANT_VIOLATION = "invariant_violation"

    # Unknown
    UNKNOWN = "unknown"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    SUCCESS = "success"
    REFUSAL = "refusal"
    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


T = TypeVar("T")


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )


class ApiResponse(BaseModel, Generic[T]):
    """
    Response envelope for failures leaving the API.

    Successful routes return their own response models; anything that goes
    wrong is wrapped here so it always carries an outcome classification.
    """

    outcome: OutcomeType = Field(
        ...,
        description="High-level classification of the result",
    )
    data: T | None = Field(
        default=None,
        description="Response data (present on success)",
    )
    failure: FailureDetail | None = Field(
        default=None,
        description="Failure details (present on non-success)",
    )


# =============================================================================
# EXCEPTIONS
# =============================================================================


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ApiResponse[Any]:
        """Convert to a finalized known-failure response."""
        return create_known_failure(self.kind, self.detail or self.message)


class RefusalError(Exception):
    """
    Exception for operations the engine declines to perform.

    The collection is left exactly as it was; the caller may retry
    with fresh state.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 409,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ApiResponse[Any]:
        """Convert to a finalized refusal response."""
        return create_refusal(self.kind, self.detail or self.message)


class ItemNotFoundError(KnownError):
    """Raised when an operation references an item id the collection does not hold."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=f"Item '{item_id}' is not in this collection.",
            detail=f"item_id={item_id}",
            suggestion="Refresh the collection and try again.",
            status_code=404,
        )


class SessionNotFoundError(KnownError):
    """Raised when a comparison session id is unknown (or already closed)."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=f"Comparison session '{session_id}' does not exist.",
            detail=f"session_id={session_id}",
            suggestion="Start a new comparison.",
            status_code=404,
        )


class InvalidOperationError(RefusalError):
    """
    Raised when a request is well-formed but not applicable to current state.

    Examples: answering a session that already converged, naming a winner
    that is not part of the pending comparison, comparing items from
    different tiers.
    """

    def __init__(self, reason: str, kind: FailureKind = FailureKind.INVALID_OPERATION):
        self.reason = reason
        super().__init__(
            kind=kind,
            message=reason,
            detail=reason,
            suggestion="Reload the current state and retry.",
        )


class DuplicateItemError(InvalidOperationError):
    """Raised when the same catalog entry is classified into a collection twice."""

    def __init__(self, external_key: str, media_type: str):
        self.external_key = external_key
        self.media_type = media_type
        super().__init__(
            f"{media_type} '{external_key}' is already ranked",
            kind=FailureKind.DUPLICATE_ITEM,
        )


class InvariantViolation(Exception):
    """
    Stored rank/tier state contradicts itself.

    This is a programming error, not a runtime condition: it is never
    retried or repaired in place. The collection must be reloaded from
    source data.
    """

    def __init__(self, invariant: str, detail: str):
        self.invariant = invariant
        self.detail = detail
        super().__init__(f"{invariant}: {detail}")


# =============================================================================
# FAILURE AUTHORITY BOUNDARY
# =============================================================================


# Standard messages: fixed and predictable

STANDARD_MESSAGES: dict[OutcomeType, str] = {
    OutcomeType.REFUSAL: "The request does not apply to the current state of the collection.",
    OutcomeType.KNOWN_FAILURE: "The operation failed due to a known issue.",
    OutcomeType.UNKNOWN_FAILURE: "The operation failed for an unknown reason.",
}

STANDARD_SUGGESTIONS: dict[OutcomeType, str] = {
    OutcomeType.REFUSAL: "Reload the collection and retry.",
    OutcomeType.KNOWN_FAILURE: "Check the error details and adjust your request.",
    OutcomeType.UNKNOWN_FAILURE: "If this persists, please report the issue.",
}

INVARIANT_SUGGESTION = "The collection must be reloaded before further changes."


# Track finalized responses by identity
_finalized_responses: set[int] = set()


def finalize_response(response: ApiResponse[Any]) -> ApiResponse[Any]:
    """
    Finalize a response through the authority boundary.

    Raises:
        ValueError: If response structure is invalid
    """
    if response.outcome == OutcomeType.SUCCESS:
        if response.failure is not None:
            raise ValueError("Success response must not have failure details")
    else:
        if response.failure is None:
            raise ValueError(f"{response.outcome.value} response must have failure details")

    _finalized_responses.add(id(response))

    return response


def is_finalized(response: ApiResponse[Any]) -> bool:
    """Check if a response has passed through the authority boundary."""
    return id(response) in _finalized_responses


def create_unknown_failure(exception: Exception) -> ApiResponse[Any]:
    """
    Create an unknown failure response from an exception.

    Only the exception type is exposed, never its message.
    """
    response: ApiResponse[Any] = ApiResponse(
        outcome=OutcomeType.UNKNOWN_FAILURE,
        failure=FailureDetail(
            kind=FailureKind.UNKNOWN,
            message=STANDARD_MESSAGES[OutcomeType.UNKNOWN_FAILURE],
            detail=type(exception).__name__,
            suggestion=STANDARD_SUGGESTIONS[OutcomeType.UNKNOWN_FAILURE],
        ),
    )
    return finalize_response(response)


def create_invariant_failure(error: InvariantViolation) -> ApiResponse[Any]:
    """Create the response for a corrupt collection state."""
    response: ApiResponse[Any] = ApiResponse(
        outcome=OutcomeType.KNOWN_FAILURE,
        failure=FailureDetail(
            kind=FailureKind.INVARIANT_VIOLATION,
            message=STANDARD_MESSAGES[OutcomeType.KNOWN_FAILURE],
            detail=error.invariant,
            suggestion=INVARIANT_SUGGESTION,
        ),
    )
    return finalize_response(response)


def create_known_failure(kind: FailureKind, reason: str) -> ApiResponse[Any]:
    """
    Create a known failure response.

    The message is standardized. Only the reason (technical detail) varies.
    """
    response: ApiResponse[Any] = ApiResponse(
        outcome=OutcomeType.KNOWN_FAILURE,
        failure=FailureDetail(
            kind=kind,
            message=STANDARD_MESSAGES[OutcomeType.KNOWN_FAILURE],
            detail=reason,
            suggestion=STANDARD_SUGGESTIONS[OutcomeType.KNOWN_FAILURE],
        ),
    )
    return finalize_response(response)


def create_refusal(kind: FailureKind, reason: str) -> ApiResponse[Any]:
    """Create a refusal response; the collection was not modified."""
    response: ApiResponse[Any] = ApiResponse(
        outcome=OutcomeType.REFUSAL,
        failure=FailureDetail(
            kind=kind,
            message=STANDARD_MESSAGES[OutcomeType.REFUSAL],
            detail=reason,
            suggestion=STANDARD_SUGGESTIONS[OutcomeType.REFUSAL],
        ),
    )
    return finalize_response(response)
