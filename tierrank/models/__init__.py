from tierrank.models.collection import CollectionStore, pair_key
from tierrank.models.failure import (
    STANDARD_MESSAGES,
    STANDARD_SUGGESTIONS,
    ApiResponse,
    DuplicateItemError,
    FailureDetail,
    FailureKind,
    InvalidOperationError,
    InvariantViolation,
    ItemNotFoundError,
    KnownError,
    OutcomeType,
    RefusalError,
    SessionNotFoundError,
    create_invariant_failure,
    create_known_failure,
    create_refusal,
    create_unknown_failure,
    finalize_response,
    is_finalized,
)
from tierrank.models.item import (
    TIERS_IN_BAND_ORDER,
    ItemPayload,
    MediaType,
    RankedItem,
    Tier,
)
from tierrank.models.session import InsertionSession, SessionPurpose, SessionStatus

__all__ = [
    "ApiResponse",
    "CollectionStore",
    "DuplicateItemError",
    "FailureDetail",
    "FailureKind",
    "InsertionSession",
    "InvalidOperationError",
    "InvariantViolation",
    "ItemNotFoundError",
    "ItemPayload",
    "KnownError",
    "MediaType",
    "OutcomeType",
    "RankedItem",
    "RefusalError",
    "STANDARD_MESSAGES",
    "STANDARD_SUGGESTIONS",
    "SessionNotFoundError",
    "SessionPurpose",
    "SessionStatus",
    "TIERS_IN_BAND_ORDER",
    "Tier",
    "create_invariant_failure",
    "create_known_failure",
    "create_refusal",
    "create_unknown_failure",
    "finalize_response",
    "is_finalized",
    "pair_key",
]
