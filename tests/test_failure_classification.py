"""
Tests for the Failure Classification System.

These tests verify the core invariant:

    No raw 500 error may reach the client.
    Every failure must be classified and explained.
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tierrank.db.database import get_session
from tierrank.main import app
from tierrank.models.failure import (
    INVARIANT_SUGGESTION,
    STANDARD_MESSAGES,
    DuplicateItemError,
    FailureKind,
    InvalidOperationError,
    InvariantViolation,
    ItemNotFoundError,
    KnownError,
    OutcomeType,
    RefusalError,
    SessionNotFoundError,
    create_invariant_failure,
    create_unknown_failure,
    is_finalized,
)
from tierrank.services.ranking_engine import RankingEngine


@pytest.fixture
async def lenient_client(async_engine):
    """Client that returns 500 responses instead of re-raising app errors."""
    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_session():
        async with async_session() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


class TestErrorTaxonomy:
    """Each engine error maps to one classification."""

    def test_item_not_found_is_known_404(self) -> None:
        error = ItemNotFoundError("abc")

        assert isinstance(error, KnownError)
        assert error.status_code == 404
        assert error.kind == FailureKind.NOT_FOUND

    def test_session_not_found_is_known_404(self) -> None:
        error = SessionNotFoundError("s1")

        assert isinstance(error, KnownError)
        assert error.status_code == 404

    def test_invalid_operation_is_refusal_409(self) -> None:
        error = InvalidOperationError("session already converged")

        assert isinstance(error, RefusalError)
        assert error.status_code == 409
        assert error.kind == FailureKind.INVALID_OPERATION

    def test_duplicate_is_invalid_operation(self) -> None:
        error = DuplicateItemError("603", "movie")

        assert isinstance(error, InvalidOperationError)
        assert error.kind == FailureKind.DUPLICATE_ITEM
        assert "603" in str(error)

    def test_invariant_violation_is_not_a_refusal(self) -> None:
        """Corrupt state is a programming error, never something to retry."""
        error = InvariantViolation("contiguous ranks", "expected rank 3, found 5")

        assert not isinstance(error, (KnownError, RefusalError))
        assert str(error) == "contiguous ranks: expected rank 3, found 5"


class TestResponseConversion:
    def test_known_error_converts_to_response(self) -> None:
        response = ItemNotFoundError("abc").to_response()

        assert response.outcome == OutcomeType.KNOWN_FAILURE
        assert response.failure is not None
        assert response.failure.kind == FailureKind.NOT_FOUND
        assert response.failure.detail == "item_id=abc"
        assert is_finalized(response)

    def test_refusal_converts_to_response(self) -> None:
        response = InvalidOperationError("winner not part of comparison").to_response()

        assert response.outcome == OutcomeType.REFUSAL
        assert response.failure is not None
        assert response.failure.detail == "winner not part of comparison"
        assert response.failure.message == STANDARD_MESSAGES[OutcomeType.REFUSAL]

    def test_invariant_failure_names_invariant_only(self) -> None:
        response = create_invariant_failure(InvariantViolation("band ordering", "internal detail"))

        assert response.failure is not None
        assert response.failure.kind == FailureKind.INVARIANT_VIOLATION
        assert response.failure.detail == "band ordering"
        assert response.failure.suggestion == INVARIANT_SUGGESTION

    def test_unknown_failure_hides_message(self) -> None:
        response = create_unknown_failure(RuntimeError("secret connection string"))

        assert response.outcome == OutcomeType.UNKNOWN_FAILURE
        assert response.failure is not None
        assert response.failure.detail == "RuntimeError"
        assert "secret" not in response.model_dump_json()


class TestExceptionHandlers:
    """Tests for global exception handlers in main.py."""

    async def test_invariant_violation_returns_explained_500(
        self, lenient_client: AsyncClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def corrupt(self):
            raise InvariantViolation("contiguous ranks", "expected rank 1, found 2")

        monkeypatch.setattr(RankingEngine, "score_all", corrupt)

        response = await lenient_client.get("/collection/u1")

        assert response.status_code == 500
        data = response.json()
        assert data["outcome"] == "known_failure"
        assert data["failure"]["kind"] == "invariant_violation"
        assert data["failure"]["detail"] == "contiguous ranks"

    async def test_unexpected_error_returns_classified_500(
        self, lenient_client: AsyncClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def crash(self):
            raise RuntimeError("boom")

        monkeypatch.setattr(RankingEngine, "score_all", crash)

        response = await lenient_client.get("/collection/u1")

        assert response.status_code == 500
        data = response.json()
        assert data["outcome"] == "unknown_failure"
        assert data["failure"]["kind"] == "unknown"
        assert "boom" not in response.text

    async def test_validation_error_is_4xx(self, lenient_client: AsyncClient) -> None:
        response = await lenient_client.post("/collection/u1/items", json={"tier": "Great"})

        assert response.status_code == 422


class TestFailureKindCoverage:
    def test_all_failure_kinds_are_unique(self) -> None:
        values = [kind.value for kind in FailureKind]
        assert len(values) == len(set(values))

    def test_every_non_success_outcome_has_standard_message(self) -> None:
        for outcome in OutcomeType:
            if outcome != OutcomeType.SUCCESS:
                assert outcome in STANDARD_MESSAGES
