"""
Ranking Engine: the public operations over one user's collection.

Every operation runs under the collection's lock (single writer per
collection) and either fully commits or raises before changing anything.
After every committed mutation the rank invariants are audited; a failure
there is an InvariantViolation and is never repaired in place.

Operations:
- classify_new_item / answer_comparison / resume_session / abandon_session
- request_comparison_pair / record_comparison_outcome
- remove_item / retier_item / rerank_item / reorder_tier
- import_items
- score_of / score_all / stats / export_csv
"""

import logging
from dataclasses import dataclass, field

from tierrank.config import settings
from tierrank.models.collection import CollectionStore
from tierrank.models.failure import (
    DuplicateItemError,
    InvalidOperationError,
    SessionNotFoundError,
)
from tierrank.models.item import ItemPayload, MediaType, RankedItem, Tier
from tierrank.models.session import InsertionSession, SessionPurpose
from tierrank.services import insertion
from tierrank.services.export import export_rankings_csv
from tierrank.services.pair_selection import pick_any, pick_for_tier, pick_least_compared
from tierrank.services.rank_ordering import (
    band_start,
    check_invariants,
    drop_contradicted_outcomes,
    promote,
    remove_and_renumber,
    renumber,
    splice,
)
from tierrank.services.scoring import batch_score, score

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportEntry:
    """One already-classified entry from an external rating import."""

    external_key: str
    tier: Tier
    media_type: MediaType = MediaType.MOVIE
    payload: ItemPayload = field(default_factory=ItemPayload)


@dataclass
class ImportReport:
    imported: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CollectionStats:
    """Summary counts for a collection."""

    total_items: int
    by_tier: dict[Tier, int]
    by_media_type: dict[MediaType, int]
    total_comparisons: int
    unsettled_items: int


class RankingEngine:
    """
    Public entry point for one collection.

    `sessions` holds open insertion sessions. Callers that persist sessions
    between requests load the relevant ones into it before calling and save
    them afterwards.
    """

    def __init__(
        self,
        store: CollectionStore,
        sessions: dict[str, InsertionSession] | None = None,
        pair_window: int | None = None,
        settled_threshold: int | None = None,
    ):
        self.store = store
        self.sessions: dict[str, InsertionSession] = sessions if sessions is not None else {}
        self.pair_window = pair_window if pair_window is not None else settings.pair_window
        self.settled_threshold = (
            settled_threshold if settled_threshold is not None else settings.settled_threshold
        )

    # --- Insertion ---

    def classify_new_item(
        self,
        external_key: str,
        tier: Tier,
        payload: ItemPayload | None = None,
        media_type: MediaType = MediaType.MOVIE,
    ) -> InsertionSession:
        """
        Start ranking a newly classified piece of media.

        Returns a session that is either already converged (empty peer group)
        or waiting for the first comparison answer.

        Raises:
            DuplicateItemError: the entry is already ranked or being placed
        """
        with self.store.lock:
            self._reject_duplicate(external_key, media_type)
            item = RankedItem(
                external_key=external_key,
                media_type=media_type,
                tier=tier,
                payload=payload or ItemPayload(),
            )
            session = insertion.begin_insertion(self.store, item, tier)
            self._track(session)
            return session

    def answer_comparison(self, session_id: str, winner_id: str) -> InsertionSession:
        """Apply one answer to a pending insertion comparison."""
        with self.store.lock:
            session = self.get_session(session_id)
            insertion.answer(self.store, session, winner_id)
            self._after_mutation()
            return session

    def resume_session(self, session_id: str) -> InsertionSession:
        """Re-derive a suspended session against the current order."""
        with self.store.lock:
            session = self.get_session(session_id)
            insertion.advance(self.store, session)
            self._after_mutation()
            return session

    def abandon_session(self, session_id: str) -> None:
        """Drop a session without placing its item. Recorded counts stay."""
        with self.store.lock:
            session = self.get_session(session_id)
            del self.sessions[session_id]
            logger.info(
                "Abandoned session %s after %d comparisons", session_id, session.comparisons
            )

    def get_session(self, session_id: str) -> InsertionSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    # --- Ad-hoc comparisons ---

    def request_comparison_pair(
        self,
        tier: Tier | None = None,
        media_type: MediaType | None = None,
    ) -> tuple[str, str] | None:
        """Pick the next pair worth comparing, or None if everything is settled."""
        with self.store.lock:
            pool = [
                item
                for item in self.store.items.values()
                if media_type is None or item.media_type == media_type
            ]
            if tier is not None:
                pair = pick_for_tier(
                    tier, pool, self.pair_window, self.settled_threshold, self.store.outcomes
                )
            else:
                pair = pick_any(pool, self.pair_window, self.settled_threshold, self.store.outcomes)
            if pair is None:
                return None
            return (pair[0].id, pair[1].id)

    def record_comparison_outcome(self, winner_id: str, loser_id: str) -> None:
        """
        Apply the result of an ad-hoc comparison.

        If the winner already ranks above the loser nothing moves. Otherwise
        the winner is re-placed above the loser: a plain exchange when they
        are adjacent. Across a wider span, peers holding a recorded win over
        the winner move up with it. Only an outcome closing a cycle can
        overturn an earlier one, and that earlier outcome is forgotten.
        """
        with self.store.lock:
            if winner_id == loser_id:
                raise InvalidOperationError("an item cannot be compared with itself")
            winner = self.store.get(winner_id)
            loser = self.store.get(loser_id)
            if winner.peer_key != loser.peer_key:
                raise InvalidOperationError(
                    "only items of the same tier and media type can be compared"
                )

            winner.record_comparison()
            loser.record_comparison()
            self.store.record_outcome(winner.id, loser.id)

            lifted = promote(self.store, winner, loser)
            if lifted:
                drop_contradicted_outcomes(self.store, winner.tier, winner.media_type)
                logger.info(
                    "Comparison moved %s above %s (%d lifted)", winner.id, loser.id, len(lifted)
                )
            self._after_mutation()

    # --- Removal / relocation ---

    def remove_item(self, item_id: str) -> None:
        with self.store.lock:
            item = self.store.get(item_id)
            remove_and_renumber(self.store, item)
            for session_id in [
                s.session_id for s in self.sessions.values() if s.item_id == item_id
            ]:
                del self.sessions[session_id]
            self._after_mutation()
            logger.info("Removed %s from %s band", item_id, item.tier.value)

    def retier_item(self, item_id: str, new_tier: Tier) -> InsertionSession:
        """
        Move an item to another tier through a full binary insertion.

        The item keeps its old slot until the session converges, so an
        abandoned re-tier loses nothing.
        """
        with self.store.lock:
            item = self.store.get(item_id)
            if item.tier == new_tier:
                raise InvalidOperationError(f"item {item_id} is already in {new_tier.value}")
            return self._relocation(item, new_tier, SessionPurpose.RETIER)

    def rerank_item(self, item_id: str) -> InsertionSession:
        """Re-place an item within its own tier from scratch."""
        with self.store.lock:
            item = self.store.get(item_id)
            return self._relocation(item, item.tier, SessionPurpose.RERANK)

    def suggest_rerank(self, media_type: MediaType | None = None) -> str | None:
        """The item whose placement rests on the fewest comparisons."""
        with self.store.lock:
            item = pick_least_compared(
                item
                for item in self.store.items.values()
                if media_type is None or item.media_type == media_type
            )
            return item.id if item is not None else None

    def reorder_tier(
        self,
        tier: Tier,
        ordered_ids: list[str],
        media_type: MediaType | None = None,
    ) -> None:
        """
        Apply a user-decided order to a tier.

        With `media_type`, `ordered_ids` orders only that media type's items;
        the other media type keeps its slots in the band.

        Raises:
            InvalidOperationError: ids do not match the tier's members exactly
        """
        with self.store.lock:
            members = self.store.tier_members(tier)
            targets = [m for m in members if media_type is None or m.media_type == media_type]
            if len(ordered_ids) != len(targets) or set(ordered_ids) != {m.id for m in targets}:
                raise InvalidOperationError(
                    f"order must list each of the {len(targets)} {tier.value} items exactly once"
                )

            replacements = iter(ordered_ids)
            full_order = [
                next(replacements) if media_type is None or m.media_type == media_type else m.id
                for m in members
            ]
            renumber(self.store, tier, full_order)
            drop_contradicted_outcomes(self.store, tier, media_type)
            self._after_mutation()
            logger.info("Reordered %s band (%d items)", tier.value, len(full_order))

    # --- Import ---

    def import_items(self, entries: list[ImportEntry]) -> ImportReport:
        """
        Add already-classified entries without comparisons.

        Each entry goes to the end of its tier band, in input order.
        Entries already in the collection, waiting in an open session, or
        repeated in the batch are skipped.
        """
        report = ImportReport()
        with self.store.lock:
            for entry in entries:
                if self._is_known(entry.external_key, entry.media_type):
                    report.skipped.append(entry.external_key)
                    continue
                item = RankedItem(
                    external_key=entry.external_key,
                    media_type=entry.media_type,
                    tier=entry.tier,
                    payload=entry.payload,
                )
                rank = band_start(self.store, entry.tier) + self.store.tier_counts()[entry.tier]
                splice(self.store, item, rank)
                report.imported.append(item.id)
            self._after_mutation()

        logger.info(
            "Imported %d items (%d skipped as duplicates)",
            len(report.imported),
            len(report.skipped),
        )
        return report

    # --- Reads ---

    def score_of(self, item_id: str) -> float:
        with self.store.lock:
            item = self.store.get(item_id)
            return score(item, self.store.peers(item.tier, item.media_type))

    def score_all(self) -> dict[str, float]:
        with self.store.lock:
            return batch_score(self.store.items.values())

    def stats(self) -> CollectionStats:
        with self.store.lock:
            items = list(self.store.items.values())
            by_media_type = {media_type: 0 for media_type in MediaType}
            for item in items:
                by_media_type[item.media_type] += 1
            return CollectionStats(
                total_items=len(items),
                by_tier=self.store.tier_counts(),
                by_media_type=by_media_type,
                total_comparisons=sum(item.comparison_count for item in items),
                unsettled_items=sum(
                    1 for item in items if item.comparison_count < self.settled_threshold
                ),
            )

    def export_csv(self) -> str:
        with self.store.lock:
            return export_rankings_csv(self.store.ordered(), batch_score(self.store.items.values()))

    # --- Internals ---

    def _is_known(self, external_key: str, media_type: MediaType) -> bool:
        """Whether an entry is already ranked or waiting in an open session."""
        if self.store.find_by_external_key(external_key, media_type) is not None:
            return True
        return any(
            session.pending is not None
            and session.pending.external_key == external_key
            and session.pending.media_type == media_type
            for session in self.sessions.values()
        )

    def _reject_duplicate(self, external_key: str, media_type: MediaType) -> None:
        if self._is_known(external_key, media_type):
            raise DuplicateItemError(external_key, media_type.value)

    def _relocation(
        self, item: RankedItem, tier: Tier, purpose: SessionPurpose
    ) -> InsertionSession:
        for session in self.sessions.values():
            if session.item_id == item.id and not session.is_converged:
                raise InvalidOperationError(
                    f"item {item.id} is already being placed by session {session.session_id}"
                )
        session = insertion.begin_insertion(self.store, item, tier, purpose)
        self._track(session)
        return session

    def _track(self, session: InsertionSession) -> None:
        self.sessions[session.session_id] = session
        self._after_mutation()

    def _after_mutation(self) -> None:
        check_invariants(self.store)
