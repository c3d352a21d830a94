"""
Insertion Resolver: binary-search placement through pairwise comparisons.

Placing an item among n peers takes at most ceil(log2(n + 1)) comparisons:

    low, high = 0, n
    while low < high:
        mid = (low + high) // 2
        if item beats peers[mid]: high = mid
        else:                     low = mid + 1
    position = low

The session is a resumable value. Between answers the collection may change
(another item deleted, re-tiered, reordered), so bounds are never carried
over as raw indices: before each step they are re-derived from the peers the
item already lost to / beat, against the peer list as it is *now*.

Nothing is spliced until the search converges, and the answers only join the
collection's stored outcomes at that point. Abandoning a session leaves
ranks and outcomes untouched; comparison counts already recorded stay.
"""

import logging

from tierrank.models.collection import CollectionStore
from tierrank.models.failure import DuplicateItemError, InvalidOperationError
from tierrank.models.item import RankedItem, Tier
from tierrank.models.session import InsertionSession, SessionPurpose, SessionStatus
from tierrank.services.rank_ordering import (
    drop_contradicted_outcomes,
    insertion_rank,
    relocate,
    splice,
)

logger = logging.getLogger(__name__)


def session_item(store: CollectionStore, session: InsertionSession) -> RankedItem:
    """The item a session is placing."""
    if session.pending is not None:
        return session.pending
    item = store.items.get(session.item_id)
    if item is None:
        raise InvalidOperationError(f"item {session.item_id} left the collection mid-placement")
    return item


def _reject_if_ranked(store: CollectionStore, session: InsertionSession) -> None:
    """A pending item must not collide with one ranked since the session opened."""
    if session.pending is None:
        return
    item = session.pending
    if store.find_by_external_key(item.external_key, item.media_type) is not None:
        raise DuplicateItemError(item.external_key, item.media_type.value)


def rederive(store: CollectionStore, session: InsertionSession) -> list[RankedItem]:
    """
    Recompute `low`/`high` against the current peer order.

    Returns:
        The current peer list the bounds refer to
    """
    peers = store.peers(session.tier, session.media_type, exclude_id=session.item_id)
    index = {peer.id: position for position, peer in enumerate(peers)}

    low = max((index[peer_id] + 1 for peer_id in session.lost_to if peer_id in index), default=0)
    high = min(
        (index[peer_id] for peer_id in session.beats if peer_id in index), default=len(peers)
    )
    if low > high:
        # Earlier answers now contradict the order; settle between them
        logger.warning(
            "Session %s bounds crossed after reorder (low=%d, high=%d)",
            session.session_id,
            low,
            high,
        )
        high = low

    if session.revision != store.revision and (low, high) != (session.low, session.high):
        logger.warning(
            "Session %s re-derived bounds after concurrent change: [%d, %d) -> [%d, %d)",
            session.session_id,
            session.low,
            session.high,
            low,
            high,
        )

    session.low = low
    session.high = high
    session.revision = store.revision
    return peers


def _commit(store: CollectionStore, session: InsertionSession, item: RankedItem) -> None:
    position = session.low
    if session.pending is not None:
        item.tier = session.tier
        rank = insertion_rank(store, session.tier, session.media_type, position)
        splice(store, item, rank)
        session.pending = None
    else:
        rank = insertion_rank(store, session.tier, session.media_type, position, moving=item)
        relocate(store, item, session.tier, rank)

    for winner_id in session.lost_to:
        if winner_id in store:
            store.record_outcome(winner_id, item.id)
    for loser_id in session.beats:
        if loser_id in store:
            store.record_outcome(item.id, loser_id)
    drop_contradicted_outcomes(store, session.tier, session.media_type)

    session.status = SessionStatus.CONVERGED
    session.opponent_id = None
    session.final_rank = item.rank
    session.revision = store.revision
    logger.info(
        "Placed %s at %s position %d (rank %d) after %d comparisons",
        item.id,
        session.tier.value,
        position,
        item.rank,
        session.comparisons,
    )


def advance(store: CollectionStore, session: InsertionSession) -> InsertionSession:
    """
    Move the session forward: pick the next opponent, or commit if done.

    Safe to call repeatedly; a converged session is returned unchanged.
    """
    if session.is_converged:
        return session

    _reject_if_ranked(store, session)
    item = session_item(store, session)
    peers = rederive(store, session)

    if session.low >= session.high:
        _commit(store, session, item)
        return session

    mid = (session.low + session.high) // 2
    session.opponent_id = peers[mid].id
    logger.debug(
        "Session %s: compare against position %d of %d", session.session_id, mid, len(peers)
    )
    return session


def begin_insertion(
    store: CollectionStore,
    item: RankedItem,
    tier: Tier,
    purpose: SessionPurpose = SessionPurpose.NEW,
) -> InsertionSession:
    """
    Start placing `item` into `tier`.

    NEW items must not be in the store yet; RETIER/RERANK items must be. An
    empty peer group converges immediately without any comparison.
    """
    if purpose == SessionPurpose.NEW:
        if item.id in store:
            raise InvalidOperationError(f"item {item.id} is already ranked")
        pending: RankedItem | None = item
    else:
        store.get(item.id)
        pending = None

    session = InsertionSession(
        item_id=item.id,
        tier=tier,
        media_type=item.media_type,
        purpose=purpose,
        pending=pending,
    )
    session.high = len(store.peers(tier, item.media_type, exclude_id=item.id))
    session.revision = store.revision
    return advance(store, session)


def answer(store: CollectionStore, session: InsertionSession, winner_id: str) -> InsertionSession:
    """
    Apply the user's answer to the pending comparison.

    Raises:
        InvalidOperationError: session already converged, the opponent is no
            longer in the collection, or `winner_id` is not one of the two
            items being compared. The session is left unchanged.
    """
    if session.is_converged:
        raise InvalidOperationError(f"session {session.session_id} has already converged")

    item = session_item(store, session)
    opponent = store.items.get(session.opponent_id) if session.opponent_id else None
    if opponent is None or opponent.tier != session.tier:
        raise InvalidOperationError(
            f"pending comparison of session {session.session_id} is stale; resume it first"
        )
    if winner_id not in (item.id, opponent.id):
        raise InvalidOperationError(f"{winner_id} is not part of the pending comparison")
    _reject_if_ranked(store, session)

    item.record_comparison()
    opponent.record_comparison()
    session.comparisons += 1

    if winner_id == item.id:
        session.beats.append(opponent.id)
    else:
        session.lost_to.append(opponent.id)

    return advance(store, session)
