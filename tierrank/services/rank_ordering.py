"""
Rank Ordering: the single source of truth for item order.

Ranks are collection-wide, contiguous (1..N) and banded by tier: every Good
item ranks above every Medium item, every Medium above every Bad. Inside a
band, movies and shows interleave; each media type's relative order is what
insertion and scoring read.

Every operation here is planned first (a dict of item id -> new rank),
validated, and only then applied. Nothing between validation and application
can fail, so a caller never observes a half-renumbered tier.

INVARIANTS (checked by `check_invariants`):
1. Ranks are exactly 1..N
2. Band ordering: better tier => smaller rank
3. Outcome consistency: no stored winner ranks below its loser in a peer group
"""

import logging

from tierrank.models.collection import CollectionStore, Pair
from tierrank.models.failure import InvariantViolation
from tierrank.models.item import MediaType, RankedItem, Tier

logger = logging.getLogger(__name__)

RankPlan = dict[str, int]


def _apply(store: CollectionStore, plan: RankPlan) -> None:
    for item_id, rank in plan.items():
        store.items[item_id].rank = rank
    store.bump_revision()


def band_start(store: CollectionStore, tier: Tier, exclude_id: str | None = None) -> int:
    """First rank of a tier's band (where its best item sits, or would sit)."""
    better = sum(
        1 for item in store.items.values() if item.id != exclude_id and item.tier.order < tier.order
    )
    return better + 1


def insertion_rank(
    store: CollectionStore,
    tier: Tier,
    media_type: MediaType,
    position: int,
    moving: RankedItem | None = None,
) -> int:
    """
    Translate a position among peers into a collection-wide rank.

    `position` is an index into the (tier, media type) peer list, 0 = best.
    The item lands immediately before the peer currently at `position`, or
    after the last peer, or at the end of the tier band if it has no peers.

    When `moving` is given (re-tier, re-rank), it is left out of the peer list
    and the rank returned is the one it takes once removed from its current
    slot.
    """
    exclude_id = moving.id if moving is not None else None
    members = [item for item in store.tier_members(tier) if item.id != exclude_id]
    peers = [item for item in members if item.media_type == media_type]

    if not 0 <= position <= len(peers):
        raise InvariantViolation(
            "insertion position out of range",
            f"position {position} among {len(peers)} {tier.value}/{media_type.value} peers",
        )

    if position < len(peers):
        rank = peers[position].rank
    elif members:
        anchor = peers[-1] if peers else members[-1]
        rank = anchor.rank + 1
    else:
        return band_start(store, tier, exclude_id)

    if moving is not None and moving.rank < rank:
        rank -= 1
    return rank


def renumber(store: CollectionStore, tier: Tier, ordered_ids: list[str]) -> None:
    """
    Reassign contiguous ranks to a tier whose order has been decided.

    `ordered_ids` must name every member of the tier exactly once, best
    first. Anything else means the caller holds a contradictory order.

    Raises:
        InvariantViolation: duplicate, foreign or missing ids
    """
    members = store.tier_members(tier)
    member_ids = {item.id for item in members}

    if len(set(ordered_ids)) != len(ordered_ids):
        raise InvariantViolation(
            "contradictory ordering",
            f"{tier.value} ordering lists an item more than once",
        )
    if set(ordered_ids) != member_ids:
        raise InvariantViolation(
            "contradictory ordering",
            f"{tier.value} ordering does not match its {len(member_ids)} members",
        )

    start = band_start(store, tier)
    plan = {item_id: start + offset for offset, item_id in enumerate(ordered_ids)}
    _apply(store, plan)
    logger.debug("Renumbered %s band from rank %d (%d items)", tier.value, start, len(plan))


def commit_swap(store: CollectionStore, mover: RankedItem, target: RankedItem) -> None:
    """
    Move `mover` into `target`'s rank.

    Adjacent items simply exchange ranks. Otherwise every item between them
    shifts one place toward `mover`'s old slot; items outside that span are
    not touched.

    Raises:
        InvariantViolation: the two items are in different tiers
    """
    if mover.tier != target.tier:
        raise InvariantViolation(
            "band ordering",
            f"cannot swap across tiers ({mover.tier.value} / {target.tier.value})",
        )
    if mover.id == target.id:
        return

    plan: RankPlan = {mover.id: target.rank}
    if abs(mover.rank - target.rank) == 1:
        plan[target.id] = mover.rank
    elif mover.rank > target.rank:
        for item in store.items.values():
            if target.rank <= item.rank < mover.rank:
                plan[item.id] = item.rank + 1
    else:
        for item in store.items.values():
            if mover.rank < item.rank <= target.rank:
                plan[item.id] = item.rank - 1

    logger.debug("Moving %s from rank %d to %d", mover.id, mover.rank, target.rank)
    _apply(store, plan)


def promote(store: CollectionStore, winner: RankedItem, loser: RankedItem) -> list[str]:
    """
    Re-place `winner` above `loser` after an upset.

    Peers between the two that hold a recorded win over anything being
    lifted are lifted along with it, so no stored outcome in the span is
    overturned. The lifted block keeps its relative order and takes the top
    of the span; the other peers in the span shift down behind it. A lone
    winner is a plain `commit_swap`.

    Returns:
        Ids of the lifted items, best first. Empty if nothing moved.

    Raises:
        InvariantViolation: the two items are not peers
    """
    if winner.peer_key != loser.peer_key:
        raise InvariantViolation(
            "band ordering",
            f"cannot promote across peer groups ({winner.id} / {loser.id})",
        )
    if winner.rank < loser.rank:
        return []

    span = [
        peer
        for peer in store.peers(winner.tier, winner.media_type)
        if loser.rank <= peer.rank <= winner.rank
    ]
    lifted = {winner.id}
    grown = True
    while grown:
        grown = False
        for peer in span:
            if peer.id in lifted or peer.id == loser.id:
                continue
            if any(store.winner_of(peer.id, other) == peer.id for other in lifted):
                lifted.add(peer.id)
                grown = True

    if lifted == {winner.id}:
        commit_swap(store, winner, loser)
        return [winner.id]

    block = [peer for peer in span if peer.id in lifted]
    rest = [peer for peer in span if peer.id not in lifted]
    slots = [peer.rank for peer in span]
    plan: RankPlan = {peer.id: slot for peer, slot in zip(block + rest, slots, strict=True)}
    logger.debug("Lifting %d items above %s", len(block), loser.id)
    _apply(store, plan)
    return [peer.id for peer in block]


def contradicted_outcomes(
    store: CollectionStore, tier: Tier | None = None, media_type: MediaType | None = None
) -> list[Pair]:
    """Stored outcomes whose winner ranks below its loser within a peer group."""
    found: list[Pair] = []
    for pair, winner_id in store.outcomes.items():
        if not all(item_id in store.items for item_id in pair):
            continue
        (loser_id,) = pair - {winner_id}
        winner, loser = store.items[winner_id], store.items[loser_id]
        if winner.peer_key != loser.peer_key:
            continue
        if tier is not None and winner.tier != tier:
            continue
        if media_type is not None and winner.media_type != media_type:
            continue
        if winner.rank > loser.rank:
            found.append(pair)
    return found


def drop_contradicted_outcomes(
    store: CollectionStore, tier: Tier, media_type: MediaType | None = None
) -> int:
    """
    Forget stored outcomes that the current order of a tier overturns.

    Used after an order is decided by something newer than those outcomes:
    a manual reorder, a comparison closing a cycle, or a session whose
    earlier answers a reorder made stale.
    """
    stale = contradicted_outcomes(store, tier, media_type)
    for pair in stale:
        del store.outcomes[pair]
    if stale:
        logger.info("Dropped %d outcomes overturned in %s band", len(stale), tier.value)
    return len(stale)


def splice(store: CollectionStore, item: RankedItem, rank: int) -> None:
    """
    Insert a new item at `rank`, pushing every later item down one place.

    Raises:
        InvariantViolation: item already present, or rank outside 1..N+1
    """
    if item.id in store:
        raise InvariantViolation("unique ids", f"item {item.id} is already ranked")
    if not 1 <= rank <= len(store) + 1:
        raise InvariantViolation("contiguous ranks", f"rank {rank} outside 1..{len(store) + 1}")

    plan: RankPlan = {
        other.id: other.rank + 1 for other in store.items.values() if other.rank >= rank
    }
    store.items[item.id] = item
    plan[item.id] = rank
    _apply(store, plan)


def remove_and_renumber(store: CollectionStore, item: RankedItem) -> None:
    """
    Delete an item and close the gap it leaves.

    Every later item moves up one rank, which also shifts the band boundary
    of every following tier.
    """
    if store.items.get(item.id) is not item:
        raise InvariantViolation("unique ids", f"item {item.id} is not ranked in this collection")

    plan: RankPlan = {
        other.id: other.rank - 1 for other in store.items.values() if other.rank > item.rank
    }
    del store.items[item.id]
    store.forget_outcomes(item.id)
    _apply(store, plan)


def relocate(store: CollectionStore, item: RankedItem, tier: Tier, rank: int) -> None:
    """
    Move a ranked item to a new slot (and possibly a new tier) in one step.

    `rank` is expressed as if the item had already been removed, which is
    what `insertion_rank(..., moving=item)` returns.
    """
    if store.items.get(item.id) is not item:
        raise InvariantViolation("unique ids", f"item {item.id} is not ranked in this collection")
    if not 1 <= rank <= len(store):
        raise InvariantViolation("contiguous ranks", f"rank {rank} outside 1..{len(store)}")

    plan: RankPlan = {}
    for other in store.items.values():
        if other.id == item.id:
            continue
        new_rank = other.rank - 1 if other.rank > item.rank else other.rank
        if new_rank >= rank:
            new_rank += 1
        if new_rank != other.rank:
            plan[other.id] = new_rank
    plan[item.id] = rank

    item.tier = tier
    _apply(store, plan)


def check_invariants(store: CollectionStore) -> None:
    """
    Audit rank contiguity and band ordering.

    Raises:
        InvariantViolation: on the first problem found
    """
    ordered = store.ordered()

    for expected, item in enumerate(ordered, start=1):
        if item.rank != expected:
            raise InvariantViolation(
                "contiguous ranks",
                f"expected rank {expected}, found {item.rank} ({item.id})",
            )

    for better, worse in zip(ordered, ordered[1:], strict=False):
        if better.tier.order > worse.tier.order:
            raise InvariantViolation(
                "band ordering",
                f"{better.tier.value} item at rank {better.rank} "
                f"above {worse.tier.value} item at rank {worse.rank}",
            )

    contradicted = contradicted_outcomes(store)
    if contradicted:
        first_id, second_id = sorted(contradicted[0])
        raise InvariantViolation(
            "outcome consistency",
            f"{len(contradicted)} stored outcomes overturned, e.g. {first_id} / {second_id}",
        )
