"""Tests for ad-hoc comparison pair selection."""

from tierrank.models.collection import pair_key
from tierrank.models.item import MediaType, Tier
from tierrank.services.pair_selection import pick_any, pick_for_tier, pick_least_compared

GOOD, MEDIUM, BAD = Tier.GOOD, Tier.MEDIUM, Tier.BAD


def ids(pair):
    return None if pair is None else (pair[0].id, pair[1].id)


class TestPickForTier:
    def test_fewer_than_two_items(self, build_store) -> None:
        store = build_store([("a", GOOD), ("b", MEDIUM)])

        assert pick_for_tier(GOOD, store.items.values()) is None
        assert pick_for_tier(BAD, store.items.values()) is None

    def test_fresh_tier_prefers_adjacent_best(self, build_store) -> None:
        """With no history, the best-ranked adjacent pair comes first."""
        store = build_store([(key, GOOD) for key in "abcd"])

        assert ids(pick_for_tier(GOOD, store.items.values())) == ("a", "b")

    def test_prefers_least_compared(self, build_store) -> None:
        store = build_store([(key, GOOD) for key in "abcd"])
        store.get("a").comparison_count = 3
        store.get("b").comparison_count = 3

        assert ids(pick_for_tier(GOOD, store.items.values())) == ("c", "d")

    def test_prefers_uncompared_pairs(self, build_store) -> None:
        """Between equally-counted pairs, one never compared wins."""
        store = build_store([(key, GOOD) for key in "abc"])
        outcomes = {pair_key("a", "b"): "a"}

        assert ids(pick_for_tier(GOOD, store.items.values(), outcomes=outcomes)) == ("b", "c")

    def test_respects_window(self, build_store) -> None:
        """Items further apart than the window are never paired."""
        store = build_store([(key, GOOD) for key in "abcd"])
        for key in "bc":
            store.get(key).comparison_count = 5

        pair = pick_for_tier(GOOD, store.items.values(), window=2)

        assert ids(pair) == ("a", "b")
        assert ids(pick_for_tier(GOOD, store.items.values(), window=3)) == ("a", "d")

    def test_settled_pairs_excluded(self, build_store) -> None:
        store = build_store([(key, GOOD) for key in "abc"])
        for item in store.items.values():
            item.comparison_count = 8

        assert pick_for_tier(GOOD, store.items.values(), settled=8) is None

    def test_one_unsettled_item_keeps_pair_open(self, build_store) -> None:
        store = build_store([(key, GOOD) for key in "abc"])
        store.get("a").comparison_count = 8
        store.get("b").comparison_count = 8
        store.get("c").comparison_count = 2

        assert ids(pick_for_tier(GOOD, store.items.values(), settled=8)) == ("b", "c")

    def test_never_crosses_media_type(self, build_store) -> None:
        store = build_store(
            [
                ("m1", GOOD, MediaType.MOVIE),
                ("t1", GOOD, MediaType.TV),
                ("m2", GOOD, MediaType.MOVIE),
            ]
        )

        assert ids(pick_for_tier(GOOD, store.items.values())) == ("m1", "m2")

    def test_pair_ordered_better_first(self, build_store) -> None:
        store = build_store([(key, MEDIUM) for key in "abcde"])
        store.get("a").comparison_count = 1

        first, second = pick_for_tier(MEDIUM, store.items.values())

        assert first.rank < second.rank


class TestPickAny:
    def test_never_crosses_tiers(self, build_store) -> None:
        store = build_store([("a", GOOD), ("b", MEDIUM), ("c", BAD)])

        assert pick_any(store.items.values()) is None

    def test_picks_least_settled_tier(self, build_store) -> None:
        store = build_store([("a", GOOD), ("b", GOOD), ("c", MEDIUM), ("d", MEDIUM)])
        store.get("a").comparison_count = 2

        assert ids(pick_any(store.items.values())) == ("c", "d")

    def test_empty_pool(self) -> None:
        assert pick_any([]) is None


class TestPickLeastCompared:
    def test_fewest_comparisons(self, build_store) -> None:
        store = build_store([("a", GOOD), ("b", GOOD), ("c", MEDIUM)])
        store.get("a").comparison_count = 4
        store.get("b").comparison_count = 1
        store.get("c").comparison_count = 2

        assert pick_least_compared(store.items.values()).id == "b"

    def test_ties_go_to_best_rank(self, build_store) -> None:
        store = build_store([("a", GOOD), ("b", GOOD)])

        assert pick_least_compared(store.items.values()).id == "a"

    def test_empty(self) -> None:
        assert pick_least_compared([]) is None
