"""
System invariant tests.

Drive the engine through long seeded sequences of mixed operations and
check after every step that:
1. Ranks are exactly 1..N
2. Every Good item ranks above every Medium item, every Medium above every Bad
3. No stored comparison outcome is contradicted by the rank order
4. Scores stay inside their tier band and never increase down a peer group
"""

import random

import pytest

from tierrank.models.collection import CollectionStore
from tierrank.models.item import MediaType, Tier
from tierrank.services.rank_ordering import check_invariants, contradicted_outcomes
from tierrank.services.ranking_engine import ImportEntry, RankingEngine


def assert_collection_sound(engine: RankingEngine) -> None:
    check_invariants(engine.store)

    ordered = engine.store.ordered()
    assert [item.rank for item in ordered] == list(range(1, len(ordered) + 1))

    for pair, winner_id in engine.store.outcomes.items():
        (loser_id,) = pair - {winner_id}
        winner, loser = engine.store.get(winner_id), engine.store.get(loser_id)
        if winner.peer_key == loser.peer_key:
            assert winner.rank < loser.rank
    assert contradicted_outcomes(engine.store) == []

    scores = engine.score_all()
    for item in ordered:
        top, bottom = item.tier.score_band
        assert bottom <= scores[item.id] <= top

    for tier in Tier:
        for media_type in MediaType:
            peer_scores = [scores[p.id] for p in engine.store.peers(tier, media_type)]
            assert peer_scores == sorted(peer_scores, reverse=True)


class Simulation:
    """Random user acting on one collection, with a hidden quality per item."""

    def __init__(self, seed: int, fickle: bool = False):
        self.rng = random.Random(seed)
        self.fickle = fickle
        self.engine = RankingEngine(CollectionStore(user_id=f"sim-{seed}"))
        self.quality: dict[str, float] = {}
        self.counter = 0

    def judge(self, a_id: str, b_id: str) -> str:
        if self.fickle:
            return self.rng.choice((a_id, b_id))
        return a_id if self.quality[a_id] > self.quality[b_id] else b_id

    def place_new(self) -> None:
        self.counter += 1
        tier = self.rng.choice(list(Tier))
        media_type = self.rng.choice(list(MediaType))
        session = self.engine.classify_new_item(f"k{self.counter}", tier, media_type=media_type)
        self.quality[session.item_id] = self.rng.random()
        while not session.is_converged:
            winner = self.judge(session.item_id, session.opponent_id)
            self.engine.answer_comparison(session.session_id, winner)

    def import_some(self) -> None:
        entries = []
        for _ in range(self.rng.randint(1, 3)):
            self.counter += 1
            entries.append(
                ImportEntry(
                    f"k{self.counter}",
                    self.rng.choice(list(Tier)),
                    self.rng.choice(list(MediaType)),
                )
            )
        for item_id in self.engine.import_items(entries).imported:
            self.quality[item_id] = self.rng.random()

    def remove_one(self) -> None:
        if self.engine.store.items:
            self.engine.remove_item(self.rng.choice(sorted(self.engine.store.items)))

    def adhoc(self) -> None:
        pair = self.engine.request_comparison_pair()
        if pair is not None:
            winner = self.judge(*pair)
            loser = pair[1] if winner == pair[0] else pair[0]
            self.engine.record_comparison_outcome(winner, loser)

    def retier_one(self) -> None:
        if not self.engine.store.items:
            return
        item_id = self.rng.choice(sorted(self.engine.store.items))
        current = self.engine.store.get(item_id).tier
        target = self.rng.choice([tier for tier in Tier if tier != current])
        session = self.engine.retier_item(item_id, target)
        while not session.is_converged:
            winner = self.judge(session.item_id, session.opponent_id)
            self.engine.answer_comparison(session.session_id, winner)

    def reorder_one(self) -> None:
        tier = self.rng.choice(list(Tier))
        ids = [item.id for item in self.engine.store.tier_members(tier)]
        if ids:
            self.rng.shuffle(ids)
            self.engine.reorder_tier(tier, ids)

    def step(self) -> None:
        actions = [
            self.place_new,
            self.place_new,
            self.import_some,
            self.remove_one,
            self.adhoc,
            self.retier_one,
            self.reorder_one,
        ]
        self.rng.choice(actions)()


class TestRankInvariantsUnderRandomOperations:
    @pytest.mark.parametrize("seed", range(10))
    def test_mixed_operations(self, seed: int) -> None:
        sim = Simulation(seed)

        for _ in range(120):
            sim.step()
            assert_collection_sound(sim.engine)

    @pytest.mark.parametrize("seed", range(5))
    def test_inconsistent_judge(self, seed: int) -> None:
        """Contradictory answers still leave ranks and stored outcomes in agreement."""
        sim = Simulation(seed, fickle=True)
        for _ in range(15):
            sim.place_new()

        for _ in range(150):
            sim.rng.choice([sim.adhoc, sim.adhoc, sim.adhoc, sim.place_new, sim.retier_one])()
            assert_collection_sound(sim.engine)

    @pytest.mark.parametrize("seed", range(5))
    def test_insertion_only_sorts_each_peer_group(self, seed: int) -> None:
        """With only insertions, each peer group ends sorted by hidden quality."""
        sim = Simulation(seed)

        for _ in range(60):
            sim.place_new()

        for tier in Tier:
            for media_type in MediaType:
                peers = sim.engine.store.peers(tier, media_type)
                qualities = [sim.quality[p.id] for p in peers]
                assert qualities == sorted(qualities, reverse=True)
        assert_collection_sound(sim.engine)

    @pytest.mark.parametrize("seed", range(5))
    def test_interleaved_sessions(self, seed: int) -> None:
        """Several sessions open at once, answered in random order."""
        sim = Simulation(seed)
        for _ in range(20):
            sim.place_new()

        sessions = []
        for _ in range(6):
            sim.counter += 1
            session = sim.engine.classify_new_item(
                f"k{sim.counter}",
                sim.rng.choice(list(Tier)),
                media_type=sim.rng.choice(list(MediaType)),
            )
            sim.quality[session.item_id] = sim.rng.random()
            sessions.append(session)

        while any(not s.is_converged for s in sessions):
            session = sim.rng.choice([s for s in sessions if not s.is_converged])
            if sim.rng.random() < 0.2:
                sim.remove_one()
            sim.engine.resume_session(session.session_id)
            if session.is_converged:
                continue
            winner = sim.judge(session.item_id, session.opponent_id)
            sim.engine.answer_comparison(session.session_id, winner)
            assert_collection_sound(sim.engine)

        assert_collection_sound(sim.engine)
