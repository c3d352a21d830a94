"""
TierRank services.

Ordering, pair selection, insertion, scoring and the engine composing them.
"""

from tierrank.services.export import export_rankings_csv
from tierrank.services.insertion import advance, answer, begin_insertion, rederive
from tierrank.services.pair_selection import pick_any, pick_for_tier, pick_least_compared
from tierrank.services.rank_ordering import (
    band_start,
    check_invariants,
    commit_swap,
    contradicted_outcomes,
    drop_contradicted_outcomes,
    insertion_rank,
    promote,
    relocate,
    remove_and_renumber,
    renumber,
    splice,
)
from tierrank.services.ranking_engine import (
    CollectionStats,
    ImportEntry,
    ImportReport,
    RankingEngine,
)
from tierrank.services.scoring import batch_score, score

__all__ = [
    "CollectionStats",
    "ImportEntry",
    "ImportReport",
    "RankingEngine",
    "advance",
    "answer",
    "band_start",
    "batch_score",
    "begin_insertion",
    "check_invariants",
    "commit_swap",
    "contradicted_outcomes",
    "drop_contradicted_outcomes",
    "export_rankings_csv",
    "insertion_rank",
    "pick_any",
    "pick_for_tier",
    "pick_least_compared",
    "promote",
    "rederive",
    "relocate",
    "remove_and_renumber",
    "renumber",
    "score",
    "splice",
]
