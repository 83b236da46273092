"""Domain value objects and pure matching rules."""

from tunelens.domain.value_objects.lyrics_query import (
    NormalizedQuery,
    build_search_queries,
    normalize_query,
    split_artists,
)
from tunelens.domain.value_objects.lyrics_scoring import (
    ScoredCandidate,
    score_candidate,
    select_best_candidate,
)

__all__ = [
    "NormalizedQuery",
    "ScoredCandidate",
    "build_search_queries",
    "normalize_query",
    "score_candidate",
    "select_best_candidate",
    "split_artists",
]
