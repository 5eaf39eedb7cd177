from __future__ import annotations

import math
from typing import Iterable

from .config import DEFAULT_CURATION_CONFIG, CurationConfig
from .models import Candidate, ScoredCandidate

MAX_RATING = 5.0


def _clamp_rating(rating: float) -> float:
    if math.isnan(rating):
        return 0.0
    return max(0.0, min(MAX_RATING, rating))


def weighted_rating(
    average_rating: float,
    review_count: int,
    config: CurationConfig = DEFAULT_CURATION_CONFIG,
) -> float:
    """Shrink ``average_rating`` toward ``prior_mean`` by ``prior_weight`` pseudo-reviews."""
    rating = _clamp_rating(average_rating)
    count = max(0, review_count)
    denominator = count + config.prior_weight
    if denominator <= 0:
        return config.prior_mean
    return (rating * count + config.prior_mean * config.prior_weight) / denominator


def score_candidate(
    candidate: Candidate,
    config: CurationConfig = DEFAULT_CURATION_CONFIG,
) -> float:
    """Composite relevance score: shrunk rating blended with ``ln(1 + reviews)``."""
    count = max(0, candidate.review_count)
    volume_boost = math.log1p(count)
    shrunk = weighted_rating(candidate.average_rating, count, config)
    return shrunk * config.rating_weight + volume_boost * config.volume_weight


def score_candidates(
    candidates: Iterable[Candidate],
    config: CurationConfig = DEFAULT_CURATION_CONFIG,
    prefer_precomputed: bool = False,
) -> list[ScoredCandidate]:
    """Score a pool. With ``prefer_precomputed`` a finite upstream score wins when present."""
    scored: list[ScoredCandidate] = []
    for c in candidates:
        upstream = c.precomputed_score
        if prefer_precomputed and upstream is not None and math.isfinite(upstream):
            score = upstream
        else:
            score = score_candidate(c, config)
        scored.append(ScoredCandidate(candidate=c, score=score))
    return scored
