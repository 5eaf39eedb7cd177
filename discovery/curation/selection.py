from __future__ import annotations

import logging
import math
from typing import Iterable

from .errors import ConfigurationError
from .models import RankedEntry, RankedResult, ScoredCandidate

logger = logging.getLogger(__name__)


def _sort_key(sc: ScoredCandidate) -> tuple[float, int, str]:
    # NaN sorts last so the ordering stays total
    score = -math.inf if math.isnan(sc.score) else sc.score
    return (-score, -max(0, sc.candidate.review_count), sc.candidate.id)


def sort_scored(scored: Iterable[ScoredCandidate]) -> list[ScoredCandidate]:
    """Score desc, then review count desc, then id asc."""
    return sorted(scored, key=_sort_key)


def _require_non_negative(**sizes: int) -> None:
    for name, value in sizes.items():
        if value < 0:
            raise ConfigurationError(f"{name} must be non-negative, got {value}")


def select_diverse(
    scored: Iterable[ScoredCandidate],
    limit: int,
    min_fill: int = 0,
) -> list[ScoredCandidate]:
    """
    Pick one candidate per category key in score order, capped at ``limit``.

    If that yields fewer than ``min(min_fill, limit)`` entries, backfill from
    the remaining pool (any category, no repeated ids) in score order.
    """
    _require_non_negative(limit=limit, min_fill=min_fill)
    ordered = sort_scored(scored)

    chosen: list[ScoredCandidate] = []
    seen_keys: set[str] = set()
    chosen_ids: set[str] = set()
    for sc in ordered:
        if len(chosen) >= limit:
            break
        key = sc.candidate.category_key
        if key in seen_keys or sc.candidate.id in chosen_ids:
            continue
        seen_keys.add(key)
        chosen_ids.add(sc.candidate.id)
        chosen.append(sc)

    diverse_count = len(chosen)
    target = min(min_fill, limit)
    if len(chosen) < target:
        for sc in ordered:
            if len(chosen) >= target:
                break
            if sc.candidate.id in chosen_ids:
                continue
            chosen_ids.add(sc.candidate.id)
            chosen.append(sc)

    logger.debug(
        "Diversity check: pool=%d unique_categories=%d diverse=%d final=%d",
        len(ordered), len(seen_keys), diverse_count, len(chosen),
    )
    return chosen


def select(
    scored: Iterable[ScoredCandidate],
    leader_size: int,
    total_size: int,
    min_fill: int = 0,
) -> RankedResult:
    """
    Diversity-constrained top-K split into a leaders tier and a followers tier.

    Ranks are 1-based within each tier and reflect merit order; display
    shuffling, when wanted, happens in the presentation layer.
    """
    _require_non_negative(leader_size=leader_size, total_size=total_size, min_fill=min_fill)
    if leader_size > total_size:
        logger.warning(
            "leader_size %d exceeds total_size %d, clamping", leader_size, total_size,
        )
        leader_size = total_size

    filled = select_diverse(scored, total_size, min_fill)

    leaders = [
        RankedEntry(candidate=sc.candidate, score=sc.score, rank=i + 1, is_leader=True)
        for i, sc in enumerate(filled[:leader_size])
    ]
    followers = [
        RankedEntry(candidate=sc.candidate, score=sc.score, rank=i + 1, is_leader=False)
        for i, sc in enumerate(filled[leader_size:])
    ]
    return RankedResult(leaders=leaders, followers=followers)


def rank_single_tier(selected: list[ScoredCandidate]) -> list[RankedEntry]:
    """Assign 1-based merit ranks to an already selected list."""
    return [
        RankedEntry(candidate=sc.candidate, score=sc.score, rank=i + 1, is_leader=False)
        for i, sc in enumerate(selected)
    ]
