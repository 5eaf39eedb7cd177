from __future__ import annotations

from dataclasses import dataclass, fields

from .errors import ConfigurationError


@dataclass(frozen=True)
class CurationConfig:
    """
    Tunables for scoring, selection, retrieval and caching.

    The scoring constants are the knobs of the shrinkage model:
    ``prior_mean`` is the rating a business with no reviews is assumed to
    have, and ``prior_weight`` is how many reviews that assumption is worth.
    ``rating_weight`` and ``volume_weight`` blend the shrunk rating with
    ``ln(1 + review_count)``.
    """

    # Scoring
    prior_mean: float = 4.0
    prior_weight: float = 5
    rating_weight: float = 0.7
    volume_weight: float = 0.3

    # Selection
    leader_size: int = 3
    curated_default_limit: int = 13
    featured_default_limit: int = 12
    max_limit: int = 50
    curated_min_fill: int | None = None  # None = fill up to the requested limit
    featured_min_fill: int = 4

    # Retrieval
    oversample_factor: int = 10
    max_pool_size: int = 100
    precomputed_timeout: float | None = 3.0

    # Cache
    cache_ttl_seconds: float = 300.0
    cache_sweep_threshold: int = 100
    geo_precision: int = 2

    # Presentation
    shuffle_featured: bool = True
    shuffle_curated: bool = False
    default_location: str = "Cape Town"

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                continue
            if value < 0:
                raise ConfigurationError(f"{f.name} must be non-negative, got {value!r}")
        if self.max_limit < 1:
            raise ConfigurationError("max_limit must be at least 1")


DEFAULT_CURATION_CONFIG = CurationConfig()
