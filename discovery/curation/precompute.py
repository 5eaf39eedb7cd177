"""
Offline script to precompute the curation ranking for local data.

Usage:
    python -m discovery.curation.precompute
"""
from __future__ import annotations

from pathlib import Path

import pandas as pd

from ..sources.data_store import BUSINESSES_CSV, PRECOMPUTED_CSV, load_businesses
from .config import DEFAULT_CURATION_CONFIG, CurationConfig
from .models import Candidate
from .scoring import score_candidate


def build_rankings(df: pd.DataFrame, config: CurationConfig = DEFAULT_CURATION_CONFIG) -> pd.DataFrame:
    """Score every row and order the frame by the selector's sort key."""
    ranked = df.copy()
    candidates = [Candidate.from_row(row) for row in ranked.to_dict(orient="records")]
    ranked["curation_score"] = [round(score_candidate(c, config), 8) for c in candidates]
    ranked["_reviews"] = [max(0, c.review_count) for c in candidates]
    ranked = ranked.sort_values(
        ["curation_score", "_reviews", "id"],
        ascending=[False, False, True],
        kind="stable",
    ).drop(columns="_reviews")
    ranked["rank_position"] = range(1, len(ranked) + 1)
    return ranked.reset_index(drop=True)


def run_precompute(
    source: Path = BUSINESSES_CSV,
    out_path: Path = PRECOMPUTED_CSV,
    config: CurationConfig = DEFAULT_CURATION_CONFIG,
) -> Path:
    df = load_businesses(source)
    print(f"Scoring {len(df)} businesses ...")
    ranked = build_rankings(df, config)
    ranked.to_csv(out_path, index=False)
    print(f"Saved rankings ({len(ranked)} rows) to {out_path}")
    return out_path


if __name__ == "__main__":
    run_precompute()
