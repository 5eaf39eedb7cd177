"""
Curation engine behind the "curated" and "featured" discovery surfaces.

Responsibilities:
- Retrieve candidates from the precomputed ranking source, falling back to
  the business repository when it is unavailable or empty.
- Score candidates with a shrinkage rating plus a review-volume boost.
- Select a category-diverse, deterministic top-K split into leaders and followers.
- Cache results per (surface, category, geo bucket, limit) with a TTL.
- Map ranked entries into client view models.
"""
