"""
Request analytics for the discovery surfaces.

Every served curated/featured request is recorded with the source that
answered it (precomputed or fallback) and whether the cache was hit, so a
precomputed-source outage shows up as a rising fallback rate.
"""
