"""
Adapters for the external collaborators of the curation engine.

Responsibilities:
- Business candidate repository (raw rows with aggregate stats).
- Precomputed ranking source (opaque, possibly slow or failing).
- Primary image lookup used by the presentation layer.

Two backends are provided: Supabase for deployments and local CSV files
(pandas) for development and tests.
"""
