from __future__ import annotations


class CurationError(Exception):
    """Base class for curation engine errors."""


class UpstreamUnavailable(CurationError):
    """The precomputed ranking source failed, timed out or is not configured.

    Always recovered internally by switching to the fallback path.
    """


class InvalidRequest(CurationError, ValueError):
    """Caller input that cannot be corrected, e.g. a negative limit."""


class ConfigurationError(CurationError, ValueError):
    """Programmer misuse such as negative tier sizes or TTLs."""
