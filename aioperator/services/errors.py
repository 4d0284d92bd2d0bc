"""
Error taxonomy for reconciliation.

Permanent errors abandon the resource; temporary errors are re-queued
after the error backoff.
"""

import kopf


class UserInputError(kopf.PermanentError):
    """The AiOperator resource is malformed (e.g. missing namespace or prompt)."""


class ClusterApiError(kopf.TemporaryError):
    """A Kubernetes API call failed."""


class ConflictError(ClusterApiError):
    """A write was rejected because another writer changed the object first."""


class CompletionError(kopf.TemporaryError):
    """The completion provider failed, timed out or returned nothing usable."""


def from_api_exception(e, operation: str) -> ClusterApiError:
    """Translate a kubernetes ApiException into the matching retryable error."""
    if e.status == 409:
        return ConflictError(f"Conflict while trying to {operation}: {e.reason}")
    return ClusterApiError(f"Failed to {operation}: {e.status} {e.reason}")
