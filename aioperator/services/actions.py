"""
Action determination.

Decides what a reconciliation pass must do from the resource's lifecycle
markers and a fingerprint comparison. Pure functions; no cluster access.
"""

from enum import Enum
from typing import Optional

from aioperator.services.resource import AiOperatorStatus

# Recorded fingerprint when nothing was ever recorded
UNKNOWN_FINGERPRINT = "unknown"

# Annotation key holding the last applied fingerprint
STATE_HASH_KEY = "state_hash"


class Action(str, Enum):
    """What a single reconciliation pass does."""
    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"
    NOOP = "NoOp"


def determine_action(
    deletion_requested: bool,
    has_finalizer: bool,
    previous_fingerprint: str,
    current_fingerprint: str,
) -> Action:
    """
    Map the observed resource state to exactly one action.
    
    Order matters: a deletion request wins over everything, then a missing
    finalizer means the resource was never taken over. Only then are the
    fingerprints compared.
    """
    if deletion_requested:
        return Action.DELETE
    if not has_finalizer:
        return Action.CREATE
    if previous_fingerprint != current_fingerprint:
        return Action.UPDATE
    return Action.NOOP


def recorded_fingerprint(
    snapshot: Optional[dict],
    status: Optional[AiOperatorStatus] = None,
) -> str:
    """
    Recover the previously recorded fingerprint.
    
    The state_hash this controller last wrote to the resource status takes
    precedence, since nothing here updates the sibling workload. The sibling
    workload's annotation snapshot is used when the status has none.
    """
    if status is not None and status.state_hash:
        return status.state_hash
    if snapshot and snapshot.get(STATE_HASH_KEY):
        return snapshot[STATE_HASH_KEY]
    return UNKNOWN_FINGERPRINT
