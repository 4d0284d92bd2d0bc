"""
AiOperator resource model.

Parses raw custom-object bodies (as returned by the Kubernetes API) into
immutable values the reconciler works with.
"""

from dataclasses import asdict, dataclass, field
from typing import Optional

from aioperator.services.errors import UserInputError

# API group and version for our CRD
API_GROUP = "aioperator.io"
API_VERSION = "v1"
KIND = "AiOperator"
PLURAL = "aioperators"

# Marker guarding deletion until the controller has cleaned up
FINALIZER = "aioperator/finalizer"


def _as_count(value) -> int:
    """Parse status.configured; unset or unparsable values count as 0."""
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class AiOperatorStatus:
    """Controller-owned status sub-object."""
    installed: bool = False
    configured: int = 0
    maintenance: bool = False
    waiting: bool = False
    last_backup: str = "N/A"
    answer: Optional[str] = None
    state_hash: Optional[str] = None
    
    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "AiOperatorStatus":
        data = data or {}
        return cls(
            installed=bool(data.get("installed", False)),
            configured=_as_count(data.get("configured")),
            maintenance=bool(data.get("maintenance", False)),
            waiting=bool(data.get("waiting", False)),
            last_backup=data.get("last_backup") or "N/A",
            answer=data.get("answer"),
            state_hash=data.get("state_hash"),
        )
    
    def to_dict(self) -> dict:
        """Serialize for the status subresource, omitting unset optional fields."""
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True)
class AiOperator:
    """A snapshot of one AiOperator resource, read fresh on every pass."""
    name: str
    namespace: str
    prompt: str
    status: AiOperatorStatus = field(default_factory=AiOperatorStatus)
    finalizers: tuple = ()
    deletion_timestamp: Optional[str] = None
    resource_version: Optional[str] = None
    
    @property
    def deletion_requested(self) -> bool:
        return self.deletion_timestamp is not None
    
    @property
    def has_finalizer(self) -> bool:
        return FINALIZER in self.finalizers
    
    @classmethod
    def from_body(cls, body: dict) -> "AiOperator":
        """
        Build an AiOperator from a raw API object.
        
        Raises:
            UserInputError: if the name, namespace or spec.prompt is missing.
                These resources can never be reconciled, so they are not retried.
        """
        metadata = body.get("metadata") or {}
        spec = body.get("spec") or {}
        
        name = metadata.get("name")
        namespace = metadata.get("namespace")
        prompt = spec.get("prompt")
        
        if not name:
            raise UserInputError("AiOperator resource has no name")
        if not namespace:
            raise UserInputError(f"AiOperator '{name}' has no namespace")
        if prompt is None:
            raise UserInputError(f"AiOperator '{namespace}/{name}' must have spec.prompt")
        
        return cls(
            name=name,
            namespace=namespace,
            prompt=str(prompt),
            status=AiOperatorStatus.from_dict(body.get("status")),
            finalizers=tuple(metadata.get("finalizers") or ()),
            deletion_timestamp=metadata.get("deletionTimestamp"),
            resource_version=metadata.get("resourceVersion"),
        )
